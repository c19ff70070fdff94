"""
FlowSession: the editing session behind the REST routes.

Holds the flow being edited, the node factory, the settings-panel selection
and the outcome of the last save. The core returns result values; this is the
layer that hands them to the notification emitter.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from chatflow.core.FlowGraph import FlowGraph
from chatflow.core.FlowValidator import flow_status, validate_flow
from chatflow.core.GraphPrimitives import (
    Connection,
    EdgeChange,
    FlowNode,
    NodeChange,
    Position,
)
from chatflow.core.Types import FlowErrorCode, FlowStatus, FlowValidationResult, OperationResult
from chatflow.noderegistry.NodeFactory import NodeFactory
from chatflow.server.notifications.notification_emitter import NotificationEmitter, global_notifier
from chatflow.server.notifications.notification_types import (
    Notification,
    connection_rejected,
    save_outcome,
)


logger = logging.getLogger(__name__)


class FlowSession:
    """One flow plus the transient editor state around it."""

    def __init__(self, notifier: Optional[NotificationEmitter] = None) -> None:
        self.graph = FlowGraph()
        self.factory = NodeFactory(self.graph)
        self.notifier = notifier if notifier is not None else global_notifier
        self.selected_node_id: Optional[str] = None
        self.last_validation: FlowValidationResult = FlowValidationResult.not_validated()

    # ── Node helpers ─────────────────────────────────────────────────────────

    def place_node(self, node_type: str, x: float, y: float) -> OperationResult:
        return self.factory.place_node(node_type, Position(x, y))

    def update_node_data(self, node_id: str, partial_data: Mapping[str, Any]) -> OperationResult:
        return self.graph.update_node_data(node_id, partial_data)

    def apply_node_changes(self, changes: Iterable[NodeChange]) -> OperationResult:
        result = self.graph.apply_node_changes(changes)
        if self.selected_node_id is not None and not self.graph.has_node(self.selected_node_id):
            self.selected_node_id = None
        return result

    # ── Edge helpers ─────────────────────────────────────────────────────────

    def apply_edge_changes(self, changes: Iterable[EdgeChange]) -> OperationResult:
        return self.graph.apply_edge_changes(changes)

    def connect(self, connection: Connection) -> Tuple[OperationResult, Optional[Notification]]:
        result = self.graph.connect(connection)
        if result.ok:
            return result, None
        notification = self.notifier.fire(connection_rejected(result))
        return result, notification

    # ── Selection (settings panel) ───────────────────────────────────────────

    def select_node(self, node_id: str) -> OperationResult:
        node = self.graph.get_node(node_id)
        if node is None:
            return OperationResult.failure(FlowErrorCode.NOT_FOUND, f"Node with id '{node_id}' does not exist in the flow")
        self.selected_node_id = node_id
        return OperationResult.success(node)

    def clear_selection(self) -> None:
        self.selected_node_id = None

    def selected_node(self) -> Optional[FlowNode]:
        if self.selected_node_id is None:
            return None
        return self.graph.get_node(self.selected_node_id)

    # ── Save ─────────────────────────────────────────────────────────────────

    def save(self) -> Tuple[FlowValidationResult, Notification]:
        """Validate the current flow. Nothing is persisted yet; success is reported as-is."""
        nodes, edges = self.graph.snapshot()
        result = validate_flow(nodes, edges)
        self.last_validation = result
        if result:
            logger.info("Flow saved (%d nodes, %d edges)", len(nodes), len(edges))
        notification = self.notifier.fire(save_outcome(result))
        return result, notification

    def status(self) -> FlowStatus:
        nodes, edges = self.graph.snapshot()
        return flow_status(nodes, edges)

    def summary(self) -> Dict[str, Any]:
        start_nodes = self.graph.nodes_without_incoming_edges()
        return {
            "status": self.status().value,
            "nodeCount": len(self.graph),
            "edgeCount": len(self.graph.edges),
            "startNodeIds": [n.id for n in start_nodes],
        }

    def reset(self) -> None:
        self.graph.reset()
        self.selected_node_id = None
        self.last_validation = FlowValidationResult.not_validated()


# ---------------------------------------------------------------------------
# Module-level singleton, created once when this module is first imported.
# ---------------------------------------------------------------------------

flow_session = FlowSession()
