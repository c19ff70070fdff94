from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from logging import getLogger

from pydantic import BaseModel, ValidationError

from .ConnectionValidator import validate_connection
from .GraphPrimitives import (
    Connection,
    Edge,
    EdgeChange,
    EdgeRemoveChange,
    EdgeSelectionChange,
    FlowNode,
    NodeChange,
    NodePositionChange,
    NodeRemoveChange,
    NodeSelectionChange,
    Position,
)
from .Types import FlowErrorCode, OperationResult
from ..noderegistry.NodeRegistry import NodeRegistry


logger = getLogger(__name__)


def nodes_without_incoming_edges(nodes: Iterable[FlowNode], edges: Iterable[Edge]) -> List[FlowNode]:
    """Nodes that no edge targets, in the order given."""
    targets = {edge.target for edge in edges}
    return [node for node in nodes if node.id not in targets]


def make_edge_id(connection: Connection) -> str:
    # Same shape the canvas library uses for edges it creates itself
    return (f"xy-edge__{connection.source}{connection.source_handle or ''}"
            f"-{connection.target}{connection.target_handle or ''}")


class FlowGraph:
    """
    Sole owner of the node and edge collections of a flow.

    Every mutation goes through the methods below. Accessors hand out copies so
    the invariants (unique ids, no dangling edges, one edge per source handle)
    cannot be broken from outside.
    """

    def __init__(self):
        self._nodes: Dict[str, FlowNode] = {}   # insertion ordered
        self._edges: List[Edge] = []

    # ── Queries ──────────────────────────────────────────────────────────────

    @property
    def nodes(self) -> List[FlowNode]:
        return [node.copy() for node in self._nodes.values()]

    @property
    def edges(self) -> List[Edge]:
        return list(self._edges)

    def node_ids(self) -> List[str]:
        return list(self._nodes.keys())

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get_node(self, node_id: str) -> Optional[FlowNode]:
        node = self._nodes.get(node_id)
        return node.copy() if node is not None else None

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        for edge in self._edges:
            if edge.id == edge_id:
                return edge
        return None

    def nodes_without_incoming_edges(self) -> List[FlowNode]:
        return nodes_without_incoming_edges(self.nodes, self._edges)

    def snapshot(self) -> Tuple[List[FlowNode], List[Edge]]:
        return self.nodes, self.edges

    def __len__(self) -> int:
        return len(self._nodes)

    # ── Nodes ────────────────────────────────────────────────────────────────

    def add_node(self, node: FlowNode) -> OperationResult:
        if node.id in self._nodes:
            return OperationResult.failure(FlowErrorCode.DUPLICATE_ID,
                                           f"Node with id '{node.id}' already exists in the flow")

        spec = NodeRegistry.get(node.type)
        if spec is None:
            return OperationResult.failure(FlowErrorCode.UNKNOWN_NODE_TYPE, f"Unknown node type '{node.type}'")

        raw = node.data.model_dump() if isinstance(node.data, BaseModel) else node.data
        try:
            data = spec.data_model.model_validate(raw)
        except ValidationError as exc:
            return OperationResult.failure(FlowErrorCode.INVALID_DATA, str(exc))

        stored = FlowNode(node.id, node.type, node.position, data, node.selected)
        self._nodes[stored.id] = stored
        logger.debug("Added node %s (%s) at %s", stored.id, stored.type, tuple(stored.position))
        return OperationResult.success(stored.copy())

    def update_node_data(self, node_id: str, partial_data: Mapping[str, Any]) -> OperationResult:
        node = self._nodes.get(node_id)
        if node is None:
            return OperationResult.failure(FlowErrorCode.NOT_FOUND, f"Node with id '{node_id}' does not exist in the flow")

        merged = {**node.data.model_dump(), **dict(partial_data)}
        try:
            data = type(node.data).model_validate(merged)
        except ValidationError as exc:
            return OperationResult.failure(FlowErrorCode.INVALID_DATA, str(exc))

        node.data = data
        logger.debug("Updated data of node %s: %s", node_id, dict(partial_data))
        return OperationResult.success(node.copy())

    def apply_node_changes(self, changes: Iterable[NodeChange]) -> OperationResult:
        """
        Fold a batch of canvas deltas into the node collection.

        The batch is applied to a working copy and swapped in at the end. Removing
        a node removes every edge that starts or ends at it in the same swap.
        """
        nodes = dict(self._nodes)
        removed = set()
        applied = 0

        for change in changes:
            node = nodes.get(change.id)
            if node is None:
                logger.info("Skipping %s for unknown node '%s'", type(change).__name__, change.id)
                continue

            if isinstance(change, NodePositionChange):
                node = node.copy()
                node.position = Position(*change.position)
                nodes[node.id] = node
            elif isinstance(change, NodeSelectionChange):
                node = node.copy()
                node.selected = change.selected
                nodes[node.id] = node
            elif isinstance(change, NodeRemoveChange):
                del nodes[node.id]
                removed.add(node.id)
            else:
                raise TypeError(f"Unsupported node change {change!r}")
            applied += 1

        edges = self._edges
        if removed:
            edges = [e for e in edges if e.source not in removed and e.target not in removed]
            logger.debug("Removed nodes %s and %d incident edges", sorted(removed), len(self._edges) - len(edges))

        self._nodes = nodes
        self._edges = edges
        return OperationResult.success(applied)

    # ── Edges ────────────────────────────────────────────────────────────────

    def apply_edge_changes(self, changes: Iterable[EdgeChange]) -> OperationResult:
        edges = {edge.id: edge for edge in self._edges}
        applied = 0

        for change in changes:
            edge = edges.get(change.id)
            if edge is None:
                logger.info("Skipping %s for unknown edge '%s'", type(change).__name__, change.id)
                continue

            if isinstance(change, EdgeSelectionChange):
                edges[edge.id] = edge._replace(selected=change.selected)
            elif isinstance(change, EdgeRemoveChange):
                del edges[edge.id]
            else:
                raise TypeError(f"Unsupported edge change {change!r}")
            applied += 1

        self._edges = list(edges.values())
        return OperationResult.success(applied)

    def connect(self, candidate: Connection, label: Optional[str] = None, animated: bool = False) -> OperationResult:
        verdict = validate_connection(candidate, self._nodes.keys(), self._edges)
        if not verdict.ok:
            logger.info("Rejected %r: %s", candidate, verdict.message)
            return verdict

        edge = Edge(self._fresh_edge_id(candidate),
                    candidate.source,
                    candidate.target,
                    candidate.source_handle,
                    candidate.target_handle,
                    label=label,
                    animated=animated)
        self._edges = self._edges + [edge]
        logger.debug("Connected %r", edge)
        return OperationResult.success(edge)

    def _fresh_edge_id(self, candidate: Connection) -> str:
        taken = {edge.id for edge in self._edges}
        base = make_edge_id(candidate)
        edge_id = base
        suffix = 0
        while edge_id in taken:
            suffix += 1
            edge_id = f"{base}_{suffix}"
        return edge_id

    def reset(self):
        self._nodes = {}
        self._edges = []
