from typing import Iterable, List
from logging import getLogger

from .FlowGraph import nodes_without_incoming_edges
from .GraphPrimitives import Edge, FlowNode
from .Types import FlowStatus, FlowValidationResult, MULTIPLE_START_NODES_RULE


logger = getLogger(__name__)


def validate_flow(nodes: Iterable[FlowNode], edges: Iterable[Edge]) -> FlowValidationResult:
    """
    Save-time check of the whole flow. Reads only.

    An empty or single-node flow has no connectivity requirement. Otherwise at
    most one node (the start node) may lack an incoming edge.
    """
    nodes = list(nodes)
    if len(nodes) <= 1:
        return FlowValidationResult.success()

    start_nodes = nodes_without_incoming_edges(nodes, edges)
    if len(start_nodes) > 1:
        offending: List[str] = [node.id for node in start_nodes]
        logger.info("Flow validation failed, %d nodes without incoming connection: %s", len(offending), offending)
        return FlowValidationResult.failure(MULTIPLE_START_NODES_RULE, offending)

    return FlowValidationResult.success()


def flow_status(nodes: Iterable[FlowNode], edges: Iterable[Edge]) -> FlowStatus:
    nodes = list(nodes)
    if len(nodes) <= 1:
        return FlowStatus.HIDDEN
    if len(nodes_without_incoming_edges(nodes, edges)) > 1:
        return FlowStatus.INVALID
    return FlowStatus.VALID
