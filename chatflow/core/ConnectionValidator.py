from typing import Collection, Iterable

from .GraphPrimitives import Connection, Edge
from .Types import FlowErrorCode, OperationResult


CONNECTION_LIMIT_MESSAGE = "Each source handle can only have one outgoing connection"


def validate_connection(candidate: Connection, node_ids: Collection[str], edges: Iterable[Edge]) -> OperationResult:
    """
    Admission check for a candidate edge. Pure: reads the collections, never touches them.

    Accepts iff both endpoints name existing, distinct nodes and no existing edge
    already leaves from the same (source, source_handle) pair. Fan-in is unrestricted.
    """
    if not candidate.source or candidate.source not in node_ids:
        return OperationResult.failure(FlowErrorCode.NOT_FOUND,
                                       f"Source node '{candidate.source}' does not exist in the flow")
    if not candidate.target or candidate.target not in node_ids:
        return OperationResult.failure(FlowErrorCode.NOT_FOUND,
                                       f"Target node '{candidate.target}' does not exist in the flow")
    if candidate.source == candidate.target:
        return OperationResult.failure(FlowErrorCode.INVALID_CONNECTION,
                                       "Cannot connect a node's output to its own input")

    for edge in edges:
        if edge.source == candidate.source and edge.source_handle == candidate.source_handle:
            return OperationResult.failure(FlowErrorCode.CONNECTION_LIMIT_EXCEEDED, CONNECTION_LIMIT_MESSAGE)

    return OperationResult.success(candidate)
