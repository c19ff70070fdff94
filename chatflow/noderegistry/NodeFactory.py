import time
from logging import getLogger
from typing import Callable, Optional

from ..core.FlowGraph import FlowGraph
from ..core.GraphPrimitives import FlowNode, Position
from ..core.Types import FlowErrorCode, OperationResult
from .NodeRegistry import NodeRegistry


logger = getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class NodeFactory:
    """
    Turns a placement request (type tag + drop position) into a node in the graph.

    Ids are ``"{type}_{milliseconds}"``. The clock value is bumped whenever it does
    not move past the last issued one, and every candidate is checked against the
    graph before it is accepted.
    """

    def __init__(self, graph: FlowGraph, clock: Callable[[], int] = _now_ms, max_attempts: int = 5):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self.graph = graph
        self.clock = clock
        self.max_attempts = max_attempts
        self._last_stamp: Optional[int] = None

    def generate_id(self, type_name: str) -> str:
        stamp = self.clock()
        if self._last_stamp is not None and stamp <= self._last_stamp:
            stamp = self._last_stamp + 1
        self._last_stamp = stamp
        return f"{type_name}_{stamp}"

    def create_node(self, type_name: str, position: Position) -> OperationResult:
        spec = NodeRegistry.get(type_name)
        if spec is None:
            return OperationResult.failure(FlowErrorCode.UNKNOWN_NODE_TYPE, f"Unknown node type '{type_name}'")

        for _ in range(self.max_attempts):
            node_id = self.generate_id(type_name)
            if not self.graph.has_node(node_id):
                return OperationResult.success(FlowNode(node_id, type_name, Position(*position), spec.default_payload()))
            logger.warning("Generated node id '%s' is already taken, regenerating", node_id)

        return OperationResult.failure(FlowErrorCode.DUPLICATE_ID,
                                       f"Could not generate a unique id for '{type_name}' "
                                       f"after {self.max_attempts} attempts")

    def place_node(self, type_name: str, position: Position) -> OperationResult:
        """Create a node and insert it, retrying with a new id on DUPLICATE_ID."""
        for _ in range(self.max_attempts):
            created = self.create_node(type_name, position)
            if not created.ok:
                return created

            result = self.graph.add_node(created.value)
            if result.ok or result.error != FlowErrorCode.DUPLICATE_ID:
                return result
            logger.warning("Node id '%s' collided on insert, regenerating", created.value.id)

        return result
