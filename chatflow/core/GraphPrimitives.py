from typing import Any, NamedTuple, Optional, Union

from pydantic import BaseModel


class Position(NamedTuple):
    x: float
    y: float


# A candidate edge as produced by the canvas when the user drags a wire.
# Nothing is recorded until the graph has run it through the connection validator.
class Connection(NamedTuple):
    source: Optional[str]
    target: Optional[str]
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None

    def __repr__(self):
        return f"Connection({self.source}.{self.source_handle} -> {self.target}.{self.target_handle})"


# Edges are immutable records. Selection toggles produce a new record via _replace().
# Core logic only relies on the first five fields, the rest is display state.
class Edge(NamedTuple):
    id: str
    source: str
    target: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None

    label: Optional[str] = None
    animated: bool = False
    selected: bool = False

    def __repr__(self):
        return f"Edge({self.id}: {self.source}.{self.source_handle} -> {self.target}.{self.target_handle})"


class FlowNode:
    """
    A placeable step of the conversation.

    ``data`` is an instance of the pydantic schema registered for ``type``.
    ``selected`` is transient canvas state and plays no part in validation.
    """

    def __init__(self,
                 id: str,
                 type: str,
                 position: Position,
                 data: BaseModel,
                 selected: bool = False):
        self.id = id
        self.type = type
        self.position = Position(*position)
        self.data = data
        self.selected = selected

    def copy(self) -> 'FlowNode':
        return FlowNode(self.id, self.type, self.position, self.data.model_copy(), self.selected)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, FlowNode):
            return NotImplemented
        return (self.id, self.type, self.position, self.data, self.selected) == \
               (other.id, other.type, other.position, other.data, other.selected)

    def __repr__(self):
        return f"FlowNode({self.id}, {self.type})"


# --- Change records folded in by FlowGraph.apply_node_changes / apply_edge_changes ---

class NodePositionChange(NamedTuple):
    id: str
    position: Position
    dragging: bool = False


class NodeSelectionChange(NamedTuple):
    id: str
    selected: bool


class NodeRemoveChange(NamedTuple):
    id: str


class EdgeSelectionChange(NamedTuple):
    id: str
    selected: bool


class EdgeRemoveChange(NamedTuple):
    id: str


NodeChange = Union[NodePositionChange, NodeSelectionChange, NodeRemoveChange]
EdgeChange = Union[EdgeSelectionChange, EdgeRemoveChange]
