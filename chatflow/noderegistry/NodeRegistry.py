from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict


# =========================================================================================
# NODE TYPE REGISTRY
#
# Each node type is a tagged variant: a type tag, a pydantic schema for its payload,
# the payload a freshly placed node starts with, and the handles the node exposes.
#
# New message types are added by registering another schema here. The connection
# and flow validators never look at the type tag, so they do not change.
# =========================================================================================


class HandleSpec(NamedTuple):
    kind: str                 # "source" | "target"
    id: Optional[str] = None  # None for the single unnamed handle of that kind
    position: str = "bottom"


class NodeTypeSpec(NamedTuple):
    type_name: str
    data_model: Type[BaseModel]
    default_data: Dict[str, Any]
    title: str
    description: str
    handles: Tuple[HandleSpec, ...]

    def default_payload(self) -> BaseModel:
        # fresh instance per node, placed nodes never share a payload
        return self.data_model.model_validate(dict(self.default_data))

    def source_handles(self) -> List[HandleSpec]:
        return [h for h in self.handles if h.kind == "source"]

    def target_handles(self) -> List[HandleSpec]:
        return [h for h in self.handles if h.kind == "target"]


class NodeRegistry:
    _registry: Dict[str, NodeTypeSpec] = {}

    @classmethod
    def register(cls,
                 type_name: str,
                 default_data: Dict[str, Any],
                 title: str,
                 description: str = "",
                 handles: Tuple[HandleSpec, ...] = ()) -> Callable[[Type[BaseModel]], Type[BaseModel]]:
        """Decorator to register a payload schema under a node type tag."""
        def decorator(data_model: Type[BaseModel]) -> Type[BaseModel]:
            if cls._registry.get(type_name):
                raise ValueError(f"Node type '{type_name}' is already registered.")
            spec = NodeTypeSpec(type_name, data_model, dict(default_data), title, description, tuple(handles))
            # default payload must satisfy the schema
            spec.default_payload()
            cls._registry[type_name] = spec
            return data_model
        return decorator

    @classmethod
    def get(cls, type_name: str) -> Optional[NodeTypeSpec]:
        return cls._registry.get(type_name)

    @classmethod
    def is_registered(cls, type_name: str) -> bool:
        return type_name in cls._registry

    @classmethod
    def types(cls) -> List[NodeTypeSpec]:
        return list(cls._registry.values())


TEXT_NODE = "textNode"


@NodeRegistry.register(
    TEXT_NODE,
    default_data={"label": "New message"},
    title="Message",
    description="Send a text message",
    handles=(
        HandleSpec("target", position="top"),     # any number of incoming connections
        HandleSpec("source", position="bottom"),  # at most one outgoing connection
    ),
)
class TextMessageData(BaseModel):
    model_config = ConfigDict(extra="forbid")

    label: str
