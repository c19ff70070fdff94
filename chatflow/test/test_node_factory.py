import pytest
from pydantic import BaseModel

from chatflow.core.FlowGraph import FlowGraph
from chatflow.core.GraphPrimitives import FlowNode, Position
from chatflow.core.Types import FlowErrorCode
from chatflow.noderegistry.NodeFactory import NodeFactory
from chatflow.noderegistry.NodeRegistry import HandleSpec, NodeRegistry, TEXT_NODE, TextMessageData


class FixedClock:
    """Clock that returns a scripted sequence of millisecond stamps."""

    def __init__(self, *stamps):
        self.stamps = list(stamps)

    def __call__(self):
        if len(self.stamps) > 1:
            return self.stamps.pop(0)
        return self.stamps[0]


class TestNodeRegistry:

    def teardown_method(self):
        NodeRegistry._registry.pop("mockNode", None)

    def test_text_node_registered(self):
        spec = NodeRegistry.get(TEXT_NODE)
        assert spec is not None
        assert spec.data_model is TextMessageData
        assert spec.default_payload() == TextMessageData(label="New message")
        assert spec.title == "Message"
        assert spec.description == "Send a text message"
        assert len(spec.source_handles()) == 1
        assert len(spec.target_handles()) == 1

    def test_register_new_type(self):
        @NodeRegistry.register("mockNode", default_data={"prompt": "?"}, title="Mock",
                               handles=(HandleSpec("target", position="top"),))
        class MockData(BaseModel):
            prompt: str

        assert NodeRegistry.is_registered("mockNode")
        assert NodeRegistry.get("mockNode").default_payload() == MockData(prompt="?")

    def test_register_twice_fails(self):
        with pytest.raises(ValueError):
            @NodeRegistry.register(TEXT_NODE, default_data={"label": "x"}, title="Again")
            class Again(BaseModel):
                label: str

        assert NodeRegistry.get(TEXT_NODE).data_model is TextMessageData

    def test_register_rejects_bad_default(self):
        with pytest.raises(ValueError):
            @NodeRegistry.register("mockNode", default_data={}, title="Broken")
            class Broken(BaseModel):
                prompt: str

        assert not NodeRegistry.is_registered("mockNode")


class TestNodeFactory:

    def setup_method(self):
        self.graph = FlowGraph()

    def test_create_node(self):
        factory = NodeFactory(self.graph, clock=FixedClock(1700000000000))
        result = factory.create_node(TEXT_NODE, Position(12.5, 40))

        assert result.ok
        node = result.value
        assert node.id == "textNode_1700000000000"
        assert node.type == TEXT_NODE
        assert node.position == Position(12.5, 40)
        assert node.data == TextMessageData(label="New message")
        # create_node does not insert
        assert len(self.graph) == 0

    def test_payloads_are_not_shared(self):
        factory = NodeFactory(self.graph, clock=FixedClock(1, 2))
        first = factory.place_node(TEXT_NODE, Position(0, 0)).unwrap()
        second = factory.place_node(TEXT_NODE, Position(0, 0)).unwrap()

        self.graph.update_node_data(first.id, {"label": "changed"}).unwrap()
        assert self.graph.get_node(second.id).data.label == "New message"

    def test_ids_unique_when_clock_stalls(self):
        factory = NodeFactory(self.graph, clock=FixedClock(500))
        ids = [factory.place_node(TEXT_NODE, Position(0, 0)).unwrap().id for _ in range(3)]
        assert ids == ["textNode_500", "textNode_501", "textNode_502"]

    def test_ids_unique_when_clock_goes_backwards(self):
        factory = NodeFactory(self.graph, clock=FixedClock(900, 100))
        first = factory.generate_id(TEXT_NODE)
        second = factory.generate_id(TEXT_NODE)
        assert first == "textNode_900"
        assert second == "textNode_901"

    def test_create_skips_ids_already_in_graph(self):
        taken = FlowNode("textNode_42", TEXT_NODE, Position(0, 0), TextMessageData(label="taken"))
        self.graph.add_node(taken).unwrap()

        factory = NodeFactory(self.graph, clock=FixedClock(42))
        node = factory.place_node(TEXT_NODE, Position(1, 1)).unwrap()

        assert node.id == "textNode_43"
        # the existing node was not overwritten
        assert self.graph.get_node("textNode_42").data.label == "taken"
        assert len(self.graph) == 2

    def test_place_retries_on_duplicate_insert(self):
        """A collision that slips past create_node is retried with a new id."""
        factory = NodeFactory(self.graph, clock=FixedClock(7, 8, 9))
        original_create = factory.create_node

        def create_then_collide(type_name, position):
            result = original_create(type_name, position)
            if len(self.graph) == 0:
                # someone else grabs the id between create and insert
                self.graph.add_node(FlowNode(result.value.id, TEXT_NODE, Position(0, 0),
                                             TextMessageData(label="racer"))).unwrap()
            return result

        factory.create_node = create_then_collide
        node = factory.place_node(TEXT_NODE, Position(0, 0)).unwrap()

        assert node.id == "textNode_8"
        assert self.graph.get_node("textNode_7").data.label == "racer"

    def test_gives_up_after_max_attempts(self):
        factory = NodeFactory(self.graph, clock=FixedClock(1), max_attempts=3)
        for stamp in (1, 2, 3):
            self.graph.add_node(FlowNode(f"textNode_{stamp}", TEXT_NODE, Position(0, 0),
                                         TextMessageData(label="x"))).unwrap()

        result = factory.place_node(TEXT_NODE, Position(0, 0))
        assert result.error == FlowErrorCode.DUPLICATE_ID
        assert len(self.graph) == 3

    def test_unknown_type(self):
        factory = NodeFactory(self.graph)
        result = factory.place_node("videoNode", Position(0, 0))
        assert result.error == FlowErrorCode.UNKNOWN_NODE_TYPE
        assert len(self.graph) == 0

    def test_default_clock_ids(self):
        factory = NodeFactory(self.graph)
        node = factory.place_node(TEXT_NODE, Position(0, 0)).unwrap()
        assert node.id.startswith("textNode_")
        assert node.id.split("_", 1)[1].isdigit()

    @pytest.mark.parametrize("attempts", [0, -1])
    def test_rejects_non_positive_max_attempts(self, attempts):
        with pytest.raises(ValueError):
            NodeFactory(self.graph, max_attempts=attempts)

    def test_single_attempt_places_node(self):
        factory = NodeFactory(self.graph, clock=FixedClock(3), max_attempts=1)
        assert factory.place_node(TEXT_NODE, Position(0, 0)).unwrap().id == "textNode_3"
