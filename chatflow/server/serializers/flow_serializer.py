"""
Flow serializer.

Converts FlowGraph nodes / edges into JSON-safe dicts matching the
node / edge wire shape the canvas client expects (camelCase keys).
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List

from chatflow.core.FlowGraph import FlowGraph
from chatflow.core.GraphPrimitives import Edge, FlowNode
from chatflow.core.Types import FlowValidationResult
from chatflow.noderegistry.NodeRegistry import HandleSpec, NodeTypeSpec

# SerializedNode keys: id, type, position, data, selected
# SerializedEdge keys: id, source, target, sourceHandle, targetHandle, label,
#                      animated, selected
# SerializedFlow keys: nodes, edges


def serialize_node(node: FlowNode) -> Dict[str, Any]:
    return {
        "id": node.id,
        "type": node.type,
        "position": {"x": node.position.x, "y": node.position.y},
        "data": node.data.model_dump(),
        "selected": node.selected,
    }


def serialize_edge(edge: Edge) -> Dict[str, Any]:
    return {
        "id": edge.id,
        "source": edge.source,
        "target": edge.target,
        "sourceHandle": edge.source_handle,
        "targetHandle": edge.target_handle,
        "label": edge.label,
        "animated": edge.animated,
        "selected": edge.selected,
    }


def serialize_flow(nodes: Iterable[FlowNode], edges: Iterable[Edge]) -> Dict[str, Any]:
    return {
        "nodes": [serialize_node(n) for n in nodes],
        "edges": [serialize_edge(e) for e in edges],
    }


def serialize_graph(graph: FlowGraph) -> Dict[str, Any]:
    nodes, edges = graph.snapshot()
    return serialize_flow(nodes, edges)


def serialize_validation(result: FlowValidationResult) -> Dict[str, Any]:
    return {
        "checked": result.checked,
        "valid": result.valid,
        "rule": result.rule,
        "code": result.error.name if result.error else None,
        "offendingNodeIds": list(result.offending_node_ids),
    }


def _serialize_handle(handle: HandleSpec) -> Dict[str, Any]:
    return {"type": handle.kind, "id": handle.id, "position": handle.position}


def serialize_node_type(spec: NodeTypeSpec) -> Dict[str, Any]:
    """Entry of the nodes panel catalog."""
    return {
        "type": spec.type_name,
        "title": spec.title,
        "description": spec.description,
        "defaultData": dict(spec.default_data),
        "handles": [_serialize_handle(h) for h in spec.handles],
    }


def serialize_node_types(specs: Iterable[NodeTypeSpec]) -> List[Dict[str, Any]]:
    return [serialize_node_type(s) for s in specs]
