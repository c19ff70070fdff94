"""
Flow REST routes: the canvas client's view of the flow builder.

All routes are mounted under /api by main.py.
"""
from __future__ import annotations

import logging
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from fastapi import APIRouter, HTTPException, Response
from pydantic import BaseModel, Field

from chatflow.core.GraphPrimitives import (
    Connection,
    EdgeRemoveChange,
    EdgeSelectionChange,
    NodePositionChange,
    NodeRemoveChange,
    NodeSelectionChange,
    Position,
)
from chatflow.core.Types import FlowErrorCode, OperationResult
from chatflow.noderegistry.NodeRegistry import NodeRegistry
from chatflow.server.serializers.flow_serializer import (
    serialize_edge,
    serialize_graph,
    serialize_node,
    serialize_node_types,
    serialize_validation,
)
from chatflow.server.state import flow_session

logger = logging.getLogger(__name__)

router = APIRouter()


_STATUS_BY_CODE = {
    FlowErrorCode.NOT_FOUND: 404,
    FlowErrorCode.DUPLICATE_ID: 409,
    FlowErrorCode.CONNECTION_LIMIT_EXCEEDED: 409,
    FlowErrorCode.INVALID_CONNECTION: 400,
    FlowErrorCode.UNKNOWN_NODE_TYPE: 400,
    FlowErrorCode.INVALID_DATA: 422,
    FlowErrorCode.FLOW_VALIDATION_FAILED: 422,
}


def _raise_for(result: OperationResult, **extra: Any) -> None:
    if result.ok:
        return
    detail = {"code": result.error.name, "message": result.message}
    detail.update(extra)
    raise HTTPException(status_code=_STATUS_BY_CODE.get(result.error, 400), detail=detail)


class PositionBody(BaseModel):
    x: float
    y: float


# ── GET /flow ─────────────────────────────────────────────────────────────────

@router.get("/flow")
async def get_flow() -> Dict[str, Any]:
    return serialize_graph(flow_session.graph)


# ── DELETE /flow ──────────────────────────────────────────────────────────────

@router.delete("/flow", status_code=204)
async def reset_flow() -> Response:
    flow_session.reset()
    return Response(status_code=204)


# ── GET /node-types ───────────────────────────────────────────────────────────

@router.get("/node-types")
async def get_node_types() -> List[Dict[str, Any]]:
    return serialize_node_types(NodeRegistry.types())


# ── POST /flow/nodes ──────────────────────────────────────────────────────────

class PlaceNodeBody(BaseModel):
    type: str
    position: PositionBody


@router.post("/flow/nodes", status_code=201)
async def place_node(body: PlaceNodeBody) -> Dict[str, Any]:
    result = flow_session.place_node(body.type, body.position.x, body.position.y)
    _raise_for(result)
    return serialize_node(result.value)


# ── PATCH /flow/nodes/:nodeId/data ────────────────────────────────────────────

@router.patch("/flow/nodes/{node_id}/data")
async def update_node_data(node_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
    result = flow_session.update_node_data(node_id, body)
    _raise_for(result)
    return serialize_node(result.value)


# ── POST /flow/node-changes ───────────────────────────────────────────────────

class NodePositionChangeBody(BaseModel):
    type: Literal["position"]
    id: str
    position: Optional[PositionBody] = None  # omitted on drag end
    dragging: bool = False


class NodeSelectChangeBody(BaseModel):
    type: Literal["select"]
    id: str
    selected: bool


class NodeRemoveChangeBody(BaseModel):
    type: Literal["remove"]
    id: str


class NodeDimensionsChangeBody(BaseModel):
    # measured size is canvas-only state, accepted and ignored
    type: Literal["dimensions"]
    id: str


NodeChangeBody = Annotated[
    Union[NodePositionChangeBody, NodeSelectChangeBody, NodeRemoveChangeBody, NodeDimensionsChangeBody],
    Field(discriminator="type"),
]


class NodeChangesBody(BaseModel):
    changes: List[NodeChangeBody]


def _to_node_change(body):
    if isinstance(body, NodePositionChangeBody):
        if body.position is None:
            return None
        return NodePositionChange(body.id, Position(body.position.x, body.position.y), body.dragging)
    if isinstance(body, NodeSelectChangeBody):
        return NodeSelectionChange(body.id, body.selected)
    if isinstance(body, NodeRemoveChangeBody):
        return NodeRemoveChange(body.id)
    return None


@router.post("/flow/node-changes")
async def apply_node_changes(body: NodeChangesBody) -> Dict[str, Any]:
    changes = [c for c in (_to_node_change(b) for b in body.changes) if c is not None]
    result = flow_session.apply_node_changes(changes)
    _raise_for(result)
    payload = serialize_graph(flow_session.graph)
    payload["applied"] = result.value
    return payload


# ── POST /flow/edge-changes ───────────────────────────────────────────────────

class EdgeSelectChangeBody(BaseModel):
    type: Literal["select"]
    id: str
    selected: bool


class EdgeRemoveChangeBody(BaseModel):
    type: Literal["remove"]
    id: str


EdgeChangeBody = Annotated[
    Union[EdgeSelectChangeBody, EdgeRemoveChangeBody],
    Field(discriminator="type"),
]


class EdgeChangesBody(BaseModel):
    changes: List[EdgeChangeBody]


@router.post("/flow/edge-changes")
async def apply_edge_changes(body: EdgeChangesBody) -> Dict[str, Any]:
    changes = [
        EdgeSelectionChange(b.id, b.selected) if isinstance(b, EdgeSelectChangeBody) else EdgeRemoveChange(b.id)
        for b in body.changes
    ]
    result = flow_session.apply_edge_changes(changes)
    _raise_for(result)
    payload = serialize_graph(flow_session.graph)
    payload["applied"] = result.value
    return payload


# ── POST /flow/connect ────────────────────────────────────────────────────────

class ConnectBody(BaseModel):
    source: Optional[str] = None
    target: Optional[str] = None
    sourceHandle: Optional[str] = None
    targetHandle: Optional[str] = None


@router.post("/flow/connect", status_code=201)
async def connect(body: ConnectBody) -> Dict[str, Any]:
    connection = Connection(body.source, body.target, body.sourceHandle, body.targetHandle)
    result, notification = flow_session.connect(connection)
    _raise_for(result, notification=notification)
    return serialize_edge(result.value)


# ── POST /flow/save ───────────────────────────────────────────────────────────

@router.post("/flow/save")
async def save_flow() -> Dict[str, Any]:
    result, notification = flow_session.save()
    validation = serialize_validation(result)
    if not result:
        raise HTTPException(
            status_code=422,
            detail={
                "code": FlowErrorCode.FLOW_VALIDATION_FAILED.name,
                "message": result.rule,
                "validation": validation,
                "notification": notification,
            },
        )
    return {
        "validation": validation,
        "notification": notification,
        "flow": serialize_graph(flow_session.graph),
    }


# ── GET /flow/status ──────────────────────────────────────────────────────────

@router.get("/flow/status")
async def get_flow_status() -> Dict[str, Any]:
    summary = flow_session.summary()
    summary["lastValidation"] = serialize_validation(flow_session.last_validation)
    return summary


# ── PUT /flow/selection  /  DELETE /flow/selection ────────────────────────────

class SelectionBody(BaseModel):
    nodeId: str


@router.get("/flow/selection")
async def get_selection() -> Dict[str, Any]:
    node = flow_session.selected_node()
    return {"node": serialize_node(node) if node is not None else None}


@router.put("/flow/selection")
async def select_node(body: SelectionBody) -> Dict[str, Any]:
    result = flow_session.select_node(body.nodeId)
    _raise_for(result)
    return {"node": serialize_node(result.value)}


@router.delete("/flow/selection", status_code=204)
async def clear_selection() -> Response:
    flow_session.clear_selection()
    return Response(status_code=204)
