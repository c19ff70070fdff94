"""
Notification payloads handed to the client's toast layer.

All notifications are plain dicts so they can be emitted over Socket.IO and
returned from REST handlers without Pydantic overhead. The builders below are
the only place where core results are turned into user-facing text.
"""
from typing import List, Literal, Optional, TypedDict

from chatflow.core.ConnectionValidator import CONNECTION_LIMIT_MESSAGE
from chatflow.core.Types import FlowErrorCode, FlowValidationResult, OperationResult


class Notification(TypedDict):
    type: Literal["NOTIFICATION"]
    title: str
    description: str
    variant: Literal["default", "destructive"]
    code: str
    offendingNodeIds: List[str]
    ts: int


SAVE_OK_TITLE = "Flow Saved"
SAVE_OK_DESCRIPTION = "Your chatbot flow has been saved successfully"
SAVE_FAILED_TITLE = "Flow Validation Error"
SAVE_FAILED_DESCRIPTION = (
    "Cannot save flow: More than one node has empty target handles. "
    "Each node should be connected except for the starting node."
)
CONNECTION_LIMIT_TITLE = "Connection Limit"
CONNECTION_REJECTED_TITLE = "Connection Rejected"


def _notification(title: str, description: str, destructive: bool, code: str = "",
                  offending: Optional[List[str]] = None) -> Notification:
    return {
        "type": "NOTIFICATION",
        "title": title,
        "description": description,
        "variant": "destructive" if destructive else "default",
        "code": code,
        "offendingNodeIds": list(offending or []),
        "ts": 0,
    }


def connection_rejected(result: OperationResult) -> Notification:
    if result.error == FlowErrorCode.CONNECTION_LIMIT_EXCEEDED:
        return _notification(CONNECTION_LIMIT_TITLE, CONNECTION_LIMIT_MESSAGE, True, result.error.name)
    return _notification(CONNECTION_REJECTED_TITLE, result.message, True, result.error.name)


def save_outcome(result: FlowValidationResult) -> Notification:
    if result:
        return _notification(SAVE_OK_TITLE, SAVE_OK_DESCRIPTION, False)
    return _notification(SAVE_FAILED_TITLE, SAVE_FAILED_DESCRIPTION, True,
                         FlowErrorCode.FLOW_VALIDATION_FAILED.name, result.offending_node_ids)
