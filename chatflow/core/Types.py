from enum import Enum, auto
from typing import Any, List, Optional


class FlowErrorCode(Enum):
    DUPLICATE_ID = auto()
    NOT_FOUND = auto()
    CONNECTION_LIMIT_EXCEEDED = auto()
    FLOW_VALIDATION_FAILED = auto()
    INVALID_CONNECTION = auto()
    INVALID_DATA = auto()
    UNKNOWN_NODE_TYPE = auto()


class FlowStatus(Enum):
    HIDDEN = "hidden"    # fewer than two nodes, nothing to report
    VALID = "valid"
    INVALID = "invalid"


class FlowError(ValueError):
    """Raised by OperationResult.unwrap() for callers that prefer exceptions."""

    def __init__(self, code: FlowErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class OperationResult:
    """
    Standardized return type for graph operations.

    Every recoverable failure (duplicate id, missing node, connection limit ...)
    comes back as a failed result instead of an exception. A failed operation
    has not mutated the graph.
    """

    def __init__(self, ok: bool, value: Any = None, error: Optional[FlowErrorCode] = None, message: str = ""):
        self.ok = ok
        self.value = value
        self.error = error
        self.message = message

    @classmethod
    def success(cls, value: Any = None) -> 'OperationResult':
        return cls(True, value=value)

    @classmethod
    def failure(cls, error: FlowErrorCode, message: str) -> 'OperationResult':
        return cls(False, error=error, message=message)

    def unwrap(self) -> Any:
        if not self.ok:
            raise FlowError(self.error, self.message)
        return self.value

    def __bool__(self) -> bool:
        return self.ok

    def __repr__(self):
        if self.ok:
            return f"OperationResult(ok, {self.value!r})"
        return f"OperationResult({self.error.name}: {self.message})"


MULTIPLE_START_NODES_RULE = "multiple nodes without incoming connection"


class FlowValidationResult:
    """Outcome of a save-time check. ``checked`` separates "validated" from "not yet validated"."""

    def __init__(self,
                 valid: bool,
                 checked: bool = True,
                 rule: Optional[str] = None,
                 offending_node_ids: Optional[List[str]] = None):
        self.valid = valid
        self.checked = checked
        self.rule = rule
        self.offending_node_ids = offending_node_ids if offending_node_ids is not None else []

    @property
    def error(self) -> Optional[FlowErrorCode]:
        if self.checked and not self.valid:
            return FlowErrorCode.FLOW_VALIDATION_FAILED
        return None

    @classmethod
    def success(cls) -> 'FlowValidationResult':
        return cls(True)

    @classmethod
    def failure(cls, rule: str, offending_node_ids: List[str]) -> 'FlowValidationResult':
        return cls(False, rule=rule, offending_node_ids=list(offending_node_ids))

    @classmethod
    def not_validated(cls) -> 'FlowValidationResult':
        return cls(False, checked=False)

    def __bool__(self) -> bool:
        return self.checked and self.valid

    def __repr__(self):
        if not self.checked:
            return "FlowValidationResult(not validated)"
        if self.valid:
            return "FlowValidationResult(valid)"
        return f"FlowValidationResult({self.rule}: {self.offending_node_ids})"
