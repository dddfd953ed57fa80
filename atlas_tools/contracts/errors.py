# ==============================
# Error Taxonomy
# ==============================
"""
Typed errors raised by tools and the config layer.

Every error knows its ToolErrorCode so the executor can convert it into a
ToolError envelope without a lookup table. Backing-store failures are always
chained (`raise ... from exc`) so the driver error stays visible to the host.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from atlas_tools.contracts.tool_schema import ToolError, ToolErrorCode


class ToolkitError(RuntimeError):
    """Base class for every error raised by atlas_tools."""

    code: ToolErrorCode = ToolErrorCode.UNKNOWN
    recoverable: bool = False

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})

    def to_tool_error(self) -> ToolError:
        return ToolError(
            code=self.code,
            message=self.message,
            recoverable=self.recoverable,
            details=dict(self.details),
        )


# ==============================
# Setup-time
# ==============================
class ConfigurationError(ToolkitError):
    """Unknown source, incompatible source type, or an unusable tools file."""

    code = ToolErrorCode.CONFIGURATION


# ==============================
# Invocation-time
# ==============================
class ToolInvocationError(ToolkitError):
    """Base for failures of a single invocation."""


class UnauthorizedError(ToolInvocationError):
    code = ToolErrorCode.PERMISSION_DENIED


class ParameterValidationError(ToolInvocationError):
    """A parameter is missing, has the wrong type, or is not declared."""

    code = ToolErrorCode.INVALID_INPUT

    def __init__(self, param: str, reason: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        merged = {"param": param, "reason": reason, **(details or {})}
        super().__init__(f"parameter {param!r}: {reason}", details=merged)
        self.param = param
        self.reason = reason


class MissingOrInvalidParameterError(ParameterValidationError):
    """One of the parameters an operation depends on is absent or mistyped."""


class UnsupportedOperationError(ToolInvocationError):
    code = ToolErrorCode.UNSUPPORTED_OPERATION

    def __init__(self, operation: str, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None) -> None:
        merged = {"operation": operation, **(details or {})}
        super().__init__(message or f"unsupported operation {operation!r}", details=merged)
        self.operation = operation


class QueryExecutionError(ToolInvocationError):
    """The backing store rejected the query or pipeline."""

    code = ToolErrorCode.QUERY_FAILED


class DecodeError(ToolInvocationError):
    """A streamed item could not be decoded into a document."""

    code = ToolErrorCode.DECODE_FAILED


class CursorError(ToolInvocationError):
    """The result stream terminated abnormally."""

    code = ToolErrorCode.CURSOR_FAILED
    recoverable = True


class InvocationCancelledError(ToolInvocationError):
    code = ToolErrorCode.CANCELLED


class DeadlineExceededError(InvocationCancelledError):
    code = ToolErrorCode.TIMEOUT
    recoverable = True
