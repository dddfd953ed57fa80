# ==============================
# Tool Contracts
# ==============================
"""
What the host gets back from ToolExecutor.

Tools themselves raise typed errors (contracts/errors.py). The executor
catches them and returns a ToolResult, so at the host boundary a failure is
data, never an exception.

Shape:
  ok:      bool
  results: documents (empty on failure)
  error:   ToolError | None   (required iff ok is False)
  meta:    ToolMeta           (timing, counts, tags)
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ==============================
# Enums
# ==============================
class ToolErrorCode(str, Enum):
    INVALID_INPUT = "invalid_input"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    CONFIGURATION = "configuration"
    UNSUPPORTED_OPERATION = "unsupported_operation"
    QUERY_FAILED = "query_failed"
    DECODE_FAILED = "decode_failed"
    CURSOR_FAILED = "cursor_failed"
    CANCELLED = "cancelled"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


# ==============================
# Models
# ==============================
class ToolMeta(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tool_name: str = Field(..., description="Name the tool is registered under.")
    operation: Optional[str] = Field(default=None, description="find | aggregate | vectorSearch (as configured).")
    request_id: str = Field(default_factory=lambda: uuid4().hex, description="Invocation id; matches trace events.")
    started_at: datetime = Field(default_factory=datetime.utcnow)
    ended_at: Optional[datetime] = None
    latency_ms: Optional[int] = None
    result_count: Optional[int] = Field(default=None, description="Documents returned; None on failure.")
    tags: Dict[str, str] = Field(default_factory=dict, description="e.g. {'kind': 'mongodb-atlas'}.")
    redacted: bool = Field(default=False, description="Error text and details passed through SecurityRedactor.")


class ToolError(BaseModel):
    model_config = ConfigDict(extra="forbid")

    code: ToolErrorCode
    message: str
    recoverable: bool = Field(default=False, description="A retry of the same call may succeed.")
    details: Dict[str, Any] = Field(default_factory=dict, description="Structured, already-redacted details.")


class ToolResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ok: bool
    results: List[Dict[str, Any]] = Field(default_factory=list)
    error: Optional[ToolError] = None
    meta: ToolMeta

    @model_validator(mode="after")
    def _ok_xor_error(self) -> "ToolResult":
        if self.ok == (self.error is not None):
            raise ValueError("exactly one of ok=True or error must be set")
        if self.error is not None and self.results:
            raise ValueError("a failed result carries no documents")
        return self

    @classmethod
    def success(cls, results: List[Dict[str, Any]], meta: ToolMeta) -> "ToolResult":
        return cls(ok=True, results=list(results), meta=meta)

    @classmethod
    def fail(cls, *, error: ToolError, meta: ToolMeta) -> "ToolResult":
        return cls(ok=False, error=error, meta=meta)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="python")
