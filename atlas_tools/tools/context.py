# ==============================
# Invocation Context
# ==============================
"""
Per-call context handed to Tool.invoke().

Carries:
- an optional deadline (monotonic clock) and a cancellation event
- a trace hook placeholder (the host decides where events go)
- safe, non-secret metadata

Contexts are created per invocation and are never shared between calls.
"""

# ==============================
# Imports
# ==============================
from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from atlas_tools.contracts.errors import DeadlineExceededError, InvocationCancelledError

# ==============================
# Trace Hook Types
# ==============================
TraceHook = Callable[[str, Dict[str, Any]], None]
# TraceHook signature:
#   trace(event_type: str, payload: dict) -> None


class InvocationContext(BaseModel):
    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    invocation_id: str = Field(default_factory=lambda: f"inv_{uuid4().hex}", description="Unique id for this call.")
    deadline_at: Optional[float] = Field(default=None, description="time.monotonic() value after which the call fails.")
    cancel_event: threading.Event = Field(default_factory=threading.Event, description="Set to cancel the call.")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Mutable metadata (sanitized).")
    trace: Optional[TraceHook] = Field(default=None, description="Trace emitter hook (optional).")

    @classmethod
    def with_timeout(cls, timeout_seconds: Optional[float], **kwargs: Any) -> "InvocationContext":
        deadline = None if timeout_seconds is None else time.monotonic() + float(timeout_seconds)
        return cls(deadline_at=deadline, **kwargs)

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is no deadline."""
        if self.deadline_at is None:
            return None
        return self.deadline_at - time.monotonic()

    def cancel(self) -> None:
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def raise_if_done(self) -> None:
        if self.cancel_event.is_set():
            raise InvocationCancelledError("invocation cancelled by caller", details={"invocation_id": self.invocation_id})
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise DeadlineExceededError("invocation deadline exceeded", details={"invocation_id": self.invocation_id})

    def emit(self, event_type: str, payload: Dict[str, Any]) -> None:
        """Emit a trace event through the configured hook (no-op if unset)."""
        if self.trace is None:
            return
        self.trace(event_type, {"invocation_id": self.invocation_id, **payload})
