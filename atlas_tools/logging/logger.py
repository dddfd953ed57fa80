# ==============================
# Logging Bootstrap
# ==============================
"""
Logging bootstrap.

Goals:
- Centralize logger configuration using Settings.logging.
- Provide structured context fields (tool, operation, invocation_id).
- Keep it simple: stdlib logging + JSON-lines formatter.

Modules log via logging.getLogger(__name__); structured payloads go in
extra={"data": {...}} and must already be redacted by the caller.
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from typing import Any, Dict, MutableMapping, Optional, Tuple

from atlas_tools.config.schema import Settings

CONTEXT_FIELDS = ("tool", "operation", "invocation_id")


@dataclass(frozen=True)
class LogContext:
    tool: Optional[str] = None
    operation: Optional[str] = None
    invocation_id: Optional[str] = None


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        # Optional structured extras
        for k in CONTEXT_FIELDS:
            if getattr(record, k, None) is not None:
                payload[k] = getattr(record, k)
        data = getattr(record, "data", None)
        if data is not None:
            payload["data"] = data
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges call-site extras with the bound context."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**(self.extra or {}), **(kwargs.get("extra") or {})}
        return msg, kwargs


def bootstrap_logger(settings: Settings) -> logging.Logger:
    """
    Configure root logger based on settings.
    Returns a named logger ("atlas_tools").
    """
    level = getattr(logging, settings.logging.level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)

    # clear existing handlers to avoid duplicates in reload
    root.handlers = []

    if settings.logging.console:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        if settings.logging.json_format:
            handler.setFormatter(JsonLineFormatter())
        else:
            handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        root.addHandler(handler)

    return logging.getLogger("atlas_tools")


def with_context(logger: logging.Logger, ctx: LogContext) -> logging.LoggerAdapter:
    return ContextAdapter(
        logger,
        {
            "tool": ctx.tool,
            "operation": ctx.operation,
            "invocation_id": ctx.invocation_id,
        },
    )
