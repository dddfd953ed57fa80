# ==============================
# Tool Executor
# ==============================
"""
Host-facing execution entrypoint.

Rules:
- Resolve -> authorize -> parse params -> invoke, in that order.
- Never raises for caller-triggered conditions; always returns a ToolResult.
- Applies security redaction before emitting trace/log events.
- No retries here: retry, if any, belongs to the source (pymongo) or the host.

Dependencies:
- ToolRegistry (resolve tool)
- Authorization gate (governance/auth.py)
- SecurityRedactor
- InvocationContext trace hook (optional)
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from atlas_tools.contracts.errors import ToolkitError, UnauthorizedError
from atlas_tools.contracts.tool_schema import ToolError, ToolErrorCode, ToolMeta, ToolResult
from atlas_tools.governance.auth import evaluate_auth
from atlas_tools.governance.security import SecurityRedactor
from atlas_tools.logging.logger import LogContext, with_context
from atlas_tools.tools.base import BaseTool
from atlas_tools.tools.context import InvocationContext
from atlas_tools.tools.parameters import claims_summary
from atlas_tools.tools.registry import ToolRegistry


class ToolExecutor:
    def __init__(
        self,
        *,
        registry: ToolRegistry,
        redactor: Optional[SecurityRedactor] = None,
        logger: Optional[logging.Logger] = None,
        default_timeout_seconds: Optional[float] = None,
    ) -> None:
        self.registry = registry
        self.redactor = redactor or SecurityRedactor()
        self.logger = logger or logging.getLogger("atlas_tools.executor")
        self.default_timeout_seconds = default_timeout_seconds

    def new_context(self, **kwargs: Any) -> InvocationContext:
        return InvocationContext.with_timeout(self.default_timeout_seconds, **kwargs)

    def execute(
        self,
        *,
        tool_name: str,
        params: Optional[Mapping[str, Any]],
        ctx: Optional[InvocationContext] = None,
        claims: Optional[Mapping[str, Mapping[str, Any]]] = None,
        verified_auth_services: Iterable[str] = (),
    ) -> ToolResult:
        started = time.time()
        ctx = ctx or self.new_context()
        safe_params = self._safe_params(params)

        # Resolve tool
        try:
            tool = self.registry.resolve(tool_name)
        except KeyError as e:
            err = ToolError(code=ToolErrorCode.NOT_FOUND, message=str(e), details={"tool": tool_name})
            return ToolResult.fail(error=err, meta=ToolMeta(tool_name=tool_name))

        operation = getattr(tool, "operation", None)
        log = with_context(
            self.logger,
            LogContext(tool=tool.name, operation=operation, invocation_id=ctx.invocation_id),
        )
        meta = ToolMeta(
            tool_name=tool.name,
            operation=operation,
            request_id=ctx.invocation_id,
            tags={"kind": tool.kind},
        )

        # Authorization gate
        verified = list(verified_auth_services or ())
        if not tool.authorized(verified):
            decision = evaluate_auth(
                tool_name=tool.name,
                auth_required=list(getattr(tool, "auth_required", ())),
                verified_auth_services=verified,
            )
            exc = UnauthorizedError(
                f"tool {tool.name!r} requires one of the auth services {decision.details['auth_required']}",
                details={"tool": tool.name, "reason": decision.reason},
            )
            ctx.emit("tool.blocked", {"tool": tool.name, "params": safe_params, "reason": decision.reason})
            log.warning("tool call blocked: %s", decision.reason)
            return self._finish(ToolResult.fail(error=exc.to_tool_error(), meta=meta), started)

        # Parse + invoke
        try:
            values = tool.parse_params(params, claims)
            results = tool.invoke(values, ctx)
            result = ToolResult.success(results, meta=meta)
        except ToolkitError as e:
            log.info("tool call failed: %s", e.code.value, extra={"data": {"error": self.redactor.redact_text(e.message)}})
            result = ToolResult.fail(error=self._safe_error(e.to_tool_error()), meta=meta)
        except Exception as e:
            log.exception("tool call raised unexpectedly")
            err = ToolError(
                code=ToolErrorCode.UNKNOWN,
                message="Tool execution failed.",
                details={"tool": tool.name, "exc": self.redactor.redact_text(repr(e))},
            )
            result = ToolResult.fail(error=err, meta=meta)

        result = self._finish(result, started)
        ctx.emit(
            "tool.executed",
            {
                "tool": tool.name,
                "params": safe_params,
                "claims": claims_summary(claims),
                "ok": result.ok,
                "error": result.error.model_dump(mode="json") if result.error else None,
                "result_count": result.meta.result_count,
                "latency_ms": result.meta.latency_ms,
            },
        )
        return result

    def list_tools(self, *, verified_auth_services: Iterable[str] = ()) -> List[Dict[str, Any]]:
        """Invocation schemas of the tools this caller is authorized to call."""
        verified = list(verified_auth_services or ())
        out: List[Dict[str, Any]] = []
        for name in self.registry.list():
            tool: BaseTool = self.registry.resolve(name)
            if tool.authorized(verified):
                out.append(tool.invocation_schema().to_dict())
        return out

    def _safe_params(self, params: Any) -> Dict[str, Any]:
        if params is None:
            return {}
        if not isinstance(params, Mapping):
            # parse_params rejects it; the trace still shows what was sent
            return {"$input": self.redactor.sanitize(params)}
        return self.redactor.redact_dict(dict(params))

    def _safe_error(self, err: ToolError) -> ToolError:
        return err.model_copy(
            update={
                "message": self.redactor.redact_text(err.message),
                "details": self.redactor.redact_dict(err.details),
            }
        )

    def _finish(self, result: ToolResult, started: float) -> ToolResult:
        elapsed_ms = int((time.time() - started) * 1000)
        meta = result.meta.model_copy(
            update={
                "ended_at": datetime.utcnow(),
                "latency_ms": elapsed_ms,
                "result_count": len(result.results) if result.ok else None,
                "redacted": True,
            }
        )
        return result.model_copy(update={"meta": meta})
