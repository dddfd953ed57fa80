# ==============================
# Authorization Gate
# ==============================
"""
Decide whether a caller's verified auth services satisfy a tool's requirement.

Policy:
- Empty requirement list: always authorized.
- Otherwise: authorized iff ANY required service was verified (OR, not AND).

Verification of tokens happens in the host; this module only compares names.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Sequence


@dataclass(frozen=True)
class AuthDecision:
    allow: bool
    reason: str
    details: Dict[str, Any]


def is_authorized(auth_required: Sequence[str], verified_auth_services: Iterable[str]) -> bool:
    if not auth_required:
        return True
    verified = set(verified_auth_services or ())
    return any(name in verified for name in auth_required)


def evaluate_auth(*, tool_name: str, auth_required: Sequence[str], verified_auth_services: Iterable[str]) -> AuthDecision:
    """Same answer as is_authorized(), with a reason suitable for tracing."""
    verified = sorted(set(verified_auth_services or ()))
    details = {"tool": tool_name, "auth_required": list(auth_required), "verified": verified}
    if not auth_required:
        return AuthDecision(True, "no_auth_required", details)
    if is_authorized(auth_required, verified):
        return AuthDecision(True, "ok", details)
    return AuthDecision(False, "auth_service_not_verified", details)
