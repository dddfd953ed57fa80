# ==============================
# Security & Redaction
# ==============================
"""
Make query documents, parameters and error text safe to log or trace.

What gets masked:
- values under secret-looking keys (password, token, connection_string, ...)
- credentials embedded in mongodb:// and mongodb+srv:// connection strings
- extra regexes from Settings.logging.redact_patterns

What gets shortened:
- numeric lists longer than `max_vector_items` (query embeddings) become
  "<vector len=N>"
- binary payloads become "<binary len=N>"

Everything else that is not JSON-native (ObjectId, datetime, Decimal128)
is turned into its string form, then pattern-redacted.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Pattern

if TYPE_CHECKING:
    from atlas_tools.config.schema import Settings


DEFAULT_MASK = "[REDACTED]"
MAX_VECTOR_ITEMS = 8

DEFAULT_KEY_HINTS = (
    "password",
    "passwd",
    "secret",
    "token",
    "api_key",
    "apikey",
    "authorization",
    "cookie",
    "private_key",
    "connection_string",
)

URI_CREDENTIALS = r"(?<=://)[^/@\s:]+:[^/@\s]+(?=@)"

DEFAULT_PATTERNS = (
    URI_CREDENTIALS,
    r"(?i)api[_-]?key\s*[:=]\s*\S+",
    r"(?i)bearer\s+[A-Za-z0-9._~+/=-]+",
)


def _compile(patterns: Iterable[str]) -> List[Pattern[str]]:
    out: List[Pattern[str]] = []
    for p in patterns:
        try:
            out.append(re.compile(p))
        except re.error:
            # a bad user pattern must not break logging
            continue
    return out


def _is_number(x: Any) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool)


class SecurityRedactor:
    def __init__(
        self,
        *,
        patterns: Optional[List[str]] = None,
        key_hints: Optional[Iterable[str]] = None,
        mask: str = DEFAULT_MASK,
        max_vector_items: int = MAX_VECTOR_ITEMS,
    ) -> None:
        self.mask = mask
        self.max_vector_items = max_vector_items
        self.patterns = _compile([*DEFAULT_PATTERNS, *(patterns or [])])
        hints = [h.lower() for h in (key_hints or DEFAULT_KEY_HINTS)]
        self._secret_key = re.compile("|".join(re.escape(h) for h in hints)) if hints else None

    @classmethod
    def from_settings(cls, settings: "Settings") -> "SecurityRedactor":
        return cls(patterns=list(settings.logging.redact_patterns) or None)

    def is_secret_key(self, key: Any) -> bool:
        return self._secret_key is not None and self._secret_key.search(str(key).lower()) is not None

    def redact_text(self, text: str) -> str:
        for p in self.patterns:
            text = p.sub(self.mask, text)
        return text

    def redact_dict(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        return self.sanitize(obj)

    def sanitize(self, obj: Any) -> Any:
        """Return a redacted, log-safe copy of any value; the input is not modified."""
        if obj is None or isinstance(obj, bool) or _is_number(obj):
            return obj
        if isinstance(obj, str):
            return self.redact_text(obj)
        if isinstance(obj, (bytes, bytearray)):
            return f"<binary len={len(obj)}>"
        if isinstance(obj, dict):
            return {k: (self.mask if self.is_secret_key(k) else self.sanitize(v)) for k, v in obj.items()}
        if isinstance(obj, (list, tuple)):
            if len(obj) > self.max_vector_items and all(_is_number(i) for i in obj):
                return f"<vector len={len(obj)}>"
            return [self.sanitize(i) for i in obj]
        return self.redact_text(str(obj))
