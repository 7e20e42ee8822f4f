# ==============================
# Security & Redaction
# ==============================
"""
Security redaction helpers.

Goals:
- Scrub credentials from anything that might be logged.
- Keep it deterministic and testable.
- Configurable patterns via Settings.logging.redact_patterns (and defaults here).

Scope:
- Practical regex-based redaction + key-based redaction (e.g. token, authorization).
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Pattern


DEFAULT_MASK = "[REDACTED]"

DEFAULT_KEY_HINTS: List[str] = [
    "password",
    "secret",
    "token",
    "api_key",
    "apikey",
    "authorization",
    "bearer",
    "cookie",
    "auth_key",
]

DEFAULT_PATTERNS: List[str] = [
    r"tskey-[A-Za-z0-9_-]+",  # tailscale API / auth keys
    r"(?i)bearer\s+[A-Za-z0-9._~+/=-]+",
    r"(?i)api[_-]?key\s*[:=]\s*\S+",
]


def _compile(patterns: Iterable[str]) -> List[Pattern[str]]:
    compiled: List[Pattern[str]] = []
    for p in patterns:
        try:
            compiled.append(re.compile(p))
        except re.error:
            # ignore invalid patterns to avoid runtime failures
            continue
    return compiled


class SecurityRedactor:
    def __init__(
        self,
        *,
        patterns: List[str] | None = None,
        key_hints: List[str] | None = None,
        secrets: Iterable[str] | None = None,
        mask: str = DEFAULT_MASK,
    ) -> None:
        self.mask = mask
        self.key_hints = [k.lower() for k in (key_hints or DEFAULT_KEY_HINTS)]
        self.patterns = _compile([*DEFAULT_PATTERNS, *(patterns or [])])
        # literal values known at startup (e.g. the configured API token)
        self.secrets = sorted({s for s in (secrets or []) if s}, key=len, reverse=True)

    def redact_text(self, text: str) -> str:
        out = text
        for s in self.secrets:
            out = out.replace(s, self.mask)
        for p in self.patterns:
            out = p.sub(self.mask, out)
        return out

    def redact_dict(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        return self._redact_any(obj)  # type: ignore[return-value]

    def _redact_any(self, x: Any) -> Any:
        if x is None:
            return None
        if isinstance(x, str):
            return self.redact_text(x)
        if isinstance(x, (int, float, bool)):
            return x
        if isinstance(x, (list, tuple)):
            return [self._redact_any(i) for i in x]
        if isinstance(x, dict):
            out: Dict[str, Any] = {}
            for k, v in x.items():
                ks = str(k).lower()
                if any(h in ks for h in self.key_hints):
                    out[k] = self.mask
                else:
                    out[k] = self._redact_any(v)
            return out
        return self.redact_text(str(x))


class RedactingFilter(logging.Filter):
    """Applies a SecurityRedactor to the rendered message of every record."""

    def __init__(self, redactor: SecurityRedactor) -> None:
        super().__init__()
        self.redactor = redactor

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = self.redactor.redact_text(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True
