# ==============================
# Logging Bootstrap
# ==============================
"""
Logging bootstrap.

Goals:
- Centralize logger configuration using Settings.logging.
- Provide structured context fields (tool, outcome, latency_ms, ...).
- stdlib logging + JSON-line formatter.

Records go to stderr: stdout carries the RPC channel and must stay clean.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, Dict, Optional, TextIO

from bridge.config.schema import Settings
from bridge.logging.redaction import RedactingFilter, SecurityRedactor


LOGGER_NAME = "tsbridge"

STRUCTURED_FIELDS = (
    "tool",
    "arguments",
    "outcome",
    "error_code",
    "error",
    "latency_ms",
    "toolset",
)


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for k in STRUCTURED_FIELDS:
            if hasattr(record, k):
                payload[k] = getattr(record, k)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def build_redactor(settings: Settings) -> SecurityRedactor:
    secrets = [settings.tailscale.api_token] if settings.tailscale.api_token else []
    return SecurityRedactor(patterns=settings.logging.redact_patterns, secrets=secrets)


def bootstrap_logger(settings: Settings, *, stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Configure root logger based on settings.
    Returns the named logger ("tsbridge").
    """
    level = getattr(logging, settings.logging.level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)

    # clear existing handlers to avoid duplicates in reload
    root.handlers = []

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JsonLineFormatter())
    if settings.logging.redact:
        handler.addFilter(RedactingFilter(build_redactor(settings)))
    root.addHandler(handler)

    return logging.getLogger(LOGGER_NAME)
