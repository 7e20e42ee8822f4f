# ==============================
# Response Normalizer
# ==============================
"""
Renders an Outcome into the single ResponseEnvelope shape, independent of
which backend produced it. This is the only place outcomes become text.
"""

from __future__ import annotations

from bridge.contracts.tool_schema import Failure, Outcome, ResponseEnvelope, Success, TextContent


def error_text(failure: Failure) -> str:
    if failure.tool_name:
        return f"Error executing {failure.tool_name}: {failure.message}"
    return f"Error: {failure.message}"


def normalize(outcome: Outcome) -> ResponseEnvelope:
    if isinstance(outcome, Success):
        return ResponseEnvelope(content=[TextContent(text=outcome.text)], is_error=False)
    return ResponseEnvelope(content=[TextContent(text=error_text(outcome))], is_error=True)
