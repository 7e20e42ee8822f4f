# ==============================
# Tool Dispatcher
# ==============================
"""
Central dispatch entrypoint.

Rules:
- ONLY place backends are invoked.
- Validates required/typed arguments before any backend call (fail fast).
- Routes by strategy variant: HttpStrategy -> HTTP backend, SubprocessStrategy -> subprocess backend.
- Applies redaction before emitting log events.
- Never raises; every invocation yields exactly one ResponseEnvelope.

Dependencies:
- ToolRegistry (lookup)
- HTTP / subprocess backends (execution)
- SecurityRedactor (optional)
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Mapping, Optional, Protocol

from pydantic import ValidationError

from bridge.contracts.tool_schema import (
    Arguments,
    Failure,
    HttpStrategy,
    Invocation,
    Outcome,
    ParamSpec,
    ParamType,
    ResponseEnvelope,
    SubprocessStrategy,
    ToolDescriptor,
    ToolErrorCode,
)
from bridge.logging.redaction import SecurityRedactor
from bridge.tools.normalizer import normalize
from bridge.tools.registry import ToolRegistry
from bridge.utils.validation import is_missing


class HttpBackend(Protocol):
    def run(self, strategy: HttpStrategy, arguments: Arguments) -> Outcome: ...


class SubprocessBackend(Protocol):
    def run(self, strategy: SubprocessStrategy, arguments: Arguments) -> Outcome: ...


_TYPE_NAMES = {
    ParamType.STRING: "a string",
    ParamType.INTEGER: "an integer",
    ParamType.BOOLEAN: "a boolean",
}


def _type_matches(spec: ParamSpec, value: Any) -> bool:
    if spec.type == ParamType.STRING:
        return isinstance(value, str)
    if spec.type == ParamType.INTEGER:
        return isinstance(value, int) and not isinstance(value, bool)
    if spec.type == ParamType.BOOLEAN:
        return isinstance(value, bool)
    return True


def validate_arguments(descriptor: ToolDescriptor, arguments: Arguments) -> Optional[Failure]:
    """
    Check required presence first (in declaration order), then types of present values.
    Returns the first violation, or None.
    """
    for name in descriptor.required_params():
        if is_missing(arguments.get(name)):
            return Failure(
                code=ToolErrorCode.MISSING_ARGUMENT,
                message=f"{name} parameter is required",
                details={"argument": name},
            )

    for spec in descriptor.params:
        if spec.name not in arguments or arguments[spec.name] is None:
            continue
        value = arguments[spec.name]
        if not _type_matches(spec, value):
            return Failure(
                code=ToolErrorCode.INVALID_ARGUMENT,
                message=f"{spec.name} must be {_TYPE_NAMES[spec.type]}",
                details={"argument": spec.name},
            )
        if spec.enum is not None and value not in spec.enum:
            allowed = ", ".join(str(v) for v in spec.enum)
            return Failure(
                code=ToolErrorCode.INVALID_ARGUMENT,
                message=f"{spec.name} must be one of: {allowed}",
                details={"argument": spec.name},
            )
    return None


class ToolDispatcher:
    def __init__(
        self,
        *,
        registry: ToolRegistry,
        http_backend: Optional[HttpBackend] = None,
        subprocess_backend: Optional[SubprocessBackend] = None,
        redactor: Optional[SecurityRedactor] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.registry = registry
        self.http_backend = http_backend
        self.subprocess_backend = subprocess_backend
        self.redactor = redactor or SecurityRedactor()
        self.logger = logger or logging.getLogger("tsbridge.dispatch")

    # ---------- Public API ----------

    def dispatch(self, invocation: Invocation) -> ResponseEnvelope:
        started = time.time()
        outcome = self.execute(invocation)
        elapsed_ms = int((time.time() - started) * 1000)
        self._emit(invocation, outcome, elapsed_ms)
        return normalize(outcome)

    def call(self, tool_name: str, arguments: Optional[Mapping[str, Any]] = None) -> ResponseEnvelope:
        """Convenience wrapper for transports that deliver (name, arguments) pairs."""
        try:
            invocation = Invocation(tool_name=tool_name, arguments=arguments)
        except ValidationError as e:
            failure = Failure(code=ToolErrorCode.INVALID_ARGUMENT, message=f"Malformed invocation: {e.errors()[0]['msg']}")
            return normalize(failure)
        return self.dispatch(invocation)

    async def adispatch(self, invocation: Invocation) -> ResponseEnvelope:
        """Run dispatch in a worker thread so the event loop is never blocked on I/O."""
        return await asyncio.to_thread(self.dispatch, invocation)

    async def acall(self, tool_name: str, arguments: Optional[Mapping[str, Any]] = None) -> ResponseEnvelope:
        return await asyncio.to_thread(self.call, tool_name, arguments)

    def execute(self, invocation: Invocation) -> Outcome:
        """Validate, route and run one invocation. Returns an Outcome; never raises."""
        descriptor = self.registry.lookup(invocation.tool_name)
        if descriptor is None:
            return Failure(
                code=ToolErrorCode.UNKNOWN_TOOL,
                message=f"Unknown tool: {invocation.tool_name}",
            )

        arguments = invocation.arguments
        violation = validate_arguments(descriptor, arguments)
        if violation is not None:
            return violation

        try:
            outcome = self._route(descriptor, arguments)
        except Exception as e:
            self.logger.exception("tool.exception", extra={"tool": descriptor.name})
            outcome = Failure(
                code=ToolErrorCode.INTERNAL,
                message=f"{type(e).__name__}: {e}",
            )

        if isinstance(outcome, Failure):
            return outcome.for_tool(descriptor.name)
        return outcome

    # ---------- Routing ----------

    def _route(self, descriptor: ToolDescriptor, arguments: Arguments) -> Outcome:
        strategy = descriptor.strategy
        if isinstance(strategy, HttpStrategy):
            if self.http_backend is None:
                return Failure(code=ToolErrorCode.INTERNAL, message="HTTP backend is not configured")
            return self.http_backend.run(strategy, arguments)
        if isinstance(strategy, SubprocessStrategy):
            if self.subprocess_backend is None:
                return Failure(code=ToolErrorCode.INTERNAL, message="Subprocess backend is not configured")
            return self.subprocess_backend.run(strategy, arguments)
        return Failure(
            code=ToolErrorCode.INTERNAL,
            message=f"Unsupported strategy: {type(strategy).__name__}",
        )

    # ---------- Observability ----------

    def _emit(self, invocation: Invocation, outcome: Outcome, elapsed_ms: int) -> None:
        extra = {
            "tool": invocation.tool_name,
            "arguments": self.redactor.redact_dict(dict(invocation.arguments)),
            "outcome": outcome.kind,
            "latency_ms": elapsed_ms,
        }
        if isinstance(outcome, Failure):
            extra["error_code"] = outcome.code.value
            extra["error"] = self.redactor.redact_text(outcome.message)
            self.logger.warning("tool.executed", extra=extra)
        else:
            self.logger.info("tool.executed", extra=extra)
