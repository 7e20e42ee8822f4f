# ==============================
# HTTP Tool Backend
# ==============================
"""
HTTP backend issues one authenticated call per invocation against the
Tailscale management API.

Rules:
- Base URL: https://<api_host>/api/v2/tailnet/<tailnet>
- Path placeholders are replaced literally (URL path-segment encoding only).
- Never raises for upstream faults; always returns an Outcome.
- No retries, no caching.
- No direct logging of credentials; the dispatcher logs redacted events.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from bridge.config.schema import Settings
from bridge.contracts.tool_schema import (
    Arguments,
    Failure,
    HttpStrategy,
    Outcome,
    Success,
    ToolErrorCode,
)
from bridge.utils.validation import require_non_empty


_PLACEHOLDER_RE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


class PathTemplateError(ValueError):
    pass


def resolve_path(template: str, arguments: Arguments) -> str:
    """
    Substitute '{name}' placeholders with URL-encoded argument values.

    Substitution is literal; there is no expression language.
    """
    def _sub(match: "re.Match[str]") -> str:
        key = match.group(1)
        value = arguments.get(key)
        if value is None:
            raise PathTemplateError(f"{key} parameter is required for path {template}")
        return quote(str(value), safe="")

    return _PLACEHOLDER_RE.sub(_sub, template)


class HttpToolBackend:
    name: str = "http"

    def __init__(
        self,
        *,
        tailnet: str,
        api_token: str,
        api_host: str = "api.tailscale.com",
        timeout_seconds: Optional[float] = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.tailnet = require_non_empty(tailnet, what="tailnet")
        self._api_token = require_non_empty(api_token, what="api_token")
        self.api_host = api_host.strip().rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings, *, session: Optional[requests.Session] = None) -> "HttpToolBackend":
        ts = settings.tailscale
        return cls(
            tailnet=ts.tailnet or "",
            api_token=ts.api_token or "",
            api_host=ts.api_host,
            timeout_seconds=settings.limits.http_timeout_seconds,
            session=session,
        )

    @property
    def base_url(self) -> str:
        return f"https://{self.api_host}/api/v2/tailnet/{quote(self.tailnet, safe='')}"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def run(self, strategy: HttpStrategy, arguments: Arguments) -> Outcome:
        try:
            path = resolve_path(strategy.path_template, arguments)
        except PathTemplateError as e:
            return Failure(code=ToolErrorCode.INVALID_ARGUMENT, message=str(e))

        url = f"{self.base_url}{path}"
        method = strategy.method.value
        kwargs: Dict[str, Any] = {"headers": self._headers(), "timeout": self.timeout_seconds}
        if strategy.body_builder is not None:
            kwargs["json"] = strategy.body_builder(arguments)

        try:
            response = self.session.request(method, url, **kwargs)
        except requests.Timeout:
            return Failure(
                code=ToolErrorCode.TIMEOUT,
                message=f"API call timed out after {self.timeout_seconds} seconds",
                details={"method": method, "path": path},
            )
        except requests.RequestException as e:
            return Failure(
                code=ToolErrorCode.UPSTREAM_TRANSPORT,
                message=f"API call failed: {e}",
                details={"method": method, "path": path},
            )

        if not 200 <= response.status_code < 300:
            return Failure(
                code=ToolErrorCode.UPSTREAM_HTTP,
                message=f"API call failed: {response.status_code} {response.reason or ''}".rstrip(),
                details={"status": response.status_code, "method": method, "path": path},
            )

        try:
            data = _parse_json(response)
        except ValueError as e:
            return Failure(
                code=ToolErrorCode.MALFORMED_UPSTREAM_BODY,
                message=f"Malformed API response: {e}",
                details={"status": response.status_code, "path": path},
            )

        try:
            text = strategy.render(data, arguments)
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            return Failure(
                code=ToolErrorCode.MALFORMED_UPSTREAM_BODY,
                message=f"Unexpected API response shape: {e!r}",
                details={"status": response.status_code, "path": path},
            )
        return Success(text=text)


def _parse_json(response: requests.Response) -> Any:
    """Parse a 2xx body; an empty body (e.g. 204) is None."""
    if response.status_code == 204 or not response.content or not response.content.strip():
        return None
    return response.json()
