# ==============================
# MCP Stdio Server
# ==============================
"""
MCP transport adapter.

The mcp SDK owns framing, message ids and capability negotiation. This module
only maps:
- list_tools  -> ToolRegistry.tool_definitions()
- call_tool   -> ToolDispatcher.acall() -> CallToolResult(content, isError)

Input validation in the SDK is disabled so the dispatcher owns argument errors
and the text of every failure envelope.

Run with: python -m gateway.mcp.server
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

import mcp.types as types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from bridge.config.loader import ConfigError, load_settings
from bridge.config.schema import Settings
from bridge.contracts.tool_schema import ResponseEnvelope
from bridge.logging.logger import LOGGER_NAME, bootstrap_logger
from bridge.tools.dispatcher import ToolDispatcher
from bridge.tools.registry import ToolRegistry
from gateway.deps import build_dispatcher

logger = logging.getLogger(f"{LOGGER_NAME}.mcp")


def to_mcp_tools(registry: ToolRegistry) -> List[types.Tool]:
    return [
        types.Tool(name=d["name"], description=d["description"], inputSchema=d["inputSchema"])
        for d in registry.tool_definitions()
    ]


def to_call_tool_result(envelope: ResponseEnvelope) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=c.text) for c in envelope.content],
        isError=envelope.is_error,
    )


class BridgeServer:
    """Binds one dispatcher + registry to an MCP low-level Server."""

    def __init__(self, *, settings: Settings, dispatcher: ToolDispatcher, registry: ToolRegistry) -> None:
        self.settings = settings
        self.dispatcher = dispatcher
        self.registry = registry
        self.server: Server = Server(settings.app.name, version=settings.app.version)
        self._register_handlers()

    async def list_tools(self) -> List[types.Tool]:
        logger.debug("list_tools called")
        return to_mcp_tools(self.registry)

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]]) -> types.CallToolResult:
        envelope = await self.dispatcher.acall(name, arguments)
        return to_call_tool_result(envelope)

    def _register_handlers(self) -> None:
        """Register MCP protocol handlers."""

        @self.server.list_tools()
        async def list_tools() -> List[types.Tool]:
            return await self.list_tools()

        @self.server.call_tool(validate_input=False)
        async def call_tool(name: str, arguments: Dict[str, Any]) -> types.CallToolResult:
            return await self.call_tool(name, arguments)

    async def run_stdio(self) -> None:
        async with stdio_server() as (read_stream, write_stream):
            logger.info("Tailscale MCP server running on stdio", extra={"toolset": self.settings.app.toolset})
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )


def serve(settings: Settings) -> int:
    """
    Build and run the server. Startup faults exit non-zero with a diagnostic on stderr;
    per-invocation faults never reach this level.
    """
    try:
        dispatcher, registry = build_dispatcher(settings)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    bridge = BridgeServer(settings=settings, dispatcher=dispatcher, registry=registry)
    try:
        asyncio.run(bridge.run_stdio())
    except KeyboardInterrupt:
        return 0
    except Exception:
        logger.exception("Server error")
        return 1
    return 0


def main() -> int:
    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    bootstrap_logger(settings)
    return serve(settings)


if __name__ == "__main__":
    raise SystemExit(main())
