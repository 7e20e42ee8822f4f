# ==============================
# CLI Entrypoint
# ==============================
"""
CLI for the Tailscale MCP bridge.

Supported commands:
  tsbridge serve
  tsbridge serve --toolset cli
  tsbridge list-tools
  tsbridge call get_device_info --args '{"device_id":"12345"}'
  tsbridge call ping --toolset cli --args-file args.json

`call` runs one invocation through the same dispatcher the server uses and
prints the response envelope; exit status is 1 when the envelope is an error.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from bridge.config.loader import ConfigError, load_settings
from bridge.config.schema import Settings
from bridge.contracts.tool_schema import Invocation
from bridge.logging.logger import bootstrap_logger
from bridge.tools.dispatcher import ToolDispatcher
from bridge.tools.registry import ToolRegistry
from gateway.deps import build_dispatcher, with_toolset


def _json_load(text: str) -> Dict[str, Any]:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Invalid JSON arguments: {exc}") from exc
    if not isinstance(value, dict):
        raise SystemExit("JSON arguments must be an object.")
    return value


def _load_args_arg(args: Optional[str], args_file: Optional[str]) -> Dict[str, Any]:
    if args and args_file:
        raise SystemExit("Provide only one of --args or --args-file.")
    if args_file:
        text = Path(args_file).read_text(encoding="utf-8")
        return _json_load(text)
    if args:
        return _json_load(args)
    return {}


def _print_json(obj: Any) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False, default=str))


def cmd_list_tools(registry: ToolRegistry) -> int:
    _print_json({"tools": registry.tool_definitions()})
    return 0


def cmd_call(dispatcher: ToolDispatcher, *, tool: str, arguments: Dict[str, Any]) -> int:
    envelope = dispatcher.dispatch(Invocation(tool_name=tool, arguments=arguments))
    _print_json(envelope.to_dict())
    return 1 if envelope.is_error else 0


def cmd_serve(settings: Settings) -> int:
    # imported lazily so list-tools/call do not pull in the transport stack
    from gateway.mcp.server import serve

    return serve(settings)


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="tsbridge")
    ap.add_argument("--toolset", choices=["api", "cli"], default=None, help="Override app.toolset")
    sub = ap.add_subparsers(dest="cmd", required=True)

    sub.add_parser("serve")
    sub.add_parser("list-tools")

    ap_call = sub.add_parser("call")
    ap_call.add_argument("tool")
    ap_call.add_argument("--args", help="JSON object string", default=None)
    ap_call.add_argument("--args-file", help="Path to JSON file with arguments", default=None)

    args = ap.parse_args(argv)

    try:
        settings = with_toolset(load_settings(), args.toolset)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    bootstrap_logger(settings)

    if args.cmd == "serve":
        return cmd_serve(settings)

    try:
        dispatcher, registry = build_dispatcher(settings)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    if args.cmd == "list-tools":
        return cmd_list_tools(registry)
    if args.cmd == "call":
        arguments = _load_args_arg(args.args, args.args_file)
        return cmd_call(dispatcher, tool=args.tool, arguments=arguments)

    raise SystemExit("Unknown command")


if __name__ == "__main__":
    raise SystemExit(main())
