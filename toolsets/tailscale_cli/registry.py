# ==============================
# Toolset Registration (Tailscale CLI)
# ==============================
"""
Registers the local-CLI-backed operations into the core registry.

Every operation is a SubprocessStrategy running the configured tailscale binary
(settings.tailscale.cli_binary). No credentials: the local daemon's own login
state is used.

This module must remain side-effect safe:
- No process spawning at import or registration time
- Only registry registration
"""

from __future__ import annotations

from typing import Any, List, Mapping

from bridge.config.schema import Settings
from bridge.contracts.tool_schema import ParamSpec, ParamType, SubprocessStrategy, ToolDescriptor
from bridge.tools.registry import ToolRegistry


def status_args(arguments: Mapping[str, Any]) -> List[str]:
    argv = ["status"]
    if arguments.get("json"):
        argv.append("--json")
    return argv


def ping_args(arguments: Mapping[str, Any]) -> List[str]:
    argv = ["ping"]
    count = arguments.get("count")
    if count is not None:
        argv.extend(["-c", str(count)])
    argv.extend(["--", str(arguments["target"])])
    return argv


def ip_args(arguments: Mapping[str, Any]) -> List[str]:
    argv = ["ip"]
    family = arguments.get("family")
    if family:
        argv.append(f"-{family}")
    peer = arguments.get("peer")
    if peer:
        argv.extend(["--", str(peer)])
    return argv


def netcheck_args(arguments: Mapping[str, Any]) -> List[str]:
    return ["netcheck"]


def whois_args(arguments: Mapping[str, Any]) -> List[str]:
    return ["whois", "--", str(arguments["ip"])]


def build_descriptors(settings: Settings) -> List[ToolDescriptor]:
    binary = settings.tailscale.cli_binary

    def strategy(builder) -> SubprocessStrategy:
        return SubprocessStrategy(command=binary, args_builder=builder)

    return [
        ToolDescriptor(
            name="get_status",
            description="Show the local Tailscale connection status and peers",
            params=[ParamSpec(name="json", type=ParamType.BOOLEAN, description="Return machine-readable JSON")],
            strategy=strategy(status_args),
        ),
        ToolDescriptor(
            name="ping",
            description="Ping a peer over the Tailscale network",
            params=[
                ParamSpec(name="target", required=True, description="Hostname or Tailscale IP of the peer"),
                ParamSpec(name="count", type=ParamType.INTEGER, description="Number of pings to send"),
            ],
            strategy=strategy(ping_args),
        ),
        ToolDescriptor(
            name="get_ip",
            description="Show Tailscale IP addresses for this machine or a peer",
            params=[
                ParamSpec(name="peer", description="Optional peer hostname"),
                ParamSpec(name="family", description="Restrict to IPv4 or IPv6", enum=["4", "6"]),
            ],
            strategy=strategy(ip_args),
        ),
        ToolDescriptor(
            name="netcheck",
            description="Print an analysis of local network conditions",
            strategy=strategy(netcheck_args),
        ),
        ToolDescriptor(
            name="whois",
            description="Show the machine and user associated with a Tailscale IP",
            params=[ParamSpec(name="ip", required=True, description="Tailscale IP address to look up")],
            strategy=strategy(whois_args),
        ),
    ]


def register(registry: ToolRegistry, settings: Settings) -> None:
    for descriptor in build_descriptors(settings):
        registry.register(descriptor)
