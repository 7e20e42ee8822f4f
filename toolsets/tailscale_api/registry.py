# ==============================
# Toolset Registration (Tailscale API)
# ==============================
"""
Registers the remote-API-backed operations into the core registry.

Every operation is an HttpStrategy against
https://<api_host>/api/v2/tailnet/<tailnet><path>.

This module must remain side-effect safe:
- No network calls
- Only registry registration
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping

from bridge.config.schema import Settings
from bridge.contracts.tool_schema import HttpMethod, HttpStrategy, ParamSpec, ToolDescriptor
from bridge.tools.registry import ToolRegistry


DEVICE_FIELDS = (
    "id",
    "name",
    "hostname",
    "clientVersion",
    "os",
    "addresses",
    "enabled",
    "online",
    "lastSeen",
)


def _device_id(description: str) -> ParamSpec:
    return ParamSpec(name="device_id", required=True, description=description)


def render_device_list(data: Any, arguments: Mapping[str, Any]) -> str:
    """Project each device onto the summary fields; the raw body carries much more."""
    devices: List[Dict[str, Any]] = data["devices"]
    summary = [{field: device.get(field) for field in DEVICE_FIELDS} for device in devices]
    return json.dumps(summary, indent=2, ensure_ascii=False)


def _authorization_renderer(verb: str):
    def render(data: Any, arguments: Mapping[str, Any]) -> str:
        return f"Device {arguments['device_id']} has been {verb}"

    return render


def build_descriptors(settings: Settings) -> List[ToolDescriptor]:
    return [
        ToolDescriptor(
            name="list_devices",
            description="List all devices in the Tailscale network",
            strategy=HttpStrategy(path_template="/devices", render=render_device_list),
        ),
        ToolDescriptor(
            name="get_device_info",
            description="Get detailed information about a specific device",
            params=[_device_id("The device ID to get information for")],
            strategy=HttpStrategy(path_template="/devices/{device_id}"),
        ),
        ToolDescriptor(
            name="enable_device",
            description="Enable a device in the Tailscale network",
            params=[_device_id("The device ID to enable")],
            strategy=HttpStrategy(
                path_template="/devices/{device_id}/authorized",
                method=HttpMethod.POST,
                body_builder=lambda args: {"authorized": True},
                render=_authorization_renderer("enabled"),
            ),
        ),
        ToolDescriptor(
            name="disable_device",
            description="Disable a device in the Tailscale network",
            params=[_device_id("The device ID to disable")],
            strategy=HttpStrategy(
                path_template="/devices/{device_id}/authorized",
                method=HttpMethod.POST,
                body_builder=lambda args: {"authorized": False},
                render=_authorization_renderer("disabled"),
            ),
        ),
        ToolDescriptor(
            name="get_acl",
            description="Get the current ACL (Access Control List) configuration",
            strategy=HttpStrategy(path_template="/acl"),
        ),
        ToolDescriptor(
            name="get_dns_settings",
            description="Get DNS settings for the tailnet",
            strategy=HttpStrategy(path_template="/dns/preferences"),
        ),
    ]


def register(registry: ToolRegistry, settings: Settings) -> None:
    for descriptor in build_descriptors(settings):
        registry.register(descriptor)
