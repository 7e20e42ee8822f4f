# ==============================
# Tests: Toolset Descriptors
# ==============================
from __future__ import annotations

import json

import pytest

from bridge.contracts.tool_schema import HttpMethod, HttpStrategy, SubprocessStrategy
from bridge.tools.registry import ToolRegistry
from toolsets.tailscale_api import registry as api_toolset
from toolsets.tailscale_cli import registry as cli_toolset


def _by_name(descriptors):
    return {d.name: d for d in descriptors}


def test_api_toolset_operations(api_settings) -> None:
    tools = _by_name(api_toolset.build_descriptors(api_settings))
    assert set(tools) == {
        "list_devices",
        "get_device_info",
        "enable_device",
        "disable_device",
        "get_acl",
        "get_dns_settings",
    }
    assert all(isinstance(d.strategy, HttpStrategy) for d in tools.values())
    assert tools["get_device_info"].strategy.path_template == "/devices/{device_id}"
    assert tools["get_device_info"].required_params() == ["device_id"]
    assert tools["get_dns_settings"].strategy.path_template == "/dns/preferences"


@pytest.mark.parametrize("name, authorized", [("enable_device", True), ("disable_device", False)])
def test_authorization_toggles_post_body(api_settings, name, authorized) -> None:
    strategy = _by_name(api_toolset.build_descriptors(api_settings))[name].strategy
    assert strategy.method == HttpMethod.POST
    assert strategy.path_template == "/devices/{device_id}/authorized"
    assert strategy.body_builder({"device_id": "n1"}) == {"authorized": authorized}
    verb = "enabled" if authorized else "disabled"
    assert strategy.render(None, {"device_id": "n1"}) == f"Device n1 has been {verb}"


def test_device_list_is_projected_to_summary_fields() -> None:
    body = {
        "devices": [
            {"id": "1", "name": "laptop.example.ts.net", "hostname": "laptop", "os": "linux", "keyExpiryDisabled": True},
        ]
    }
    rendered = json.loads(api_toolset.render_device_list(body, {}))
    assert rendered[0]["id"] == "1"
    assert rendered[0]["online"] is None
    assert "keyExpiryDisabled" not in rendered[0]
    assert set(rendered[0]) == set(api_toolset.DEVICE_FIELDS)


def test_cli_toolset_operations(cli_settings) -> None:
    tools = _by_name(cli_toolset.build_descriptors(cli_settings))
    assert set(tools) == {"get_status", "ping", "get_ip", "netcheck", "whois"}
    for descriptor in tools.values():
        assert isinstance(descriptor.strategy, SubprocessStrategy)
        assert descriptor.strategy.command == cli_settings.tailscale.cli_binary
    assert tools["ping"].required_params() == ["target"]
    assert tools["get_ip"].param("family").enum == ["4", "6"]


@pytest.mark.parametrize(
    "builder, arguments, argv",
    [
        (cli_toolset.status_args, {}, ["status"]),
        (cli_toolset.status_args, {"json": True}, ["status", "--json"]),
        (cli_toolset.ping_args, {"target": "peer1"}, ["ping", "--", "peer1"]),
        (cli_toolset.ping_args, {"target": "peer1", "count": 3}, ["ping", "-c", "3", "--", "peer1"]),
        (cli_toolset.ip_args, {}, ["ip"]),
        (cli_toolset.ip_args, {"family": "4", "peer": "peer1"}, ["ip", "-4", "--", "peer1"]),
        (cli_toolset.netcheck_args, {}, ["netcheck"]),
        (cli_toolset.whois_args, {"ip": "100.64.0.1"}, ["whois", "--", "100.64.0.1"]),
    ],
)
def test_cli_argv_builders(builder, arguments, argv) -> None:
    assert builder(arguments) == argv


def test_cli_binary_is_configurable(cli_settings) -> None:
    settings = cli_settings.model_copy(
        update={"tailscale": cli_settings.tailscale.model_copy(update={"cli_binary": "/usr/local/bin/tailscale"})}
    )
    registry = ToolRegistry()
    cli_toolset.register(registry, settings)
    assert registry.lookup("whois").strategy.command == "/usr/local/bin/tailscale"


@pytest.mark.parametrize(
    "builder, arguments, operand",
    [
        (cli_toolset.whois_args, {"ip": "--json"}, "--json"),
        (cli_toolset.ping_args, {"target": "--until-direct=false"}, "--until-direct=false"),
        (cli_toolset.ip_args, {"peer": "-6"}, "-6"),
    ],
)
def test_dash_prefixed_values_stay_operands(builder, arguments, operand) -> None:
    argv = builder(arguments)
    assert argv[-2:] == ["--", operand]
