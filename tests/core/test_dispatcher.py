# ==============================
# Tests: Tool Dispatcher
# ==============================
from __future__ import annotations

import asyncio
import logging
from typing import List

import pytest

from bridge.config.schema import Settings
from bridge.contracts.tool_schema import (
    HttpStrategy,
    Invocation,
    ParamSpec,
    SubprocessStrategy,
    Success,
    ToolDescriptor,
)
from bridge.logging.redaction import SecurityRedactor
from bridge.tools.dispatcher import ToolDispatcher
from bridge.tools.registry import ToolRegistry
from conftest import TEST_TOKEN, ExplodingBackend, SpyBackend
from toolsets.tailscale_api.registry import build_descriptors as api_descriptors
from toolsets.tailscale_cli.registry import build_descriptors as cli_descriptors


def _all_descriptors(settings: Settings) -> List[ToolDescriptor]:
    return [*api_descriptors(settings), *cli_descriptors(settings)]


def _dispatcher(descriptors, http=None, sub=None) -> ToolDispatcher:
    return ToolDispatcher(
        registry=ToolRegistry(descriptors).freeze(),
        http_backend=http if http is not None else SpyBackend(),
        subprocess_backend=sub if sub is not None else SpyBackend(),
    )


def _complete_arguments(descriptor: ToolDescriptor) -> dict:
    return {name: "value-1" for name in descriptor.required_params()}


@pytest.mark.parametrize("descriptor", _all_descriptors(Settings()), ids=lambda d: d.name)
def test_every_operation_succeeds_with_required_arguments(descriptor: ToolDescriptor) -> None:
    http, sub = SpyBackend(Success(text="done")), SpyBackend(Success(text="done"))
    dispatcher = _dispatcher([descriptor], http=http, sub=sub)

    envelope = dispatcher.dispatch(Invocation(tool_name=descriptor.name, arguments=_complete_arguments(descriptor)))

    assert envelope.is_error is False
    assert envelope.content and envelope.content[0].text == "done"
    assert len(http.calls) + len(sub.calls) == 1


@pytest.mark.parametrize(
    "descriptor",
    [d for d in _all_descriptors(Settings()) if d.required_params()],
    ids=lambda d: d.name,
)
def test_missing_required_argument_never_reaches_backend(descriptor: ToolDescriptor) -> None:
    for missing in descriptor.required_params():
        http, sub = SpyBackend(), SpyBackend()
        dispatcher = _dispatcher([descriptor], http=http, sub=sub)
        arguments = _complete_arguments(descriptor)
        del arguments[missing]

        envelope = dispatcher.dispatch(Invocation(tool_name=descriptor.name, arguments=arguments))

        assert envelope.is_error is True
        assert envelope.content[0].text == f"Error: {missing} parameter is required"
        assert http.calls == [] and sub.calls == []


@pytest.mark.parametrize("blank", [None, "", "   "])
def test_blank_required_argument_counts_as_missing(blank) -> None:
    descriptor = next(d for d in api_descriptors(Settings()) if d.name == "get_device_info")
    http = SpyBackend()
    envelope = _dispatcher([descriptor], http=http).call("get_device_info", {"device_id": blank})
    assert envelope.is_error is True
    assert "device_id parameter is required" in envelope.text
    assert http.calls == []


def test_unknown_tool() -> None:
    envelope = _dispatcher(api_descriptors(Settings())).dispatch(Invocation(tool_name="nonexistent_tool"))
    assert envelope.is_error is True
    assert "Unknown tool: nonexistent_tool" in envelope.content[0].text


def test_argument_types_are_checked_before_execution() -> None:
    sub = SpyBackend()
    dispatcher = _dispatcher(cli_descriptors(Settings()), sub=sub)

    wrong_int = dispatcher.call("ping", {"target": "host", "count": "3"})
    bool_as_int = dispatcher.call("ping", {"target": "host", "count": True})
    bad_enum = dispatcher.call("get_ip", {"family": "5"})

    assert wrong_int.is_error and "count must be an integer" in wrong_int.text
    assert bool_as_int.is_error
    assert bad_enum.is_error and "family must be one of: 4, 6" in bad_enum.text
    assert sub.calls == []


def test_backend_failure_names_the_operation(failing_backend) -> None:
    dispatcher = _dispatcher(api_descriptors(Settings()), http=failing_backend)
    envelope = dispatcher.call("get_acl", {})
    assert envelope.is_error is True
    assert envelope.text == "Error executing get_acl: API call failed: 500 Internal Server Error"


def test_backend_exception_is_contained(caplog) -> None:
    dispatcher = _dispatcher(cli_descriptors(Settings()), sub=ExplodingBackend(RuntimeError("kaboom")))
    with caplog.at_level(logging.ERROR):
        envelope = dispatcher.call("netcheck", {})
    assert envelope.is_error is True
    assert "netcheck" in envelope.text and "kaboom" in envelope.text


def test_routes_by_strategy_variant() -> None:
    http, sub = SpyBackend(), SpyBackend()
    dispatcher = _dispatcher(
        [
            ToolDescriptor(name="remote_op", description="x", strategy=HttpStrategy(path_template="/acl")),
            ToolDescriptor(
                name="local_op",
                description="x",
                strategy=SubprocessStrategy(command="true", args_builder=lambda a: []),
            ),
        ],
        http=http,
        sub=sub,
    )
    dispatcher.call("remote_op")
    dispatcher.call("local_op")
    assert isinstance(http.calls[0][0], HttpStrategy)
    assert isinstance(sub.calls[0][0], SubprocessStrategy)


def test_missing_backend_is_a_failure_not_a_crash() -> None:
    descriptor = ToolDescriptor(name="remote_op", description="x", strategy=HttpStrategy(path_template="/acl"))
    dispatcher = ToolDispatcher(registry=ToolRegistry([descriptor]))
    envelope = dispatcher.call("remote_op")
    assert envelope.is_error is True
    assert "HTTP backend is not configured" in envelope.text


def test_malformed_invocation_is_a_failure() -> None:
    envelope = _dispatcher(api_descriptors(Settings())).call("get_acl", ["not", "a", "mapping"])  # type: ignore[arg-type]
    assert envelope.is_error is True
    assert envelope.text.startswith("Error: Malformed invocation")


def test_repeated_read_only_invocation_is_stable() -> None:
    dispatcher = _dispatcher(cli_descriptors(Settings()), sub=SpyBackend(Success(text="100.64.0.1 host linux -")))
    first = dispatcher.call("get_status", {})
    second = dispatcher.call("get_status", {})
    assert first.to_dict() == second.to_dict()


def test_async_dispatch_matches_sync() -> None:
    dispatcher = _dispatcher(cli_descriptors(Settings()))
    sync_env = dispatcher.call("whois", {"ip": "100.64.0.2"})
    async_env = asyncio.run(dispatcher.adispatch(Invocation(tool_name="whois", arguments={"ip": "100.64.0.2"})))
    async_call_env = asyncio.run(dispatcher.acall("whois", {"ip": "100.64.0.2"}))
    assert sync_env == async_env == async_call_env


def test_execution_log_is_redacted(caplog) -> None:
    descriptor = ToolDescriptor(
        name="remote_op",
        description="x",
        params=[ParamSpec(name="note")],
        strategy=HttpStrategy(path_template="/acl"),
    )
    dispatcher = ToolDispatcher(
        registry=ToolRegistry([descriptor]),
        http_backend=SpyBackend(),
        redactor=SecurityRedactor(secrets=[TEST_TOKEN]),
    )
    with caplog.at_level(logging.INFO, logger="tsbridge.dispatch"):
        dispatcher.call("remote_op", {"note": f"leaked {TEST_TOKEN}"})

    records = [r for r in caplog.records if r.getMessage() == "tool.executed"]
    assert records
    assert TEST_TOKEN not in str(records[0].__dict__)
    assert records[0].outcome == "success"
