# ==============================
# Gateway Dependencies
# ==============================
"""
Composition root shared by the MCP server and the CLI.

Settings are loaded once at process entry and passed down explicitly;
nothing here is a module-level singleton.
"""
from __future__ import annotations

import logging
from typing import Optional, Tuple

import requests

from bridge.config.loader import require_toolset_settings
from bridge.config.schema import Settings
from bridge.logging.logger import LOGGER_NAME, build_redactor
from bridge.tools.backends.http_backend import HttpToolBackend
from bridge.tools.backends.subprocess_backend import SubprocessToolBackend
from bridge.tools.dispatcher import ToolDispatcher
from bridge.tools.registry import ToolRegistry
from bridge.utils.toolset_loader import load_toolset


def with_toolset(settings: Settings, toolset: Optional[str]) -> Settings:
    if not toolset:
        return settings
    app = settings.app.model_copy(update={"toolset": toolset})
    return settings.model_copy(update={"app": app})


def build_dispatcher(
    settings: Settings,
    *,
    session: Optional[requests.Session] = None,
) -> Tuple[ToolDispatcher, ToolRegistry]:
    """
    Validate startup configuration, load the selected toolset and wire backends.

    Raises ConfigError for missing credentials or an unknown toolset.
    """
    require_toolset_settings(settings)
    registry = load_toolset(settings)

    http_backend = None
    if settings.app.toolset == "api":
        http_backend = HttpToolBackend.from_settings(settings, session=session)

    dispatcher = ToolDispatcher(
        registry=registry,
        http_backend=http_backend,
        subprocess_backend=SubprocessToolBackend.from_settings(settings),
        redactor=build_redactor(settings),
        logger=logging.getLogger(f"{LOGGER_NAME}.dispatch"),
    )
    return dispatcher, registry
