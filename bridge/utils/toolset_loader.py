# ==============================
# Toolset Loader & Registration
# ==============================
"""
Deterministic toolset selection + registration.

Responsibilities:
- Map the configured toolset name to its registry module (toolsets.<pkg>.registry)
- Import it and call register(registry, settings)
- Return a frozen registry shared by every invocation

The core never imports toolsets statically; modules are resolved by name here.
"""

from __future__ import annotations

import importlib
import logging
from typing import Dict, Optional

from bridge.config.loader import ConfigError
from bridge.config.schema import Settings
from bridge.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


TOOLSET_MODULES: Dict[str, str] = {
    "api": "toolsets.tailscale_api.registry",
    "cli": "toolsets.tailscale_cli.registry",
}


def load_toolset(settings: Settings, *, toolset: Optional[str] = None) -> ToolRegistry:
    name = toolset or settings.app.toolset
    module_name = TOOLSET_MODULES.get(name)
    if module_name is None:
        known = ", ".join(sorted(TOOLSET_MODULES))
        raise ConfigError(f"Unknown toolset '{name}'. Available: {known}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Toolset '{name}' could not be imported: {e}") from e

    register = getattr(module, "register", None)
    if register is None:
        raise ConfigError(f"Toolset module {module_name} has no register(registry, settings)")

    registry = ToolRegistry()
    register(registry, settings)
    logger.info("toolset.loaded", extra={"toolset": name, "tool": [d.name for d in registry.list_all()]})
    return registry.freeze()
