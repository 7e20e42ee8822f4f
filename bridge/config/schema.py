# ==============================
# Config Schemas (Pydantic)
# ==============================
"""
Pydantic settings models for the bridge.

Notes:
- Keep these schemas stable: every component receives a Settings object.
- No env reads here. No file IO here. Pure types + defaults.
- loader.py builds a single Settings object with precedence merging.

Precedence (implemented in loader.py):
env > .env > configs/*.yaml > defaults
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# ==============================
# App Settings
# ==============================


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(default="tailscale-mcp", description="Server name advertised at handshake")
    version: str = Field(default="1.0.0")
    toolset: Literal["api", "cli"] = Field(
        default="api",
        description="Which registry configuration to serve: remote API (api) or local CLI (cli).",
    )


# ==============================
# Tailscale Settings
# ==============================


class TailscaleConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    api_host: str = Field(default="api.tailscale.com")
    tailnet: Optional[str] = Field(default=None, description="Resolved via loader from TAILNET")
    api_token: Optional[str] = Field(default=None, description="Resolved via loader from TAILSCALE_TOKEN only")
    cli_binary: str = Field(default="tailscale", description="Executable used by the cli toolset")


# ==============================
# Limits
# ==============================


class LimitsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    http_timeout_seconds: Optional[float] = Field(default=30.0, gt=0, description="null disables the bound")
    subprocess_timeout_seconds: Optional[float] = Field(default=60.0, gt=0, description="null disables the bound")


# ==============================
# Logging Settings
# ==============================


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: str = Field(default="INFO")
    redact: bool = Field(default=True)
    redact_patterns: List[str] = Field(default_factory=list)


# ==============================
# Top-Level Settings
# ==============================


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    app: AppConfig = Field(default_factory=AppConfig)
    tailscale: TailscaleConfig = Field(default_factory=TailscaleConfig)
    limits: LimitsConfig = Field(default_factory=LimitsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
