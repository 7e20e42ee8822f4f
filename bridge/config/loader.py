# ==============================
# Config Loader (only env reader)
# ==============================
"""
Config loader for the bridge.

Rules:
- This is the ONLY place allowed to read os.environ and .env.
- Everything else receives a validated Settings object.

Precedence:
env > .env > configs/*.yaml > defaults

Named variables:
- TAILNET          -> tailscale.tailnet
- TAILSCALE_TOKEN  -> tailscale.api_token
- TSBRIDGE__SECTION__KEY=value for any other nested override

Testability:
- All functions accept injected paths and env dict.
- No hardcoded absolute paths.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from bridge.config.schema import Settings


ENV_PREFIX = "TSBRIDGE__"
NAMED_ENV = {
    "TAILNET": ("tailscale", "tailnet"),
    "TAILSCALE_TOKEN": ("tailscale", "api_token"),
}
SECTIONS = ("app", "tailscale", "limits", "logging")


class ConfigError(ValueError):
    """Fatal startup configuration fault."""


# ==============================
# YAML Helpers
# ==============================


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    raw = path.read_text(encoding="utf-8").strip()
    if not raw:
        return {}
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    return data if isinstance(data, dict) else {}


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Accept both `key: value` files and files wrapped in a top-level `<name>:` key."""
    if set(data.keys()) == {name} and isinstance(data[name], dict):
        return data[name]
    return data


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep-merge dictionaries: override wins.
    """
    out: Dict[str, Any] = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


# ==============================
# .env Loader
# ==============================


def _read_dotenv(dotenv_path: Path) -> Dict[str, str]:
    """
    Minimal .env parser (KEY=VALUE).
    - Ignores comments and blank lines.
    - Accepts an optional leading `export `.
    - Strips surrounding quotes.
    """
    if not dotenv_path.exists():
        return {}
    envs: Dict[str, str] = {}
    for line in dotenv_path.read_text(encoding="utf-8").splitlines():
        s = line.strip()
        if not s or s.startswith("#") or "=" not in s:
            continue
        if s.startswith("export "):
            s = s[len("export ") :].lstrip()
        key, val = s.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")
        if key:
            envs[key] = val
    return envs


def _coerce(v: str) -> Any:
    vs = v.strip()
    if vs.lower() in {"true", "false"}:
        return vs.lower() == "true"
    if vs.lower() in {"null", "none"}:
        return None
    if vs.isdigit() or (vs.startswith("-") and vs[1:].isdigit()):
        return int(vs)
    if "." in vs:
        try:
            return float(vs)
        except ValueError:
            pass
    return vs


def _apply_env_overrides(cfg: Dict[str, Any], env: Dict[str, str]) -> Dict[str, Any]:
    """
    Apply environment overrides.

Example:
  TAILNET=example.com
  TAILSCALE_TOKEN=tskey-api-...
  TSBRIDGE__APP__TOOLSET=cli
  TSBRIDGE__LIMITS__HTTP_TIMEOUT_SECONDS=10

Rules:
- Named variables map to fixed paths and are taken verbatim (no coercion)
- Split by '__' after prefix TSBRIDGE__
- Lowercase keys for dict insertion
- Coerce booleans/ints/floats/null when obvious
    """
    out = dict(cfg)

    def put(path: List[str], value: Any) -> None:
        cur: Dict[str, Any] = out
        for i, seg in enumerate(path):
            key = seg.lower()
            if i == len(path) - 1:
                cur[key] = value
            else:
                nxt = cur.get(key)
                if not isinstance(nxt, dict):
                    nxt = {}
                else:
                    nxt = dict(nxt)
                cur[key] = nxt
                cur = nxt

    for k, v in env.items():
        if not k.startswith(ENV_PREFIX):
            continue
        path = k[len(ENV_PREFIX) :].split("__")
        if not path or any(not p for p in path):
            continue
        put(path, _coerce(v))

    for name, path in NAMED_ENV.items():
        value = env.get(name)
        if value is not None and value.strip():
            put(list(path), value.strip())
    return out


# ==============================
# Public Loader API
# ==============================


def load_settings(
    *,
    repo_root: Optional[str] = None,
    configs_dir: Optional[str] = None,
    dotenv_file: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
) -> Settings:
    """
    Load and validate Settings.

Inputs:
- repo_root: defaults to current working directory
- configs_dir: defaults to <repo_root>/configs
- dotenv_file: defaults to <repo_root>/.env
- env: injected env vars (defaults to os.environ)

Raises:
- ConfigError on unreadable YAML or values that fail validation
    """
    env_vars = dict(env) if env is not None else dict(os.environ)

    root = Path(repo_root or os.getcwd()).expanduser().resolve()
    cfg_dir = root / (configs_dir or "configs")

    merged: Dict[str, Any] = {}
    for name in SECTIONS:
        merged = _deep_merge(merged, {name: _section(_read_yaml(cfg_dir / f"{name}.yaml"), name)})

    dotenv_path = Path(dotenv_file) if dotenv_file else (root / ".env")
    dotenv_vars = _read_dotenv(dotenv_path)
    effective_env = dict(env_vars)
    # .env should not override real env; real env wins
    for k, v in dotenv_vars.items():
        effective_env.setdefault(k, v)

    merged = _apply_env_overrides(merged, effective_env)

    try:
        return Settings.model_validate(merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def require_toolset_settings(settings: Settings) -> Settings:
    """
    Fail fast on configuration the selected toolset cannot run without.

    The cli toolset defers to the local daemon's own authentication and needs nothing.
    """
    if settings.app.toolset != "api":
        return settings
    missing: List[str] = []
    if not (settings.tailscale.tailnet or "").strip():
        missing.append("TAILNET")
    if not (settings.tailscale.api_token or "").strip():
        missing.append("TAILSCALE_TOKEN")
    if missing:
        noun = "variable is" if len(missing) == 1 else "variables are"
        raise ConfigError(f"{' and '.join(missing)} environment {noun} required")
    return settings
