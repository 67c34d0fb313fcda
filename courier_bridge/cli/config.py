"""YAML configuration loader with env var resolution and Pydantic validation.

Loads config from (priority order):
1. --config <path> CLI flag
2. ./courier-bridge.yaml (working directory)
3. ~/.courier-bridge/config.yaml (user home)

Environment variables override YAML: COURIER_BRIDGE_<SECTION>_<KEY>.
${VAR} references in YAML values resolve from environment at load time.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

ENV_PREFIX = "COURIER_BRIDGE_"

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def resolve_env_vars(value: str) -> str:
    """Resolve ${VAR} references in a string from environment variables.

    Missing env vars resolve to empty string.
    """
    def _replace(match: re.Match) -> str:
        return os.environ.get(match.group(1), "")

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _resolve_env_vars_recursive(data: Any) -> Any:
    if isinstance(data, str):
        return resolve_env_vars(data)
    elif isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    return data


class ServerConfig(BaseModel):
    """Settings for ``courier-bridge serve``."""

    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "info"


class ProxyConfig(BaseModel):
    """Settings for courier calls made from the CLI."""

    timeout_seconds: float = Field(30.0, gt=0)
    allow_private_hosts: bool = False


class CourierBridgeConfig(BaseModel):
    """Top-level CLI configuration."""

    server: ServerConfig = ServerConfig()
    proxy: ProxyConfig = ProxyConfig()


def _find_config_file() -> Path | None:
    """First existing config file in cwd, then the user's home."""
    candidates = [
        Path.cwd() / "courier-bridge.yaml",
        Path.cwd() / "courier-bridge.yml",
        Path.home() / ".courier-bridge" / "config.yaml",
        Path.home() / ".courier-bridge" / "config.yml",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply COURIER_BRIDGE_<SECTION>_<KEY> env var overrides.

    Only keys that name a known section and one of its fields are
    applied, so unrelated variables sharing the prefix (the API key,
    the credential key) are left alone.
    """
    sections = {
        name: info.annotation.model_fields
        for name, info in CourierBridgeConfig.model_fields.items()
    }
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        suffix = key[len(ENV_PREFIX):].lower()
        for section, fields in sections.items():
            field_name = suffix[len(section) + 1:]
            if suffix.startswith(section + "_") and field_name in fields:
                section_data = data.setdefault(section, {})
                if isinstance(section_data, dict):
                    section_data[field_name] = value
                break
    return data


def load_config(config_path: str | None = None) -> CourierBridgeConfig | None:
    """Load configuration from YAML with env var resolution.

    Args:
        config_path: Explicit path to config file. If None, searches
            standard locations (cwd, then ~/.courier-bridge/).

    Returns:
        Parsed and validated config, or None if no config file was found
        and no override variables are set.

    Raises:
        FileNotFoundError: An explicit ``config_path`` does not exist.
    """
    if config_path:
        path: Path | None = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        path = _find_config_file()

    raw_data: dict[str, Any] = {}
    if path is not None:
        logger.info("Loading config from %s", path)
        with open(path) as f:
            raw_data = yaml.safe_load(f) or {}

    data = _apply_env_overrides(_resolve_env_vars_recursive(raw_data))
    if path is None and not data:
        return None

    # Pydantic coerces the string overrides ("9000", "true") to field types
    return CourierBridgeConfig(**data)
