"""Shared configuration loader for dex2-parsetx."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

import yaml


class ConfigurationError(RuntimeError):
    """Raised when configuration is invalid."""


DEFAULT_CONFIG_PATH = Path.home() / ".dex2-parsetx.yaml"
DEFAULT_NODE_URL = "http://127.0.0.1:8545"
DEFAULT_TIMEOUT_SECONDS = 8.0


@dataclass
class NodeConfig:
    """Connection details for an Ethereum JSON-RPC node."""

    url: str = DEFAULT_NODE_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


def _load_config_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigurationError(f"Config file not found: {path}")
        return {}

    try:
        loaded = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - delegated to PyYAML
        raise ConfigurationError(f"Invalid YAML in config file {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Expected {path} to contain a YAML object with a 'node' section")
    return loaded


def _coerce_timeout(raw: Any, *, source: str) -> float | None:
    if raw is None:
        return None
    try:
        timeout = float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid timeout in {source}: {raw}") from exc
    if timeout <= 0:
        raise ConfigurationError(f"Timeout in {source} must be positive: {raw}")
    return timeout


def _validate_url(raw: str, *, source: str) -> str:
    parsed = urlparse(raw)
    if not parsed.scheme or not parsed.hostname:
        raise ConfigurationError(f"Invalid node URL in {source}: {raw}")
    return raw


def _first_value(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value is not None:
            return value
    return default


def load_node_config(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> NodeConfig:
    """Load node configuration from overrides, environment and optional YAML."""

    env_map = os.environ if env is None else env
    path = Path(config_path).expanduser() if config_path is not None else DEFAULT_CONFIG_PATH

    file_config = _load_config_file(path, required=config_path is not None)
    node_section = file_config.get("node", {})
    if node_section is None:
        node_section = {}
    if not isinstance(node_section, dict):
        raise ConfigurationError(f"Expected 'node' to be a mapping in {path}")

    override_map = dict(overrides or {})

    url_candidates = (
        (override_map.get("url"), "overrides"),
        (env_map.get("DEX2_NODE_URL") or None, "environment"),
        (node_section.get("url"), f"{path} node.url"),
    )
    resolved_url = DEFAULT_NODE_URL
    for candidate, source in url_candidates:
        if candidate is not None:
            resolved_url = _validate_url(str(candidate), source=source)
            break

    resolved_timeout = _first_value(
        _coerce_timeout(override_map.get("timeout_seconds"), source="overrides"),
        _coerce_timeout(env_map.get("DEX2_NODE_TIMEOUT") or None, source="environment"),
        _coerce_timeout(node_section.get("timeout_seconds"), source=f"{path} node.timeout_seconds"),
        default=DEFAULT_TIMEOUT_SECONDS,
    )

    return NodeConfig(url=resolved_url, timeout_seconds=resolved_timeout)
