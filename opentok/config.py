"""Shared configuration loader for OpenTok clients."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

import yaml

from .constants import (
    API_URL,
    DEFAULT_TIMEOUT,
    DEFAULT_TOKEN_LIFETIME,
    MAX_CONNECTION_DATA_BYTES,
    MAX_TOKEN_LIFETIME,
)


class ConfigurationError(RuntimeError):
    """Raised when configuration is invalid."""


DEFAULT_CONFIG_PATH = Path.home() / ".opentok.yaml"
_CONFIG_PATH_OVERRIDE: Path | None = None


@dataclass(frozen=True)
class TokenPolicy:
    """Limits applied to every minted token.

    Passed explicitly into :func:`opentok.token_generator.generate_token` so
    tests and deployments can tighten the platform defaults.
    """

    default_lifetime: int = DEFAULT_TOKEN_LIFETIME
    max_lifetime: int = MAX_TOKEN_LIFETIME
    max_connection_data_bytes: int = MAX_CONNECTION_DATA_BYTES

    def __post_init__(self) -> None:
        if self.max_lifetime <= 0:
            raise ConfigurationError("max_lifetime must be positive")
        if not 0 < self.default_lifetime <= self.max_lifetime:
            raise ConfigurationError(
                "default_lifetime must be positive and not exceed max_lifetime"
            )
        if self.max_connection_data_bytes < 0:
            raise ConfigurationError("max_connection_data_bytes must not be negative")


@dataclass(frozen=True)
class OpenTokConfig:
    """Configuration container for OpenTok credentials and endpoint."""

    api_key: str
    api_secret: str
    api_url: str = API_URL
    timeout: float = DEFAULT_TIMEOUT

    def __repr__(self) -> str:
        return (
            f"OpenTokConfig(api_key={self.api_key!r}, api_url={self.api_url!r}, "
            f"timeout={self.timeout!r})"
        )


def set_default_config_path(path: str | Path | None) -> None:
    """Remember a user-supplied config path for future loads."""

    global _CONFIG_PATH_OVERRIDE
    _CONFIG_PATH_OVERRIDE = Path(path).expanduser() if path else None


def _resolve_path(config_path: str | Path | None) -> tuple[Path, bool]:
    explicit_path = config_path is not None or _CONFIG_PATH_OVERRIDE is not None
    path = (
        Path(config_path).expanduser()
        if config_path is not None
        else _CONFIG_PATH_OVERRIDE or DEFAULT_CONFIG_PATH
    )
    return path, explicit_path


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
        raise ConfigurationError(f"Expected {path} to contain a YAML object")
    return loaded


def _section(file_config: Mapping[str, Any], name: str, path: Path) -> Mapping[str, Any]:
    section = file_config.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Expected '{name}' to be a mapping in {path}")
    return section


def _coerce_number(raw: Any, *, source: str, kind: type = int) -> Any:
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise ConfigurationError(f"Invalid number in {source}: {raw}")
    try:
        return kind(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid number in {source}: {raw}") from exc


def _first_value(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value is not None:
            return value
    return default


def _validate_api_url(raw: str) -> str:
    parsed = urlparse(raw)
    if parsed.scheme.lower() not in {"http", "https"} or not parsed.hostname:
        raise ConfigurationError(f"Invalid API URL: {raw}")
    return raw.rstrip("/")


def load_opentok_config(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> OpenTokConfig:
    """Load credentials from overrides, environment variables and optional YAML."""

    env_map = os.environ if env is None else env
    path, explicit_path = _resolve_path(config_path)
    file_config = _load_config_file(path, required=explicit_path)
    section = _section(file_config, "opentok", path)
    override_map = dict(overrides or {})

    resolved_key = _first_value(
        override_map.get("api_key"), env_map.get("OPENTOK_API_KEY"), section.get("api_key")
    )
    resolved_secret = _first_value(
        override_map.get("api_secret"),
        env_map.get("OPENTOK_API_SECRET"),
        section.get("api_secret"),
    )
    if not resolved_key or not resolved_secret:
        raise ConfigurationError(
            "OpenTok credentials must be provided via OPENTOK_API_KEY/OPENTOK_API_SECRET "
            "or the 'opentok' section of a config file"
        )

    resolved_url = _first_value(
        override_map.get("api_url"),
        env_map.get("OPENTOK_API_URL"),
        section.get("api_url"),
        API_URL,
    )
    resolved_timeout = _first_value(
        _coerce_number(override_map.get("timeout"), source="overrides", kind=float),
        _coerce_number(env_map.get("OPENTOK_TIMEOUT"), source="environment", kind=float),
        _coerce_number(section.get("timeout"), source=f"{path} opentok.timeout", kind=float),
        float(DEFAULT_TIMEOUT),
    )
    if resolved_timeout <= 0:
        raise ConfigurationError(f"Timeout must be positive: {resolved_timeout}")

    return OpenTokConfig(
        api_key=str(resolved_key),
        api_secret=str(resolved_secret),
        api_url=_validate_api_url(str(resolved_url)),
        timeout=resolved_timeout,
    )


def load_token_policy(
    *,
    config_path: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> TokenPolicy:
    """Load token limits from the ``token`` section of the config file."""

    path, explicit_path = _resolve_path(config_path)
    file_config = _load_config_file(path, required=explicit_path)
    section = _section(file_config, "token", path)
    override_map = dict(overrides or {})

    values: dict[str, int] = {}
    for name in ("default_lifetime", "max_lifetime", "max_connection_data_bytes"):
        value = _first_value(
            _coerce_number(override_map.get(name), source="overrides"),
            _coerce_number(section.get(name), source=f"{path} token.{name}"),
        )
        if value is not None:
            values[name] = value
    return TokenPolicy(**values)
