"""
config.py

Responsibility: Client configuration and where it comes from.

Configuration can be built directly, loaded from a YAML file, or read from
`STEREOTYPE_*` environment variables. Every path ends in a validated, frozen
`ClientConfig`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from stereotype import conf
from stereotype.errors import ConfigError
from stereotype.options import RequestOptions, options_from_mapping

ENV_TOKEN = "STEREOTYPE_TOKEN"
ENV_BASE_URL = "STEREOTYPE_BASE_URL"
ENV_TIMEOUT_MS = "STEREOTYPE_TIMEOUT_MS"
ENV_DEADLINE_MS = "STEREOTYPE_DEADLINE_MS"
ENV_NUM_RETRIES = "STEREOTYPE_NUM_RETRIES"
ENV_BINARY_RESPONSE = "STEREOTYPE_BINARY_RESPONSE"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ClientConfig:
    """
    Connection settings for `StereotypeClient`.

    - base_url: service root; a trailing slash is trimmed
    - timeout_ms: how long to wait for a single response
    - deadline_ms: budget for the whole call, retries included
    - num_retries: extra attempts for idempotent calls
    - is_binary_response: return materialization bodies as bytes instead of text
    """

    base_url: str = conf.BASE_URL
    timeout_ms: int = conf.DEFAULT_TIMEOUT_MS
    deadline_ms: int = conf.DEFAULT_DEADLINE_MS
    num_retries: int = conf.DEFAULT_NUM_RETRIES
    is_binary_response: bool = False

    def __post_init__(self) -> None:
        base_url = str(self.base_url or "").strip().rstrip("/")
        if not base_url:
            raise ConfigError("`base_url` must not be empty.")
        if self.timeout_ms <= 0:
            raise ConfigError(f"`timeout_ms` must be positive, got {self.timeout_ms}")
        if self.deadline_ms <= 0:
            raise ConfigError(f"`deadline_ms` must be positive, got {self.deadline_ms}")
        if self.num_retries < 0:
            raise ConfigError(f"`num_retries` must not be negative, got {self.num_retries}")
        object.__setattr__(self, "base_url", base_url)

    @property
    def timeout(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def deadline(self) -> float:
        return self.deadline_ms / 1000.0


@dataclass(frozen=True)
class LoadedConfig:
    """Everything a config file (or the environment) can provide."""

    client: ClientConfig = field(default_factory=ClientConfig)
    token: str | None = None
    options: RequestOptions = field(default_factory=RequestOptions)


def _as_int(data: Mapping[str, Any], key: str, default: int) -> int:
    raw = data.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"`{key}` must be an integer, got {raw!r}") from e


def _as_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in _TRUTHY


def config_from_mapping(data: Mapping[str, Any]) -> LoadedConfig:
    base_url = str(data.get("base_url") or conf.BASE_URL)
    client = ClientConfig(
        base_url=base_url,
        timeout_ms=_as_int(data, "timeout_ms", conf.DEFAULT_TIMEOUT_MS),
        deadline_ms=_as_int(data, "deadline_ms", conf.DEFAULT_DEADLINE_MS),
        num_retries=_as_int(data, "num_retries", conf.DEFAULT_NUM_RETRIES),
        is_binary_response=_as_bool(data.get("is_binary_response", False)),
    )

    token = data.get("token")
    if token is not None:
        token = str(token).strip() or None

    opts_raw = data.get("options")
    if opts_raw is not None and not isinstance(opts_raw, Mapping):
        raise ConfigError("`options` must be an object/mapping when provided.")

    return LoadedConfig(client=client, token=token, options=options_from_mapping(opts_raw))


def load_config(path: str | Path) -> LoadedConfig:
    """
    Load a YAML config file.

    Recognised keys: base_url, timeout_ms, deadline_ms, num_retries,
    is_binary_response, token, options (a mapping of `RequestOptions` fields).
    """
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Config file does not exist: {p}")
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Config file is not valid YAML: {p}") from e
    if not isinstance(data, dict):
        raise ConfigError("Config file must be a mapping/object at the top level.")
    return config_from_mapping(data)


def config_from_env(environ: Mapping[str, str] | None = None) -> LoadedConfig:
    env = os.environ if environ is None else environ
    data: dict[str, Any] = {
        "base_url": env.get(ENV_BASE_URL),
        "timeout_ms": env.get(ENV_TIMEOUT_MS),
        "deadline_ms": env.get(ENV_DEADLINE_MS),
        "num_retries": env.get(ENV_NUM_RETRIES),
        "is_binary_response": env.get(ENV_BINARY_RESPONSE, ""),
        "token": env.get(ENV_TOKEN),
    }
    return config_from_mapping(data)
