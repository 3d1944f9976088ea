"""Configuration loading for krueger."""

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from krueger.errors import ConfigError
from krueger.network import DEFAULT_PROBE_HOST, DEFAULT_PROBE_PORT
from krueger.paths import config_search_paths
from krueger.sweep import DEFAULT_MAX_KILLS_PER_NAME
from krueger.watchlist import WatchList, parse_terms

logger = logging.getLogger(__name__)

ENV_PREFIX = "KRUEGER_"
ENV_FIELDS = ("processes", "debug", "poll_interval_ms", "probe_host", "probe_port")
YAML_SUFFIXES = (".yaml", ".yml")


class KruegerConfig(BaseModel):
    processes: list[str] = Field(default_factory=list)
    debug: bool = False
    poll_interval_ms: int = Field(default=100, ge=10, le=1000)
    probe_host: str = DEFAULT_PROBE_HOST
    probe_port: int = Field(default=DEFAULT_PROBE_PORT, ge=1, le=65535)
    max_kills_per_name: int = Field(default=DEFAULT_MAX_KILLS_PER_NAME, ge=1)

    @field_validator("processes", mode="before")
    @classmethod
    def _split_processes(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if not isinstance(value, (str, list, tuple)):
            raise ValueError("processes must be a string or a list of strings")
        return parse_terms(value)

    @property
    def poll_rate(self) -> float:
        return self.poll_interval_ms / 1000

    def watch_list(self) -> WatchList:
        return WatchList(tuple(self.processes))


def find_config_file() -> Path | None:
    for path in config_search_paths():
        if path.is_file():
            return path
    return None


def _read_file(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() in YAML_SUFFIXES:
            data: Any = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot read config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping of settings")
    return data


def _read_env(environ: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for key in ENV_FIELDS:
        raw = environ.get(ENV_PREFIX + key.upper())
        if raw is not None and raw.strip():
            values[key] = raw
    return values


def load_config(
    explicit_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> tuple[KruegerConfig, Path | None]:
    """
    Load configuration from a YAML or JSON file and the environment.

    An explicit path must exist. Otherwise ``.krueger.yaml``, ``.krueger.yml``
    and ``.krueger.json`` are searched in ``~`` and then ``~/.config``. ``KRUEGER_*``
    environment variables override values from the file.

    Returns:
        The configuration and the file it was read from, if any.

    Raises:
        ConfigError: The file is missing, unreadable or has invalid values.
    """
    environ = os.environ if environ is None else environ

    if explicit_path is not None:
        path: Path | None = Path(explicit_path).expanduser()
        if not path.is_file():
            raise ConfigError(f"config file not found: {path}")
    else:
        path = find_config_file()

    data = _read_file(path) if path is not None else {}
    data.update(_read_env(environ))

    try:
        config = KruegerConfig.model_validate(data)
    except ValidationError as exc:
        source = path if path is not None else "environment"
        raise ConfigError(f"invalid configuration in {source}: {exc}") from exc

    if path is not None:
        logger.info("Using config file %s", path)
    return config, path


def save_config(config: KruegerConfig, path: Path) -> None:
    """Write the configuration as YAML or JSON, chosen by the file suffix."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() in YAML_SUFFIXES:
        path.write_text(yaml.safe_dump(config.model_dump(), sort_keys=False), encoding="utf-8")
    else:
        path.write_text(config.model_dump_json(indent=2), encoding="utf-8")
