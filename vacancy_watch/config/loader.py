"""Configuration loading helpers for vacancy-watch."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from ..errors import ConfigError
from .models import WatchConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
CONFIG_FILENAME = "watch_config.yaml"
DATABASE_FILENAME = "watch.db"

# env var -> dotted path inside the config mapping
ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    "VACANCY_WATCH_FEEDS": ("feeds",),
    "VACANCY_WATCH_CHECKPOINT_MODE": ("checkpoint_mode",),
    "VACANCY_WATCH_LOOKBACK": ("lookback",),
    "VACANCY_WATCH_CHECKPOINT_SKEW": ("checkpoint_skew",),
    "VACANCY_WATCH_KAFKA_BROKERS": ("sinks", "kafka", "brokers"),
    "SMTP_HOST": ("sinks", "email", "host"),
    "SMTP_PORT": ("sinks", "email", "port"),
    "SMTP_USER": ("sinks", "email", "username"),
    "SMTP_PASS": ("sinks", "email", "password"),
    "ALERT_EMAIL": ("sinks", "email", "recipients"),
}


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Cannot decode configuration file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


def apply_env_overrides(payload: dict, environ: Mapping[str, str] | None = None) -> dict:
    """Overlay recognised environment variables onto a raw config mapping."""

    env = os.environ if environ is None else environ
    merged: dict[str, Any] = json.loads(json.dumps(payload, default=str))
    for variable, path in ENV_OVERRIDES.items():
        raw = env.get(variable)
        if raw is None or raw == "":
            continue
        value: Any = raw
        if path[-1] == "brokers":
            value = [item.strip() for item in raw.split(",") if item.strip()]
        cursor = merged
        for key in path[:-1]:
            node = cursor.get(key)
            if not isinstance(node, dict):
                node = {}
                cursor[key] = node
            cursor = node
        cursor[path[-1]] = value
    return merged


def validate_config(payload: dict) -> WatchConfig:
    try:
        return WatchConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration:\n{exc}") from exc


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    outputs_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get("VACANCY_WATCH_HOME")
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.outputs_dir = (self.data_dir / "outputs").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.outputs_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def config_path(self) -> Path:
        return self.data_dir / CONFIG_FILENAME

    def database_path(self) -> Path:
        return self.data_dir / DATABASE_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO, env overrides and schema validation."""

    def __init__(
        self,
        locator: ConfigLocator | None = None,
        config_path: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.locator = locator or ConfigLocator()
        self._explicit_path = config_path
        self._environ = environ
        self._cache: WatchConfig | None = None

    def config_path(self) -> Path:
        return self._explicit_path or self.locator.config_path()

    def load(self) -> WatchConfig:
        """Load, overlay environment and validate; raises ``ConfigError``."""

        if self._cache is not None:
            return self._cache
        path = self.config_path()
        if path.exists():
            if path.suffix not in CONFIG_EXTENSIONS:
                raise ConfigError(f"Unsupported configuration format: {path}")
            payload = _read_file(path)
        elif self._explicit_path is not None:
            raise ConfigError(f"Configuration file not found: {path}")
        else:
            payload = WatchConfig().model_dump(mode="json")
            _write_file(path, payload)
        config = validate_config(apply_env_overrides(payload, self._environ))
        self._cache = config
        return config

    def outputs_dir(self, config: WatchConfig) -> Path:
        return config.resolved_outputs_dir(self.locator.project_root)


__all__ = [
    "CONFIG_EXTENSIONS",
    "ConfigLocator",
    "ConfigRepository",
    "apply_env_overrides",
    "validate_config",
]
