"""
Configuration helpers for the retarget tool.

The config loader prefers deterministic defaults, then merges user provided JSON
configuration files and environment overrides prefixed with ``RETARGET_``.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from .core.params import NetworkParams, ParamsError, get_params


class ConfigError(Exception):
    """Raised when configuration validation fails."""


log = logging.getLogger("retarget.config")


LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


def _expand_path(value: str) -> Path:
    return Path(os.path.expandvars(os.path.expanduser(value))).resolve()


def default_data_dir() -> Path:
    base = Path(os.getenv("RETARGET_DATA", Path.home() / ".retarget"))
    return _expand_path(str(base))


@dataclass(slots=True)
class ConsensusOverrides:
    """Optional tweaks to the selected network preset (0 keeps the preset value)."""

    allow_overrides: bool = False
    averaging_window: int = 0
    adjust_weight: int = 0
    min_denominator: int = 0
    pow_target_spacing: int = 0
    solve_time_limitation: bool = True

    def validate(self) -> None:
        for name in ("averaging_window", "adjust_weight", "min_denominator", "pow_target_spacing"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0")

    def changes(self) -> dict[str, Any]:
        changes: dict[str, Any] = {
            name: getattr(self, name)
            for name in ("averaging_window", "adjust_weight", "min_denominator", "pow_target_spacing")
            if getattr(self, name)
        }
        changes["solve_time_limitation"] = self.solve_time_limitation
        return changes


@dataclass(slots=True)
class RetargetConfig:
    network: str = "mainnet"
    log_level: str = "info"
    consensus: ConsensusOverrides = field(default_factory=ConsensusOverrides)
    data_dir: Path = field(default_factory=default_data_dir)
    log_file: Path | None = None

    def validate(self) -> None:
        self.consensus.validate()
        if self.log_level.lower() not in LOG_LEVELS:
            raise ConfigError(f"Invalid log level {self.log_level!r}")
        if not isinstance(self.data_dir, Path):
            raise ConfigError("data_dir must be a Path")
        # Resolving the parameters surfaces unknown networks and bad overrides.
        self.network_params()

    def network_params(self) -> NetworkParams:
        try:
            params = get_params(self.network)
            if self.consensus.allow_overrides:
                log.warning("Consensus overrides enabled; retargets may diverge from %s parameters", params.name)
                params = params.replace(**self.consensus.changes())
        except ParamsError as exc:
            raise ConfigError(str(exc)) from exc
        return params

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["data_dir"] = str(self.data_dir)
        if self.log_file is not None:
            data["log_file"] = str(self.log_file)
        return data


def load_config(path: Path | None = None, *, overrides: dict[str, Any] | None = None) -> RetargetConfig:
    """Load configuration from disk and environment overrides."""

    def _merge(base: dict[str, Any], extra: dict[str, Any]) -> dict[str, Any]:
        for key, value in extra.items():
            if isinstance(value, dict) and isinstance(base.get(key), dict):
                base[key] = _merge(dict(base[key]), value)
            else:
                base[key] = value
        return base

    cfg_path = path or (_expand_path(os.getenv("RETARGET_CONFIG", str(default_data_dir() / "config.json"))))
    base: dict[str, Any] = {}
    if Path(cfg_path).exists():
        try:
            with open(cfg_path, "rb") as fh:
                base = json.load(fh)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"{cfg_path}: invalid JSON ({exc})") from exc
        if not isinstance(base, dict):
            raise ConfigError(f"{cfg_path}: top level must be an object")

    env_overrides: dict[str, Any] = {}
    prefix = "RETARGET_"
    for key, value in os.environ.items():
        if not key.startswith(prefix) or key in ("RETARGET_CONFIG", "RETARGET_DATA"):
            continue
        trimmed = key[len(prefix) :]
        parts = trimmed.lower().split("__")
        target = env_overrides
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        target[parts[-1]] = value

    if overrides:
        env_overrides = _merge(env_overrides, overrides)

    merged = _merge(base, env_overrides)
    config = RetargetConfig()
    _apply_dict(config, merged)
    config.validate()
    return config


def _apply_dict(obj: Any, data: dict[str, Any]) -> None:
    for key, value in data.items():
        if key not in obj.__slots__:
            raise ConfigError(f"Unknown config field {key}")
        current = getattr(obj, key)
        if isinstance(current, Path):
            setattr(obj, key, _expand_path(str(value)))
        elif isinstance(current, ConsensusOverrides):
            if not isinstance(value, dict):
                raise ConfigError(f"{key} must be a mapping")
            _apply_dict(current, value)
        elif isinstance(value, (str, os.PathLike)) and key.endswith(("dir", "file")):
            setattr(obj, key, _expand_path(str(value)))
        else:
            setattr(obj, key, _coerce_value(current, value))


def _coerce_value(current: Any, value: Any) -> Any:
    target_type = type(current)
    if target_type is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized in {"1", "true", "yes"}:
                return True
            if normalized in {"0", "false", "no"}:
                return False
            raise ConfigError(f"Invalid boolean value {value}")
        raise ConfigError(f"Cannot coerce {value!r} to bool")
    if target_type in {int, float}:
        try:
            return target_type(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid numeric value {value!r}") from exc
    if target_type is str:
        return str(value)
    return value
