# rclink/app/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from rclink.core.errors import ConfigError
from rclink.runtime.state import HISTORY_LIMIT

DEFAULT_CONFIG_PATH = Path("~/.config/rclink/config.yml")
DEFAULT_PREFERENCES_PATH = "~/.config/rclink/preferences.yml"


@dataclass(frozen=True)
class AdapterConfig:
    driver: str = "serial"
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RcLinkConfig:
    target_name: str = "HC-05"
    max_attempts: int = 3
    backoff_s: float = 5.0
    history_limit: int = HISTORY_LIMIT
    disconnect_on_send_error: bool = False
    adapter: AdapterConfig = field(default_factory=AdapterConfig)
    preferences_path: str = DEFAULT_PREFERENCES_PATH

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RcLinkConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(k for k in data if k not in known)
        if unknown:
            raise ConfigError(
                f"Unknown config key(s): {', '.join(unknown)}.",
                hint=f"Valid keys: {sorted(known)}",
                details={"unknown": unknown},
            )

        kwargs: Dict[str, Any] = {}
        for name in ("target_name", "preferences_path"):
            if name in data:
                kwargs[name] = _cast(name, data[name], "str")
        for name in ("max_attempts", "history_limit"):
            if name in data:
                kwargs[name] = _cast(name, data[name], "int")
        if "backoff_s" in data:
            kwargs["backoff_s"] = _cast("backoff_s", data["backoff_s"], "float")
        if "disconnect_on_send_error" in data:
            kwargs["disconnect_on_send_error"] = _cast(
                "disconnect_on_send_error", data["disconnect_on_send_error"], "bool"
            )
        if "adapter" in data:
            kwargs["adapter"] = _adapter_from(data["adapter"])

        cfg = cls(**kwargs)
        cfg.validate()
        return cfg

    def validate(self) -> None:
        if not self.target_name.strip():
            raise ConfigError("target_name must not be empty.")
        if self.max_attempts < 1:
            raise ConfigError(
                f"max_attempts must be >= 1 (got {self.max_attempts}).",
                details={"max_attempts": self.max_attempts},
            )
        if self.backoff_s < 0:
            raise ConfigError(
                f"backoff_s must be >= 0 (got {self.backoff_s}).",
                details={"backoff_s": self.backoff_s},
            )
        if self.history_limit < 1:
            raise ConfigError(
                f"history_limit must be >= 1 (got {self.history_limit}).",
                details={"history_limit": self.history_limit},
            )

    def resolved_preferences_path(self) -> Path:
        return Path(os.path.expanduser(self.preferences_path))


def load_config(path: Optional[str | Path] = None) -> RcLinkConfig:
    """
    Load a YAML config file. An explicit path must exist; the default path
    falls back to built-in defaults when absent.
    """
    explicit = path is not None
    p = Path(os.path.expanduser(str(path if explicit else DEFAULT_CONFIG_PATH)))

    if not p.exists():
        if explicit:
            raise ConfigError(
                f"Config file not found: {p}",
                hint="Pass an existing file with --config or omit it to use defaults.",
                details={"path": str(p)},
            )
        return RcLinkConfig()

    try:
        with open(p, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(
            "Failed to read config file.",
            hint=str(e),
            details={"path": str(p)},
        ) from None

    if not isinstance(data, Mapping):
        raise ConfigError(
            "Config file must contain a mapping at top level.",
            details={"path": str(p)},
        )
    return RcLinkConfig.from_mapping(data)


def _adapter_from(value: Any) -> AdapterConfig:
    if not isinstance(value, Mapping):
        raise ConfigError("'adapter' must be a mapping with 'driver' and optional 'params'.")

    unknown = sorted(k for k in value if k not in ("driver", "params"))
    if unknown:
        raise ConfigError(
            f"Unknown adapter key(s): {', '.join(unknown)}.",
            hint="Valid keys: ['driver', 'params']",
        )

    driver = _cast("adapter.driver", value.get("driver", "serial"), "str")
    params = value.get("params") or {}
    if not isinstance(params, Mapping):
        raise ConfigError("'adapter.params' must be a mapping.")
    return AdapterConfig(driver=driver, params=dict(params))


def _cast(name: str, value: Any, type_name: str) -> Any:
    try:
        if type_name == "str":
            if not isinstance(value, str):
                raise TypeError(f"Expected str, got {type(value).__name__}")
            return value

        if type_name == "int":
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"Expected int, got {type(value).__name__}")
            return value

        if type_name == "float":
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise TypeError(f"Expected float, got {type(value).__name__}")
            return float(value)

        if type_name == "bool":
            if isinstance(value, bool):
                return value
            raise TypeError(f"Expected bool, got {type(value).__name__}")

        raise TypeError(f"Unknown schema type '{type_name}'")
    except TypeError as e:
        raise ConfigError(
            f"Invalid value for config key '{name}'.",
            hint=str(e),
            details={"key": name, "value": value, "expected_type": type_name},
        ) from None
