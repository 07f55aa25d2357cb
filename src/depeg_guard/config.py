# src/depeg_guard/config.py
"""
Settings for a guard deployment.

A YAML file provides the base document; any field can be overridden by an
environment variable using `__` as the nesting separator, e.g.
`DEPEG_GUARD_RISK__CRITICAL=300`. The result is validated once into an
immutable `GuardSettings`.
"""

# --- Built Ins  ---
import json
import os
from pathlib import Path
from typing import Any

# --- Installed  ---
import yaml
from loguru import logger as log
from pydantic import Field, ValidationError

# --- Local Application Imports ---
from depeg_guard.exceptions import ConfigError, InvalidConfig
from depeg_guard.models import ConfigModel
from depeg_guard.risk import FeeConfig, PolicyTable, RiskConfig, SizeCapConfig

ENV_PREFIX = "DEPEG_GUARD"
DEFAULT_REFERENCE_MAX_AGE_SECONDS = 3600


class GuardSettings(ConfigModel):
    """Everything a `SwapGuardManager` needs, fixed at construction."""

    risk: RiskConfig
    fees: FeeConfig
    size_caps: SizeCapConfig
    twap_window_seconds: int = Field(default=1800, gt=0)
    observation_capacity: int = Field(default=1024, gt=0)
    reference_max_age_seconds: int = Field(default=DEFAULT_REFERENCE_MAX_AGE_SECONDS, gt=0)

    def policy_table(self) -> PolicyTable:
        return PolicyTable.from_configs(self.risk, self.fees, self.size_caps)


# --- Helper Functions ---


def _load_config_from_yaml(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise ConfigError(f"Configuration file not found at: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing YAML file at {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Top level of {path} must be a mapping, got {type(data).__name__}")
    return data


def _parse_env_value(value: str) -> Any:
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


def _get_env_overrides(prefix: str = ENV_PREFIX) -> dict[str, Any]:
    """
    DEPEG_GUARD_FEES__MAX=10000 becomes {'fees': {'max': 10000}}.
    """
    overrides: dict[str, Any] = {}
    marker = f"{prefix}_"
    for key, value in os.environ.items():
        if not key.startswith(marker):
            continue
        parts = key.removeprefix(marker).lower().split("__")
        d = overrides
        for part in parts[:-1]:
            d = d.setdefault(part, {})
        d[parts[-1]] = _parse_env_value(value)
    return overrides


def _merge_configs(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _merge_configs(base[key], value)
        else:
            base[key] = value
    return base


def load_settings(path: str | Path | None = None, env_prefix: str = ENV_PREFIX) -> GuardSettings:
    """
    Single entry point for building validated settings.
    Raises ConfigError with the underlying cause on any failure.
    """
    raw: dict[str, Any] = _load_config_from_yaml(Path(path)) if path is not None else {}
    raw = _merge_configs(raw, _get_env_overrides(env_prefix))

    try:
        settings = GuardSettings.model_validate(raw)
        # Build the table once so cross-config errors surface at load time.
        settings.policy_table()
    except ValidationError as e:
        raise ConfigError(f"Invalid guard settings: {e}") from e
    except InvalidConfig as e:
        raise ConfigError(str(e)) from e

    log.success(
        f"Guard settings loaded (window={settings.twap_window_seconds}s, "
        f"capacity={settings.observation_capacity}, thresholds={settings.risk.model_dump()})"
    )
    return settings
