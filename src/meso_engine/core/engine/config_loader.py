"""
YAML → EngineSettings loader.

Loads tunable thresholds from model.yaml (bundled with the package) and
optionally merges user overrides from ~/.meso-engine/model.yaml.

Usage:
    from meso_engine.core.engine.config_loader import DEFAULT_SETTINGS
    DEFAULT_SETTINGS.sfr_high

Keys absent from YAML keep the Python defaults from config.py.  A user
override file with parse errors is ignored with a warning.
"""

from __future__ import annotations

import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .. import config

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML mapping; warn and return {} if it cannot be read."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        warnings.warn(f"meso-engine: ignoring {path} ({exc})", stacklevel=2)
        return {}
    return data if isinstance(data, dict) else {}


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (non-destructive to base)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def user_config_dir() -> Path:
    """Return ~/.meso-engine (may not exist)."""
    home = Path(os.environ.get("HOME", "~")).expanduser()
    return home / ".meso-engine"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_bundled_yaml_path() -> Path | None:
    """Return the path to the bundled model.yaml, or None if not found."""
    # config_loader.py lives at src/meso_engine/core/engine/
    candidate = Path(__file__).parent.parent.parent / "model.yaml"
    return candidate if candidate.exists() else None


def get_user_yaml_path() -> Path | None:
    """Return ~/.meso-engine/model.yaml if it exists, else None."""
    p = user_config_dir() / "model.yaml"
    return p if p.exists() else None


def load_model_config() -> dict[str, Any]:
    """
    Load and merge model configuration from YAML sources.

    Load order (later overrides earlier):
    1. Bundled src/meso_engine/model.yaml
    2. User override at ~/.meso-engine/model.yaml

    Returns:
        Merged dict of config sections.  Empty dict if no YAML available.
    """
    cfg: dict[str, Any] = {}

    bundled = get_bundled_yaml_path()
    if bundled is not None:
        cfg = deep_merge(cfg, load_yaml_file(bundled))

    user = get_user_yaml_path()
    if user is not None:
        cfg = deep_merge(cfg, load_yaml_file(user))

    return cfg


@dataclass(frozen=True)
class EngineSettings:
    """Tunable thresholds, resolved once at import time."""

    trend_lean_threshold_kg: float = config.TREND_LEAN_THRESHOLD_KG
    trend_fat_threshold_kg: float = config.TREND_FAT_THRESHOLD_KG
    trend_min_months: float = config.TREND_MIN_MONTHS
    sfr_high: float = config.SFR_HIGH
    sfr_low: float = config.SFR_LOW
    high_fatigue_fraction: float = config.HIGH_FATIGUE_FRACTION
    readiness_low: float = config.READINESS_LOW
    readiness_moderate: float = config.READINESS_MODERATE
    deload_volume_fraction: float = config.DELOAD_VOLUME_FRACTION
    deload_intensity_fraction: float = config.DELOAD_INTENSITY_FRACTION
    fatigue_high: float = config.FATIGUE_HIGH
    sleep_poor: float = config.SLEEP_POOR
    rpe_creep_min: float = config.RPE_CREEP_MIN
    plateau_min_gain: float = config.PLATEAU_MIN_GAIN
    junk_rpe_max: float = config.JUNK_RPE_MAX
    stimulative_rpe_min: float = config.STIMULATIVE_RPE_MIN

    def __post_init__(self) -> None:
        if self.sfr_low > self.sfr_high:
            raise ValueError("sfr_low must not exceed sfr_high")
        if self.readiness_low > self.readiness_moderate:
            raise ValueError("readiness_low must not exceed readiness_moderate")
        if self.junk_rpe_max >= self.stimulative_rpe_min:
            raise ValueError("junk_rpe_max must be below stimulative_rpe_min")
        for name in ("deload_volume_fraction", "deload_intensity_fraction"):
            if not 0.0 < getattr(self, name) <= 1.0:
                raise ValueError(f"{name} must be in (0, 1]")


# YAML section -> {YAML key: EngineSettings field}
_SETTINGS_KEYS: dict[str, dict[str, str]] = {
    "body_composition": {
        "TREND_LEAN_THRESHOLD_KG": "trend_lean_threshold_kg",
        "TREND_FAT_THRESHOLD_KG": "trend_fat_threshold_kg",
        "TREND_MIN_MONTHS": "trend_min_months",
    },
    "fatigue": {
        "SFR_HIGH": "sfr_high",
        "SFR_LOW": "sfr_low",
        "HIGH_FATIGUE_FRACTION": "high_fatigue_fraction",
    },
    "readiness": {
        "READINESS_LOW": "readiness_low",
        "READINESS_MODERATE": "readiness_moderate",
    },
    "deload": {
        "DELOAD_VOLUME_FRACTION": "deload_volume_fraction",
        "DELOAD_INTENSITY_FRACTION": "deload_intensity_fraction",
        "FATIGUE_HIGH": "fatigue_high",
        "SLEEP_POOR": "sleep_poor",
        "RPE_CREEP_MIN": "rpe_creep_min",
    },
    "plateau": {
        "PLATEAU_MIN_GAIN": "plateau_min_gain",
    },
    "set_quality": {
        "JUNK_RPE_MAX": "junk_rpe_max",
        "STIMULATIVE_RPE_MIN": "stimulative_rpe_min",
    },
}


def settings_from_config(cfg: dict[str, Any]) -> EngineSettings:
    """Build EngineSettings from a merged config dict, ignoring unknown keys."""
    values: dict[str, float] = {}
    for section, keys in _SETTINGS_KEYS.items():
        raw = cfg.get(section) or {}
        for yaml_key, field_name in keys.items():
            if yaml_key in raw:
                values[field_name] = float(raw[yaml_key])
    return EngineSettings(**values)


def load_settings() -> EngineSettings:
    """Load settings from YAML, falling back to defaults if the result is invalid."""
    try:
        return settings_from_config(load_model_config())
    except (TypeError, ValueError) as exc:
        warnings.warn(
            f"meso-engine: invalid model.yaml values ({exc}); using defaults.",
            stacklevel=2,
        )
        return EngineSettings()


DEFAULT_SETTINGS: EngineSettings = load_settings()
