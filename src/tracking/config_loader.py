"""Load, validate, and hot-reload the cycle/streak engine configuration.

The config lives in ``tracking_config.yaml`` alongside this module.  At
startup it is loaded once and cached.  Call ``reload_tracking_config()`` to
re-read from disk after an admin update without a restart.

Usage::

    from src.tracking.config_loader import get_tracking_config

    config = get_tracking_config()
    config.cycle.default_cycle_length_days   # 28
    config.prediction.confidence_score       # 0.98
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

logger = logging.getLogger("fitfare.tracking.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "tracking_config.yaml"


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass
class CycleConfig:
    """Defaults substituted when a user's history is too thin."""

    default_cycle_length_days: int = 28
    default_period_length_days: int = 5
    min_plausible_period_days: int = 1
    max_plausible_period_days: int = 14
    recent_cycles_limit: int = 5


@dataclass
class PredictionConfig:
    """Next-period projection settings."""

    luteal_phase_days: int = 14
    days_before_ovulation: int = 2
    days_after_ovulation: int = 2
    confidence_score: float = 0.98


@dataclass
class RegularityConfig:
    """Fixed breakpoints for the Regular / Normal / Irregular heuristic."""

    regular_below_stddev: float = 3.0
    normal_below_stddev: float = 7.0
    min_cycles: int = 2


@dataclass
class SymptomConfig:
    default_severity: str = "mild"
    common_symptoms_limit: int = 10


@dataclass
class TrackingConfig:
    """Complete, validated engine configuration.

    Attributes:
        version:            Config schema version string.
        reference_timezone: Civil calendar used for every "today".
        cycle:              Cycle defaults and plausibility bounds.
        prediction:         Luteal phase, fertile window, confidence.
        regularity:         Standard-deviation breakpoints.
        symptoms:           Symptom logging defaults.
    """

    version: str
    reference_timezone: ZoneInfo
    cycle: CycleConfig
    prediction: PredictionConfig
    regularity: RegularityConfig
    symptoms: SymptomConfig
    _raw: dict = field(default_factory=dict, repr=False)

    def is_plausible_period_length(self, days: int) -> bool:
        return self.cycle.min_plausible_period_days <= days <= self.cycle.max_plausible_period_days


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when tracking_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Tracking config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> TrackingConfig:
    """Validate the raw YAML dict and construct a TrackingConfig.

    Applies defaults for optional fields and collects every problem before
    raising, so one run reports all of them.

    Raises:
        ConfigValidationError: If any field is missing or invalid.
    """
    errors: list[str] = []

    def _int(section: dict, key: str, default: int, path: str, minimum: int = 0) -> int:
        value = section.get(key, default)
        try:
            result = int(value)
        except (TypeError, ValueError):
            errors.append(f"{path}.{key} must be an integer, got {value!r}")
            return default
        if result < minimum:
            errors.append(f"{path}.{key} = {result} must be >= {minimum}")
        return result

    def _float(section: dict, key: str, default: float, path: str) -> float:
        value = section.get(key, default)
        try:
            return float(value)
        except (TypeError, ValueError):
            errors.append(f"{path}.{key} must be a number, got {value!r}")
            return default

    version = str(raw.get("version", "1.0"))

    # ── Reference timezone ──
    tz_name = raw.get("reference_timezone", "Asia/Kolkata")
    try:
        reference_tz = ZoneInfo(str(tz_name))
    except (ZoneInfoNotFoundError, ValueError):
        errors.append(f"reference_timezone {tz_name!r} is not a known IANA zone")
        reference_tz = ZoneInfo("Asia/Kolkata")

    # ── Cycle ──
    c_raw: dict[str, Any] = raw.get("cycle") or {}
    pp_raw: dict[str, Any] = c_raw.get("plausible_period_length") or {}
    cycle = CycleConfig(
        default_cycle_length_days=_int(c_raw, "default_cycle_length_days", 28, "cycle", 1),
        default_period_length_days=_int(c_raw, "default_period_length_days", 5, "cycle", 1),
        min_plausible_period_days=_int(pp_raw, "min_days", 1, "cycle.plausible_period_length", 1),
        max_plausible_period_days=_int(pp_raw, "max_days", 14, "cycle.plausible_period_length", 1),
        recent_cycles_limit=_int(c_raw, "recent_cycles_limit", 5, "cycle", 1),
    )
    if cycle.min_plausible_period_days > cycle.max_plausible_period_days:
        errors.append("cycle.plausible_period_length.min_days must not exceed max_days")

    # ── Prediction ──
    p_raw: dict[str, Any] = raw.get("prediction") or {}
    fw_raw: dict[str, Any] = p_raw.get("fertile_window") or {}
    prediction = PredictionConfig(
        luteal_phase_days=_int(p_raw, "luteal_phase_days", 14, "prediction"),
        days_before_ovulation=_int(fw_raw, "days_before_ovulation", 2, "prediction.fertile_window"),
        days_after_ovulation=_int(fw_raw, "days_after_ovulation", 2, "prediction.fertile_window"),
        confidence_score=_float(p_raw, "confidence_score", 0.98, "prediction"),
    )
    if not (0.0 <= prediction.confidence_score <= 1.0):
        errors.append(
            f"prediction.confidence_score = {prediction.confidence_score} is out of range [0.0, 1.0]"
        )

    # ── Regularity ──
    r_raw: dict[str, Any] = raw.get("regularity") or {}
    regularity = RegularityConfig(
        regular_below_stddev=_float(r_raw, "regular_below_stddev", 3.0, "regularity"),
        normal_below_stddev=_float(r_raw, "normal_below_stddev", 7.0, "regularity"),
        min_cycles=_int(r_raw, "min_cycles", 2, "regularity", 1),
    )
    if regularity.regular_below_stddev > regularity.normal_below_stddev:
        errors.append("regularity.regular_below_stddev must not exceed normal_below_stddev")

    # ── Symptoms ──
    s_raw: dict[str, Any] = raw.get("symptoms") or {}
    severity = str(s_raw.get("default_severity", "mild"))
    if severity not in ("mild", "moderate", "severe"):
        errors.append(f"symptoms.default_severity {severity!r} must be mild, moderate or severe")
    symptoms = SymptomConfig(
        default_severity=severity,
        common_symptoms_limit=_int(s_raw, "common_symptoms_limit", 10, "symptoms", 1),
    )

    if errors:
        raise ConfigValidationError(
            f"tracking_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return TrackingConfig(
        version=version,
        reference_timezone=reference_tz,
        cycle=cycle,
        prediction=prediction,
        regularity=regularity,
        symptoms=symptoms,
        _raw=raw,
    )


def load_tracking_config(path: Path | None = None) -> TrackingConfig:
    """Load and validate the tracking config from disk.

    Args:
        path: Override path to YAML. Uses the bundled tracking_config.yaml by default.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded tracking config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: TrackingConfig | None = None
_config_lock = threading.Lock()


def get_tracking_config() -> TrackingConfig:
    """Return the global TrackingConfig singleton, loading it on first call."""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_tracking_config()
    return _config


def reload_tracking_config(path: Path | None = None) -> TrackingConfig:
    """Reload the config from disk and replace the global singleton.

    If validation fails, the old config is retained and the error is re-raised.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_tracking_config(path)  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded tracking config: %s → %s", old_version, new_config.version)
    return new_config
