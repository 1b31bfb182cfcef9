"""
Engine configuration and settings normalization.

EngineConfig bundles the tuning constants of the risk engine (ratio caps,
sampling step, synthetic data ranges) plus two presentation switches that
used to be tied to the build environment:

- ``diagnostics``: log KPI anomalies as warnings
- ``auto_scale_to_millions``: multiply raw KPI values by powers of ten until
  inventory reaches the M EUR range (demo tuning, off by default)
"""
import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, Any, Optional, Union

logger = logging.getLogger(__name__)


# Default constants
DEFAULT_OPPORTUNITY_COUNT = 220
DEFAULT_NEAR_TERM_DAYS = 90
DEFAULT_HORIZON_DAYS = 365
DEFAULT_CASH_IMPACT_MIN = 5_000
DEFAULT_CASH_IMPACT_MAX = 150_000

MAX_OVERSTOCK_RATIO = 0.35
MAX_UNDERSTOCK_RATIO = 0.20
MAX_UNDERSTOCK_TO_OVERSTOCK = 0.8

PROJECTION_STEP_DAYS = 7

CONCENTRATED_OVERSTOCK_EUR = 500_000
CONCENTRATED_OVERSTOCK_MIN_PARTS = 5

AUTO_SCALE_TARGET_EUR = 1_000_000
AUTO_SCALE_MAX_MULTIPLIER = 1_000_000


@dataclass(frozen=True)
class EngineConfig:
    """
    Risk engine configuration - immutable.

    Passed explicitly into the computations that need it; there is no
    module-level "current" config.
    """
    opportunity_count: int = DEFAULT_OPPORTUNITY_COUNT
    near_term_days: int = DEFAULT_NEAR_TERM_DAYS
    horizon_days: int = DEFAULT_HORIZON_DAYS
    cash_impact_min: int = DEFAULT_CASH_IMPACT_MIN
    cash_impact_max: int = DEFAULT_CASH_IMPACT_MAX

    max_overstock_ratio: float = MAX_OVERSTOCK_RATIO
    max_understock_ratio: float = MAX_UNDERSTOCK_RATIO
    max_understock_to_overstock: float = MAX_UNDERSTOCK_TO_OVERSTOCK

    projection_step_days: int = PROJECTION_STEP_DAYS
    overstock_threshold_factor: float = 1.0  # <1.0 flags overstock earlier

    auto_scale_to_millions: bool = False
    diagnostics: bool = True
    concentrated_overstock_eur: float = CONCENTRATED_OVERSTOCK_EUR
    concentrated_overstock_min_parts: int = CONCENTRATED_OVERSTOCK_MIN_PARTS

    def __post_init__(self):
        if self.opportunity_count < 0:
            raise ValueError("Opportunity count cannot be negative")
        if self.near_term_days < 1 or self.horizon_days < 1:
            raise ValueError("Date windows must be at least 1 day")
        if self.cash_impact_min < 0 or self.cash_impact_max < self.cash_impact_min:
            raise ValueError("Cash impact range must be non-negative and ordered")
        for name in ("max_overstock_ratio", "max_understock_ratio", "max_understock_to_overstock"):
            ratio = getattr(self, name)
            if ratio < 0.0 or ratio > 1.0:
                raise ValueError(f"{name} must be 0.0-1.0")
        if self.projection_step_days < 1:
            raise ValueError("Projection step must be >= 1 day")
        if self.overstock_threshold_factor <= 0.0:
            raise ValueError("Overstock threshold factor must be > 0")


DEFAULT_CONFIG = EngineConfig()


# Validation bounds for settings normalization
_RATIO_KEYS = ("max_overstock_ratio", "max_understock_ratio", "max_understock_to_overstock")
_POSITIVE_INT_KEYS = ("opportunity_count", "near_term_days", "horizon_days", "projection_step_days",
                      "concentrated_overstock_min_parts")
_BOOL_KEYS = ("auto_scale_to_millions", "diagnostics")


def validate_engine_settings(settings: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate and normalize the "risk_engine" settings section.

    Applies fallback defaults and clamps values to valid ranges.
    Returns a normalized flat dict of EngineConfig fields (does not raise).

    Args:
        settings: Full settings dict (may contain a "risk_engine" section)

    Returns:
        Dict with one valid value per EngineConfig field
    """
    section = settings.get("risk_engine", {}) if isinstance(settings, dict) else {}
    if not isinstance(section, dict):
        section = {}

    defaults = {f.name: getattr(DEFAULT_CONFIG, f.name) for f in fields(EngineConfig)}
    normalized = dict(defaults)

    for key in _RATIO_KEYS:
        try:
            normalized[key] = max(0.0, min(1.0, float(section.get(key, defaults[key]))))
        except (ValueError, TypeError):
            normalized[key] = defaults[key]

    for key in _POSITIVE_INT_KEYS:
        try:
            normalized[key] = max(1, int(section.get(key, defaults[key])))
        except (ValueError, TypeError):
            normalized[key] = defaults[key]

    for key in _BOOL_KEYS:
        raw = section.get(key, defaults[key])
        normalized[key] = raw if isinstance(raw, bool) else defaults[key]

    try:
        cash_min = max(0, int(section.get("cash_impact_min", defaults["cash_impact_min"])))
        cash_max = int(section.get("cash_impact_max", defaults["cash_impact_max"]))
        if cash_max < cash_min:
            cash_min, cash_max = defaults["cash_impact_min"], defaults["cash_impact_max"]
        normalized["cash_impact_min"] = cash_min
        normalized["cash_impact_max"] = cash_max
    except (ValueError, TypeError):
        pass  # keep defaults

    try:
        factor = float(section.get("overstock_threshold_factor", defaults["overstock_threshold_factor"]))
        normalized["overstock_threshold_factor"] = factor if factor > 0 else defaults["overstock_threshold_factor"]
    except (ValueError, TypeError):
        pass

    try:
        normalized["concentrated_overstock_eur"] = max(
            0.0, float(section.get("concentrated_overstock_eur", defaults["concentrated_overstock_eur"]))
        )
    except (ValueError, TypeError):
        pass

    return normalized


def config_from_settings(settings: Dict[str, Any]) -> EngineConfig:
    """Build an EngineConfig from a (possibly partial or invalid) settings dict."""
    return EngineConfig(**validate_engine_settings(settings))


def load_engine_config(settings_file: Optional[Union[str, Path]] = None) -> EngineConfig:
    """
    Load engine configuration from a JSON settings file.

    Missing or unreadable files fall back to the defaults.

    Args:
        settings_file: Path to settings.json (None = defaults)

    Returns:
        EngineConfig
    """
    if settings_file is None:
        return DEFAULT_CONFIG

    path = Path(settings_file)
    if not path.exists():
        return DEFAULT_CONFIG

    try:
        with open(path, 'r', encoding='utf-8') as f:
            settings = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.warning(f"Could not read settings file {path}: {e}. Using default engine config.")
        return DEFAULT_CONFIG

    return config_from_settings(settings)
