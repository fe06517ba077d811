"""
Configuration for survey quality analytics.
"""

import json
import logging
from dataclasses import dataclass, fields, asdict
from typing import Dict, Any, Optional

from .data_processing.models import DEFAULT_MIN_COMPLETION_TIME


logger = logging.getLogger(__name__)


@dataclass
class AnalyticsConfig:
    """Tunable defaults for classification and aggregation."""
    default_min_completion_time: float = DEFAULT_MIN_COMPLETION_TIME
    timeline_days: int = 30
    text_sample_size: int = 5
    text_truncate_length: int = 100
    percentage_precision: int = 1
    exact_p_values: bool = False
    stable_slope_threshold: float = 0.01
    forecast_trend_threshold: float = 0.1
    audit_log_limit: int = 100
    log_level: str = 'INFO'

    @classmethod
    def from_dict(cls, values: Optional[Dict[str, Any]]) -> 'AnalyticsConfig':
        """Build a config from a mapping, ignoring unknown keys with a warning."""
        values = values or {}
        known = {f.name for f in fields(cls)}

        unknown = sorted(set(values) - known)
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys: {unknown}")

        return cls(**{key: value for key, value in values.items() if key in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(config_path: Optional[str]) -> AnalyticsConfig:
    """
    Load configuration from a JSON file.

    Falls back to the defaults when no path is given or the file cannot be
    read or parsed.
    """
    if not config_path:
        return AnalyticsConfig()

    try:
        with open(config_path, 'r') as f:
            values = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to load configuration: {e}")
        return AnalyticsConfig()

    if not isinstance(values, dict):
        logger.warning(f"Configuration in {config_path} is not a JSON object; using defaults")
        return AnalyticsConfig()

    logger.info(f"Configuration loaded from {config_path}")
    return AnalyticsConfig.from_dict(values)
