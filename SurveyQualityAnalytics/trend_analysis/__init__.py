"""Trend analysis module: volume forecasting, pattern detection and survey health."""

from .forecasting import ResponseForecaster
from .pattern_detector import PatternDetector
from .attention_score import AttentionScorer

__all__ = [
    'ResponseForecaster',
    'PatternDetector',
    'AttentionScorer'
]
