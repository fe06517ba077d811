"""Response analytics module: per-question, timeline and time-bucket aggregation."""

from .analytics_aggregator import AnalyticsAggregator
from .time_aggregation import TimeAggregator
from .question_analyzers import (
    QuestionAnalyzer,
    ChoiceAnalyzer,
    CheckboxAnalyzer,
    RatingAnalyzer,
    TextAnalyzer,
    build_analyzer_registry
)

__all__ = [
    'AnalyticsAggregator',
    'TimeAggregator',
    'QuestionAnalyzer',
    'ChoiceAnalyzer',
    'CheckboxAnalyzer',
    'RatingAnalyzer',
    'TextAnalyzer',
    'build_analyzer_registry'
]
