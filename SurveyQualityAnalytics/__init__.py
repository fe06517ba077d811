"""
Survey Quality Analytics

Response quality control and analytics for online surveys: completion-time
based quality classification with manual overrides and an audit trail, plus
per-question analytics, timelines, demographics, time-bucketed trends and
response forecasting.
"""

__version__ = "1.0.0"

from .survey_quality_analytics import SurveyQualityAnalytics
from .config import AnalyticsConfig, load_config
from .data_processing.exceptions import SurveyAnalyticsError, ValidationError, NotFoundError
from .data_processing.models import (
    QuestionType,
    QualityStatus,
    AuditAction,
    TrendDirection,
    TimePeriod,
    Question,
    ResponseRecord,
    QualityRule,
    QualityAuditLogEntry,
    ClassificationResult,
    SurveyAnalyticsReport,
    PatternReport,
    AttentionReport
)

__all__ = [
    'SurveyQualityAnalytics',
    'AnalyticsConfig',
    'load_config',
    'SurveyAnalyticsError',
    'ValidationError',
    'NotFoundError',
    'QuestionType',
    'QualityStatus',
    'AuditAction',
    'TrendDirection',
    'TimePeriod',
    'Question',
    'ResponseRecord',
    'QualityRule',
    'QualityAuditLogEntry',
    'ClassificationResult',
    'SurveyAnalyticsReport',
    'PatternReport',
    'AttentionReport'
]
