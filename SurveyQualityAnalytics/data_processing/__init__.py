"""Data processing module for survey quality analytics."""

from .data_loader import DataLoader
from .response_store import ResponseStore
from .exceptions import SurveyAnalyticsError, ValidationError, NotFoundError
from .models import (
    QuestionType,
    QualityStatus,
    AuditAction,
    TrendDirection,
    TimePeriod,
    Question,
    QuestionValidation,
    ResponseRecord,
    QualityFlag,
    ManualOverride,
    QualityRule,
    QualityAuditLogEntry,
    ClassificationResult,
    ChiSquareResult,
    TimeSeriesPoint,
    TrendResult,
    QuestionAnalytics,
    TimingStats,
    SurveyAnalyticsReport,
    PatternType,
    Pattern,
    PatternReport,
    AttentionIssueType,
    Severity,
    AttentionIssue,
    AttentionReport
)

__all__ = [
    'DataLoader',
    'ResponseStore',
    'SurveyAnalyticsError',
    'ValidationError',
    'NotFoundError',
    'QuestionType',
    'QualityStatus',
    'AuditAction',
    'TrendDirection',
    'TimePeriod',
    'Question',
    'QuestionValidation',
    'ResponseRecord',
    'QualityFlag',
    'ManualOverride',
    'QualityRule',
    'QualityAuditLogEntry',
    'ClassificationResult',
    'ChiSquareResult',
    'TimeSeriesPoint',
    'TrendResult',
    'QuestionAnalytics',
    'TimingStats',
    'SurveyAnalyticsReport',
    'PatternType',
    'Pattern',
    'PatternReport',
    'AttentionIssueType',
    'Severity',
    'AttentionIssue',
    'AttentionReport'
]
