"""
Core data models and structures for survey quality analytics.

This module defines the fundamental data structures used throughout the
package: question definitions, response records with their quality state,
quality rules, the audit trail, and result containers returned by the
statistics, classification and aggregation components.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Union, Tuple, Any
from enum import Enum


class QuestionType(Enum):
    """Enumeration of supported question kinds."""
    TEXT = "text"
    TEXTAREA = "textarea"
    MULTIPLE_CHOICE = "multiple_choice"
    CHECKBOX = "checkbox"
    DROPDOWN = "dropdown"
    RATING = "rating"
    DATE = "date"
    EMAIL = "email"
    NUMBER = "number"


class QualityStatus(Enum):
    """Enumeration of response quality classifications."""
    QUALITY = "quality"
    LOW_QUALITY = "low_quality"
    MANUALLY_OVERRIDDEN = "manually_overridden"


class AuditAction(Enum):
    """Enumeration of audit log actions."""
    FLAGGED = "flagged"
    OVERRIDDEN = "overridden"


class TrendDirection(Enum):
    """Enumeration of trend classifications."""
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class TimePeriod(Enum):
    """Enumeration of time bucket sizes for response aggregation."""
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class PatternType(Enum):
    """Enumeration of detected response pattern kinds."""
    CORRELATION = "correlation"
    TEMPORAL = "temporal"
    DEMOGRAPHIC = "demographic"
    ANOMALY = "anomaly"


class AttentionIssueType(Enum):
    """Enumeration of survey health issues."""
    LOW_COMPLETION = "low_completion"
    NO_RESPONSES = "no_responses"
    SLOW_RESPONSE = "slow_response"
    HIGH_DROPOFF = "high_dropoff"


class Severity(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


COMPLETION_TIME_FLAG = "completion_time"
DEFAULT_MIN_COMPLETION_TIME = 30
MIN_COMPLETION_TIME_BOUNDS = (5, 3600)
DAY_NAMES = ['Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday']


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class QuestionValidation:
    """Answer constraints attached to a question."""
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None


@dataclass(frozen=True)
class Question:
    """Definition of a survey question. Immutable once attached to a survey."""
    id: str
    type: QuestionType
    text: str = ""
    required: bool = False
    options: Tuple[str, ...] = ()
    min_rating: Optional[int] = None
    max_rating: Optional[int] = None
    validation: Optional[QuestionValidation] = None

    def rating_range(self) -> Tuple[int, int]:
        """Closed integer range used for rating distributions."""
        low = self.min_rating if self.min_rating is not None else 1
        high = self.max_rating if self.max_rating is not None else 5
        return low, high


@dataclass
class QualityFlag:
    """Marker left on a response by an automated quality rule."""
    flag_type: str
    flagged_at: datetime
    threshold_value: float


@dataclass
class ManualOverride:
    """A reviewer's decision that supersedes automatic classification."""
    overridden_by: str
    overridden_at: datetime
    reason: Optional[str] = None
    intended_status: Optional[QualityStatus] = None


@dataclass
class ResponseRecord:
    """One respondent's answers to a survey plus quality state."""
    id: str
    survey_id: str
    submitted_at: datetime
    response_data: Dict[str, Any] = field(default_factory=dict)
    completion_time: Optional[int] = None
    quality_status: Optional[QualityStatus] = None
    quality_flags: List[QualityFlag] = field(default_factory=list)
    manual_override: Optional[ManualOverride] = None
    demographics: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_timing(self) -> bool:
        """True when a usable (positive) completion time was recorded."""
        return self.completion_time is not None and self.completion_time > 0

    def has_flag(self, flag_type: str) -> bool:
        """Check whether a flag of the given type is already attached."""
        return any(flag.flag_type == flag_type for flag in self.quality_flags)

    def current_status(self) -> QualityStatus:
        """Stored status, defaulting to quality for never-classified responses."""
        return self.quality_status or QualityStatus.QUALITY

    def answer_for(self, question_id: str) -> Any:
        return self.response_data.get(question_id)


@dataclass
class QualityRule:
    """Per-survey quality configuration and classification counters."""
    survey_id: str
    user_id: Optional[str] = None
    min_completion_time: float = DEFAULT_MIN_COMPLETION_TIME
    total_flagged: int = 0
    total_overridden: int = 0
    custom_rules: List[Dict[str, Any]] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class QualityAuditLogEntry:
    """Immutable record of one classification status transition."""
    response_id: str
    survey_id: str
    user_id: Optional[str]
    action: AuditAction
    previous_status: QualityStatus
    new_status: QualityStatus
    completion_time: float
    threshold_at_time: float
    reason: Optional[str] = None
    timestamp: datetime = field(default_factory=utc_now)


@dataclass
class ClassificationResult:
    """Counts produced by a full classification pass."""
    total_classified: int
    flagged_count: int
    quality_count: int
    untimed_count: int = 0
    overridden_count: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'total_classified': self.total_classified,
            'flagged_count': self.flagged_count,
            'quality_count': self.quality_count,
            'untimed_count': self.untimed_count,
            'overridden_count': self.overridden_count
        }


@dataclass
class ChiSquareResult:
    """Container for chi-square test results."""
    statistic: float
    p_value: float
    degrees_of_freedom: int = 0
    exact_p_value: bool = False

    def is_significant(self, alpha: float = 0.05) -> bool:
        """Check if test result is statistically significant."""
        return self.p_value < alpha


@dataclass
class TimeSeriesPoint:
    timestamp: datetime
    value: float


@dataclass
class TrendResult:
    """
    Linear trend over a time series.

    ``confidence`` is a 0-100 heuristic scaled by fit quality and sample size,
    not a statistical confidence interval.
    """
    trend: TrendDirection
    slope: float
    confidence: float
    r_squared: float = 0.0
    n_points: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'trend': self.trend.value,
            'slope': self.slope,
            'confidence': self.confidence
        }


@dataclass
class DistributionEntry:
    """Count and percentage for one option or rating value."""
    label: Union[str, int]
    count: int
    percentage: float


@dataclass
class QuestionAnalytics:
    """Per-question analytics payload."""
    question_id: str
    question: str
    type: QuestionType
    response_count: int
    response_rate: float
    distribution: List[DistributionEntry] = field(default_factory=list)
    average_rating: Optional[float] = None
    average_length: Optional[float] = None
    sample_responses: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            'questionId': self.question_id,
            'question': self.question,
            'type': self.type.value,
            'totalResponses': self.response_count,
            'responseRate': self.response_rate
        }
        if self.type == QuestionType.RATING:
            payload['averageRating'] = self.average_rating
            payload['distribution'] = [
                {'rating': entry.label, 'count': entry.count, 'percentage': entry.percentage}
                for entry in self.distribution
            ]
        elif self.type in (QuestionType.MULTIPLE_CHOICE, QuestionType.DROPDOWN,
                           QuestionType.CHECKBOX):
            payload['distribution'] = [
                {'option': entry.label, 'count': entry.count, 'percentage': entry.percentage}
                for entry in self.distribution
            ]
        elif self.type in (QuestionType.TEXT, QuestionType.TEXTAREA):
            payload['averageLength'] = self.average_length
            payload['sampleResponses'] = list(self.sample_responses)
        return payload


@dataclass
class TimelineEntry:
    date: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {'date': self.date, 'responses': self.count}


@dataclass
class Demographics:
    """Response counts by UTC hour of day and day of week."""
    total_responses: int
    responses_by_hour: List[Tuple[int, int]] = field(default_factory=list)
    responses_by_day: List[Tuple[str, int]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalResponses': self.total_responses,
            'responsesByHour': [{'hour': h, 'count': c} for h, c in self.responses_by_hour],
            'responsesByDay': [{'day': d, 'count': c} for d, c in self.responses_by_day]
        }


@dataclass
class TimingStats:
    """Completion time statistics; all values are None without timing data."""
    average_completion_time: Optional[float] = None
    median_completion_time: Optional[float] = None
    fastest_completion: Optional[float] = None
    slowest_completion: Optional[float] = None
    responses_with_timing: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'averageCompletionTime': self.average_completion_time,
            'medianCompletionTime': self.median_completion_time,
            'fastestCompletion': self.fastest_completion,
            'slowestCompletion': self.slowest_completion,
            'responsesWithTiming': self.responses_with_timing
        }


@dataclass
class SurveyAnalyticsReport:
    """Complete analytics payload for one survey."""
    survey_id: str
    total_responses: int
    completion_rate: float
    question_analytics: Dict[str, QuestionAnalytics] = field(default_factory=dict)
    timeline: List[TimelineEntry] = field(default_factory=list)
    demographics: Optional[Demographics] = None
    timing_stats: TimingStats = field(default_factory=TimingStats)
    trend: Optional[TrendResult] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'surveyId': self.survey_id,
            'responses': self.total_responses,
            'completionRate': self.completion_rate,
            'questionAnalytics': {qid: qa.to_dict() for qid, qa in self.question_analytics.items()},
            'timeline': [entry.to_dict() for entry in self.timeline],
            'demographics': self.demographics.to_dict() if self.demographics else None,
            'timingStats': self.timing_stats.to_dict(),
            'trend': self.trend.to_dict() if self.trend else None
        }


@dataclass
class PeriodCount:
    label: str
    start: datetime
    count: int


@dataclass
class HeatmapCell:
    x: int
    y: int
    value: int
    label: str


@dataclass
class FunnelStage:
    question_id: str
    question_text: str
    completion_count: int
    completion_rate: float
    dropoff_rate: float


@dataclass
class ForecastPoint:
    date: datetime
    count: int
    is_forecast: bool = True
    confidence_lower: Optional[int] = None
    confidence_upper: Optional[int] = None


@dataclass
class Pattern:
    """
    A notable relationship, trend, group difference or anomaly in responses.

    ``confidence`` and ``statistical_significance`` are 0-100 ranking
    heuristics, not probabilities.
    """
    type: PatternType
    questions: Tuple[str, ...]
    confidence: float
    statistical_significance: float
    description: str
    supporting_data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type.value,
            'questions': list(self.questions),
            'confidence': self.confidence,
            'statisticalSignificance': self.statistical_significance,
            'description': self.description,
            'supportingData': dict(self.supporting_data)
        }


@dataclass
class PatternReport:
    """Patterns found in one survey, strongest first within each kind."""
    survey_id: str
    correlations: List[Pattern] = field(default_factory=list)
    trends: List[Pattern] = field(default_factory=list)
    demographics: List[Pattern] = field(default_factory=list)
    anomalies: List[Pattern] = field(default_factory=list)

    def all_patterns(self) -> List[Pattern]:
        return self.correlations + self.trends + self.demographics + self.anomalies

    def to_dict(self) -> Dict[str, Any]:
        return {
            'surveyId': self.survey_id,
            'correlations': [p.to_dict() for p in self.correlations],
            'trends': [p.to_dict() for p in self.trends],
            'demographics': [p.to_dict() for p in self.demographics],
            'anomalies': [p.to_dict() for p in self.anomalies]
        }


@dataclass
class AttentionIssue:
    type: AttentionIssueType
    severity: Severity
    message: str


@dataclass
class AttentionReport:
    """How urgently a survey needs its owner's attention (0-100, higher is worse)."""
    survey_id: str
    attention_score: int
    issues: List[AttentionIssue] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'surveyId': self.survey_id,
            'attentionScore': self.attention_score,
            'issues': [
                {'type': issue.type.value, 'severity': issue.severity.value, 'message': issue.message}
                for issue in self.issues
            ],
            'recommendations': list(self.recommendations)
        }


# Type alias for convenience
QuestionAnalyticsMap = Dict[str, QuestionAnalytics]
