"""
Survey health scoring.

Flags surveys whose owners should act: respondents leaving most questions
unanswered, submissions drying up, or a sharp drop-off at one question.
Each issue carries a severity; the attention score is the capped sum of
severity weights.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

import pandas as pd

from ..data_processing.data_loader import to_utc_timestamp
from ..data_processing.models import (
    Question, ResponseRecord, AttentionIssue, AttentionIssueType, AttentionReport,
    Severity, utc_now
)
from ..response_analytics.question_analyzers import is_empty_answer
from ..response_analytics.time_aggregation import TimeAggregator


SEVERITY_WEIGHTS: Dict[Severity, int] = {
    Severity.HIGH: 40,
    Severity.MEDIUM: 25,
    Severity.LOW: 10,
}
MAX_ATTENTION_SCORE = 100

# Answered share of all question slots, in percent
LOW_COMPLETION_HIGH = 50.0
LOW_COMPLETION_MEDIUM = 70.0
SLOW_RECENT_RESPONSES = 5
SLOW_MIN_TOTAL_RESPONSES = 10
DROPOFF_MIN_RESPONSES = 5
DROPOFF_THRESHOLD = 30.0

RECOMMENDATIONS: Dict[AttentionIssueType, List[str]] = {
    AttentionIssueType.LOW_COMPLETION: [
        'Consider shortening the survey or making questions optional',
        'Review question clarity and simplify complex questions',
    ],
    AttentionIssueType.NO_RESPONSES: [
        'Increase survey promotion and distribution',
        'Check if the survey link is still accessible',
        'Consider offering incentives for participation',
    ],
    AttentionIssueType.HIGH_DROPOFF: [
        'Review the question where users are dropping off',
        'Consider reordering questions to put easier ones first',
        'Make the problematic question optional or simplify it',
    ],
    AttentionIssueType.SLOW_RESPONSE: [
        'Send reminder emails to potential respondents',
        'Refresh your distribution channels',
    ],
}


class AttentionScorer:
    """
    Scores how urgently a survey needs attention (0-100, higher is worse).

    Features:
    - Low answer completion across all questions
    - No, or very few, responses in the recent window
    - First question transition losing more than 30% of respondents
    - Severity-weighted score and de-duplicated recommendations
    """

    def __init__(self,
                 time_aggregator: Optional[TimeAggregator] = None,
                 recent_days: int = 7,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize the AttentionScorer.

        Parameters
        ----------
        time_aggregator : TimeAggregator, optional
            Provides the per-question completion funnel
        recent_days : int, default 7
            Length of the window checked for recent submissions
        clock : callable, optional
            Returns the current time; defaults to timezone-aware UTC now
        """
        self.time_aggregator = time_aggregator or TimeAggregator()
        self.recent_days = recent_days
        self.clock = clock or utc_now
        self.logger = logging.getLogger(__name__)

    def assess(self,
               survey_id: str,
               questions: Sequence[Question],
               responses: Sequence[ResponseRecord],
               now: Optional[datetime] = None) -> AttentionReport:
        """
        Identify a survey's issues and score them.

        Parameters
        ----------
        survey_id : str
            Survey being assessed
        questions : sequence of Question
            The survey's questions, in display order
        responses : sequence of ResponseRecord
            Every response of the survey
        now : datetime, optional
            Reference time for the recent window; defaults to the clock

        Returns
        -------
        AttentionReport
            Score, issues and recommendations
        """
        issues = self.identify_issues(questions, responses, now=now)

        report = AttentionReport(
            survey_id=survey_id,
            attention_score=self.calculate_score(issues),
            issues=issues,
            recommendations=self.generate_recommendations(issues)
        )

        self.logger.info(f"Survey {survey_id} attention score {report.attention_score} "
                         f"({len(issues)} issues)")

        return report

    def identify_issues(self,
                        questions: Sequence[Question],
                        responses: Sequence[ResponseRecord],
                        now: Optional[datetime] = None) -> List[AttentionIssue]:
        issues = []

        completion = self._completion_issue(questions, responses)
        if completion is not None:
            issues.append(completion)

        activity = self._activity_issue(responses, now)
        if activity is not None:
            issues.append(activity)

        dropoff = self._dropoff_issue(questions, responses)
        if dropoff is not None:
            issues.append(dropoff)

        return issues

    def calculate_score(self, issues: Sequence[AttentionIssue]) -> int:
        score = sum(SEVERITY_WEIGHTS[issue.severity] for issue in issues)
        return min(MAX_ATTENTION_SCORE, score)

    def generate_recommendations(self, issues: Sequence[AttentionIssue]) -> List[str]:
        """Recommendations for the given issues, without duplicates, in issue order."""
        recommendations: List[str] = []
        for issue in issues:
            for recommendation in RECOMMENDATIONS[issue.type]:
                if recommendation not in recommendations:
                    recommendations.append(recommendation)
        return recommendations

    def completion_rate(self,
                        questions: Sequence[Question],
                        responses: Sequence[ResponseRecord]) -> Optional[float]:
        """
        Percentage of question slots answered across all responses.

        None when there are no questions or no responses to judge.
        """
        if not questions or not responses:
            return None

        answered = sum(
            1 for response in responses for question in questions
            if not is_empty_answer(response.answer_for(question.id))
        )
        return answered / (len(questions) * len(responses)) * 100

    def _completion_issue(self,
                          questions: Sequence[Question],
                          responses: Sequence[ResponseRecord]) -> Optional[AttentionIssue]:
        rate = self.completion_rate(questions, responses)
        if rate is None:
            return None

        if rate < LOW_COMPLETION_HIGH:
            return AttentionIssue(
                type=AttentionIssueType.LOW_COMPLETION,
                severity=Severity.HIGH,
                message=f"Survey has a low completion rate of {rate:.1f}%"
            )
        if rate < LOW_COMPLETION_MEDIUM:
            return AttentionIssue(
                type=AttentionIssueType.LOW_COMPLETION,
                severity=Severity.MEDIUM,
                message=f"Survey completion rate is {rate:.1f}%, which could be improved"
            )
        return None

    def _activity_issue(self,
                        responses: Sequence[ResponseRecord],
                        now: Optional[datetime]) -> Optional[AttentionIssue]:
        cutoff = to_utc_timestamp(now if now is not None else self.clock())
        cutoff -= pd.Timedelta(days=self.recent_days)

        recent = sum(1 for r in responses if to_utc_timestamp(r.submitted_at) >= cutoff)

        if responses and recent == 0:
            return AttentionIssue(
                type=AttentionIssueType.NO_RESPONSES,
                severity=Severity.HIGH,
                message=f"No responses received in the last {self.recent_days} days"
            )
        if recent < SLOW_RECENT_RESPONSES and len(responses) > SLOW_MIN_TOTAL_RESPONSES:
            return AttentionIssue(
                type=AttentionIssueType.SLOW_RESPONSE,
                severity=Severity.MEDIUM,
                message='Response rate has slowed down significantly'
            )
        return None

    def _dropoff_issue(self,
                       questions: Sequence[Question],
                       responses: Sequence[ResponseRecord]) -> Optional[AttentionIssue]:
        """First transition between consecutive questions losing over 30% of respondents."""
        if len(responses) <= DROPOFF_MIN_RESPONSES or len(questions) < 2:
            return None

        funnel = self.time_aggregator.calculate_funnel(questions, responses)
        for position, (current, following) in enumerate(zip(funnel, funnel[1:]), start=2):
            if current.completion_count == 0:
                continue
            lost = current.completion_count - following.completion_count
            rate = lost / current.completion_count * 100
            if rate > DROPOFF_THRESHOLD:
                return AttentionIssue(
                    type=AttentionIssueType.HIGH_DROPOFF,
                    severity=Severity.HIGH,
                    message=f"High drop-off rate ({rate:.1f}%) at question {position}"
                )
        return None
