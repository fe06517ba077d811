"""
Survey-level analytics aggregation.

This module turns a survey's question list and response collection into the
dashboard/export payload: per-question response rates and distributions, a
dense daily timeline, hour/weekday demographics, completion time statistics,
an estimated completion rate and a response-volume trend. Aggregation never
mutates the responses it reads.
"""

import logging
from datetime import datetime
from numbers import Integral
from typing import List, Optional, Any, Sequence

import pandas as pd

from ..data_processing.data_loader import DataLoader, to_utc_timestamp
from ..data_processing.exceptions import ValidationError
from ..data_processing.models import (
    Question, ResponseRecord, QuestionAnalytics, TimelineEntry, Demographics,
    TimingStats, TrendResult, TimeSeriesPoint, SurveyAnalyticsReport, QuestionAnalyticsMap,
    DAY_NAMES
)
from ..descriptive_analysis.statistics_engine import StatisticsEngine
from .question_analyzers import build_analyzer_registry, is_empty_answer, percentage


class AnalyticsAggregator:
    """
    Builds analytics payloads for a survey's response set.

    Features:
    - Per-question response rates
    - Type-specific distributions (choice, checkbox, rating, text)
    - Dense UTC daily timeline over a trailing window
    - Hour-of-day and day-of-week demographics
    - Completion time statistics over timed responses only
    - Estimated completion rate when no view tracking exists
    """

    def __init__(self,
                 statistics_engine: Optional[StatisticsEngine] = None,
                 timeline_days: int = 30,
                 text_sample_size: int = 5,
                 text_truncate_length: int = 100,
                 precision: int = 1):
        """
        Initialize the AnalyticsAggregator.

        Parameters
        ----------
        statistics_engine : StatisticsEngine, optional
            Engine used for means, medians and trend detection
        timeline_days : int, default 30
            Length of the trailing timeline window in days
        text_sample_size : int, default 5
            Maximum number of sample answers reported for text questions
        text_truncate_length : int, default 100
            Sample answers longer than this are truncated with an ellipsis
        precision : int, default 1
            Decimal places for percentages
        """
        self.statistics_engine = statistics_engine or StatisticsEngine()
        self.timeline_days = timeline_days
        self.precision = precision
        self.data_loader = DataLoader()
        self.analyzers = build_analyzer_registry(
            self.statistics_engine, text_sample_size, text_truncate_length, precision
        )
        self.logger = logging.getLogger(__name__)

    def answers_for(self, question: Question, responses: Sequence[ResponseRecord]) -> List[Any]:
        """Non-empty answers to a question, in response order."""
        answers = (response.answer_for(question.id) for response in responses)
        return [answer for answer in answers if not is_empty_answer(answer)]

    def response_rate(self, question: Question, responses: Sequence[ResponseRecord]) -> float:
        """Percentage of responses that answered the question; 0 without responses."""
        return percentage(len(self.answers_for(question, responses)), len(responses), self.precision)

    def analyze_question(self, question: Question, responses: Sequence[ResponseRecord]) -> QuestionAnalytics:
        answers = self.answers_for(question, responses)

        analytics = QuestionAnalytics(
            question_id=question.id,
            question=question.text,
            type=question.type,
            response_count=len(answers),
            response_rate=percentage(len(answers), len(responses), self.precision)
        )

        return self.analyzers[question.type].analyze(question, answers, analytics)

    def analyze_questions(self,
                          questions: Sequence[Question],
                          responses: Sequence[ResponseRecord]) -> QuestionAnalyticsMap:
        return {question.id: self.analyze_question(question, responses) for question in questions}

    def build_timeline(self,
                       responses: Sequence[ResponseRecord],
                       days: Optional[int] = None,
                       end: Optional[datetime] = None) -> List[TimelineEntry]:
        """
        Daily response counts over a trailing window ending on ``end``'s UTC day.

        Every day of the window is present, with a count of 0 when nothing
        was submitted. ``days`` defaults to the configured window and
        must be at least 1.
        """
        days = days if days is not None else self.timeline_days
        if isinstance(days, bool) or not isinstance(days, Integral) or days < 1:
            raise ValidationError(f"Timeline length must be a positive number of days, got {days!r}")

        end_day = self._utc_day(end)
        window = pd.date_range(end=end_day, periods=days, freq='D')

        frame = self.data_loader.responses_to_frame(responses)
        counts = frame['submitted_at'].dt.strftime('%Y-%m-%d').value_counts()

        timeline = []
        for day in window:
            label = day.strftime('%Y-%m-%d')
            timeline.append(TimelineEntry(date=label, count=int(counts.get(label, 0))))

        return timeline

    def build_demographics(self, responses: Sequence[ResponseRecord]) -> Demographics:
        """Response counts per UTC hour (0-23) and weekday (Sunday-Saturday)."""
        frame = self.data_loader.responses_to_frame(responses)
        submitted = frame['submitted_at']

        by_hour = submitted.dt.hour.value_counts()
        # pandas numbers weekdays from Monday=0; shift so Sunday=0
        by_weekday = ((submitted.dt.dayofweek + 1) % 7).value_counts()

        return Demographics(
            total_responses=len(frame),
            responses_by_hour=[(hour, int(by_hour.get(hour, 0))) for hour in range(24)],
            responses_by_day=[(name, int(by_weekday.get(day, 0)))
                              for day, name in enumerate(DAY_NAMES)]
        )

    def timing_statistics(self, responses: Sequence[ResponseRecord]) -> TimingStats:
        """
        Completion time statistics over responses with a positive completion time.

        Every statistic is None when no response carries timing data.
        """
        times = [response.completion_time for response in responses if response.has_timing]

        if not times:
            return TimingStats()

        return TimingStats(
            average_completion_time=round(self.statistics_engine.mean(times)),
            median_completion_time=self.statistics_engine.median(times),
            fastest_completion=min(times),
            slowest_completion=max(times),
            responses_with_timing=len(times)
        )

    def estimate_completion_rate(self, total_responses: int, view_count: Optional[int] = None) -> float:
        """
        Completion rate as a percentage of survey views.

        Without measured views this is an estimate, not traffic data: views
        are assumed to be ``max(3 * responses, responses + 50)``. A measured
        ``view_count`` replaces the estimate; the result is capped at 100.
        """
        if view_count is not None and view_count > 0:
            return min(100.0, percentage(total_responses, view_count, self.precision))

        estimated_views = max(total_responses * 3, total_responses + 50)
        return percentage(total_responses, estimated_views, self.precision)

    def detect_response_trend(self, timeline: Sequence[TimelineEntry]) -> TrendResult:
        points = [TimeSeriesPoint(timestamp=entry.date, value=entry.count) for entry in timeline]
        return self.statistics_engine.analyze_time_series(points)

    def aggregate(self,
                  survey_id: str,
                  questions: Sequence[Question],
                  responses: Sequence[ResponseRecord],
                  end: Optional[datetime] = None,
                  view_count: Optional[int] = None) -> SurveyAnalyticsReport:
        """
        Build the complete analytics payload for a survey.

        Parameters
        ----------
        survey_id : str
            Survey being analyzed
        questions : sequence of Question
            The survey's questions, in display order
        responses : sequence of ResponseRecord
            The survey's responses (already fetched and filtered)
        end : datetime, optional
            Last day of the timeline window; defaults to today (UTC)
        view_count : int, optional
            Measured survey views, if tracked

        Returns
        -------
        SurveyAnalyticsReport
            Zero-filled and null-valued where there is no data
        """
        self.logger.info(f"Aggregating analytics for survey {survey_id} "
                         f"({len(questions)} questions, {len(responses)} responses)")

        timeline = self.build_timeline(responses, end=end)

        report = SurveyAnalyticsReport(
            survey_id=survey_id,
            total_responses=len(responses),
            completion_rate=self.estimate_completion_rate(len(responses), view_count),
            question_analytics=self.analyze_questions(questions, responses),
            timeline=timeline,
            demographics=self.build_demographics(responses),
            timing_stats=self.timing_statistics(responses),
            trend=self.detect_response_trend(timeline)
        )

        if not responses:
            self.logger.warning(f"Survey {survey_id} has no responses; returning empty analytics")

        return report

    def _utc_day(self, value: Optional[datetime]) -> pd.Timestamp:
        if value is None:
            return pd.Timestamp.now(tz='UTC').normalize()
        return to_utc_timestamp(value).normalize()
