"""
Pattern detection over a survey's response set.

Finds question pairs whose numeric answers move together, numeric answers
drifting over time, answer differences between respondent groups, and
outlying numeric answers. Every pattern carries a 0-100 confidence used to
rank it; the scores are heuristics built on the StatisticsEngine primitives,
not inferential results.
"""

import itertools
import logging
import math
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

import pandas as pd

from ..data_processing.models import (
    Question, QuestionType, ResponseRecord, Pattern, PatternType, PatternReport,
    TimeSeriesPoint, TrendDirection
)
from ..descriptive_analysis.statistics_engine import StatisticsEngine
from ..response_analytics.question_analyzers import is_empty_answer, numeric_value


NUMERIC_TYPES = (QuestionType.RATING, QuestionType.NUMBER)
CHOICE_TYPES = (QuestionType.MULTIPLE_CHOICE, QuestionType.DROPDOWN)

MIN_CORRELATION_SAMPLES = 10
CORRELATION_THRESHOLD = 0.3
MIN_TREND_SAMPLES = 10
TREND_CONFIDENCE_THRESHOLD = 30.0
MIN_DEMOGRAPHIC_RESPONSES = 20
MIN_GROUPED_RESPONSES = 10
GROUP_DIFFERENCE_THRESHOLD = 0.2
MIN_EXPECTED_FREQUENCY = 5.0
MIN_ANOMALY_SAMPLES = 20
MAX_OUTLIER_SHARE = 0.1
MAX_REPORTED_OUTLIERS = 10


class PatternDetector:
    """
    Detects notable patterns in survey responses.

    Features:
    - Pearson correlations between rating/number questions
    - Linear trends of numeric answers over submission time
    - Group differences by respondent demographics (mean gaps for numeric
      questions, chi-square goodness-of-fit for choice questions)
    - IQR outliers in numeric answers
    """

    def __init__(self,
                 statistics_engine: Optional[StatisticsEngine] = None,
                 max_correlations: int = 5,
                 max_patterns: int = 3):
        """
        Initialize the PatternDetector.

        Parameters
        ----------
        statistics_engine : StatisticsEngine, optional
            Engine providing correlation, trend, outlier and chi-square primitives
        max_correlations : int, default 5
            Number of correlation patterns kept, strongest first
        max_patterns : int, default 3
            Number of trend, demographic and anomaly patterns kept per kind
        """
        self.statistics_engine = statistics_engine or StatisticsEngine()
        self.max_correlations = max_correlations
        self.max_patterns = max_patterns
        self.logger = logging.getLogger(__name__)

    def detect_patterns(self,
                        survey_id: str,
                        questions: Sequence[Question],
                        responses: Sequence[ResponseRecord]) -> PatternReport:
        """Run every detector over a survey's responses."""
        report = PatternReport(
            survey_id=survey_id,
            correlations=self.find_correlations(questions, responses),
            trends=self.analyze_trends(questions, responses),
            demographics=self.analyze_demographics(questions, responses),
            anomalies=self.detect_anomalies(questions, responses)
        )

        self.logger.info(
            f"Detected {len(report.all_patterns())} patterns for survey {survey_id}: "
            f"{len(report.correlations)} correlations, {len(report.trends)} trends, "
            f"{len(report.demographics)} demographic, {len(report.anomalies)} anomalies"
        )

        return report

    def find_correlations(self,
                          questions: Sequence[Question],
                          responses: Sequence[ResponseRecord]) -> List[Pattern]:
        """
        Correlated pairs of rating/number questions.

        Only responses answering both questions numerically are paired. A
        pair needs at least 10 such responses and ``|r| > 0.3``; confidence is
        ``min(100, |r| * 100 * log10(n))``.
        """
        numeric = self._numeric_questions(questions)
        if len(numeric) < 2 or len(responses) < MIN_CORRELATION_SAMPLES:
            return []

        values = self._numeric_frame(numeric, responses)

        patterns = []
        for first, second in itertools.combinations(numeric, 2):
            paired = values[[first.id, second.id]].dropna()
            sample_size = len(paired)
            if sample_size < MIN_CORRELATION_SAMPLES:
                continue

            r = self.statistics_engine.correlation(paired[first.id].tolist(),
                                                   paired[second.id].tolist())
            if abs(r) <= CORRELATION_THRESHOLD:
                continue

            patterns.append(Pattern(
                type=PatternType.CORRELATION,
                questions=(first.id, second.id),
                confidence=min(100.0, abs(r) * 100 * math.log10(sample_size)),
                statistical_significance=self.statistics_engine.calculate_significance(sample_size, r),
                description=self._correlation_description(first, second, r),
                supporting_data={'sample_size': sample_size, 'correlation_coefficient': r}
            ))

        return self._strongest(patterns, self.max_correlations)

    def analyze_trends(self,
                       questions: Sequence[Question],
                       responses: Sequence[ResponseRecord]) -> List[Pattern]:
        """
        Numeric questions whose answers rise or fall over submission time.

        Each question with at least 10 numeric answers is fitted with
        ``StatisticsEngine.analyze_time_series``; fits with confidence above
        30 are reported.
        """
        numeric = self._numeric_questions(questions)
        if not numeric or len(responses) < MIN_TREND_SAMPLES:
            return []

        values = self._numeric_frame(numeric, responses)

        patterns = []
        for question in numeric:
            answered = values[question.id].dropna()
            if len(answered) < MIN_TREND_SAMPLES:
                continue

            points = [TimeSeriesPoint(timestamp=responses[i].submitted_at, value=value)
                      for i, value in answered.items()]
            trend = self.statistics_engine.analyze_time_series(points)

            if trend.confidence <= TREND_CONFIDENCE_THRESHOLD:
                continue

            patterns.append(Pattern(
                type=PatternType.TEMPORAL,
                questions=(question.id,),
                confidence=trend.confidence,
                statistical_significance=trend.confidence,
                description=self._trend_description(question, trend.trend),
                supporting_data={
                    'sample_size': trend.n_points,
                    'slope': trend.slope,
                    'r_squared': trend.r_squared,
                    'trend': trend.trend.value
                }
            ))

        return self._strongest(patterns, self.max_patterns)

    def analyze_demographics(self,
                             questions: Sequence[Question],
                             responses: Sequence[ResponseRecord]) -> List[Pattern]:
        """
        Answer differences between respondent groups.

        Requires at least 20 responses, 10 of which carry demographics.
        Numeric questions are reported when the spread of group means exceeds
        20% of the mean of group means. Choice questions are reported when a
        group's option counts differ significantly (alpha 0.05) from the
        pooled distribution in a chi-square goodness-of-fit test; groups
        with an expected count below 5 in any option are not tested.
        """
        if len(responses) < MIN_DEMOGRAPHIC_RESPONSES:
            return []

        grouped = [r for r in responses if r.demographics]
        if len(grouped) < MIN_GROUPED_RESPONSES:
            return []

        fields = sorted({field for r in grouped for field in r.demographics})

        patterns = []
        for field in fields:
            for question in questions:
                if question.type in NUMERIC_TYPES:
                    pattern = self._group_mean_pattern(field, question, grouped)
                elif question.type in CHOICE_TYPES:
                    pattern = self._group_distribution_pattern(field, question, grouped)
                else:
                    continue
                if pattern is not None:
                    patterns.append(pattern)

        return self._strongest(patterns, self.max_patterns)

    def detect_anomalies(self,
                         questions: Sequence[Question],
                         responses: Sequence[ResponseRecord]) -> List[Pattern]:
        """
        Numeric questions with a small share of outlying answers.

        Needs at least 20 numeric answers. Outliers come from the IQR rule
        and are only reported while they stay below 10% of the answers;
        confidence is ``min(100, share * 500)``.
        """
        numeric = self._numeric_questions(questions)
        if not numeric or len(responses) < MIN_ANOMALY_SAMPLES:
            return []

        values = self._numeric_frame(numeric, responses)

        patterns = []
        for question in numeric:
            answered = values[question.id].dropna().tolist()
            if len(answered) < MIN_ANOMALY_SAMPLES:
                continue

            outliers = self.statistics_engine.detect_outliers(answered)
            share = len(outliers) / len(answered)
            if not outliers or share >= MAX_OUTLIER_SHARE:
                continue

            patterns.append(Pattern(
                type=PatternType.ANOMALY,
                questions=(question.id,),
                confidence=min(100.0, share * 500),
                statistical_significance=min(100.0, share * 500),
                description=(
                    f"Detected {len(outliers)} outlier responses ({share * 100:.1f}%) for "
                    f"\"{question.text or question.id}\" that deviate from the typical pattern."
                ),
                supporting_data={
                    'anomaly_count': len(outliers),
                    'outliers': outliers[:MAX_REPORTED_OUTLIERS],
                    'total_responses': len(answered),
                    'mean': self.statistics_engine.mean(answered),
                    'std_dev': self.statistics_engine.standard_deviation(answered)
                }
            ))

        return self._strongest(patterns, self.max_patterns)

    def _group_mean_pattern(self,
                            field: str,
                            question: Question,
                            responses: Sequence[ResponseRecord]) -> Optional[Pattern]:
        groups: Dict[str, List[float]] = defaultdict(list)
        for response in responses:
            group = response.demographics.get(field)
            value = numeric_value(response.answer_for(question.id))
            if is_empty_answer(group) or value is None:
                continue
            groups[str(group)].append(value)

        if len(groups) < 2:
            return None

        means = {group: self.statistics_engine.mean(values) for group, values in groups.items()}
        spread = max(means.values()) - min(means.values())
        overall = self.statistics_engine.mean(list(means.values()))
        if overall <= 0 or spread / overall <= GROUP_DIFFERENCE_THRESHOLD:
            return None

        total = sum(len(values) for values in groups.values())
        confidence = min(100.0, spread / overall * 100 * math.log10(total))
        highest = max(means, key=means.get)

        return Pattern(
            type=PatternType.DEMOGRAPHIC,
            questions=(question.id,),
            confidence=confidence,
            statistical_significance=confidence,
            description=(
                f"Significant differences found in \"{question.text or question.id}\" across "
                f"{field} groups. {highest} shows the highest average response."
            ),
            supporting_data={
                'demographic_field': field,
                'groups': [{'group': group, 'mean': means[group], 'count': len(groups[group])}
                           for group in sorted(groups)]
            }
        )

    def _group_distribution_pattern(self,
                                    field: str,
                                    question: Question,
                                    responses: Sequence[ResponseRecord]) -> Optional[Pattern]:
        rows = []
        for response in responses:
            group = response.demographics.get(field)
            answer = response.answer_for(question.id)
            if is_empty_answer(group) or answer not in question.options:
                continue
            rows.append((str(group), answer))

        if not rows:
            return None

        answers = pd.DataFrame(rows, columns=['group', 'answer'])
        table = pd.crosstab(answers['group'], answers['answer'])
        table = table.reindex(columns=list(question.options), fill_value=0)
        table = table.loc[:, table.sum(axis=0) > 0]
        if table.shape[0] < 2 or table.shape[1] < 2:
            return None

        shares = table.sum(axis=0) / table.values.sum()

        best = None
        for group, observed in table.iterrows():
            expected = shares * observed.sum()
            if expected.min() < MIN_EXPECTED_FREQUENCY:
                continue
            result = self.statistics_engine.chi_square_test(observed.tolist(), expected.tolist())
            if best is None or result.p_value < best[1].p_value:
                best = (group, result)

        if best is None or not best[1].is_significant():
            return None

        group, result = best
        confidence = (1 - result.p_value) * 100

        return Pattern(
            type=PatternType.DEMOGRAPHIC,
            questions=(question.id,),
            confidence=confidence,
            statistical_significance=confidence,
            description=(
                f"Answers to \"{question.text or question.id}\" from the {group} {field} group "
                f"differ from the overall answer distribution."
            ),
            supporting_data={
                'demographic_field': field,
                'group': group,
                'chi_square': result.statistic,
                'p_value': result.p_value,
                'degrees_of_freedom': result.degrees_of_freedom,
                'sample_size': int(table.values.sum())
            }
        )

    def _numeric_questions(self, questions: Sequence[Question]) -> List[Question]:
        return [question for question in questions if question.type in NUMERIC_TYPES]

    def _numeric_frame(self,
                       questions: Sequence[Question],
                       responses: Sequence[ResponseRecord]) -> pd.DataFrame:
        """One float column per question, one row per response; NaN where unanswered."""
        return pd.DataFrame(
            {question.id: [numeric_value(r.answer_for(question.id)) for r in responses]
             for question in questions},
            index=range(len(responses)),
            dtype=float
        )

    def _strongest(self, patterns: List[Pattern], limit: int) -> List[Pattern]:
        return sorted(patterns, key=lambda p: p.confidence, reverse=True)[:limit]

    def _correlation_description(self, first: Question, second: Question, r: float) -> str:
        if abs(r) > 0.7:
            strength = 'strong'
        elif abs(r) > 0.5:
            strength = 'moderate'
        else:
            strength = 'weak'
        direction = 'positive' if r > 0 else 'negative'
        movement = 'increase together' if r > 0 else 'move in opposite directions'
        return (f"Found a {strength} {direction} correlation between "
                f"\"{first.text or first.id}\" and \"{second.text or second.id}\". "
                f"Responses to these questions tend to {movement}.")

    def _trend_description(self, question: Question, trend: TrendDirection) -> str:
        label = question.text or question.id
        if trend == TrendDirection.INCREASING:
            return f"Responses to \"{label}\" show an increasing trend over time."
        if trend == TrendDirection.DECREASING:
            return f"Responses to \"{label}\" show a decreasing trend over time."
        return f"Responses to \"{label}\" remain relatively stable over time."
