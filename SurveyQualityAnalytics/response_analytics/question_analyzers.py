"""
Per-question-type analytics.

Each question type maps to exactly one analyzer; ``build_analyzer_registry``
refuses to build a registry that leaves a ``QuestionType`` uncovered.
"""

import logging
import math
from numbers import Real
from typing import Dict, List, Optional, Any

import pandas as pd

from ..data_processing.models import (
    Question, QuestionType, QuestionAnalytics, DistributionEntry
)
from ..descriptive_analysis.statistics_engine import StatisticsEngine


ELLIPSIS = '...'
# Separator used when multi-selection answers are exported as one text cell
SELECTION_SEPARATOR = ';'


def is_empty_answer(value: Any) -> bool:
    """Missing, blank, an empty selection, or NaN."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    if isinstance(value, (list, tuple, set)):
        return len(value) == 0
    if isinstance(value, float) and math.isnan(value):
        return True
    return False


def numeric_value(value: Any) -> Optional[float]:
    """Number held by a scalar answer (numeric or numeric text); None otherwise."""
    if isinstance(value, bool):
        return None
    if isinstance(value, Real):
        number = float(value)
        return None if math.isnan(number) else number
    if isinstance(value, str):
        number = pd.to_numeric(value.strip(), errors='coerce')
        return None if pd.isna(number) else float(number)
    return None


def percentage(count: int, total: int, precision: int = 1) -> float:
    if total <= 0:
        return 0.0
    return round(count / total * 100, precision)


class QuestionAnalyzer:
    """Base analyzer: response count and rate only."""

    def __init__(self, precision: int = 1):
        self.precision = precision
        self.logger = logging.getLogger(__name__)

    def analyze(self, question: Question, answers: List[Any], analytics: QuestionAnalytics) -> QuestionAnalytics:
        """
        Fill type-specific fields of ``analytics``.

        ``answers`` holds only the non-empty answers to ``question``.
        """
        return analytics


class ChoiceAnalyzer(QuestionAnalyzer):
    """Single-selection questions (multiple choice, dropdown)."""

    def analyze(self, question, answers, analytics):
        total = len(answers)
        distribution = []
        for option in question.options:
            count = sum(1 for a in answers if a == option)
            distribution.append(DistributionEntry(
                label=option,
                count=count,
                percentage=percentage(count, total, self.precision)
            ))
        analytics.distribution = distribution
        return analytics


class CheckboxAnalyzer(QuestionAnalyzer):
    """
    Multi-selection questions.

    Percentages are relative to the number of respondents, so they can sum
    to more than 100. A text answer that is not itself an option is read as
    a ``'; '``-joined selection list, the form used by CSV exports.
    """

    def analyze(self, question, answers, analytics):
        selections = []
        for answer in answers:
            selections.extend(self.selections(question, answer))

        respondents = len(answers)
        analytics.distribution = [
            DistributionEntry(
                label=option,
                count=selections.count(option),
                percentage=percentage(selections.count(option), respondents, self.precision)
            )
            for option in question.options
        ]
        return analytics

    def selections(self, question: Question, answer: Any) -> List[Any]:
        if isinstance(answer, (list, tuple, set)):
            return list(answer)
        if isinstance(answer, str) and answer not in question.options:
            return [part.strip() for part in answer.split(SELECTION_SEPARATOR) if part.strip()]
        return [answer]


class RatingAnalyzer(QuestionAnalyzer):
    """Rating questions: mean rating and distribution over the rating range."""

    def __init__(self, statistics_engine: StatisticsEngine, precision: int = 1):
        super().__init__(precision)
        self.statistics_engine = statistics_engine

    def analyze(self, question, answers, analytics):
        ratings = self._numeric_ratings(answers)
        low, high = question.rating_range()

        analytics.average_rating = (
            round(self.statistics_engine.mean(ratings), 2) if ratings else None
        )
        counts = pd.Series(ratings, dtype=float).value_counts()
        analytics.distribution = [
            DistributionEntry(
                label=value,
                count=int(counts.get(float(value), 0)),
                percentage=percentage(int(counts.get(float(value), 0)), len(ratings), self.precision)
            )
            for value in range(low, high + 1)
        ]
        return analytics

    def _numeric_ratings(self, answers: List[Any]) -> List[float]:
        ratings = []
        for answer in answers:
            if not isinstance(answer, (str, Real)):
                self.logger.debug(f"Skipping non-scalar rating answer: {answer!r}")
                continue
            value = numeric_value(answer)
            if value is not None:
                ratings.append(value)
        if len(ratings) < len(answers):
            self.logger.debug(f"Ignored {len(answers) - len(ratings)} non-numeric ratings")
        return ratings


class TextAnalyzer(QuestionAnalyzer):
    """Free-text questions: average length and a bounded, truncated sample."""

    def __init__(self, sample_size: int = 5, truncate_length: int = 100, precision: int = 1):
        super().__init__(precision)
        self.sample_size = sample_size
        self.truncate_length = truncate_length

    def analyze(self, question, answers, analytics):
        texts = [a for a in answers if isinstance(a, str) and a.strip()]

        analytics.average_length = (
            round(sum(len(t) for t in texts) / len(texts), self.precision) if texts else 0.0
        )
        analytics.sample_responses = [self.truncate(t) for t in texts[:self.sample_size]]
        return analytics

    def truncate(self, text: str) -> str:
        if len(text) > self.truncate_length:
            return text[:self.truncate_length] + ELLIPSIS
        return text


def build_analyzer_registry(statistics_engine: Optional[StatisticsEngine] = None,
                            text_sample_size: int = 5,
                            text_truncate_length: int = 100,
                            precision: int = 1) -> Dict[QuestionType, QuestionAnalyzer]:
    """
    Map every question type to its analyzer.

    Raises
    ------
    TypeError
        If a question type has no analyzer
    """
    statistics_engine = statistics_engine or StatisticsEngine()
    choice = ChoiceAnalyzer(precision)
    text = TextAnalyzer(text_sample_size, text_truncate_length, precision)
    count_only = QuestionAnalyzer(precision)

    registry = {
        QuestionType.MULTIPLE_CHOICE: choice,
        QuestionType.DROPDOWN: choice,
        QuestionType.CHECKBOX: CheckboxAnalyzer(precision),
        QuestionType.RATING: RatingAnalyzer(statistics_engine, precision),
        QuestionType.TEXT: text,
        QuestionType.TEXTAREA: text,
        QuestionType.NUMBER: count_only,
        QuestionType.DATE: count_only,
        QuestionType.EMAIL: count_only,
    }

    missing = [t.value for t in QuestionType if t not in registry]
    if missing:
        raise TypeError(f"No analyzer registered for question types: {missing}")

    return registry
