"""
Linear forecasting of daily response volume.
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence

import pandas as pd

from ..data_processing.data_loader import to_utc_timestamp
from ..data_processing.exceptions import ValidationError
from ..data_processing.models import TimelineEntry, ForecastPoint, TrendDirection
from ..descriptive_analysis.statistics_engine import StatisticsEngine


MAX_FORECAST_DAYS = 90
# z-score for a two-sided 95% interval
CONFIDENCE_Z = 1.96


class ResponseForecaster:
    """
    Projects daily response counts forward with ordinary least squares.

    Days are indexed by their position in the history, so the history is
    expected to be dense (one entry per day, zeros included), as produced by
    ``AnalyticsAggregator.build_timeline``.
    """

    def __init__(self,
                 statistics_engine: Optional[StatisticsEngine] = None,
                 trend_threshold: float = 0.1):
        self.statistics_engine = statistics_engine or StatisticsEngine()
        self.trend_threshold = trend_threshold
        self.logger = logging.getLogger(__name__)

    def forecast_responses(self,
                           history: Sequence[TimelineEntry],
                           days_ahead: int,
                           end: Optional[datetime] = None) -> List[ForecastPoint]:
        """
        Forecast response counts for the days following the history.

        Parameters
        ----------
        history : sequence of TimelineEntry
            Daily counts, oldest first
        days_ahead : int
            Number of days to forecast, 1-90
        end : datetime, optional
            Day the forecast counts from; defaults to the last history date

        Returns
        -------
        list of ForecastPoint
            One point per future day with a 95% interval of
            ``+/- 1.96 * sigma`` (population standard deviation of the
            history), lower bound clamped at 0. Empty when the history has
            fewer than two days.
        """
        if isinstance(days_ahead, bool) or not isinstance(days_ahead, int):
            raise ValidationError(f"days_ahead must be an integer, got {days_ahead!r}")
        if not 1 <= days_ahead <= MAX_FORECAST_DAYS:
            raise ValidationError(f"days_ahead must be between 1 and {MAX_FORECAST_DAYS}")

        if len(history) < 2:
            self.logger.warning("Not enough history to forecast (need at least 2 days)")
            return []

        counts = [float(entry.count) for entry in history]
        slope, intercept, _ = self.statistics_engine.linear_regression(range(len(counts)), counts)
        margin = CONFIDENCE_Z * self.statistics_engine.standard_deviation(counts)

        base = to_utc_timestamp(end if end is not None else history[-1].date)
        last_index = len(counts) - 1

        forecast = []
        for offset in range(1, days_ahead + 1):
            predicted = max(0, round(slope * (last_index + offset) + intercept))
            forecast.append(ForecastPoint(
                date=(base + pd.Timedelta(days=offset)).to_pydatetime(),
                count=predicted,
                confidence_lower=max(0, round(predicted - margin)),
                confidence_upper=round(predicted + margin)
            ))

        self.logger.info(f"Forecast {days_ahead} days from {len(history)} days of history "
                         f"(slope {slope:.3f}/day)")

        return forecast

    def detect_trend(self, history: Sequence[TimelineEntry]) -> TrendDirection:
        """Direction of the daily count slope, using ``trend_threshold`` as the dead band."""
        if len(history) < 2:
            return TrendDirection.STABLE

        counts = [float(entry.count) for entry in history]
        slope, _, _ = self.statistics_engine.linear_regression(range(len(counts)), counts)

        if slope > self.trend_threshold:
            return TrendDirection.INCREASING
        if slope < -self.trend_threshold:
            return TrendDirection.DECREASING
        return TrendDirection.STABLE
