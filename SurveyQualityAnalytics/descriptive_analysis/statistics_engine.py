"""
Numeric primitives shared by the classifier and the aggregators.

All functions are pure and never raise for empty or short input: a new
survey with no responses is a normal state, so degenerate input returns a
defined sentinel (0, an empty list, or a stable trend with zero confidence).
"""

import logging
import math
import warnings
from typing import List, Sequence, Tuple
import pandas as pd
import numpy as np
from scipy import stats

from ..data_processing.data_loader import to_utc_timestamp
from ..data_processing.models import (
    ChiSquareResult, TimeSeriesPoint, TrendResult, TrendDirection
)


# Critical chi-square values for df=1 and the p-value reported above each
CHI_SQUARE_DF1_TABLE = [
    (10.83, 0.001),
    (6.63, 0.01),
    (3.84, 0.05),
    (2.71, 0.10),
]
DEFAULT_P_VALUE = 0.5


class StatisticsEngine:
    """
    Stateless statistical helpers for survey metrics.

    Features:
    - Central tendency and spread (mean, median, population standard deviation)
    - Pearson correlation
    - Simplified chi-square goodness-of-fit test
    - IQR outlier detection
    - Linear-regression trend classification over time series
    - Heuristic significance scoring
    """

    def __init__(self,
                 exact_p_values: bool = False,
                 stable_slope_threshold: float = 0.01):
        """
        Initialize the StatisticsEngine.

        Parameters
        ----------
        exact_p_values : bool, default False
            Compute chi-square p-values from the chi-square survival function
            instead of the coarse df=1 lookup table
        stable_slope_threshold : float, default 0.01
            Absolute slope (per day) below which a series is reported as stable
        """
        self.exact_p_values = exact_p_values
        self.stable_slope_threshold = stable_slope_threshold
        self.logger = logging.getLogger(__name__)

    def mean(self, data: Sequence[float]) -> float:
        if len(data) == 0:
            return 0.0
        return float(np.mean(np.asarray(data, dtype=float)))

    def median(self, data: Sequence[float]) -> float:
        if len(data) == 0:
            return 0.0
        return float(np.median(np.asarray(data, dtype=float)))

    def standard_deviation(self, data: Sequence[float]) -> float:
        """Population standard deviation; 0 for fewer than two points."""
        if len(data) < 2:
            return 0.0
        return float(np.std(np.asarray(data, dtype=float), ddof=0))

    def correlation(self, data1: Sequence[float], data2: Sequence[float]) -> float:
        """
        Pearson correlation coefficient between two paired samples.

        Returns 0 when the lengths differ, fewer than two pairs are given, or
        the coefficient is undefined (a constant sample). Callers cannot tell
        "insufficient data" apart from "no correlation" from the value alone.
        """
        if len(data1) != len(data2) or len(data1) < 2:
            return 0.0

        x = np.asarray(data1, dtype=float)
        y = np.asarray(data2, dtype=float)

        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            try:
                r, _ = stats.pearsonr(x, y)
            except ValueError as e:
                self.logger.warning(f"Error calculating correlation: {e}")
                return 0.0

        if np.isnan(r):
            return 0.0
        return float(r)

    def chi_square_test(self,
                        observed: Sequence[float],
                        expected: Sequence[float]) -> ChiSquareResult:
        """
        Simplified chi-square goodness-of-fit test.

        Parameters
        ----------
        observed : sequence of float
            Observed frequencies per category
        expected : sequence of float
            Expected frequencies per category; cells with expected <= 0 are skipped

        Returns
        -------
        ChiSquareResult
            Statistic 0 and p-value 1 on length mismatch or empty input.
            Otherwise the p-value comes from a lookup table that only resolves
            df=1 (0.10/0.05/0.01/0.001) and reports 0.5 for everything else,
            unless the engine was built with ``exact_p_values=True``.
        """
        if len(observed) != len(expected) or len(observed) == 0:
            return ChiSquareResult(statistic=0.0, p_value=1.0, degrees_of_freedom=0)

        obs = np.asarray(observed, dtype=float)
        exp = np.asarray(expected, dtype=float)

        mask = exp > 0
        statistic = float(np.sum((obs[mask] - exp[mask]) ** 2 / exp[mask]))
        df = len(obs) - 1

        if self.exact_p_values and df > 0:
            p_value = float(stats.chi2.sf(statistic, df))
            return ChiSquareResult(statistic=statistic, p_value=p_value,
                                   degrees_of_freedom=df, exact_p_value=True)

        return ChiSquareResult(statistic=statistic,
                               p_value=self._chi_square_p_value(statistic, df),
                               degrees_of_freedom=df)

    def _chi_square_p_value(self, statistic: float, df: int) -> float:
        if df != 1:
            return DEFAULT_P_VALUE
        for critical_value, p_value in CHI_SQUARE_DF1_TABLE:
            if statistic > critical_value:
                return p_value
        return DEFAULT_P_VALUE

    def quartiles(self, data: Sequence[float]) -> Tuple[float, float]:
        """First and third quartiles (averaged inverted CDF)."""
        values = np.sort(np.asarray(data, dtype=float))
        q1, q3 = np.quantile(values, [0.25, 0.75], method='averaged_inverted_cdf')
        return float(q1), float(q3)

    def detect_outliers(self, data: Sequence[float]) -> List[float]:
        """
        Detect outliers using the IQR method.

        Values outside ``[Q1 - 1.5*IQR, Q3 + 1.5*IQR]`` are returned in their
        original order. Fewer than four points never yield outliers.
        """
        if len(data) < 4:
            return []

        q1, q3 = self.quartiles(data)
        iqr = q3 - q1
        lower_bound = q1 - 1.5 * iqr
        upper_bound = q3 + 1.5 * iqr

        return [value for value in data if value < lower_bound or value > upper_bound]

    def linear_regression(self,
                          x: Sequence[float],
                          y: Sequence[float]) -> Tuple[float, float, float]:
        """
        Ordinary least squares fit.

        Returns
        -------
        tuple
            (slope, intercept, r_squared); (0, mean(y), 0) when the fit is
            undefined (fewer than two points or all x identical)
        """
        if len(x) != len(y) or len(x) < 2:
            return 0.0, self.mean(y), 0.0

        x_values = np.asarray(x, dtype=float)
        y_values = np.asarray(y, dtype=float)

        if np.all(x_values == x_values[0]):
            return 0.0, self.mean(y), 0.0

        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            result = stats.linregress(x_values, y_values)

        r_squared = float(result.rvalue ** 2) if not np.isnan(result.rvalue) else 0.0
        return float(result.slope), float(result.intercept), r_squared

    def analyze_time_series(self, data: Sequence[TimeSeriesPoint]) -> TrendResult:
        """
        Classify the linear trend of a time series.

        Timestamps are converted to days since the earliest point and fitted
        with ordinary least squares. ``|slope| < stable_slope_threshold`` is
        stable, otherwise the sign decides. Confidence is
        ``min(100, R^2 * 100 * log10(n + 1))``: a heuristic combining fit
        quality and sample size, not a confidence interval.
        """
        if len(data) < 2:
            return TrendResult(trend=TrendDirection.STABLE, slope=0.0,
                               confidence=0.0, n_points=len(data))

        points = sorted(data, key=lambda p: to_utc_timestamp(p.timestamp))
        timestamps = pd.DatetimeIndex([to_utc_timestamp(p.timestamp) for p in points])
        x_values = ((timestamps - timestamps[0]) / pd.Timedelta(days=1)).to_numpy(dtype=float)
        y_values = [float(p.value) for p in points]

        slope, _, r_squared = self.linear_regression(x_values, y_values)

        if abs(slope) < self.stable_slope_threshold:
            trend = TrendDirection.STABLE
        elif slope > 0:
            trend = TrendDirection.INCREASING
        else:
            trend = TrendDirection.DECREASING

        confidence = min(100.0, r_squared * 100 * math.log10(len(points) + 1))

        return TrendResult(trend=trend, slope=slope, confidence=confidence,
                           r_squared=r_squared, n_points=len(points))

    def calculate_significance(self, sample_size: int, effect: float) -> float:
        """
        Heuristic 0-100 significance score.

        ``min(100, max(0, (sample_size / 10) * |effect| * 100))``. This is a
        rough ranking aid, not an inferential test.
        """
        if sample_size < 2:
            return 0.0
        significance = min(100.0, (sample_size / 10) * abs(effect) * 100)
        return max(0.0, significance)
