"""
Tests for the StatisticsEngine numeric primitives.
"""

import unittest
from datetime import timedelta

from ..descriptive_analysis.statistics_engine import StatisticsEngine
from ..data_processing.models import TimeSeriesPoint, TrendDirection
from .fixtures import BASE_TIME


class TestCentralTendency(unittest.TestCase):
    """Test cases for mean, median and standard deviation."""

    def setUp(self):
        self.engine = StatisticsEngine()

    def test_empty_input_returns_zero(self):
        self.assertEqual(self.engine.mean([]), 0.0)
        self.assertEqual(self.engine.median([]), 0.0)
        self.assertEqual(self.engine.standard_deviation([]), 0.0)

    def test_standard_deviation_single_point(self):
        self.assertEqual(self.engine.standard_deviation([5]), 0.0)

    def test_population_standard_deviation(self):
        self.assertAlmostEqual(self.engine.standard_deviation([2, 4, 4, 4, 5, 5, 7, 9]), 2.0)

    def test_mean_and_median(self):
        self.assertAlmostEqual(self.engine.mean([10, 45, 5]), 20.0)
        self.assertEqual(self.engine.median([10, 45, 5]), 10.0)
        self.assertEqual(self.engine.median([1, 2, 3, 4]), 2.5)


class TestCorrelationAndChiSquare(unittest.TestCase):
    """Test cases for correlation and the simplified chi-square test."""

    def setUp(self):
        self.engine = StatisticsEngine()

    def test_correlation_insufficient_data(self):
        self.assertEqual(self.engine.correlation([1, 2, 3], [1, 2]), 0.0)
        self.assertEqual(self.engine.correlation([1], [1]), 0.0)

    def test_correlation_perfect(self):
        self.assertAlmostEqual(self.engine.correlation([1, 2, 3, 4], [2, 4, 6, 8]), 1.0)
        self.assertAlmostEqual(self.engine.correlation([1, 2, 3, 4], [8, 6, 4, 2]), -1.0)

    def test_correlation_constant_sample(self):
        self.assertEqual(self.engine.correlation([1, 2, 3], [5, 5, 5]), 0.0)

    def test_chi_square_mismatch(self):
        result = self.engine.chi_square_test([1, 2], [1])
        self.assertEqual(result.statistic, 0.0)
        self.assertEqual(result.p_value, 1.0)

        result = self.engine.chi_square_test([], [])
        self.assertEqual(result.p_value, 1.0)

    def test_chi_square_lookup_table(self):
        result = self.engine.chi_square_test([60, 40], [50, 50])
        self.assertAlmostEqual(result.statistic, 4.0)
        self.assertEqual(result.degrees_of_freedom, 1)
        self.assertEqual(result.p_value, 0.05)
        self.assertTrue(result.is_significant(0.1))
        self.assertFalse(result.exact_p_value)

        result = self.engine.chi_square_test([80, 20], [50, 50])
        self.assertEqual(result.p_value, 0.001)

    def test_chi_square_unresolved_degrees_of_freedom(self):
        result = self.engine.chi_square_test([10, 10, 10], [5, 5, 20])
        self.assertEqual(result.degrees_of_freedom, 2)
        self.assertEqual(result.p_value, 0.5)

    def test_chi_square_skips_zero_expected(self):
        result = self.engine.chi_square_test([5, 5], [0, 5])
        self.assertEqual(result.statistic, 0.0)
        self.assertEqual(result.p_value, 0.5)

    def test_chi_square_exact_p_value(self):
        engine = StatisticsEngine(exact_p_values=True)
        result = engine.chi_square_test([60, 40], [50, 50])
        self.assertTrue(result.exact_p_value)
        self.assertAlmostEqual(result.p_value, 0.0455, places=3)


class TestOutliers(unittest.TestCase):
    """Test cases for IQR outlier detection."""

    def setUp(self):
        self.engine = StatisticsEngine()

    def test_single_outlier(self):
        self.assertEqual(self.engine.detect_outliers([1, 2, 3, 4, 100]), [100])

    def test_too_few_points(self):
        self.assertEqual(self.engine.detect_outliers([1, 2, 1000]), [])

    def test_no_outliers(self):
        self.assertEqual(self.engine.detect_outliers([10, 11, 12, 13, 14]), [])

    def test_quartiles_average_at_boundaries(self):
        self.assertEqual(self.engine.quartiles([1, 2, 3, 4]), (1.5, 3.5))

    def test_outliers_keep_input_order(self):
        data = [-50, 10, 11, 12, 13, 14, 200]
        self.assertEqual(self.engine.detect_outliers(data), [-50, 200])


class TestTimeSeries(unittest.TestCase):
    """Test cases for trend classification and the significance heuristic."""

    def setUp(self):
        self.engine = StatisticsEngine()

    def _series(self, values):
        return [TimeSeriesPoint(timestamp=BASE_TIME + timedelta(days=i), value=v)
                for i, v in enumerate(values)]

    def test_short_series_is_stable(self):
        result = self.engine.analyze_time_series(self._series([5]))
        self.assertEqual(result.trend, TrendDirection.STABLE)
        self.assertEqual(result.slope, 0.0)
        self.assertEqual(result.confidence, 0.0)

    def test_increasing_series(self):
        result = self.engine.analyze_time_series(self._series([2 * i for i in range(10)]))
        self.assertEqual(result.trend, TrendDirection.INCREASING)
        self.assertAlmostEqual(result.slope, 2.0)
        self.assertAlmostEqual(result.r_squared, 1.0)
        self.assertEqual(result.confidence, 100.0)

    def test_decreasing_series(self):
        result = self.engine.analyze_time_series(self._series([20 - i for i in range(5)]))
        self.assertEqual(result.trend, TrendDirection.DECREASING)
        self.assertAlmostEqual(result.slope, -1.0)

    def test_small_slope_is_stable(self):
        result = self.engine.analyze_time_series(self._series([0.005 * i for i in range(10)]))
        self.assertEqual(result.trend, TrendDirection.STABLE)

    def test_constant_series(self):
        result = self.engine.analyze_time_series(self._series([3] * 7))
        self.assertEqual(result.trend, TrendDirection.STABLE)
        self.assertEqual(result.confidence, 0.0)

    def test_identical_timestamps(self):
        points = [TimeSeriesPoint(timestamp=BASE_TIME, value=v) for v in (1, 5, 9)]
        result = self.engine.analyze_time_series(points)
        self.assertEqual(result.trend, TrendDirection.STABLE)
        self.assertEqual(result.slope, 0.0)
        self.assertEqual(result.confidence, 0.0)

    def test_unordered_points_are_sorted(self):
        points = list(reversed(self._series([1, 2, 3, 4])))
        result = self.engine.analyze_time_series(points)
        self.assertEqual(result.trend, TrendDirection.INCREASING)

    def test_string_timestamps(self):
        points = [TimeSeriesPoint(timestamp=f"2024-03-{day:02d}", value=day) for day in range(1, 6)]
        result = self.engine.analyze_time_series(points)
        self.assertAlmostEqual(result.slope, 1.0)

    def test_calculate_significance(self):
        self.assertEqual(self.engine.calculate_significance(1, 0.5), 0.0)
        self.assertAlmostEqual(self.engine.calculate_significance(20, 0.3), 60.0)
        self.assertAlmostEqual(self.engine.calculate_significance(20, -0.3), 60.0)
        self.assertEqual(self.engine.calculate_significance(100, 0.9), 100.0)


if __name__ == '__main__':
    unittest.main()
