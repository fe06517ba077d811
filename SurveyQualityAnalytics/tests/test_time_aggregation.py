"""
Tests for time-bucketed aggregation, heatmap and completion funnel.
"""

import unittest
from datetime import datetime, timedelta, timezone

from ..data_processing.exceptions import ValidationError
from ..data_processing.models import TimePeriod
from ..response_analytics.time_aggregation import TimeAggregator
from .fixtures import BASE_TIME, make_questions, make_response


class TestTimePeriodAggregation(unittest.TestCase):
    """Test cases for dense period counts."""

    def setUp(self):
        """Set up test fixtures."""
        self.aggregator = TimeAggregator()
        self.responses = [
            make_response('r1', submitted_at=BASE_TIME),
            make_response('r2', submitted_at=BASE_TIME - timedelta(days=1)),
            make_response('r3', submitted_at=BASE_TIME - timedelta(days=1, hours=3)),
            make_response('r4', submitted_at=BASE_TIME - timedelta(days=40)),
        ]

    def test_daily_buckets(self):
        buckets = self.aggregator.aggregate_by_time_period(
            self.responses, 'day', BASE_TIME - timedelta(days=2), BASE_TIME
        )

        self.assertEqual([(b.label, b.count) for b in buckets],
                         [('2024-03-13', 0), ('2024-03-14', 2), ('2024-03-15', 1)])
        self.assertEqual(buckets[0].start, datetime(2024, 3, 13, tzinfo=timezone.utc))

    def test_hourly_buckets(self):
        buckets = self.aggregator.aggregate_by_time_period(
            self.responses, TimePeriod.HOUR, BASE_TIME - timedelta(hours=3), BASE_TIME
        )

        self.assertEqual([b.label for b in buckets],
                         ['2024-03-15 09:00', '2024-03-15 10:00',
                          '2024-03-15 11:00', '2024-03-15 12:00'])
        self.assertEqual([b.count for b in buckets], [0, 0, 0, 1])

    def test_weekly_buckets_use_iso_weeks(self):
        buckets = self.aggregator.aggregate_by_time_period(
            self.responses, 'week',
            datetime(2024, 3, 1, tzinfo=timezone.utc), BASE_TIME
        )

        self.assertEqual([(b.label, b.count) for b in buckets],
                         [('2024-W09', 0), ('2024-W10', 0), ('2024-W11', 3)])
        self.assertEqual(buckets[0].start, datetime(2024, 2, 26, tzinfo=timezone.utc))

    def test_iso_week_year_boundary(self):
        buckets = self.aggregator.aggregate_by_time_period(
            [], 'week',
            datetime(2024, 12, 30, tzinfo=timezone.utc), datetime(2024, 12, 31, tzinfo=timezone.utc)
        )
        self.assertEqual([b.label for b in buckets], ['2025-W01'])

    def test_monthly_buckets(self):
        buckets = self.aggregator.aggregate_by_time_period(
            self.responses, 'month',
            datetime(2024, 1, 20, tzinfo=timezone.utc), BASE_TIME
        )

        self.assertEqual([(b.label, b.count) for b in buckets],
                         [('2024-01', 0), ('2024-02', 1), ('2024-03', 3)])

    def test_window_bounds_are_inclusive(self):
        buckets = self.aggregator.aggregate_by_time_period(self.responses, 'day', BASE_TIME, BASE_TIME)
        self.assertEqual(len(buckets), 1)
        self.assertEqual(buckets[0].count, 1)

    def test_naive_bounds_are_utc(self):
        buckets = self.aggregator.aggregate_by_time_period(
            self.responses, 'day', datetime(2024, 3, 14), datetime(2024, 3, 15, 23, 59)
        )
        self.assertEqual([b.count for b in buckets], [2, 1])

    def test_invalid_period(self):
        with self.assertRaises(ValidationError):
            self.aggregator.aggregate_by_time_period(self.responses, 'fortnight',
                                                     BASE_TIME - timedelta(days=1), BASE_TIME)

    def test_inverted_window(self):
        with self.assertRaises(ValidationError):
            self.aggregator.aggregate_by_time_period(self.responses, 'day',
                                                     BASE_TIME, BASE_TIME - timedelta(days=1))


class TestHeatmap(unittest.TestCase):
    """Test cases for the weekday/hour heatmap."""

    def setUp(self):
        """Set up test fixtures."""
        self.aggregator = TimeAggregator()

    def test_grid_shape_and_labels(self):
        heatmap = self.aggregator.generate_heatmap([])

        self.assertEqual(len(heatmap), 7)
        self.assertTrue(all(len(row) == 24 for row in heatmap))
        self.assertEqual(heatmap[0][0].label, 'Sunday 0:00')
        self.assertEqual(heatmap[6][23].label, 'Saturday 23:00')
        self.assertEqual(sum(cell.value for row in heatmap for cell in row), 0)

    def test_counts_by_weekday_and_hour(self):
        responses = [
            make_response('r1', submitted_at=BASE_TIME),
            make_response('r2', submitted_at=BASE_TIME + timedelta(minutes=30)),
            make_response('r3', submitted_at=BASE_TIME - timedelta(days=1, hours=3)),
        ]
        heatmap = self.aggregator.generate_heatmap(responses)

        friday_noon = heatmap[5][12]
        self.assertEqual((friday_noon.x, friday_noon.y, friday_noon.value), (12, 5, 2))
        self.assertEqual(friday_noon.label, 'Friday 12:00')
        self.assertEqual(heatmap[4][9].value, 1)
        self.assertEqual(sum(cell.value for row in heatmap for cell in row), 3)

    def test_window_filter(self):
        responses = [
            make_response('r1', submitted_at=BASE_TIME),
            make_response('r2', submitted_at=BASE_TIME - timedelta(days=10)),
        ]
        heatmap = self.aggregator.generate_heatmap(responses, start=BASE_TIME - timedelta(days=1))
        self.assertEqual(sum(cell.value for row in heatmap for cell in row), 1)


class TestFunnel(unittest.TestCase):
    """Test cases for the completion funnel."""

    def setUp(self):
        """Set up test fixtures."""
        self.aggregator = TimeAggregator()
        self.questions = make_questions()[:3]

    def test_funnel_dropoff(self):
        responses = [
            make_response('r1', answers={'q_choice': 'A', 'q_check': ['x'], 'q_rating': 4}),
            make_response('r2', answers={'q_choice': 'B', 'q_check': ['y']}),
            make_response('r3', answers={'q_choice': 'A'}),
            make_response('r4'),
        ]
        funnel = self.aggregator.calculate_funnel(self.questions, responses)

        self.assertEqual([stage.question_id for stage in funnel], ['q_choice', 'q_check', 'q_rating'])
        self.assertEqual([stage.completion_count for stage in funnel], [3, 2, 1])
        self.assertEqual([stage.completion_rate for stage in funnel], [75.0, 50.0, 25.0])
        self.assertEqual([stage.dropoff_rate for stage in funnel], [0.0, 25.0, 25.0])
        self.assertEqual(funnel[0].question_text, 'Favourite option')

    def test_empty_funnel(self):
        self.assertEqual(self.aggregator.calculate_funnel(self.questions, []), [])


if __name__ == '__main__':
    unittest.main()
