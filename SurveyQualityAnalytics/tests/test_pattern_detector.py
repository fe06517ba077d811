"""
Tests for correlation, trend, demographic and anomaly pattern detection.
"""

import unittest
from datetime import timedelta

from ..data_processing.models import Question, QuestionType, PatternType
from ..trend_analysis.pattern_detector import PatternDetector
from .fixtures import BASE_TIME, make_response


QUESTIONS = [
    Question(id='q_sat', type=QuestionType.RATING, text='Satisfaction', min_rating=1, max_rating=5),
    Question(id='q_nps', type=QuestionType.NUMBER, text='Score'),
    Question(id='q_plan', type=QuestionType.MULTIPLE_CHOICE, text='Renew plan?',
             options=('yes', 'no')),
    Question(id='q_note', type=QuestionType.TEXT, text='Notes'),
]


def daily_responses(answer_rows, demographics=None):
    """One response per day starting at BASE_TIME, answers taken from ``answer_rows``."""
    return [
        make_response(f'r{i}', submitted_at=BASE_TIME + timedelta(days=i), answers=answers,
                      demographics=demographics[i] if demographics else None)
        for i, answers in enumerate(answer_rows)
    ]


class TestCorrelations(unittest.TestCase):
    """Test cases for question pair correlations."""

    def setUp(self):
        """Set up test fixtures."""
        self.detector = PatternDetector()
        ratings = [1, 2, 3, 4, 5, 1, 2, 3, 4, 5, 1, 2]
        self.responses = daily_responses(
            [{'q_sat': rating, 'q_nps': str(rating * 2), 'q_note': 'ok'} for rating in ratings]
        )

    def test_strong_correlation(self):
        patterns = self.detector.find_correlations(QUESTIONS, self.responses)

        self.assertEqual(len(patterns), 1)
        pattern = patterns[0]
        self.assertEqual(pattern.type, PatternType.CORRELATION)
        self.assertEqual(pattern.questions, ('q_sat', 'q_nps'))
        self.assertAlmostEqual(pattern.supporting_data['correlation_coefficient'], 1.0)
        self.assertEqual(pattern.supporting_data['sample_size'], 12)
        self.assertEqual(pattern.confidence, 100.0)
        self.assertEqual(pattern.statistical_significance, 100.0)
        self.assertIn('strong positive', pattern.description)

    def test_requires_ten_paired_answers(self):
        for response in self.responses[:3]:
            del response.response_data['q_nps']

        self.assertEqual(self.detector.find_correlations(QUESTIONS, self.responses), [])
        self.assertEqual(self.detector.find_correlations(QUESTIONS, self.responses[:9]), [])

    def test_constant_answers_are_not_correlated(self):
        responses = daily_responses([{'q_sat': rating, 'q_nps': 7} for rating in range(1, 6)] * 3)
        self.assertEqual(self.detector.find_correlations(QUESTIONS, responses), [])

    def test_needs_two_numeric_questions(self):
        self.assertEqual(self.detector.find_correlations(QUESTIONS[:1], self.responses), [])


class TestTrends(unittest.TestCase):
    """Test cases for numeric answer trends over time."""

    def setUp(self):
        """Set up test fixtures."""
        self.detector = PatternDetector()

    def test_increasing_answers(self):
        responses = daily_responses([{'q_sat': 3, 'q_nps': day} for day in range(12)])

        patterns = self.detector.analyze_trends(QUESTIONS, responses)

        self.assertEqual(len(patterns), 1)
        self.assertEqual(patterns[0].type, PatternType.TEMPORAL)
        self.assertEqual(patterns[0].questions, ('q_nps',))
        self.assertEqual(patterns[0].supporting_data['trend'], 'increasing')
        self.assertAlmostEqual(patterns[0].supporting_data['slope'], 1.0)
        self.assertEqual(patterns[0].confidence, 100.0)

    def test_too_few_answers(self):
        responses = daily_responses([{'q_nps': day} for day in range(9)])
        self.assertEqual(self.detector.analyze_trends(QUESTIONS, responses), [])


class TestDemographics(unittest.TestCase):
    """Test cases for group differences."""

    def setUp(self):
        """Set up test fixtures."""
        self.detector = PatternDetector()

    def test_numeric_group_gap(self):
        responses = daily_responses(
            [{'q_sat': 5} for _ in range(12)] + [{'q_sat': 2} for _ in range(12)],
            demographics=[{'region': 'north'}] * 12 + [{'region': 'south'}] * 12
        )

        patterns = self.detector.analyze_demographics(QUESTIONS, responses)

        self.assertEqual(len(patterns), 1)
        pattern = patterns[0]
        self.assertEqual(pattern.type, PatternType.DEMOGRAPHIC)
        self.assertEqual(pattern.questions, ('q_sat',))
        self.assertEqual(pattern.supporting_data['demographic_field'], 'region')
        self.assertEqual(pattern.supporting_data['groups'], [
            {'group': 'north', 'mean': 5.0, 'count': 12},
            {'group': 'south', 'mean': 2.0, 'count': 12},
        ])
        self.assertIn('north shows the highest average', pattern.description)

    def test_similar_groups_are_not_reported(self):
        responses = daily_responses(
            [{'q_sat': 4} for _ in range(12)] + [{'q_sat': 4} for _ in range(12)],
            demographics=[{'region': 'north'}] * 12 + [{'region': 'south'}] * 12
        )
        self.assertEqual(self.detector.analyze_demographics(QUESTIONS, responses), [])

    def test_choice_distribution_differs_by_group(self):
        responses = daily_responses(
            [{'q_plan': 'yes'} for _ in range(20)] + [{'q_plan': 'no'} for _ in range(20)],
            demographics=[{'region': 'north'}] * 20 + [{'region': 'south'}] * 20
        )

        patterns = self.detector.analyze_demographics(QUESTIONS, responses)

        self.assertEqual(len(patterns), 1)
        pattern = patterns[0]
        self.assertEqual(pattern.questions, ('q_plan',))
        self.assertEqual(pattern.supporting_data['group'], 'north')
        self.assertEqual(pattern.supporting_data['chi_square'], 20.0)
        self.assertEqual(pattern.supporting_data['p_value'], 0.001)
        self.assertAlmostEqual(pattern.confidence, 99.9)

    def test_balanced_choices_are_not_reported(self):
        answers = [{'q_plan': 'yes'}, {'q_plan': 'no'}] * 20
        regions = [{'region': 'north'}] * 20 + [{'region': 'south'}] * 20
        self.assertEqual(
            self.detector.analyze_demographics(QUESTIONS, daily_responses(answers, regions)), []
        )

    def test_minimum_sizes(self):
        responses = daily_responses(
            [{'q_sat': 5}] * 10 + [{'q_sat': 1}] * 9,
            demographics=[{'region': 'north'}] * 10 + [{'region': 'south'}] * 9
        )
        self.assertEqual(self.detector.analyze_demographics(QUESTIONS, responses), [])

        responses = daily_responses(
            [{'q_sat': 5}] * 15 + [{'q_sat': 1}] * 15,
            demographics=[{'region': 'north'}] * 4 + [{}] * 22 + [{'region': 'south'}] * 4
        )
        self.assertEqual(self.detector.analyze_demographics(QUESTIONS, responses), [])


class TestAnomalies(unittest.TestCase):
    """Test cases for outlying numeric answers."""

    def setUp(self):
        """Set up test fixtures."""
        self.detector = PatternDetector()

    def test_single_outlier(self):
        values = [5] * 8 + [6] * 8 + [7] * 8 + [100]
        responses = daily_responses([{'q_nps': value} for value in values])

        patterns = self.detector.detect_anomalies(QUESTIONS, responses)

        self.assertEqual(len(patterns), 1)
        pattern = patterns[0]
        self.assertEqual(pattern.type, PatternType.ANOMALY)
        self.assertEqual(pattern.supporting_data['anomaly_count'], 1)
        self.assertEqual(pattern.supporting_data['outliers'], [100.0])
        self.assertEqual(pattern.supporting_data['total_responses'], 25)
        self.assertAlmostEqual(pattern.confidence, 20.0)
        self.assertIn('(4.0%)', pattern.description)

    def test_frequent_outliers_are_not_anomalies(self):
        values = [5] * 9 + [6] * 8 + [100] * 3
        responses = daily_responses([{'q_nps': value} for value in values])
        self.assertEqual(self.detector.detect_anomalies(QUESTIONS, responses), [])

    def test_too_few_answers(self):
        values = [5] * 8 + [6] * 8 + [100]
        responses = daily_responses([{'q_nps': value} for value in values])
        self.assertEqual(self.detector.detect_anomalies(QUESTIONS, responses), [])


class TestPatternReport(unittest.TestCase):
    """Test cases for the combined report."""

    def test_detect_patterns(self):
        detector = PatternDetector()
        responses = daily_responses([{'q_sat': 1 + day % 5, 'q_nps': day} for day in range(24)])

        report = detector.detect_patterns('survey-1', QUESTIONS, responses)
        payload = report.to_dict()

        self.assertEqual(report.survey_id, 'survey-1')
        self.assertEqual(len(report.trends), 1)
        self.assertEqual(set(payload), {'surveyId', 'correlations', 'trends',
                                        'demographics', 'anomalies'})
        self.assertEqual(len(report.all_patterns()), sum(
            len(payload[key]) for key in ('correlations', 'trends', 'demographics', 'anomalies')
        ))
        self.assertEqual(payload['trends'][0]['type'], 'temporal')

    def test_empty_survey(self):
        report = PatternDetector().detect_patterns('survey-1', QUESTIONS, [])
        self.assertEqual(report.all_patterns(), [])


if __name__ == '__main__':
    unittest.main()
