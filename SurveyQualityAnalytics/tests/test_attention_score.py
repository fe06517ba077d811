"""
Tests for survey attention scoring.
"""

import unittest
from datetime import timedelta

from ..data_processing.models import (
    Question, QuestionType, AttentionIssue, AttentionIssueType, Severity
)
from ..trend_analysis.attention_score import AttentionScorer
from .fixtures import BASE_TIME, make_response


QUESTIONS = [
    Question(id='q1', type=QuestionType.TEXT, text='First'),
    Question(id='q2', type=QuestionType.TEXT, text='Second'),
    Question(id='q3', type=QuestionType.TEXT, text='Third'),
]
FULL_ANSWERS = {'q1': 'a', 'q2': 'b', 'q3': 'c'}


def responses(count, answers=FULL_ANSWERS, days_ago=1):
    return [
        make_response(f'r{i}', answers=answers,
                      submitted_at=BASE_TIME - timedelta(days=days_ago, minutes=i))
        for i in range(count)
    ]


class TestAttentionScorer(unittest.TestCase):
    """Test cases for issue detection and scoring."""

    def setUp(self):
        """Set up test fixtures."""
        self.scorer = AttentionScorer()

    def issue_types(self, items, now=BASE_TIME):
        issues = self.scorer.identify_issues(QUESTIONS, items, now=now)
        return [(issue.type, issue.severity) for issue in issues]

    def test_healthy_survey(self):
        report = self.scorer.assess('survey-1', QUESTIONS, responses(6), now=BASE_TIME)

        self.assertEqual(report.attention_score, 0)
        self.assertEqual(report.issues, [])
        self.assertEqual(report.recommendations, [])

    def test_low_completion_and_dropoff(self):
        items = responses(6, answers={'q1': 'a'})

        report = self.scorer.assess('survey-1', QUESTIONS, items, now=BASE_TIME)

        self.assertEqual([(i.type, i.severity) for i in report.issues], [
            (AttentionIssueType.LOW_COMPLETION, Severity.HIGH),
            (AttentionIssueType.HIGH_DROPOFF, Severity.HIGH),
        ])
        self.assertEqual(report.issues[0].message, 'Survey has a low completion rate of 33.3%')
        self.assertEqual(report.issues[1].message, 'High drop-off rate (100.0%) at question 2')
        self.assertEqual(report.attention_score, 80)
        self.assertEqual(len(report.recommendations), 5)

    def test_medium_completion(self):
        items = responses(6, answers={'q1': 'a', 'q2': 'b'})

        issues = self.scorer.identify_issues(QUESTIONS, items, now=BASE_TIME)

        self.assertEqual(issues[0].severity, Severity.MEDIUM)
        self.assertIn('66.7%', issues[0].message)
        self.assertEqual(issues[1].message, 'High drop-off rate (100.0%) at question 3')
        self.assertEqual(self.scorer.calculate_score(issues), 65)

    def test_dropoff_needs_more_than_five_responses(self):
        self.assertEqual(self.issue_types(responses(5, answers={'q1': 'a'})),
                         [(AttentionIssueType.LOW_COMPLETION, Severity.HIGH)])

    def test_no_recent_responses(self):
        self.assertEqual(self.issue_types(responses(6, days_ago=10)),
                         [(AttentionIssueType.NO_RESPONSES, Severity.HIGH)])

    def test_slow_responses(self):
        items = responses(9, days_ago=20) + responses(3, days_ago=2)
        self.assertEqual(self.issue_types(items),
                         [(AttentionIssueType.SLOW_RESPONSE, Severity.MEDIUM)])

    def test_recent_window_uses_clock(self):
        scorer = AttentionScorer(clock=lambda: BASE_TIME + timedelta(days=30))
        issues = scorer.identify_issues(QUESTIONS, responses(6))
        self.assertEqual([issue.type for issue in issues], [AttentionIssueType.NO_RESPONSES])

    def test_empty_survey(self):
        report = self.scorer.assess('survey-1', QUESTIONS, [], now=BASE_TIME)
        self.assertEqual(report.attention_score, 0)
        self.assertIsNone(self.scorer.completion_rate(QUESTIONS, []))

    def test_no_questions_skips_completion(self):
        self.assertIsNone(self.scorer.completion_rate([], responses(3)))
        self.assertEqual(self.scorer.identify_issues([], responses(3), now=BASE_TIME), [])

    def test_score_is_capped(self):
        issues = [AttentionIssue(AttentionIssueType.NO_RESPONSES, Severity.HIGH, 'x')] * 3
        self.assertEqual(self.scorer.calculate_score(issues), 100)
        self.assertEqual(self.scorer.calculate_score([
            AttentionIssue(AttentionIssueType.SLOW_RESPONSE, Severity.LOW, 'x')
        ]), 10)

    def test_recommendations_are_unique(self):
        issues = [AttentionIssue(AttentionIssueType.LOW_COMPLETION, Severity.HIGH, 'x'),
                  AttentionIssue(AttentionIssueType.LOW_COMPLETION, Severity.MEDIUM, 'y')]
        self.assertEqual(self.scorer.generate_recommendations(issues), [
            'Consider shortening the survey or making questions optional',
            'Review question clarity and simplify complex questions',
        ])

    def test_to_dict(self):
        report = self.scorer.assess('survey-1', QUESTIONS, responses(6, days_ago=10), now=BASE_TIME)
        payload = report.to_dict()

        self.assertEqual(payload['attentionScore'], 40)
        self.assertEqual(payload['issues'][0]['type'], 'no_responses')
        self.assertEqual(payload['issues'][0]['severity'], 'high')


if __name__ == '__main__':
    unittest.main()
