"""
End-to-end example of response quality control and survey analytics.

This example generates a synthetic customer feedback survey, classifies
responses by completion time, applies a reviewer override, tightens the
quality rule and prints the resulting analytics.
"""

from datetime import datetime, timedelta, timezone

import numpy as np

from SurveyQualityAnalytics import SurveyQualityAnalytics, AnalyticsConfig


QUESTIONS = [
    {'id': 'satisfaction', 'type': 'rating', 'text': 'How satisfied are you overall?',
     'min_rating': 1, 'max_rating': 5, 'required': True},
    {'id': 'channel', 'type': 'multiple_choice', 'text': 'How did you hear about us?',
     'options': ['Search', 'Friend', 'Social media', 'Advertisement']},
    {'id': 'features', 'type': 'checkbox', 'text': 'Which features do you use?',
     'options': ['Reports', 'Dashboards', 'Exports', 'API']},
    {'id': 'comments', 'type': 'textarea', 'text': 'Anything else you would like to tell us?'},
]


def create_sample_responses(survey_id, n_responses=300, days=30):
    """Create synthetic response payloads spread over the trailing days."""
    rng = np.random.default_rng(42)
    now = datetime.now(timezone.utc)

    responses = []
    for i in range(n_responses):
        # Volume grows towards the end of the window
        day_offset = int(days * (1 - rng.power(2)))
        submitted_at = now - timedelta(days=day_offset, hours=int(rng.integers(0, 24)))

        # A share of respondents rush through the survey
        if rng.random() < 0.15:
            completion_time = int(rng.integers(3, 25))
        else:
            completion_time = int(rng.gamma(4, 30))

        answers = {
            'satisfaction': int(rng.choice([1, 2, 3, 4, 5], p=[0.05, 0.10, 0.25, 0.40, 0.20])),
            'channel': str(rng.choice(QUESTIONS[1]['options'])),
            'features': [f for f in QUESTIONS[2]['options'] if rng.random() < 0.4],
        }
        if rng.random() < 0.3:
            answers['comments'] = 'Would love more export formats.' if i % 2 else 'Great tool.'

        responses.append({
            'id': f'resp-{i:04d}',
            'survey_id': survey_id,
            'submitted_at': submitted_at.isoformat(),
            'completion_time': completion_time if rng.random() > 0.05 else None,
            'response_data': answers,
            'demographics': {'region': str(rng.choice(['North', 'South', 'East', 'West']))},
        })

    return responses


def main():
    """Run the quality control and analytics workflow."""
    print("=" * 60)
    print("SURVEY QUALITY ANALYTICS EXAMPLE")
    print("=" * 60)

    survey_id = 'customer-feedback-2024'

    print("\n1. Initializing Survey Quality Analytics...")
    analytics = SurveyQualityAnalytics(config=AnalyticsConfig(log_level='WARNING'))
    analytics.register_survey(survey_id, QUESTIONS)

    print("\n2. Submitting responses...")
    for payload in create_sample_responses(survey_id):
        analytics.submit_response(payload)
    print(f"   - Stored {analytics.store.count_responses(survey_id)} responses")

    print("\n3. Running a classification pass (default 30s threshold)...")
    result = analytics.classify_survey(survey_id)
    print(f"   - Flagged: {result.flagged_count}")
    print(f"   - Quality: {result.quality_count}")
    print(f"   - Without timing data: {result.untimed_count}")

    print("\n4. Reviewer override...")
    flagged = analytics.get_flagged_responses(survey_id)
    if flagged:
        response = analytics.override_classification(
            flagged[0].id, 'reviewer@example.com', 'quality', 'Verified fast but attentive'
        )
        print(f"   - {response.id} overridden ({response.completion_time}s)")

    print("\n5. Tightening the rule to 20 seconds...")
    rule = analytics.update_rules(survey_id, 'owner@example.com', {'min_completion_time': 20})
    print(f"   - Flagged after update: {rule.total_flagged}")
    print(f"   - Overrides recorded: {rule.total_overridden}")
    print(f"   - Latest audit entries:")
    for entry in analytics.get_audit_log(survey_id, limit=3):
        print(f"     * {entry.response_id}: {entry.previous_status.value} -> "
              f"{entry.new_status.value} ({entry.action.value})")

    print("\n6. Quality-only analytics...")
    report = analytics.survey_analytics(survey_id, quality_only=True)
    print(f"   - Responses analyzed: {report.total_responses}")
    print(f"   - Estimated completion rate: {report.completion_rate}%")
    print(f"   - Median completion time: {report.timing_stats.median_completion_time}s")
    print(f"   - Trend: {report.trend.trend.value} (confidence {report.trend.confidence:.1f})")
    satisfaction = report.question_analytics['satisfaction']
    print(f"   - Average satisfaction: {satisfaction.average_rating}")
    for entry in satisfaction.distribution:
        print(f"     * {entry.label}: {entry.count} ({entry.percentage}%)")

    print("\n7. Weekly volume and completion funnel...")
    for bucket in analytics.response_trends(survey_id, 'week', quality_only=True):
        print(f"   - {bucket.label}: {bucket.count}")
    for stage in analytics.response_funnel(survey_id, quality_only=True):
        print(f"   - {stage.question_id}: {stage.completion_rate}% "
              f"(drop-off {stage.dropoff_rate}%)")

    print("\n8. Seven-day forecast...")
    for point in analytics.forecast_responses(survey_id, days_ahead=7):
        print(f"   - {point.date:%Y-%m-%d}: {point.count} "
              f"[{point.confidence_lower}, {point.confidence_upper}]")

    print("\n9. Patterns and survey health...")
    patterns = analytics.detect_patterns(survey_id, quality_only=True)
    for pattern in patterns.all_patterns():
        print(f"   - [{pattern.type.value}] {pattern.description}")
    attention = analytics.attention_score(survey_id)
    print(f"   - Attention score: {attention.attention_score}")
    for issue in attention.issues:
        print(f"     * {issue.severity.value}: {issue.message}")

    print("\nSummary:")
    print(analytics.get_analysis_summary())


if __name__ == '__main__':
    main()
