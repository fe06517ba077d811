"""Shared builders for test responses and questions."""

from datetime import datetime, timedelta, timezone

from ..data_processing.models import Question, QuestionType, ResponseRecord


# Friday, 12:00 UTC
BASE_TIME = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


def make_response(response_id, survey_id='survey-1', completion_time=None,
                  submitted_at=None, answers=None, status=None, demographics=None):
    return ResponseRecord(
        id=response_id,
        survey_id=survey_id,
        submitted_at=submitted_at or BASE_TIME,
        response_data=dict(answers or {}),
        completion_time=completion_time,
        quality_status=status,
        demographics=dict(demographics or {})
    )


def make_questions():
    return [
        Question(id='q_choice', type=QuestionType.MULTIPLE_CHOICE, text='Favourite option',
                 options=('A', 'B', 'C')),
        Question(id='q_check', type=QuestionType.CHECKBOX, text='Select all that apply',
                 options=('x', 'y', 'z')),
        Question(id='q_rating', type=QuestionType.RATING, text='Rate us',
                 min_rating=1, max_rating=5),
        Question(id='q_text', type=QuestionType.TEXT, text='Comments'),
        Question(id='q_email', type=QuestionType.EMAIL, text='Email'),
    ]


class StepClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start=BASE_TIME):
        self.current = start

    def __call__(self):
        self.current = self.current + timedelta(seconds=1)
        return self.current
