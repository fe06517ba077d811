"""
Loader for survey question schemas and response collections.

This module turns raw payloads (dicts as delivered by the data-access layer,
JSON exports, CSV exports) into the typed models used by the classifier and
the aggregator, and converts response collections into pandas DataFrames for
time-based aggregation.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union, Tuple, Any, Iterable
import pandas as pd
import numpy as np

from .exceptions import ValidationError
from .models import (
    Question, QuestionType, QuestionValidation, ResponseRecord, QualityStatus,
    QualityFlag, ManualOverride
)


FRAME_COLUMNS = ['response_id', 'survey_id', 'submitted_at', 'completion_time', 'quality_status']


def to_utc_timestamp(value: Any) -> pd.Timestamp:
    """
    Coerce a datetime, ISO string or epoch-seconds value to a UTC Timestamp.

    Naive values are interpreted as UTC.
    """
    if value is None:
        raise ValidationError("Timestamp value is required")

    if isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool):
        return pd.Timestamp(float(value), unit='s', tz='UTC')

    try:
        timestamp = pd.Timestamp(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid timestamp: {value!r}") from e

    if timestamp is pd.NaT:
        raise ValidationError(f"Invalid timestamp: {value!r}")

    if timestamp.tzinfo is None:
        return timestamp.tz_localize('UTC')
    return timestamp.tz_convert('UTC')


def to_utc_datetime(value: Any) -> datetime:
    return to_utc_timestamp(value).to_pydatetime()


class DataLoader:
    """
    Builds typed survey models from raw payloads and files.

    Supports:
    - Question schemas as lists of dicts or JSON files
    - Response collections as lists of dicts, JSON or CSV files
    - Conversion of response collections to DataFrames
    """

    def __init__(self, encoding: str = 'utf-8'):
        """
        Initialize the DataLoader.

        Parameters
        ----------
        encoding : str, default 'utf-8'
            Text encoding for file reading.
        """
        self.encoding = encoding
        self.logger = logging.getLogger(__name__)

        # File format handlers
        self._handlers = {
            '.json': self._load_json,
            '.csv': self._load_csv,
        }

    def load_file(self,
                  file_path: Union[str, Path],
                  survey_id: Optional[str] = None) -> Tuple[List[Question], List[ResponseRecord]]:
        """
        Load questions and responses from a file with format detection.

        Parameters
        ----------
        file_path : str or Path
            Path to a JSON export (``{"questions": [...], "responses": [...]}``
            or a bare list of responses) or a CSV export of responses.
            CSV answers are kept as strings; multi-selection answers exported
            as ``'; '``-joined text are split by the checkbox analyzer.
        survey_id : str, optional
            Survey assigned to responses that do not name one

        Returns
        -------
        tuple
            (questions, responses); questions is empty for CSV input
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"Data file not found: {file_path}")

        extension = file_path.suffix.lower()
        if extension not in self._handlers:
            raise ValidationError(f"Unsupported file format: {extension}")

        self.logger.info(f"Loading survey data from {file_path} (format: {extension})")

        questions, responses = self._handlers[extension](file_path, survey_id)

        self.logger.info(f"Loaded {len(questions)} questions and {len(responses)} responses")

        return questions, responses

    def _load_json(self, file_path: Path, survey_id: Optional[str] = None) -> Tuple[List[Question], List[ResponseRecord]]:
        with open(file_path, 'r', encoding=self.encoding) as f:
            json_data = json.load(f)

        if isinstance(json_data, list):
            return [], self.load_responses(json_data, survey_id=survey_id)
        elif isinstance(json_data, dict):
            survey_id = json_data.get('survey_id') or survey_id
            questions = self.load_questions(json_data.get('questions', []))
            responses = self.load_responses(json_data.get('responses', []), survey_id=survey_id)
            return questions, responses
        else:
            raise ValidationError("Unsupported JSON structure")

    def _load_csv(self, file_path: Path, survey_id: Optional[str] = None) -> Tuple[List[Question], List[ResponseRecord]]:
        # Answers stay text so option labels such as "1" keep matching; only
        # blank cells count as missing
        data = pd.read_csv(file_path, encoding=self.encoding, dtype=str,
                           keep_default_na=False, na_values=[''])

        records = []
        metadata_columns = {'id', 'survey_id', 'submitted_at', 'completion_time', 'quality_status'}
        answer_columns = [col for col in data.columns if col not in metadata_columns]

        for row in data.to_dict(orient='records'):
            answers = {
                col: row[col] for col in answer_columns
                if not (isinstance(row[col], float) and np.isnan(row[col]))
            }
            payload = {key: row[key] for key in metadata_columns
                       if key in row and not pd.isna(row[key])}
            payload['response_data'] = answers
            records.append(payload)

        return [], self.load_responses(records, survey_id=survey_id)

    def load_questions(self, payloads: Iterable[Dict[str, Any]]) -> List[Question]:
        """Build Question objects from schema dicts."""
        return [self.parse_question(payload) for payload in payloads]

    def parse_question(self, payload: Dict[str, Any]) -> Question:
        if 'id' not in payload or 'type' not in payload:
            raise ValidationError(f"Question definition requires 'id' and 'type': {payload!r}")

        try:
            question_type = QuestionType(payload['type'])
        except ValueError as e:
            raise ValidationError(f"Unknown question type: {payload['type']!r}") from e

        validation = None
        if payload.get('validation'):
            rules = payload['validation']
            validation = QuestionValidation(
                min_length=rules.get('minLength', rules.get('min_length')),
                max_length=rules.get('maxLength', rules.get('max_length')),
                min_value=rules.get('min', rules.get('min_value')),
                max_value=rules.get('max', rules.get('max_value'))
            )

        return Question(
            id=str(payload['id']),
            type=question_type,
            text=payload.get('text', payload.get('question', '')),
            required=bool(payload.get('required', False)),
            options=tuple(payload.get('options') or ()),
            min_rating=payload.get('min_rating'),
            max_rating=payload.get('max_rating'),
            validation=validation
        )

    def load_responses(self,
                       payloads: Iterable[Dict[str, Any]],
                       survey_id: Optional[str] = None) -> List[ResponseRecord]:
        """Build ResponseRecord objects from raw response dicts."""
        return [self.parse_response(payload, survey_id=survey_id) for payload in payloads]

    def parse_response(self, payload: Dict[str, Any], survey_id: Optional[str] = None) -> ResponseRecord:
        response_id = payload.get('id', payload.get('_id'))
        if response_id is None:
            raise ValidationError(f"Response record requires an 'id': {payload!r}")

        record_survey_id = payload.get('survey_id') or survey_id
        if record_survey_id is None:
            raise ValidationError(f"Response {response_id} has no survey_id")

        answers = payload.get('response_data') or {}
        # Some submissions nest answers under 'responses' next to client metadata
        if isinstance(answers, dict) and isinstance(answers.get('responses'), dict):
            answers = answers['responses']

        status = payload.get('quality_status')
        if status is not None and not (isinstance(status, float) and np.isnan(status)):
            try:
                status = QualityStatus(status)
            except ValueError as e:
                raise ValidationError(f"Unknown quality status: {status!r}") from e
        else:
            status = None

        flags = [
            QualityFlag(
                flag_type=flag['flag_type'],
                flagged_at=to_utc_datetime(flag['flagged_at']),
                threshold_value=flag['threshold_value']
            )
            for flag in payload.get('quality_flags') or []
        ]

        override = None
        if payload.get('manual_override'):
            raw = payload['manual_override']
            intended = raw.get('intended_status')
            override = ManualOverride(
                overridden_by=str(raw.get('overridden_by', raw.get('by'))),
                overridden_at=to_utc_datetime(raw.get('overridden_at', raw.get('at'))),
                reason=raw.get('reason'),
                intended_status=QualityStatus(intended) if intended else None
            )

        return ResponseRecord(
            id=str(response_id),
            survey_id=str(record_survey_id),
            submitted_at=to_utc_datetime(payload.get('submitted_at')),
            response_data=dict(answers),
            completion_time=self._parse_completion_time(payload.get('completion_time')),
            quality_status=status,
            quality_flags=flags,
            manual_override=override,
            demographics=dict(payload.get('demographics') or {})
        )

    def _parse_completion_time(self, value: Any) -> Optional[int]:
        """Completion time in whole seconds; missing or unparseable values become None."""
        if value is None or value == '':
            return None
        if isinstance(value, float) and np.isnan(value):
            return None

        numeric = pd.to_numeric(value, errors='coerce')
        if pd.isna(numeric):
            self.logger.warning(f"Ignoring non-numeric completion time: {value!r}")
            return None

        return int(numeric)

    def responses_to_frame(self,
                           responses: Iterable[ResponseRecord],
                           include_answers: bool = False) -> pd.DataFrame:
        """
        Convert a response collection into a DataFrame.

        Parameters
        ----------
        responses : iterable of ResponseRecord
            Responses to convert
        include_answers : bool, default False
            Add one column per answered question id

        Returns
        -------
        pd.DataFrame
            One row per response with a tz-aware UTC ``submitted_at`` column
        """
        rows = []
        for response in responses:
            row = {
                'response_id': response.id,
                'survey_id': response.survey_id,
                'submitted_at': response.submitted_at,
                'completion_time': response.completion_time,
                'quality_status': response.quality_status.value if response.quality_status else None
            }
            if include_answers:
                for question_id, answer in response.response_data.items():
                    row.setdefault(question_id, answer)
            rows.append(row)

        frame = pd.DataFrame(rows, columns=None if include_answers and rows else FRAME_COLUMNS)
        frame['submitted_at'] = pd.to_datetime(frame['submitted_at'], utc=True)
        frame['completion_time'] = pd.to_numeric(frame['completion_time'], errors='coerce')

        return frame
