"""
Data-access layer for responses, quality rules and the quality audit log.

``ResponseStore`` is the seam between the analytics core and whatever
persists survey data. The default implementation keeps everything in memory;
a database-backed store overrides the same methods. Writes are per record,
so a classification pass persists one response at a time.
"""

import logging
from collections import OrderedDict
from typing import Dict, List, Optional, Iterable, Collection

from .models import ResponseRecord, QualityRule, QualityAuditLogEntry, QualityStatus


class ResponseStore:
    """
    In-memory store for survey responses, quality rules and audit entries.

    The audit log is append-only: entries can be added and read, never
    updated or removed.
    """

    def __init__(self, responses: Optional[Iterable[ResponseRecord]] = None):
        self.logger = logging.getLogger(__name__)
        self._responses: Dict[str, ResponseRecord] = OrderedDict()
        self._rules: Dict[str, QualityRule] = {}
        self._audit_log: List[QualityAuditLogEntry] = []

        if responses:
            self.add_responses(responses)

    # Responses

    def add_response(self, response: ResponseRecord) -> ResponseRecord:
        self._responses[response.id] = response
        return response

    def add_responses(self, responses: Iterable[ResponseRecord]) -> int:
        count = 0
        for response in responses:
            self.add_response(response)
            count += 1
        self.logger.debug(f"Added {count} responses to store")
        return count

    def get_response(self, response_id: str) -> Optional[ResponseRecord]:
        return self._responses.get(response_id)

    def find_responses(self,
                       survey_id: str,
                       statuses: Optional[Collection[Optional[QualityStatus]]] = None,
                       newest_first: bool = False) -> List[ResponseRecord]:
        """
        Fetch a survey's responses.

        Parameters
        ----------
        survey_id : str
            Survey whose responses to return
        statuses : collection, optional
            Keep only responses whose stored status is in this collection;
            ``None`` inside the collection matches never-classified responses
        newest_first : bool, default False
            Sort by ``submitted_at`` descending instead of insertion order
        """
        results = [r for r in self._responses.values() if r.survey_id == survey_id]

        if statuses is not None:
            allowed = set(statuses)
            results = [r for r in results if r.quality_status in allowed]

        if newest_first:
            results.sort(key=lambda r: r.submitted_at, reverse=True)

        return results

    def save_response(self, response: ResponseRecord) -> None:
        self._responses[response.id] = response

    def count_responses(self, survey_id: str) -> int:
        return sum(1 for r in self._responses.values() if r.survey_id == survey_id)

    # Quality rules

    def get_rule(self, survey_id: str) -> Optional[QualityRule]:
        return self._rules.get(survey_id)

    def save_rule(self, rule: QualityRule) -> None:
        self._rules[rule.survey_id] = rule

    # Audit log

    def append_audit_entry(self, entry: QualityAuditLogEntry) -> None:
        self._audit_log.append(entry)

    def audit_entries_for(self, survey_id: str) -> List[QualityAuditLogEntry]:
        """All audit entries of a survey in insertion (chronological) order."""
        return [entry for entry in self._audit_log if entry.survey_id == survey_id]

    def get_audit_log(self, survey_id: str, limit: Optional[int] = 100) -> List[QualityAuditLogEntry]:
        """Audit entries of a survey, newest first."""
        entries = list(reversed(self.audit_entries_for(survey_id)))
        if limit is not None:
            entries = entries[:limit]
        return entries
