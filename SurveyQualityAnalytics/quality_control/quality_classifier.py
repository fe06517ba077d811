"""
Response quality classification with an append-only audit trail.

Responses answered faster than a survey's minimum completion time are
classified as low quality. A reviewer can override any classification; an
overridden response is never reclassified automatically afterwards. Every
status change after the initial default is recorded in the audit log.
"""

import logging
import threading
import weakref
from datetime import datetime
from typing import Dict, List, Optional, Union, Any, Callable

from ..data_processing.exceptions import ValidationError, NotFoundError
from ..data_processing.models import (
    ResponseRecord, QualityRule, QualityAuditLogEntry, QualityFlag, ManualOverride,
    QualityStatus, AuditAction, ClassificationResult, COMPLETION_TIME_FLAG,
    DEFAULT_MIN_COMPLETION_TIME, MIN_COMPLETION_TIME_BOUNDS, utc_now
)
from ..data_processing.response_store import ResponseStore


UPDATABLE_RULE_FIELDS = ('min_completion_time', 'custom_rules')
OVERRIDE_TARGET_STATUSES = (QualityStatus.QUALITY, QualityStatus.LOW_QUALITY)


class QualityClassifier:
    """
    Completion-time based quality classification for survey responses.

    Features:
    - Full-survey classification passes that are idempotent per response
    - Sticky manual overrides
    - Rule updates that always trigger reclassification
    - Quality-filtered response retrieval
    - Append-only audit log of status transitions

    Rule updates and classification passes on the same survey are serialised
    with a per-survey lock; different surveys proceed independently.
    """

    def __init__(self,
                 store: ResponseStore,
                 default_min_completion_time: float = DEFAULT_MIN_COMPLETION_TIME,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize the QualityClassifier.

        Parameters
        ----------
        store : ResponseStore
            Data-access collaborator holding responses, rules and the audit log
        default_min_completion_time : float, default 30
            Threshold used when a rule is created without one, or when a
            submission is classified for a survey that has no rule yet
        clock : callable, optional
            Returns the current time; defaults to timezone-aware UTC now
        """
        self.store = store
        self.default_min_completion_time = default_min_completion_time
        self.clock = clock or utc_now
        self.logger = logging.getLogger(__name__)

        self._locks_guard = threading.Lock()
        # Entries live only while some caller holds a reference to the lock
        self._survey_locks: weakref.WeakValueDictionary = weakref.WeakValueDictionary()

    def _survey_lock(self, survey_id: str) -> threading.RLock:
        """Lock serialising work on one survey, created on first use."""
        with self._locks_guard:
            lock = self._survey_locks.get(survey_id)
            if lock is None:
                lock = threading.RLock()
                self._survey_locks[survey_id] = lock
            return lock

    def classify(self, survey_id: str, rule: QualityRule) -> ClassificationResult:
        """
        Classify every response of a survey against a quality rule.

        Parameters
        ----------
        survey_id : str
            Survey whose responses are classified
        rule : QualityRule
            Rule in force; its ``total_flagged`` is overwritten with this
            pass's flagged count and the rule is persisted

        Returns
        -------
        ClassificationResult
            Counts over the whole pass. Responses without a positive
            completion time are kept as quality but counted as untimed, not
            in ``quality_count``. Overridden responses are skipped.
        """
        with self._survey_lock(survey_id):
            responses = self.store.find_responses(survey_id)

            flagged_count = 0
            quality_count = 0
            untimed_count = 0
            overridden_count = 0

            for response in responses:
                if response.quality_status == QualityStatus.MANUALLY_OVERRIDDEN:
                    overridden_count += 1
                    continue

                new_status = self._apply_rule(response, rule)

                if new_status == QualityStatus.LOW_QUALITY:
                    flagged_count += 1
                elif response.has_timing:
                    quality_count += 1
                else:
                    untimed_count += 1

            rule.total_flagged = flagged_count
            rule.updated_at = self.clock()
            self.store.save_rule(rule)

            result = ClassificationResult(
                total_classified=len(responses),
                flagged_count=flagged_count,
                quality_count=quality_count,
                untimed_count=untimed_count,
                overridden_count=overridden_count
            )

            self.logger.info(
                f"Classified {result.total_classified} responses for survey {survey_id}: "
                f"{flagged_count} flagged, {quality_count} quality, {untimed_count} untimed, "
                f"{overridden_count} overridden (threshold {rule.min_completion_time}s)"
            )

            return result

    def _apply_rule(self, response: ResponseRecord, rule: QualityRule) -> QualityStatus:
        """Classify one response, record flag and audit entry, persist it."""
        previous_status = response.current_status()
        threshold = rule.min_completion_time

        if response.has_timing and response.completion_time < threshold:
            new_status = QualityStatus.LOW_QUALITY
            if not response.has_flag(COMPLETION_TIME_FLAG):
                response.quality_flags.append(QualityFlag(
                    flag_type=COMPLETION_TIME_FLAG,
                    flagged_at=self.clock(),
                    threshold_value=threshold
                ))
        else:
            new_status = QualityStatus.QUALITY

        if previous_status != new_status:
            self.store.append_audit_entry(QualityAuditLogEntry(
                response_id=response.id,
                survey_id=response.survey_id,
                user_id=rule.user_id,
                action=AuditAction.FLAGGED,
                previous_status=previous_status,
                new_status=new_status,
                completion_time=response.completion_time or 0,
                threshold_at_time=threshold,
                timestamp=self.clock()
            ))
            self.logger.debug(
                f"Response {response.id}: {previous_status.value} -> {new_status.value}"
            )

        response.quality_status = new_status
        self.store.save_response(response)

        return new_status

    def classify_response(self, response_id: str) -> QualityStatus:
        """
        Classify a single (typically just submitted) response.

        Uses the survey's rule if one exists, otherwise the default threshold
        without creating a rule. When a rule exists its ``total_flagged`` is
        recomputed from the survey's current statuses.
        """
        response = self.store.get_response(response_id)
        if response is None:
            raise NotFoundError(f"Response not found: {response_id}")

        with self._survey_lock(response.survey_id):
            if response.quality_status == QualityStatus.MANUALLY_OVERRIDDEN:
                return response.quality_status

            rule = self.store.get_rule(response.survey_id)
            if rule is None:
                status = self._apply_rule(response, QualityRule(
                    survey_id=response.survey_id,
                    min_completion_time=self.default_min_completion_time
                ))
            else:
                status = self._apply_rule(response, rule)
                rule.total_flagged = len(self.get_flagged_responses(response.survey_id))
                self.store.save_rule(rule)

            return status

    def override_classification(self,
                                response_id: str,
                                user_id: str,
                                new_status: Union[QualityStatus, str],
                                reason: Optional[str] = None) -> ResponseRecord:
        """
        Manually override a response's classification.

        The stored status always becomes ``manually_overridden`` so that
        later passes leave the response alone. The reviewer's intended status
        is kept on the override record and in the audit entry.

        Parameters
        ----------
        response_id : str
            Response to override
        user_id : str
            Reviewer performing the override
        new_status : QualityStatus or str
            Intended classification, ``quality`` or ``low_quality``
        reason : str, optional
            Free-text justification

        Returns
        -------
        ResponseRecord
            The updated response
        """
        intended_status = self._parse_override_status(new_status)

        response = self.store.get_response(response_id)
        if response is None:
            raise NotFoundError(f"Response not found: {response_id}")

        with self._survey_lock(response.survey_id):
            previous_status = response.current_status()
            rule = self.store.get_rule(response.survey_id)
            now = self.clock()

            response.quality_status = QualityStatus.MANUALLY_OVERRIDDEN
            response.manual_override = ManualOverride(
                overridden_by=user_id,
                overridden_at=now,
                reason=reason,
                intended_status=intended_status
            )
            self.store.save_response(response)

            self.store.append_audit_entry(QualityAuditLogEntry(
                response_id=response.id,
                survey_id=response.survey_id,
                user_id=user_id,
                action=AuditAction.OVERRIDDEN,
                previous_status=previous_status,
                new_status=intended_status,
                reason=reason,
                completion_time=response.completion_time or 0,
                threshold_at_time=rule.min_completion_time if rule else 0,
                timestamp=now
            ))

            if rule is not None:
                rule.total_overridden += 1
                self.store.save_rule(rule)
            else:
                self.logger.debug(f"No quality rule for survey {response.survey_id}; "
                                  f"override counter not updated")

            self.logger.info(
                f"Response {response.id} overridden by {user_id} "
                f"({previous_status.value} -> {intended_status.value})"
            )

            return response

    def _parse_override_status(self, status: Union[QualityStatus, str]) -> QualityStatus:
        try:
            parsed = QualityStatus(status)
        except ValueError as e:
            raise ValidationError(
                f'Invalid status {status!r}. Must be "quality" or "low_quality"'
            ) from e

        if parsed not in OVERRIDE_TARGET_STATUSES:
            raise ValidationError(
                f'Invalid status {parsed.value!r}. Must be "quality" or "low_quality"'
            )
        return parsed

    def update_rules(self,
                     survey_id: str,
                     user_id: str,
                     updates: Dict[str, Any]) -> QualityRule:
        """
        Create or update a survey's quality rule and reclassify all responses.

        Parameters
        ----------
        survey_id : str
            Survey whose rule is updated
        user_id : str
            User making the change; becomes the owner of a newly created rule
        updates : dict
            Fields to change: ``min_completion_time`` (seconds, 5-3600) and/or
            ``custom_rules``

        Returns
        -------
        QualityRule
            The persisted rule, with counters from the reclassification pass
        """
        self._validate_rule_updates(updates)

        with self._survey_lock(survey_id):
            rule = self.store.get_rule(survey_id)

            if rule is None:
                min_time = updates.get('min_completion_time')
                rule = QualityRule(
                    survey_id=survey_id,
                    user_id=user_id,
                    min_completion_time=min_time if min_time is not None
                    else self.default_min_completion_time,
                    custom_rules=list(updates.get('custom_rules') or [])
                )
                self.logger.info(f"Created quality rule for survey {survey_id}")
            else:
                if updates.get('min_completion_time') is not None:
                    rule.min_completion_time = updates['min_completion_time']
                if updates.get('custom_rules') is not None:
                    rule.custom_rules = list(updates['custom_rules'])
                self.logger.info(f"Updated quality rule for survey {survey_id}")

            rule.updated_at = self.clock()
            self.store.save_rule(rule)

            self.classify(survey_id, rule)

            return rule

    def _validate_rule_updates(self, updates: Dict[str, Any]) -> None:
        unknown = set(updates) - set(UPDATABLE_RULE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown quality rule fields: {sorted(unknown)}")

        min_time = updates.get('min_completion_time')
        if min_time is not None:
            low, high = MIN_COMPLETION_TIME_BOUNDS
            if isinstance(min_time, bool) or not isinstance(min_time, (int, float)):
                raise ValidationError("Minimum completion time must be a number of seconds")
            if min_time < low or min_time > high:
                raise ValidationError(
                    f"Minimum completion time must be between {low} and {high} seconds"
                )

        custom_rules = updates.get('custom_rules')
        if custom_rules is not None and not isinstance(custom_rules, list):
            raise ValidationError("custom_rules must be a list")

    def get_quality_filtered_responses(self,
                                       survey_id: str,
                                       include_quality: bool = True,
                                       include_low_quality: bool = False) -> List[ResponseRecord]:
        """
        Select responses by quality classification, newest first.

        Quality covers ``quality``, ``manually_overridden`` and
        never-classified responses; low quality covers ``low_quality`` only.
        Both flags false returns an empty list, both true returns everything.
        """
        if not include_quality and not include_low_quality:
            return []

        if include_quality and include_low_quality:
            statuses = None
        elif include_quality:
            statuses = (QualityStatus.QUALITY, QualityStatus.MANUALLY_OVERRIDDEN, None)
        else:
            statuses = (QualityStatus.LOW_QUALITY,)

        return self.store.find_responses(survey_id, statuses=statuses, newest_first=True)

    def get_flagged_responses(self, survey_id: str) -> List[ResponseRecord]:
        return self.store.find_responses(
            survey_id, statuses=(QualityStatus.LOW_QUALITY,), newest_first=True
        )

    def get_quality_rules(self, survey_id: str) -> Optional[QualityRule]:
        return self.store.get_rule(survey_id)

    def get_audit_log(self, survey_id: str, limit: int = 100) -> List[QualityAuditLogEntry]:
        return self.store.get_audit_log(survey_id, limit=limit)

    def count_flagged_from_audit_log(self, survey_id: str) -> int:
        """
        Number of responses whose latest audit transition left them low quality.

        Derived from the audit trail alone, so it does not depend on the
        ``total_flagged`` counter kept on the rule.
        """
        latest: Dict[str, QualityAuditLogEntry] = {}
        for entry in self.store.audit_entries_for(survey_id):
            latest[entry.response_id] = entry

        return sum(
            1 for entry in latest.values()
            if entry.action == AuditAction.FLAGGED and entry.new_status == QualityStatus.LOW_QUALITY
        )
