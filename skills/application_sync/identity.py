"""Find the existing application record a message belongs to."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from skills.application_sync.retry import NO_RETRY, RetryPolicy, with_retry
from skills.application_sync.stores.base import RecordStore, all_of, field_equals_formula
from skills.application_sync.types import (
    F_COMPANY,
    F_JOB_URL,
    F_ROLE,
    F_THREAD_ID,
    ApplicationRecord,
    ExtractionCandidate,
    RawMessage,
    is_available,
)

MATCH_POLICIES: tuple[str, ...] = ("thread", "url", "url+company_role")


@dataclass(slots=True)
class Resolution:
    record: Optional[ApplicationRecord]
    duplicate: bool = False
    matched_by: str = ""


class IdentityResolver:
    def __init__(
        self,
        store: RecordStore,
        *,
        match_policy: str = "url",
        retry: RetryPolicy = NO_RETRY,
    ) -> None:
        if match_policy not in MATCH_POLICIES:
            raise ValueError(f"Unsupported match policy: {match_policy}")
        self.store = store
        self.match_policy = match_policy
        self.retry = retry

    def _find(self, formula: str, context: str) -> Optional[ApplicationRecord]:
        return with_retry(lambda: self.store.find_one(formula), self.retry, context)

    def lookup_thread(self, message: RawMessage) -> Optional[ApplicationRecord]:
        if not message.thread_id:
            return None
        return self._find(field_equals_formula(F_THREAD_ID, message.thread_id), "store.find_thread")

    def _heuristic_match(self, candidate: ExtractionCandidate) -> tuple[Optional[ApplicationRecord], str]:
        if self.match_policy == "thread":
            return None, ""
        if is_available(candidate.job_url):
            found = self._find(field_equals_formula(F_JOB_URL, str(candidate.job_url)), "store.find_job_url")
            if found is not None:
                return found, "job_url"
        if self.match_policy == "url+company_role" and is_available(candidate.company) and is_available(candidate.role):
            formula = all_of(
                field_equals_formula(F_COMPANY, str(candidate.company)),
                field_equals_formula(F_ROLE, str(candidate.role)),
            )
            found = self._find(formula, "store.find_company_role")
            if found is not None:
                return found, "company_role"
        return None, ""

    def resolve(
        self,
        message: RawMessage,
        candidate: ExtractionCandidate,
        *,
        thread_record: Optional[ApplicationRecord] = None,
        thread_checked: bool = False,
    ) -> Resolution:
        """Thread id first, then the configured content heuristic.

        Pass ``thread_checked=True`` with the result of an earlier
        ``lookup_thread`` to skip a second store round-trip.
        """
        record = thread_record if thread_checked else self.lookup_thread(message)
        matched_by = "thread" if record is not None else ""
        if record is None:
            record, matched_by = self._heuristic_match(candidate)
        if record is None:
            return Resolution(record=None)
        return Resolution(record=record, duplicate=message.id in record.message_ids, matched_by=matched_by)
