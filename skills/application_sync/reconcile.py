"""Decide how one extracted message changes the application table.

Pure: no store access. ``reconcile`` returns the action plus the exact field
patch; the pipeline writes it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from skills.application_sync.ghosting import DEFAULT_GHOSTING_THRESHOLD_DAYS, is_ghosted
from skills.application_sync.identity import Resolution
from skills.application_sync.status import (
    APPLIED,
    EVENT_STATUS_UPDATE,
    GHOSTED,
    INTERVIEWING,
    should_update_status,
    storage_status,
)
from skills.application_sync.types import (
    F_COMPANY,
    F_DATE_APPLIED,
    F_EVENT_TYPE,
    F_JOB_URL,
    F_LAST_EMAIL_DATE,
    F_LAST_EMAIL_FROM,
    F_LAST_EMAIL_SUBJECT,
    F_LAST_STATUS_CHANGE,
    F_LAST_UPDATED,
    F_LOCATION,
    F_MESSAGE_IDS,
    F_ROLE,
    F_SALARY,
    F_STATUS,
    F_STATUS_HISTORY,
    F_THREAD_ID,
    ApplicationRecord,
    ExtractionCandidate,
    RawMessage,
    SyncOutcome,
    as_text,
    is_available,
)

GHOSTABLE_STATUSES = {APPLIED, INTERVIEWING}


def message_day(message: RawMessage) -> str:
    return message.date.date().isoformat()


def history_line(message: RawMessage, status: Optional[str]) -> str:
    line = f"{message_day(message)} - {status or APPLIED}"
    subject = (message.subject or "").strip()
    if subject:
        line += f" | {subject}"
    return line


def _timestamp(now: datetime) -> str:
    return now.astimezone(timezone.utc).replace(microsecond=0).isoformat()


def plan_create(
    message: RawMessage,
    candidate: ExtractionCandidate,
    *,
    now: datetime,
    withdrawn_as_rejected: bool = True,
) -> SyncOutcome:
    incoming = storage_status(candidate.status, withdrawn_as_rejected=withdrawn_as_rejected)
    status = incoming if should_update_status(None, incoming) else APPLIED
    day = message_day(message)
    fields = {
        F_THREAD_ID: message.thread_id,
        F_COMPANY: as_text(candidate.company),
        F_ROLE: as_text(candidate.role),
        F_STATUS: status,
        F_DATE_APPLIED: day,
        F_LOCATION: as_text(candidate.location),
        F_SALARY: as_text(candidate.salary),
        F_JOB_URL: as_text(candidate.job_url),
        F_MESSAGE_IDS: message.id,
        F_LAST_EMAIL_DATE: day,
        F_LAST_EMAIL_SUBJECT: message.subject,
        F_LAST_EMAIL_FROM: message.from_email,
        F_LAST_STATUS_CHANGE: day,
        F_EVENT_TYPE: candidate.event_type,
        F_STATUS_HISTORY: history_line(message, status),
        F_LAST_UPDATED: _timestamp(now),
    }
    return SyncOutcome(action="created", reason="new_identity", fields=fields, status_changed=True)


def plan_update(
    record: ApplicationRecord,
    message: RawMessage,
    candidate: ExtractionCandidate,
    *,
    now: datetime,
    ghosting_threshold_days: int = DEFAULT_GHOSTING_THRESHOLD_DAYS,
    withdrawn_as_rejected: bool = True,
) -> SyncOutcome:
    incoming: str = candidate.status
    event_type: str = candidate.event_type
    if record.status in GHOSTABLE_STATUSES and is_ghosted(record, message.date, ghosting_threshold_days, now=now):
        incoming = GHOSTED
        event_type = EVENT_STATUS_UPDATE
    incoming = storage_status(incoming, withdrawn_as_rejected=withdrawn_as_rejected)

    day = message_day(message)
    fields: dict[str, str] = {}
    status_changed = should_update_status(record.status, incoming)
    if status_changed:
        fields[F_STATUS] = incoming
        fields[F_LAST_STATUS_CHANGE] = day
        fields[F_EVENT_TYPE] = event_type

    # First write wins; curated values are never replaced.
    for name, current, new in (
        (F_LOCATION, record.location, candidate.location),
        (F_JOB_URL, record.job_url, candidate.job_url),
        (F_SALARY, record.salary, candidate.salary),
    ):
        if not is_available(current) and is_available(new):
            fields[name] = str(new)

    message_ids = list(record.message_ids)
    if message.id not in message_ids:
        message_ids.append(message.id)
    history = list(record.status_history)
    line = history_line(message, incoming)
    if line not in history:
        history.append(line)

    fields.update(
        {
            F_LAST_EMAIL_DATE: day,
            F_LAST_EMAIL_SUBJECT: message.subject,
            F_LAST_EMAIL_FROM: message.from_email,
            F_MESSAGE_IDS: "\n".join(message_ids),
            F_STATUS_HISTORY: "\n".join(history),
            F_LAST_UPDATED: _timestamp(now),
        }
    )
    reason = "status_progressed" if status_changed else "activity_only"
    return SyncOutcome(action="updated", reason=reason, record_id=record.id, fields=fields, status_changed=status_changed)


def reconcile(
    message: RawMessage,
    candidate: Optional[ExtractionCandidate],
    resolution: Resolution,
    *,
    now: Optional[datetime] = None,
    ghosting_threshold_days: int = DEFAULT_GHOSTING_THRESHOLD_DAYS,
    withdrawn_as_rejected: bool = True,
) -> SyncOutcome:
    current_time = now or datetime.now(timezone.utc)
    record = resolution.record
    if resolution.duplicate:
        return SyncOutcome(action="skipped", reason="duplicate_message", record_id=record.id if record else "")
    if candidate is None:
        return SyncOutcome(action="skipped", reason="no_extraction", record_id=record.id if record else "")
    if record is None:
        return plan_create(message, candidate, now=current_time, withdrawn_as_rejected=withdrawn_as_rejected)
    return plan_update(
        record,
        message,
        candidate,
        now=current_time,
        ghosting_threshold_days=ghosting_threshold_days,
        withdrawn_as_rejected=withdrawn_as_rejected,
    )
