"""Public typed contracts for application_sync."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Optional, Union

Status = Literal["Applied", "Interviewing", "Offer", "Rejected", "Ghosted", "Withdrawn", "Unknown"]
EventType = Literal["Application Confirmation", "Interview", "Offer", "Rejection", "Status Update"]
SyncAction = Literal["created", "updated", "skipped"]

SENTINEL_TEXT = "N/A"


class Unavailable:
    """Marker for a field the message did not provide (distinct from "")."""

    _instance: Optional["Unavailable"] = None

    def __new__(cls) -> "Unavailable":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNAVAILABLE"

    def __str__(self) -> str:
        return SENTINEL_TEXT


UNAVAILABLE = Unavailable()

OptionalText = Union[str, Unavailable]


def is_available(value: object) -> bool:
    if value is None or isinstance(value, Unavailable):
        return False
    text = str(value).strip()
    return bool(text) and text.lower() not in {"n/a", "not available"}


def as_text(value: OptionalText) -> str:
    return str(value) if is_available(value) else SENTINEL_TEXT


@dataclass(slots=True)
class RawMessage:
    id: str
    thread_id: str
    subject: str
    from_email: str
    date: datetime
    to_email: str = ""
    body: str = ""
    snippet: str = ""


@dataclass(slots=True)
class ExtractionCandidate:
    company: OptionalText
    role: OptionalText
    status: Status
    event_type: EventType
    location: OptionalText = UNAVAILABLE
    salary: OptionalText = UNAVAILABLE
    job_url: OptionalText = UNAVAILABLE


# Store column names; the record store is an opaque keyed table.
F_COMPANY = "Company"
F_ROLE = "Role"
F_STATUS = "Status"
F_DATE_APPLIED = "Date Applied"
F_LOCATION = "Location"
F_SALARY = "Salary"
F_JOB_URL = "Job URL"
F_THREAD_ID = "Gmail Thread ID"
F_MESSAGE_IDS = "Gmail Message IDs"
F_LAST_EMAIL_DATE = "Last Email Date"
F_LAST_EMAIL_SUBJECT = "Last Email Subject"
F_LAST_EMAIL_FROM = "Last Email From"
F_LAST_STATUS_CHANGE = "Last Status Change Date"
F_EVENT_TYPE = "Event Type"
F_STATUS_HISTORY = "Status History"
F_LAST_UPDATED = "Last Updated"


def split_lines(raw: object) -> list[str]:
    if not raw:
        return []
    if isinstance(raw, (list, tuple)):
        items = [str(v) for v in raw]
    else:
        items = str(raw).splitlines()
    return [item.strip() for item in items if item and item.strip()]


@dataclass(slots=True)
class ApplicationRecord:
    id: str
    thread_id: str = ""
    company: str = ""
    role: str = ""
    status: str = ""
    location: str = ""
    salary: str = ""
    job_url: str = ""
    applied_date: str = ""
    last_email_date: str = ""
    last_email_subject: str = ""
    last_email_from: str = ""
    last_status_change_date: str = ""
    event_type: str = ""
    message_ids: list[str] = field(default_factory=list)
    status_history: list[str] = field(default_factory=list)
    last_updated: str = ""

    @classmethod
    def from_fields(cls, record_id: str, fields: dict[str, Any]) -> "ApplicationRecord":
        def text(name: str) -> str:
            value = fields.get(name)
            return "" if value is None else str(value)

        return cls(
            id=record_id,
            thread_id=text(F_THREAD_ID),
            company=text(F_COMPANY),
            role=text(F_ROLE),
            status=text(F_STATUS),
            location=text(F_LOCATION),
            salary=text(F_SALARY),
            job_url=text(F_JOB_URL),
            applied_date=text(F_DATE_APPLIED),
            last_email_date=text(F_LAST_EMAIL_DATE),
            last_email_subject=text(F_LAST_EMAIL_SUBJECT),
            last_email_from=text(F_LAST_EMAIL_FROM),
            last_status_change_date=text(F_LAST_STATUS_CHANGE),
            event_type=text(F_EVENT_TYPE),
            message_ids=list(dict.fromkeys(split_lines(fields.get(F_MESSAGE_IDS)))),
            status_history=split_lines(fields.get(F_STATUS_HISTORY)),
            last_updated=text(F_LAST_UPDATED),
        )

    def to_fields(self) -> dict[str, str]:
        return {
            F_THREAD_ID: self.thread_id,
            F_COMPANY: self.company,
            F_ROLE: self.role,
            F_STATUS: self.status,
            F_LOCATION: self.location,
            F_SALARY: self.salary,
            F_JOB_URL: self.job_url,
            F_DATE_APPLIED: self.applied_date,
            F_LAST_EMAIL_DATE: self.last_email_date,
            F_LAST_EMAIL_SUBJECT: self.last_email_subject,
            F_LAST_EMAIL_FROM: self.last_email_from,
            F_LAST_STATUS_CHANGE: self.last_status_change_date,
            F_EVENT_TYPE: self.event_type,
            F_MESSAGE_IDS: "\n".join(self.message_ids),
            F_STATUS_HISTORY: "\n".join(self.status_history),
            F_LAST_UPDATED: self.last_updated,
        }


@dataclass(slots=True)
class SyncOutcome:
    action: SyncAction
    reason: str
    record_id: str = ""
    fields: dict[str, str] = field(default_factory=dict)
    status_changed: bool = False
