"""Application status vocabulary, ranks and the transition rule."""

from __future__ import annotations

from typing import Optional

from skills.application_sync.types import EventType, Status

APPLIED: Status = "Applied"
INTERVIEWING: Status = "Interviewing"
OFFER: Status = "Offer"
REJECTED: Status = "Rejected"
GHOSTED: Status = "Ghosted"
WITHDRAWN: Status = "Withdrawn"
UNKNOWN: Status = "Unknown"

STATUS_RANK: dict[str, int] = {
    APPLIED: 1,
    INTERVIEWING: 2,
    GHOSTED: 2,
    OFFER: 3,
    REJECTED: 3,
    WITHDRAWN: 3,
}
TERMINAL_RANK = 3

EVENT_APPLICATION: EventType = "Application Confirmation"
EVENT_INTERVIEW: EventType = "Interview"
EVENT_OFFER: EventType = "Offer"
EVENT_REJECTION: EventType = "Rejection"
EVENT_STATUS_UPDATE: EventType = "Status Update"

EVENT_BY_STATUS: dict[str, EventType] = {
    OFFER: EVENT_OFFER,
    REJECTED: EVENT_REJECTION,
    INTERVIEWING: EVENT_INTERVIEW,
    GHOSTED: EVENT_STATUS_UPDATE,
}

# Checked in order; first hit wins.
STATUS_KEYWORDS: list[tuple[Status, tuple[str, ...]]] = [
    (REJECTED, ("reject", "decline", "unsuccessful")),
    (OFFER, ("offer", "compensation")),
    (GHOSTED, ("ghost",)),
    (WITHDRAWN, ("withdraw",)),
    (INTERVIEWING, ("interview", "screen", "challenge", "onsite", "assessment")),
    (APPLIED, ("applied", "received", "submitted", "application")),
]


def status_rank(status: Optional[str]) -> int:
    return STATUS_RANK.get(status or "", 0)


def normalize_status(raw: object) -> Status:
    """Map a free-text status label onto the closed vocabulary (never Unknown)."""
    s = str(raw or "").strip().lower()
    for status, needles in STATUS_KEYWORDS:
        if any(n in s for n in needles):
            return status
    return APPLIED


def event_type_for_status(status: str) -> EventType:
    return EVENT_BY_STATUS.get(status, EVENT_APPLICATION)


def should_update_status(current: Optional[str], incoming: Optional[str]) -> bool:
    if not incoming or incoming == UNKNOWN:
        return False
    if not current:
        return True
    if current == incoming:
        return False
    current_rank = status_rank(current)
    incoming_rank = status_rank(incoming)
    # Terminal outcomes are mutually exclusive.
    if current_rank == TERMINAL_RANK and incoming_rank == TERMINAL_RANK:
        return False
    return incoming_rank >= current_rank


def storage_status(status: str, *, withdrawn_as_rejected: bool = True) -> str:
    """Status value as written to the store.

    The store's Status column historically has no Withdrawn option, so by
    default a withdrawal is persisted as Rejected. Set
    ``withdrawn_as_rejected=False`` once the column accepts Withdrawn.
    """
    if status == WITHDRAWN and withdrawn_as_rejected:
        return REJECTED
    return status
