from pathlib import Path

import skills.application_sync.status as status_module
from skills.application_sync.status import (
    EVENT_APPLICATION,
    EVENT_INTERVIEW,
    EVENT_OFFER,
    EVENT_REJECTION,
    EVENT_STATUS_UPDATE,
    event_type_for_status,
    normalize_status,
    should_update_status,
    status_rank,
    storage_status,
)


def test_normalize_status_precedence():
    assert normalize_status("Rejected") == "Rejected"
    assert normalize_status("offer was declined") == "Rejected"
    assert normalize_status("Offer extended") == "Offer"
    assert normalize_status("compensation discussion") == "Offer"
    assert normalize_status("Ghosted") == "Ghosted"
    assert normalize_status("Withdrawn") == "Withdrawn"
    assert normalize_status("Interview") == "Interviewing"
    assert normalize_status("phone screening") == "Interviewing"
    assert normalize_status("online assessment") == "Interviewing"
    assert normalize_status("Application received") == "Applied"


def test_normalize_status_never_returns_unknown():
    assert normalize_status("Unknown") == "Applied"
    assert normalize_status("") == "Applied"
    assert normalize_status(None) == "Applied"
    assert normalize_status(42) == "Applied"


def test_event_type_follows_status():
    assert event_type_for_status("Offer") == EVENT_OFFER
    assert event_type_for_status("Rejected") == EVENT_REJECTION
    assert event_type_for_status("Interviewing") == EVENT_INTERVIEW
    assert event_type_for_status("Ghosted") == EVENT_STATUS_UPDATE
    assert event_type_for_status("Applied") == EVENT_APPLICATION
    assert event_type_for_status("Withdrawn") == EVENT_APPLICATION


def test_ranks():
    assert status_rank("Applied") == 1
    assert status_rank("Interviewing") == status_rank("Ghosted") == 2
    assert status_rank("Offer") == status_rank("Rejected") == status_rank("Withdrawn") == 3
    assert status_rank("Unknown") == 0
    assert status_rank(None) == 0


def test_should_update_status_refuses_missing_or_unknown_incoming():
    assert should_update_status("Applied", None) is False
    assert should_update_status("Applied", "") is False
    assert should_update_status("Applied", "Unknown") is False


def test_should_update_status_first_write_and_noop():
    assert should_update_status(None, "Applied") is True
    assert should_update_status("", "Interviewing") is True
    assert should_update_status("Applied", "Applied") is False


def test_should_update_status_is_monotonic():
    assert should_update_status("Applied", "Interviewing") is True
    assert should_update_status("Interviewing", "Offer") is True
    assert should_update_status("Interviewing", "Applied") is False
    assert should_update_status("Rejected", "Interviewing") is False


def test_lateral_moves_within_rank_two_are_allowed():
    assert should_update_status("Interviewing", "Ghosted") is True
    assert should_update_status("Ghosted", "Interviewing") is True


def test_terminal_states_never_swap():
    assert should_update_status("Rejected", "Offer") is False
    assert should_update_status("Offer", "Rejected") is False
    assert should_update_status("Offer", "Withdrawn") is False


def test_withdrawn_accepted_from_non_terminal_states():
    assert should_update_status("Applied", "Withdrawn") is True
    assert should_update_status("Interviewing", "Withdrawn") is True


def test_storage_status_maps_withdrawn_by_default():
    assert storage_status("Withdrawn") == "Rejected"
    assert storage_status("Withdrawn", withdrawn_as_rejected=False) == "Withdrawn"
    assert storage_status("Offer") == "Offer"


def test_package_modules_use_absolute_imports():
    package_dir = Path(status_module.__file__).parent
    offenders = [
        str(path.relative_to(package_dir))
        for path in sorted(package_dir.rglob("*.py"))
        if any(line.lstrip().startswith("from .") for line in path.read_text(encoding="utf-8").splitlines())
    ]
    assert offenders == []
