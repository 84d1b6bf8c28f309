from datetime import datetime, timedelta, timezone

from skills.application_sync.identity import Resolution
from skills.application_sync.reconcile import history_line, plan_create, plan_update, reconcile
from skills.application_sync.types import UNAVAILABLE, ApplicationRecord, ExtractionCandidate, RawMessage

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def _msg(message_id: str = "m2", subject: str = "Re: your application", date: datetime = NOW) -> RawMessage:
    return RawMessage(
        id=message_id,
        thread_id="t1",
        subject=subject,
        from_email="recruiting@acme.com",
        date=date,
    )


def _candidate(status: str = "Applied", event_type: str = "Application Confirmation", **kwargs) -> ExtractionCandidate:
    values = {"company": "Acme", "role": "Backend Engineer", "status": status, "event_type": event_type}
    values.update(kwargs)
    return ExtractionCandidate(**values)


def _record(**kwargs) -> ApplicationRecord:
    values = {
        "id": "rec1",
        "thread_id": "t1",
        "company": "Acme",
        "role": "Backend Engineer",
        "status": "Applied",
        "location": "N/A",
        "salary": "",
        "job_url": "N/A",
        "applied_date": (NOW - timedelta(days=5)).date().isoformat(),
        "last_email_date": (NOW - timedelta(days=5)).date().isoformat(),
        "message_ids": ["m1"],
        "status_history": [f"{(NOW - timedelta(days=5)).date().isoformat()} - Applied | Thanks for applying"],
    }
    values.update(kwargs)
    return ApplicationRecord(**values)


def test_new_thread_interview_creates_interviewing_record():
    outcome = reconcile(_msg(subject="Interview invitation"), _candidate("Interviewing", "Interview"), Resolution(None), now=NOW)

    assert outcome.action == "created"
    assert outcome.fields["Status"] == "Interviewing"
    assert outcome.fields["Event Type"] == "Interview"
    assert outcome.fields["Gmail Thread ID"] == "t1"
    assert outcome.fields["Gmail Message IDs"] == "m2"
    assert outcome.fields["Date Applied"] == "2026-06-01"
    assert outcome.fields["Status History"] == "2026-06-01 - Interviewing | Interview invitation"
    assert outcome.fields["Location"] == "N/A"


def test_create_stores_withdrawn_as_rejected_by_default():
    outcome = plan_create(_msg(), _candidate("Withdrawn"), now=NOW)
    assert outcome.fields["Status"] == "Rejected"

    native = plan_create(_msg(), _candidate("Withdrawn"), now=NOW, withdrawn_as_rejected=False)
    assert native.fields["Status"] == "Withdrawn"


def test_create_defaults_to_applied_when_status_refused():
    outcome = plan_create(_msg(), _candidate("Unknown"), now=NOW)
    assert outcome.fields["Status"] == "Applied"


def test_same_status_is_noop_but_bookkeeping_still_runs():
    outcome = plan_update(_record(), _msg(), _candidate("Applied"), now=NOW)

    assert outcome.action == "updated"
    assert outcome.reason == "activity_only"
    assert outcome.status_changed is False
    assert "Status" not in outcome.fields
    assert outcome.fields["Last Email Date"] == "2026-06-01"
    assert outcome.fields["Last Email Subject"] == "Re: your application"
    assert outcome.fields["Gmail Message IDs"] == "m1\nm2"


def test_progression_stamps_status_change():
    outcome = plan_update(_record(), _msg(), _candidate("Interviewing", "Interview"), now=NOW)

    assert outcome.reason == "status_progressed"
    assert outcome.fields["Status"] == "Interviewing"
    assert outcome.fields["Last Status Change Date"] == "2026-06-01"
    assert outcome.fields["Event Type"] == "Interview"
    assert outcome.fields["Status History"].splitlines()[-1] == "2026-06-01 - Interviewing | Re: your application"


def test_rejected_record_refuses_offer():
    outcome = plan_update(_record(status="Rejected"), _msg(), _candidate("Offer", "Offer"), now=NOW)
    assert outcome.status_changed is False
    assert "Status" not in outcome.fields


def test_stale_interviewing_record_is_forced_to_ghosted():
    old = NOW - timedelta(days=50)
    record = _record(
        status="Interviewing",
        applied_date=(NOW - timedelta(days=70)).date().isoformat(),
        last_email_date=old.date().isoformat(),
        last_status_change_date=old.date().isoformat(),
    )
    outcome = plan_update(record, _msg(date=old), _candidate("Applied"), now=NOW, ghosting_threshold_days=45)

    assert outcome.fields["Status"] == "Ghosted"
    assert outcome.fields["Event Type"] == "Status Update"


def test_ghosting_does_not_touch_terminal_records():
    old = NOW - timedelta(days=90)
    record = _record(status="Offer", last_email_date=old.date().isoformat(), applied_date=old.date().isoformat())
    outcome = plan_update(record, _msg(date=old), _candidate("Applied"), now=NOW)
    assert "Status" not in outcome.fields


def test_enrichment_is_first_write_wins():
    record = _record(location="Berlin", salary="", job_url="N/A")
    candidate = _candidate(location="Remote", salary="$100,000", job_url="https://jobs.lever.co/acme/1")

    outcome = plan_update(record, _msg(), candidate, now=NOW)

    assert "Location" not in outcome.fields
    assert outcome.fields["Salary"] == "$100,000"
    assert outcome.fields["Job URL"] == "https://jobs.lever.co/acme/1"


def test_unavailable_values_do_not_enrich():
    outcome = plan_update(_record(), _msg(), _candidate(location=UNAVAILABLE), now=NOW)
    assert "Location" not in outcome.fields


def test_replayed_content_does_not_duplicate_history_or_ids():
    message = _msg()
    first = plan_update(_record(), message, _candidate("Applied"), now=NOW)
    replay_record = _record(
        message_ids=first.fields["Gmail Message IDs"].splitlines(),
        status_history=first.fields["Status History"].splitlines(),
    )

    second = plan_update(replay_record, message, _candidate("Applied"), now=NOW)

    assert second.fields["Gmail Message IDs"] == "m1\nm2"
    assert second.fields["Status History"] == first.fields["Status History"]


def test_duplicate_resolution_is_skipped():
    outcome = reconcile(_msg("m1"), _candidate(), Resolution(_record(), duplicate=True), now=NOW)
    assert outcome.action == "skipped"
    assert outcome.reason == "duplicate_message"
    assert outcome.record_id == "rec1"
    assert outcome.fields == {}


def test_missing_candidate_is_skipped():
    outcome = reconcile(_msg(), None, Resolution(None), now=NOW)
    assert outcome.action == "skipped"
    assert outcome.reason == "no_extraction"


def test_history_line_without_subject():
    assert history_line(_msg(subject=""), None) == "2026-06-01 - Applied"
