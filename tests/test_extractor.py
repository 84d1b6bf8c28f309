import json
from datetime import datetime, timezone

import skills.application_sync.fallbacks as fallbacks
from skills.application_sync.extractor import extract, find_json_object, parse_oracle_reply
from skills.application_sync.types import UNAVAILABLE, RawMessage, as_text


def _msg(subject: str = "Your application for Data Analyst", from_email: str = "Jobs <jobs@initech.com>", body: str = "") -> RawMessage:
    return RawMessage(
        id="m1",
        thread_id="t1",
        subject=subject,
        from_email=from_email,
        date=datetime(2026, 3, 1, tzinfo=timezone.utc),
        body=body,
    )


def _oracle(reply):
    calls: list[tuple[str, str]] = []

    def complete(system: str, user: str):
        calls.append((system, user))
        return reply

    return complete, calls


def test_find_json_object_skips_prose_and_braces_in_strings():
    text = 'Sure! Here it is:\n```json\n{"company": "Acme", "note": "a } inside"}\n```\nthanks {x}'
    span = find_json_object(text)
    assert json.loads(span) == {"company": "Acme", "note": "a } inside"}


def test_find_json_object_returns_none_without_balanced_span():
    assert find_json_object("no json here") is None
    assert find_json_object('{"company": "Acme"') is None


def test_parse_oracle_reply_rejects_non_text_and_malformed_json():
    assert parse_oracle_reply(None) is None
    assert parse_oracle_reply({"company": "Acme"}) is None
    assert parse_oracle_reply("{company: Acme}") is None
    assert parse_oracle_reply('{"company": "Acme"}') == {"company": "Acme"}


def test_extract_uses_oracle_values_and_normalizes_status():
    reply = json.dumps(
        {
            "company": "Acme",
            "role": "Backend Engineer",
            "status": "Interview",
            "location": "Remote",
            "salary": "$150,000",
            "jobUrl": "https://boards.greenhouse.io/acme/jobs/1",
        }
    )
    complete, calls = _oracle(reply)

    candidate = extract(_msg(), complete)

    assert len(calls) == 1
    assert candidate.company == "Acme"
    assert candidate.role == "Backend Engineer"
    assert candidate.status == "Interviewing"
    assert candidate.event_type == "Interview"
    assert candidate.location == "Remote"
    assert candidate.job_url == "https://boards.greenhouse.io/acme/jobs/1"


def test_extract_falls_back_for_sentinel_and_empty_fields():
    body = "Location: Austin, TX\nSalary $90k - $110k\nPosting: https://jobs.lever.co/initech/1"
    complete, _ = _oracle('{"company": "N/A", "role": "", "status": "weird", "location": "N/A", "salary": "N/A", "jobUrl": "N/A"}')

    candidate = extract(_msg(body=body), complete)

    assert candidate.company == "Initech"
    assert candidate.role == "Data Analyst"
    assert candidate.status == "Applied"
    assert candidate.event_type == "Application Confirmation"
    assert candidate.location == "Austin, TX"
    assert candidate.salary == "$90,000 - $110,000"
    assert candidate.job_url == "https://jobs.lever.co/initech/1"


def test_extract_marks_unavailable_when_fallback_finds_nothing():
    complete, _ = _oracle('{"company": "Acme", "role": "Engineer", "status": "Applied"}')

    candidate = extract(_msg(body="Thanks for applying."), complete)

    assert candidate.location is UNAVAILABLE
    assert candidate.salary is UNAVAILABLE
    assert as_text(candidate.job_url) == "N/A"


def test_oracle_value_skips_fallback(monkeypatch):
    def boom(text):
        raise AssertionError("fallback should not run")

    monkeypatch.setattr(fallbacks, "extract_salary", boom)
    complete, _ = _oracle('{"company": "Acme", "role": "Engineer", "status": "Offer", "salary": "$200k"}')

    candidate = extract(_msg(), complete)

    assert candidate.salary == "$200k"
    assert candidate.status == "Offer"


def test_extract_returns_none_on_unparseable_reply():
    complete, _ = _oracle("I could not find any job details, sorry.")
    assert extract(_msg(), complete) is None


def test_extract_returns_none_on_non_text_reply():
    complete, _ = _oracle(None)
    assert extract(_msg(), complete) is None


def test_body_is_truncated_in_prompt():
    complete, calls = _oracle('{"company": "Acme", "role": "Engineer", "status": "Applied"}')

    extract(_msg(body="x" * 500), complete, max_body_chars=100)

    _, user = calls[0]
    assert "x" * 100 in user
    assert "x" * 101 not in user
