"""Sample source for local demo without OAuth."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from skills.application_sync.types import RawMessage


def _sample_messages() -> list[RawMessage]:
    now = datetime.now(timezone.utc)
    return [
        RawMessage(
            id="sample-1",
            thread_id="t1",
            date=now - timedelta(hours=6),
            from_email="Acme Careers <careers@acme.com>",
            subject="Thank you for your application - Backend Engineer",
            snippet="Your application has been received",
            body="Thank you for applying for the Backend Engineer position. Location: Austin, TX. "
            "Job posting: https://boards.greenhouse.io/acme/jobs/123",
        ),
        RawMessage(
            id="sample-2",
            thread_id="t1",
            date=now - timedelta(hours=2),
            from_email="recruiting@acme.com",
            subject="Interview invitation for Backend Engineer",
            snippet="We would like to schedule an interview",
            body="We would like to schedule an interview for your application. Salary range $120k - $150k.",
        ),
        RawMessage(
            id="sample-3",
            thread_id="t2",
            date=now - timedelta(hours=3),
            from_email="no-reply@ashbyhq.com",
            subject="Update on your application to Globex",
            snippet="We regret to inform you",
            body="Unfortunately we will not be moving forward with your application.",
        ),
        RawMessage(
            id="sample-4",
            thread_id="t3",
            date=now - timedelta(hours=1),
            from_email="Weekly Digest <news@jobsletter.com>",
            subject="Your weekly newsletter digest",
            snippet="Top jobs this week",
            body="unsubscribe",
        ),
    ]


class SampleSource:
    def __init__(self, messages: Optional[list[RawMessage]] = None) -> None:
        self._messages = {m.id: m for m in (messages if messages is not None else _sample_messages())}

    def list_candidate_message_ids(self, since: datetime) -> list[str]:
        return [m.id for m in sorted(self._messages.values(), key=lambda m: m.date) if m.date >= since]

    def get_message_details(self, message_id: str) -> Optional[RawMessage]:
        return self._messages.get(message_id)
