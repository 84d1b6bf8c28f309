"""Client-side relevance filter run before any extraction call."""

from __future__ import annotations

import re
from dataclasses import dataclass

from skills.application_sync.types import RawMessage

NEGATIVE_KEYWORDS = [
    "newsletter",
    "digest",
    "subscribe",
    "webinar",
    "marketing",
    "promo",
    "verify your email",
    "reset password",
    "security alert",
    "signin",
    "login",
    "verification code",
]

JOB_SUBJECT_KEYWORDS = [
    "application",
    "applied",
    "interview",
    "offer",
    "candidate",
    "job",
    "career",
    "resume",
    "résumé",
    "cv",
    "hiring",
    "recruitment",
    "talent",
    "position",
]

ATS_SENDER_KEYWORDS = [
    "careers",
    "jobs",
    "talent",
    "recruiting",
    "recruitment",
    "hiring",
    "hr",
    "people",
    "workday",
    "greenhouse",
    "lever",
    "ashby",
    "bamboohr",
    "smartrecruiters",
    "jobvite",
]


@dataclass(slots=True)
class RelevanceDecision:
    keep: bool
    reason: str
    from_domain: str


def extract_domain(from_email: str) -> str:
    m = re.search(r"@([A-Za-z0-9_.-]+)", from_email or "")
    return m.group(1).lower() if m else ""


def _has_any(text: str, needles: list[str]) -> bool:
    return any(n in text for n in needles)


def classify_relevance(msg: RawMessage) -> RelevanceDecision:
    subject = (msg.subject or "").lower()
    sender = (msg.from_email or "").lower()
    body = (msg.body or msg.snippet or "").lower()
    domain = extract_domain(msg.from_email)

    def decide(keep: bool, reason: str) -> RelevanceDecision:
        return RelevanceDecision(keep, reason, domain)

    if _has_any(subject, NEGATIVE_KEYWORDS) or _has_any(sender, NEGATIVE_KEYWORDS):
        return decide(False, "negative_signal")

    subject_hit = _has_any(subject, JOB_SUBJECT_KEYWORDS)
    sender_hit = _has_any(sender, ATS_SENDER_KEYWORDS)

    if subject_hit and sender_hit:
        return decide(True, "subject_and_sender")
    if "thank you" in subject and ("apply" in subject or "application" in subject):
        return decide(True, "thank_you_application")
    if "update" in subject and "application" in subject:
        return decide(True, "application_update")
    if "status" in subject and "application" in subject:
        return decide(True, "application_status")
    if "interview" in subject and ("invitation" in subject or "schedule" in subject):
        return decide(True, "interview_invitation")
    if sender_hit and "application" in body:
        return decide(True, "ats_sender_body")
    return decide(False, "no_signal")


def is_relevant(msg: RawMessage) -> bool:
    return classify_relevance(msg).keep
