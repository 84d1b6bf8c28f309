"""LLM-based field extraction with deterministic fallbacks."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any, Optional

from skills.application_sync import fallbacks
from skills.application_sync.status import event_type_for_status, normalize_status
from skills.application_sync.types import (
    ExtractionCandidate,
    OptionalText,
    RawMessage,
    is_available,
)

DEFAULT_MAX_BODY_CHARS = 8000

SYSTEM_PROMPT = (
    "You are a recruitment data parser. Extract structured job application data from one email.\n"
    "Return ONLY a JSON object, with no surrounding prose or code fences, with keys:\n"
    '  "company": string, "role": string,\n'
    '  "status": "Applied" | "Interviewing" | "Offer" | "Rejected" | "Ghosted" | "Withdrawn" | "Unknown",\n'
    '  "location": string, "salary": string, "jobUrl": string\n'
    "Rules:\n"
    '- Use the exact string "N/A" for any field the email does not state. Never guess.\n'
    '- A rejection ("not moving forward", "went with another candidate") is "Rejected".\n'
    '- A new application confirmation is "Applied".\n'
    '- Phone screens, recruiter calls, coding challenges, assessments and onsites are "Interviewing".\n'
    '- An offer or compensation discussion is "Offer".\n'
    '- The candidate withdrawing is "Withdrawn".'
)

CompletionFn = Callable[[str, str], object]


def build_user_prompt(message: RawMessage, max_body_chars: int = DEFAULT_MAX_BODY_CHARS) -> str:
    body = (message.body or message.snippet or "")[:max_body_chars]
    return f"Subject: {message.subject}\nFrom: {message.from_email}\nBody:\n{body}"


def find_json_object(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` span in ``text`` or None."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for idx in range(start, len(text)):
            ch = text[idx]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start : idx + 1]
        start = text.find("{", start + 1)
    return None


def parse_oracle_reply(reply: object) -> Optional[dict[str, Any]]:
    if not isinstance(reply, str):
        return None
    span = find_json_object(reply)
    if span is None:
        return None
    try:
        parsed = json.loads(span)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def build_candidate(parsed: dict[str, Any], message: RawMessage) -> ExtractionCandidate:
    text = "\n".join([message.subject or "", message.body or message.snippet or ""])
    status = normalize_status(parsed.get("status"))
    job_url = parsed.get("jobUrl", parsed.get("job_url"))

    def lazy(value: object, fallback: Callable[[], OptionalText]) -> OptionalText:
        # LLM value wins; the fallback only runs for missing fields.
        return str(value).strip() if is_available(value) else fallback()

    return ExtractionCandidate(
        company=lazy(parsed.get("company"), lambda: fallbacks.company_from_sender(message.from_email, message.subject)),
        role=lazy(parsed.get("role"), lambda: fallbacks.extract_role(message.subject, message.body or message.snippet)),
        status=status,
        event_type=event_type_for_status(status),
        location=lazy(parsed.get("location"), lambda: fallbacks.extract_location(text)),
        salary=lazy(parsed.get("salary"), lambda: fallbacks.extract_salary(text)),
        job_url=lazy(job_url, lambda: fallbacks.extract_url(text)),
    )


def extract(
    message: RawMessage,
    complete: CompletionFn,
    *,
    max_body_chars: int = DEFAULT_MAX_BODY_CHARS,
) -> Optional[ExtractionCandidate]:
    """Extract application facts from one message.

    Returns None when the reply carries no parseable JSON object. Transport
    errors from ``complete`` are left to the caller.
    """
    reply = complete(SYSTEM_PROMPT, build_user_prompt(message, max_body_chars))
    parsed = parse_oracle_reply(reply)
    if parsed is None:
        kind = type(reply).__name__
        print(f"[EXTRACT WARN] message_id={message.id} reason=unparseable_reply reply_type={kind}", flush=True)
        return None
    return build_candidate(parsed, message)
