"""Deterministic field extractors used when the LLM leaves a field empty."""

from __future__ import annotations

import re
from email.utils import parseaddr

from skills.application_sync.types import UNAVAILABLE, OptionalText

PERSONAL_EMAIL_ROOTS = {"gmail", "yahoo", "outlook", "hotmail", "icloud", "protonmail", "noreply", "no-reply"}
INTERMEDIARY_EMAIL_ROOTS = {
    "ashbyhq",
    "greenhouse",
    "greenhouse-mail",
    "icims",
    "jobvite",
    "lever",
    "myworkday",
    "smartrecruiters",
    "workday",
    "bamboohr",
}
SECOND_LEVEL_LABELS = {"co", "com", "ac", "org", "net", "gov", "edu"}
JOB_BOARD_HOST_RE = re.compile(r"greenhouse|lever|workday|jobvite|smartrecruiters|linkedin|indeed|ashbyhq", re.I)
URL_RE = re.compile(r"https?://[^\s<>\"')\]]+", re.I)

SALARY_PATTERNS = [
    re.compile(r"\$\s*(\d{1,3}(?:,\d{3})*(?:\.\d{2})?k?)\s*(?:-|–|to)\s*\$?\s*(\d{1,3}(?:,\d{3})*(?:\.\d{2})?k?)", re.I),
    re.compile(r"(\d{1,3}(?:,\d{3})+)\s*(?:-|–|to)\s*(\d{1,3}(?:,\d{3})+)\s*(?:USD|per year|/year|annually)", re.I),
    re.compile(r"\$\s*(\d{1,3}(?:,\d{3})*(?:\.\d{2})?k?)\b", re.I),
]

LOCATION_PATTERNS = [
    re.compile(r"\blocation\s*:\s*([^\n|;]{2,80}?)(?=\.(?:\s|$)|\s+https?://|[\n|;]|$)", re.I),
    re.compile(r"\b([A-Z][a-zA-Z]+(?: [A-Z][a-zA-Z]+)*),\s*([A-Z]{2})\b"),
    re.compile(r"\b(remote|hybrid|on-?site)\b", re.I),
]

ROLE_PATTERNS = [
    re.compile(r"for (?:the )?role of ([^\n,|]+)", re.I),
    re.compile(r"for (?:the )?position of ([^\n,|]+)", re.I),
    re.compile(r"for (?:the |our )?([^\n,|]{3,80}?) (?:position|role)\b", re.I),
    re.compile(r"application for (?:the )?([^\n,|]+)", re.I),
    re.compile(r"\binterview\b[^\n]*? for (?:the )?([^\n,|]+)", re.I),
]

COMPANY_TEXT_RE = re.compile(r"\b(?:from|at|with|to)\s+([A-Z][A-Za-z0-9&]*(?:\s+[A-Z][A-Za-z0-9&]*)*)")


def _clean(value: str) -> str:
    return re.sub(r"\s+", " ", value).strip(" .,-|:!")


def _expand_k(amount: str) -> str:
    if amount.lower().endswith("k"):
        return amount[:-1] + ",000"
    return amount


def _domain_root(sender: str) -> str:
    _, addr = parseaddr(sender or "")
    addr = addr or sender or ""
    if "@" not in addr:
        return ""
    parts = addr.split("@", 1)[1].strip().lower().rstrip(">").split(".")
    if len(parts) < 2:
        return ""
    if len(parts) >= 3 and len(parts[-1]) == 2 and parts[-2] in SECOND_LEVEL_LABELS:
        return parts[-3]
    return parts[-2]


def company_from_sender(sender: str, subject: str = "") -> OptionalText:
    root = _domain_root(sender)
    if root and root not in PERSONAL_EMAIL_ROOTS and root not in INTERMEDIARY_EMAIL_ROOTS:
        return root[:1].upper() + root[1:]
    m = COMPANY_TEXT_RE.search(subject or "")
    if m:
        name = _clean(m.group(1))
        if name:
            return name
    return UNAVAILABLE


def extract_url(text: str) -> OptionalText:
    matches = [u.rstrip(".,;:") for u in URL_RE.findall(text or "")]
    if not matches:
        return UNAVAILABLE
    for url in matches:
        if JOB_BOARD_HOST_RE.search(url):
            return url
    return matches[0]


def extract_salary(text: str) -> OptionalText:
    for pattern in SALARY_PATTERNS:
        m = pattern.search(text or "")
        if not m:
            continue
        if m.lastindex and m.lastindex >= 2:
            return f"${_expand_k(m.group(1))} - ${_expand_k(m.group(2))}"
        return f"${_expand_k(m.group(1))}"
    return UNAVAILABLE


def extract_location(text: str) -> OptionalText:
    flat = re.sub(r"[ \t]+", " ", text or "")
    for pattern in LOCATION_PATTERNS:
        m = pattern.search(flat)
        if not m:
            continue
        value = _clean(m.group(0) if pattern.groups == 2 else m.group(1))
        if value.lower() in {"remote", "hybrid", "onsite", "on-site"}:
            return value.title()
        if value:
            return value
    return UNAVAILABLE


def extract_role(subject: str, body: str = "") -> OptionalText:
    for text in (subject or "", (body or "")[:2000]):
        for pattern in ROLE_PATTERNS:
            m = pattern.search(text)
            if m:
                role = _clean(m.group(1))
                if role:
                    return role[:120]
    return UNAVAILABLE
