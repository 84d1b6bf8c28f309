"""Gmail read-only source adapter."""

from __future__ import annotations

import base64
import email.utils
import html
import re
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

from skills.application_sync.errors import TransientError
from skills.application_sync.retry import RetryPolicy, with_retry
from skills.application_sync.types import RawMessage

SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]
TOKEN_URI = "https://oauth2.googleapis.com/token"
TRANSIENT_HTTP_CODES = {429, 500, 502, 503, 504}
MAX_BODY_CHARS = 20000
GMAIL_RETRY = RetryPolicy(retries=2, backoff_seconds=0.5, factor=2.0)


def _quote_token(token: str) -> str:
    return f"\"{token}\"" if " " in token else token


def build_query(after: datetime) -> str:
    """Coarse server-side filter; the client-side relevance filter refines it."""
    subject_keywords = ["application", "applied", "interview", "offer", "reject", "screening", "candidate"]
    sender_keywords = ["careers", "jobs", "talent", "recruiting", "noreply", "greenhouse", "lever", "workday"]
    exclude_subject = ["newsletter", "unsubscribe", "digest", "promo", "webinar"]
    seconds = int(after.timestamp())
    return " ".join(
        [
            f"after:{seconds}",
            "(",
            f"subject:({' OR '.join(_quote_token(k) for k in subject_keywords)})",
            f"OR from:({' OR '.join(sender_keywords)})",
            "OR (application AND (received OR confirmed OR submitted))",
            ")",
            f"-subject:({' OR '.join(exclude_subject)})",
        ]
    )


def _headers(payload: dict[str, Any]) -> dict[str, str]:
    return {str(h.get("name", "")).lower(): str(h.get("value", "")) for h in payload.get("headers", []) or []}


def _message_date(raw: str) -> datetime:
    try:
        parsed = email.utils.parsedate_to_datetime(raw) if raw else None
    except (TypeError, ValueError):
        parsed = None
    if parsed is None:
        return datetime.now(timezone.utc)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _decode_part(part: dict[str, Any]) -> str:
    data = str((part.get("body") or {}).get("data", ""))
    if not data:
        return ""
    try:
        raw = base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))
    except (ValueError, TypeError):
        return ""
    return raw.decode("utf-8", errors="ignore")


def _strip_html(text: str) -> str:
    no_script = re.sub(r"<(script|style)[^>]*>.*?</\1>", " ", text, flags=re.I | re.S)
    no_tags = re.sub(r"<[^>]+>", " ", no_script)
    return re.sub(r"\s+", " ", html.unescape(no_tags)).strip()


def _walk_parts(payload: dict[str, Any]) -> Iterator[dict[str, Any]]:
    stack = [payload]
    while stack:
        part = stack.pop(0)
        children = [p for p in part.get("parts", []) or [] if isinstance(p, dict)]
        if children:
            stack[:0] = children
        else:
            yield part


def message_body(payload: dict[str, Any]) -> str:
    """Plain-text parts joined; HTML parts (tag-stripped) only when no plain part exists."""
    plain: list[str] = []
    rich: list[str] = []
    for part in _walk_parts(payload):
        mime = str(part.get("mimeType", "")).lower()
        text = _decode_part(part).strip()
        if not text:
            continue
        if mime.startswith("text/html"):
            rich.append(_strip_html(text))
        elif mime.startswith("text/") or not mime:
            plain.append(text)
    return "\n".join(plain or rich).strip()


def parse_message(raw: dict[str, Any]) -> RawMessage:
    payload = raw.get("payload", {}) or {}
    headers = _headers(payload)
    body = message_body(payload)
    return RawMessage(
        id=str(raw.get("id", "")),
        thread_id=str(raw.get("threadId", raw.get("id", ""))),
        subject=headers.get("subject", "") or "No Subject",
        from_email=headers.get("from", ""),
        to_email=headers.get("to", ""),
        date=_message_date(headers.get("date", "")),
        body=body[:MAX_BODY_CHARS],
        snippet=str(raw.get("snippet", "")),
    )


def _execute(request: Any, context: str, retry: RetryPolicy) -> dict[str, Any]:
    try:
        from googleapiclient.errors import HttpError
    except ImportError as exc:
        raise RuntimeError("Missing Google API dependencies. Install the project requirements") from exc

    def call() -> dict[str, Any]:
        try:
            return request.execute()
        except HttpError as exc:
            status = int(getattr(exc.resp, "status", 0) or 0)
            if status in TRANSIENT_HTTP_CODES:
                raise TransientError(f"Gmail {context} failed ({status})") from exc
            raise
        except (TimeoutError, ConnectionError, OSError) as exc:
            raise TransientError(f"Gmail {context} failed: {exc}") from exc

    return with_retry(call, retry, f"gmail.{context}")


def load_credentials(
    *,
    token_path: Path,
    client_id: str = "",
    client_secret: str = "",
    refresh_token: str = "",
    credentials_path: Optional[Path] = None,
    allow_interactive_auth: bool = False,
) -> Any:
    try:
        from google.auth.transport.requests import Request
        from google.oauth2.credentials import Credentials
    except ImportError as exc:
        raise RuntimeError("Missing Google API dependencies. Install the project requirements") from exc

    creds = None
    if token_path.exists():
        creds = Credentials.from_authorized_user_file(str(token_path), SCOPES)
        print(f"Using Gmail credentials from {token_path}", flush=True)
    elif refresh_token:
        if not client_id or not client_secret:
            raise RuntimeError("GMAIL_CLIENT_ID and GMAIL_CLIENT_SECRET are required with GMAIL_REFRESH_TOKEN")
        creds = Credentials(
            token=None,
            refresh_token=refresh_token,
            token_uri=TOKEN_URI,
            client_id=client_id,
            client_secret=client_secret,
            scopes=SCOPES,
        )

    if creds and creds.valid:
        return creds
    if creds and creds.refresh_token:
        creds.refresh(Request())
        return creds
    if allow_interactive_auth and credentials_path is not None:
        from google_auth_oauthlib.flow import InstalledAppFlow

        flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), SCOPES)
        creds = flow.run_local_server(port=0)
        token_path.parent.mkdir(parents=True, exist_ok=True)
        token_path.write_text(creds.to_json(), encoding="utf-8")
        return creds
    raise RuntimeError("No Gmail credentials found. Run the CLI with --authorize or set GMAIL_REFRESH_TOKEN.")


def _thread_service(creds: Any) -> Any:
    """Gmail client on its own ``httplib2.Http``; one per worker thread."""
    try:
        import google_auth_httplib2
        import httplib2
        from googleapiclient.discovery import build
    except ImportError as exc:
        raise RuntimeError("Missing Google API dependencies. Install the project requirements") from exc
    http = google_auth_httplib2.AuthorizedHttp(creds, http=httplib2.Http())
    return build("gmail", "v1", http=http, cache_discovery=False)


class GmailSource:
    """Gmail adapter. Each calling thread gets its own client from ``service_factory``.

    A ``service`` passed directly is shared by every thread; use it only for
    single-threaded callers and fakes.
    """

    def __init__(
        self,
        service: Any = None,
        *,
        service_factory: Optional[Callable[[], Any]] = None,
        max_messages: int = 500,
        retry: RetryPolicy = GMAIL_RETRY,
    ) -> None:
        if service is None and service_factory is None:
            raise ValueError("GmailSource needs a service or a service_factory")
        self._service_factory = service_factory if service_factory is not None else (lambda: service)
        self._local = threading.local()
        self.max_messages = max_messages
        self.retry = retry

    @classmethod
    def from_credentials(cls, creds: Any, **kwargs: Any) -> "GmailSource":
        return cls(service_factory=lambda: _thread_service(creds), **kwargs)

    @property
    def service(self) -> Any:
        service = getattr(self._local, "service", None)
        if service is None:
            service = self._service_factory()
            self._local.service = service
        return service

    def list_candidate_message_ids(self, since: datetime) -> list[str]:
        query = build_query(since)
        print(f"Gmail query: {query}", flush=True)
        ids: list[str] = []
        page_token = None
        while len(ids) < self.max_messages:
            request = (
                self.service.users()
                .messages()
                .list(userId="me", q=query, maxResults=min(100, self.max_messages - len(ids)), pageToken=page_token)
            )
            response = _execute(request, "list_messages", self.retry)
            ids.extend(str(stub["id"]) for stub in response.get("messages", []) if stub.get("id"))
            page_token = response.get("nextPageToken")
            if not page_token:
                break
        return ids[: self.max_messages]

    def get_message_details(self, message_id: str) -> Optional[RawMessage]:
        request = self.service.users().messages().get(userId="me", id=message_id, format="full")
        raw = _execute(request, "get_message", self.retry)
        if not raw:
            return None
        return parse_message(raw)
