"""Airtable REST adapter for the application record table."""

from __future__ import annotations

import json
from typing import Any, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request as UrlRequest
from urllib.request import urlopen

from skills.application_sync.errors import TransientError
from skills.application_sync.types import ApplicationRecord

AIRTABLE_BASE = "https://api.airtable.com/v0"
TRANSIENT_HTTP_CODES = {429, 500, 502, 503, 504}


class AirtableStore:
    def __init__(self, *, api_key: str, base_id: str, table_name: str = "Applications", timeout_sec: int = 30) -> None:
        if not api_key or not base_id:
            raise ValueError("Airtable api_key and base_id are required")
        self.api_key = api_key
        self.base_id = base_id
        self.table_name = table_name
        self.timeout_sec = timeout_sec

    @property
    def table_url(self) -> str:
        return f"{AIRTABLE_BASE}/{self.base_id}/{quote(self.table_name, safe='')}"

    def _request_json(self, method: str, url: str, payload: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = UrlRequest(
            url,
            data=data,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            method=method,
        )
        try:
            with urlopen(req, timeout=self.timeout_sec) as resp:
                body = json.loads(resp.read().decode("utf-8"))
        except HTTPError as exc:
            raw = exc.read().decode("utf-8", errors="ignore")
            if exc.code in TRANSIENT_HTTP_CODES:
                raise TransientError(f"Airtable {method} failed ({exc.code}): {raw[:300]}") from exc
            raise RuntimeError(f"Airtable {method} failed ({exc.code}): {raw[:300]}") from exc
        except (URLError, TimeoutError) as exc:
            raise TransientError(f"Airtable {method} failed: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise RuntimeError(f"Airtable {method} returned invalid JSON") from exc

        if not isinstance(body, dict):
            raise RuntimeError("Airtable response is not a JSON object")
        return body

    def find_one(self, formula: str) -> Optional[ApplicationRecord]:
        query = urlencode({"filterByFormula": formula, "maxRecords": "1"})
        payload = self._request_json("GET", f"{self.table_url}?{query}")
        records = payload.get("records", [])
        if not isinstance(records, list) or not records:
            return None
        first = records[0]
        return ApplicationRecord.from_fields(str(first.get("id", "")), first.get("fields", {}) or {})

    def create(self, fields: dict[str, str]) -> ApplicationRecord:
        payload = self._request_json("POST", self.table_url, {"records": [{"fields": fields}], "typecast": True})
        records = payload.get("records", [])
        if not isinstance(records, list) or not records:
            raise RuntimeError("Airtable create response is missing records")
        created = records[0]
        return ApplicationRecord.from_fields(str(created.get("id", "")), created.get("fields", {}) or fields)

    def update(self, record_id: str, fields: dict[str, str]) -> None:
        self._request_json("PATCH", f"{self.table_url}/{record_id}", {"fields": fields, "typecast": True})
