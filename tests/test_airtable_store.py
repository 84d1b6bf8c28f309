import io
import json
from urllib.error import HTTPError, URLError
from urllib.parse import parse_qs, urlparse

import pytest

import skills.application_sync.stores.airtable as airtable
from skills.application_sync.errors import TransientError
from skills.application_sync.stores.airtable import AirtableStore


class _FakeResponse:
    def __init__(self, payload):
        self._body = json.dumps(payload).encode("utf-8")

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def _store() -> AirtableStore:
    return AirtableStore(api_key="key-1", base_id="app123", table_name="Job Applications")


def test_find_one_sends_formula_and_parses_record(monkeypatch):
    seen = {}

    def fake_urlopen(req, timeout):
        seen["url"] = req.full_url
        seen["method"] = req.get_method()
        seen["auth"] = req.get_header("Authorization")
        return _FakeResponse(
            {"records": [{"id": "rec1", "fields": {"Company": "Acme", "Gmail Message IDs": "m1\nm2", "Status": "Applied"}}]}
        )

    monkeypatch.setattr(airtable, "urlopen", fake_urlopen)

    record = _store().find_one("{Gmail Thread ID} = 't1'")

    assert record.id == "rec1"
    assert record.company == "Acme"
    assert record.message_ids == ["m1", "m2"]
    parsed = urlparse(seen["url"])
    assert parsed.path == "/v0/app123/Job%20Applications"
    assert parse_qs(parsed.query) == {"filterByFormula": ["{Gmail Thread ID} = 't1'"], "maxRecords": ["1"]}
    assert seen["method"] == "GET"
    assert seen["auth"] == "Bearer key-1"


def test_find_one_returns_none_without_records(monkeypatch):
    monkeypatch.setattr(airtable, "urlopen", lambda req, timeout: _FakeResponse({"records": []}))
    assert _store().find_one("{Job URL} = 'x'") is None


def test_create_posts_typecast_payload(monkeypatch):
    seen = {}

    def fake_urlopen(req, timeout):
        seen["body"] = json.loads(req.data.decode("utf-8"))
        seen["method"] = req.get_method()
        return _FakeResponse({"records": [{"id": "recNew", "fields": {"Company": "Acme"}}]})

    monkeypatch.setattr(airtable, "urlopen", fake_urlopen)

    record = _store().create({"Company": "Acme"})

    assert record.id == "recNew"
    assert seen["method"] == "POST"
    assert seen["body"] == {"records": [{"fields": {"Company": "Acme"}}], "typecast": True}


def test_update_patches_record_url(monkeypatch):
    seen = {}

    def fake_urlopen(req, timeout):
        seen["url"] = req.full_url
        seen["method"] = req.get_method()
        return _FakeResponse({"id": "rec1", "fields": {}})

    monkeypatch.setattr(airtable, "urlopen", fake_urlopen)

    _store().update("rec1", {"Status": "Offer"})

    assert seen["method"] == "PATCH"
    assert seen["url"].endswith("/Job%20Applications/rec1")


def test_rate_limit_is_transient(monkeypatch):
    def fake_urlopen(req, timeout):
        raise HTTPError(req.full_url, 429, "Too Many Requests", {}, io.BytesIO(b'{"error":"RATE_LIMIT"}'))

    monkeypatch.setattr(airtable, "urlopen", fake_urlopen)

    with pytest.raises(TransientError):
        _store().find_one("{Job URL} = 'x'")


def test_network_error_is_transient(monkeypatch):
    def fake_urlopen(req, timeout):
        raise URLError("connection reset")

    monkeypatch.setattr(airtable, "urlopen", fake_urlopen)

    with pytest.raises(TransientError):
        _store().create({"Company": "Acme"})


def test_validation_error_is_permanent(monkeypatch):
    def fake_urlopen(req, timeout):
        raise HTTPError(req.full_url, 422, "Unprocessable", {}, io.BytesIO(b'{"error":"INVALID_VALUE"}'))

    monkeypatch.setattr(airtable, "urlopen", fake_urlopen)

    with pytest.raises(RuntimeError) as excinfo:
        _store().update("rec1", {"Status": "Withdrawn"})
    assert not isinstance(excinfo.value, TransientError)
    assert "422" in str(excinfo.value)


def test_missing_credentials_rejected():
    with pytest.raises(ValueError):
        AirtableStore(api_key="", base_id="app123")
