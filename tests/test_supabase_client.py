"""Tests for the PostgREST client: count parsing, query encoding and error wrapping."""

from __future__ import annotations

import json
from http.client import RemoteDisconnected
from io import BytesIO
from urllib.error import HTTPError, URLError

import pytest

from backend.db.supabase_client import SupabaseClient, SupabaseRequestError, SupabaseSettings


def _build_client() -> SupabaseClient:
    return SupabaseClient(
        SupabaseSettings(url="https://example.supabase.co", service_role_key="service-role")
    )


class _Response:
    def __init__(self, body: bytes = b"[]", headers: dict[str, str] | None = None) -> None:
        self._body = body
        self.headers = headers or {}

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def read(self) -> bytes:
        return self._body


def test_get_rows_uses_doseq_for_repeated_query_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client()

    def _fake_urlopen(request):
        assert "amount=gte.40" in request.full_url
        assert "amount=lte.100" in request.full_url
        assert request.get_header("Prefer") == "return=representation"
        return _Response()

    monkeypatch.setattr("backend.db.supabase_client.urlopen", _fake_urlopen)

    rows, total = client.get_rows(
        table="transactions",
        query=[("amount", "gte.40"), ("amount", "lte.100")],
        with_count=False,
    )

    assert rows == []
    assert total is None


def test_get_rows_parses_exact_count_from_content_range(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client()

    def _fake_urlopen(request):
        assert request.get_header("Prefer") == "count=exact"
        return _Response(b'[{"id": "a"}]', headers={"Content-Range": "0-0/42"})

    monkeypatch.setattr("backend.db.supabase_client.urlopen", _fake_urlopen)

    rows, total = client.get_rows(table="transactions", query={"select": "*"}, with_count=True)

    assert rows == [{"id": "a"}]
    assert total == 42


def test_get_rows_includes_status_and_body_on_http_error(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client()

    def _raise_http_error(_request):
        raise HTTPError(
            url="https://example.supabase.co/rest/v1/transactions",
            code=400,
            msg="Bad Request",
            hdrs=None,
            fp=BytesIO(b"Bad Request from Supabase"),
        )

    monkeypatch.setattr("backend.db.supabase_client.urlopen", _raise_http_error)

    with pytest.raises(SupabaseRequestError, match="status 400") as error:
        client.get_rows(table="transactions", query={"select": "*"}, with_count=False)

    assert "Bad Request from Supabase" in str(error.value)
    assert error.value.status_code == 400


def test_get_rows_wraps_connection_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client()

    def _raise_url_error(_request):
        raise URLError("connection refused")

    monkeypatch.setattr("backend.db.supabase_client.urlopen", _raise_url_error)

    with pytest.raises(SupabaseRequestError) as error:
        client.get_rows(table="transactions", query={"select": "*"}, with_count=False)

    assert error.value.status_code is None


@pytest.mark.parametrize(
    "error",
    [
        RemoteDisconnected("Remote end closed connection without response"),
        ConnectionResetError("reset by peer"),
        TimeoutError("timed out"),
    ],
)
def test_response_side_connection_failures_are_wrapped(monkeypatch: pytest.MonkeyPatch, error: Exception) -> None:
    client = _build_client()

    def _fail(_request):
        raise error

    monkeypatch.setattr("backend.db.supabase_client.urlopen", _fail)

    with pytest.raises(SupabaseRequestError) as get_error:
        client.get_rows(table="transactions", query={"select": "*"}, with_count=True)
    with pytest.raises(SupabaseRequestError):
        client.post_rows(table="transactions", payload={"amount": 1, "type": "credit"})

    assert get_error.value.status_code is None


def test_post_rows_sends_json_body_and_prefer_header(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client()

    def _fake_urlopen(request):
        assert request.get_method() == "POST"
        assert request.full_url == "https://example.supabase.co/rest/v1/transactions"
        assert request.get_header("Prefer") == "return=representation"
        assert request.get_header("Content-type") == "application/json"
        assert json.loads(request.data) == {"amount": 42.5, "type": "credit"}
        return _Response(b'[{"id": "abc", "amount": 42.5, "type": "credit"}]')

    monkeypatch.setattr("backend.db.supabase_client.urlopen", _fake_urlopen)

    rows = client.post_rows(table="transactions", payload={"amount": 42.5, "type": "credit"})

    assert rows == [{"id": "abc", "amount": 42.5, "type": "credit"}]


def test_missing_anon_key_is_rejected() -> None:
    client = _build_client()

    with pytest.raises(ValueError, match="Missing Supabase API key"):
        client.get_rows(table="transactions", query={}, with_count=False, use_anon_key=True)
