"""Tests for the Airtable records client."""

import httpx

from app.services import airtable_api


class _FakeAsyncClient:
    def __init__(self, response: httpx.Response | None = None, exc: Exception | None = None):
        self.response = response
        self.exc = exc
        self.requests: list[dict] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def post(self, url, json=None, headers=None):
        self.requests.append({"url": url, "json": json, "headers": headers})
        if self.exc:
            raise self.exc
        return self.response


def _install(monkeypatch, fake: _FakeAsyncClient) -> _FakeAsyncClient:
    monkeypatch.setattr(airtable_api.httpx, "AsyncClient", lambda **_kwargs: fake)
    return fake


def _response(status: int, **kwargs) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("POST", "https://api.airtable.test"), **kwargs)


async def test_create_record_posts_typecast_payload(monkeypatch):
    fake = _install(monkeypatch, _FakeAsyncClient(_response(200, json={"id": "recABC"})))

    record_id, error = await airtable_api.create_record("pat-1", "appX", "tblY", {"Name": "Ada"})

    assert (record_id, error) == ("recABC", None)
    request = fake.requests[0]
    assert request["url"].endswith("/appX/tblY")
    assert request["json"] == {"fields": {"Name": "Ada"}, "typecast": True}
    assert request["headers"]["Authorization"] == "Bearer pat-1"


async def test_error_message_is_parsed_from_body(monkeypatch):
    body = {"error": {"type": "INVALID_PERMISSIONS", "message": "You are not permitted"}}
    _install(monkeypatch, _FakeAsyncClient(_response(403, json=body)))

    record_id, error = await airtable_api.create_record("pat-1", "appX", "tblY", {})

    assert record_id is None
    assert error.message == "You are not permitted"
    assert error.status == 403
    assert error.details == body


async def test_string_error_and_plain_text_bodies(monkeypatch):
    _install(monkeypatch, _FakeAsyncClient(_response(404, json={"error": "NOT_FOUND"})))
    _, error = await airtable_api.create_record("pat-1", "appX", "tblY", {})
    assert error.message == "NOT_FOUND"

    _install(monkeypatch, _FakeAsyncClient(_response(502, text="Bad Gateway")))
    _, error = await airtable_api.create_record("pat-1", "appX", "tblY", {})
    assert error.status == 502
    assert "Bad Gateway" in error.message


async def test_missing_record_id_is_an_error(monkeypatch):
    _install(monkeypatch, _FakeAsyncClient(_response(200, json={})))

    record_id, error = await airtable_api.create_record("pat-1", "appX", "tblY", {})

    assert record_id is None
    assert error.message == "Airtable response missing record id"


async def test_transport_failures_are_returned(monkeypatch):
    _install(monkeypatch, _FakeAsyncClient(exc=httpx.ReadTimeout("slow")))
    _, error = await airtable_api.create_record("pat-1", "appX", "tblY", {})
    assert error.message == "Airtable API timeout"

    _install(monkeypatch, _FakeAsyncClient(exc=httpx.ConnectError("refused")))
    _, error = await airtable_api.create_record("pat-1", "appX", "tblY", {})
    assert error.message == "Airtable API connection failed"


async def test_empty_token_skips_request(monkeypatch):
    fake = _install(monkeypatch, _FakeAsyncClient(_response(200, json={"id": "rec"})))

    record_id, error = await airtable_api.create_record("", "appX", "tblY", {})

    assert record_id is None
    assert error.message == "No access token provided"
    assert fake.requests == []
