"""Airtable Web API client for record creation.

Only the record write lives here; OAuth and the metadata API are handled
outside this service.
"""

from typing import Any
from urllib.parse import quote

import httpx

from app.core.config import settings
from app.core.exceptions import SyncError


def _records_url(base_id: str, table_id: str) -> str:
    return f"{settings.AIRTABLE_API_URL.rstrip('/')}/{quote(base_id, safe='')}/{quote(table_id, safe='')}"


def _timeout() -> httpx.Timeout:
    return httpx.Timeout(
        settings.AIRTABLE_TIMEOUT_SECONDS,
        connect=settings.AIRTABLE_CONNECT_TIMEOUT_SECONDS,
    )


def _error_message(resp: httpx.Response) -> tuple[str, Any]:
    """Pull Airtable's error message out of a failed response."""
    try:
        body = resp.json()
    except ValueError:
        return f"Airtable API {resp.status_code}: {resp.text[:500]}", resp.text[:500]

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"]), body
    if isinstance(error, str):
        return error, body
    return f"Airtable API {resp.status_code}", body


async def create_record(
    access_token: str,
    base_id: str,
    table_id: str,
    fields: dict[str, Any],
) -> tuple[str | None, SyncError | None]:
    """
    Create one record in an Airtable table.

    `typecast` lets Airtable coerce strings into select options and
    attachment dicts into attachments.

    Returns:
        (record_id, error) tuple - record_id is None if error
    """
    if not access_token:
        return None, SyncError("No access token provided")

    headers = {
        "Authorization": f"Bearer {access_token}",
        "Content-Type": "application/json",
    }
    payload = {"fields": fields, "typecast": True}

    try:
        async with httpx.AsyncClient(timeout=_timeout()) as client:
            resp = await client.post(_records_url(base_id, table_id), json=payload, headers=headers)

            if resp.status_code not in (200, 201):
                message, details = _error_message(resp)
                return None, SyncError(message, status=resp.status_code, details=details)

            record_id = resp.json().get("id")
            if not record_id:
                return None, SyncError("Airtable response missing record id", status=resp.status_code)
            return record_id, None

    except httpx.TimeoutException:
        return None, SyncError("Airtable API timeout")
    except httpx.ConnectError:
        return None, SyncError("Airtable API connection failed")
    except Exception as e:
        return None, SyncError(f"Airtable API error: {str(e)[:200]}")
