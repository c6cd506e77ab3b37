"""Rate limiting for the public form endpoints and owner API.

Public submissions are keyed per form and client IP.
"""

import logging

import redis
from slowapi import Limiter
from starlette.requests import Request

from app.core.config import settings

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str | None:
    """Client address; X-Forwarded-For only when TRUST_PROXY_HEADERS is set."""
    if settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


def client_key(request: Request) -> str:
    return client_ip(request) or "unknown"


def form_client_key(request: Request) -> str:
    form_id = request.path_params.get("form_id", "-")
    return f"form:{form_id}:ip:{client_key(request)}"


def _storage_uri() -> str:
    if settings.TESTING or not settings.REDIS_URL:
        return "memory://"
    try:
        redis.from_url(settings.REDIS_URL, socket_connect_timeout=1).ping()
    except Exception as e:
        # Multiple API workers will each count separately until Redis is back
        logger.warning("rate_limit_redis_unavailable", extra={"error": str(e)[:200]})
        return "memory://"
    return settings.REDIS_URL


limiter = Limiter(
    key_func=client_key,
    storage_uri=_storage_uri(),
    enabled=not settings.TESTING,
)
