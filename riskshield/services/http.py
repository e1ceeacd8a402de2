"""Shared outbound HTTP plumbing for third-party REST APIs (Procore, Microsoft, Stripe)."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from riskshield.core.config import settings

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (httpx.TimeoutException, httpx.TransportError)


def new_client(transport: httpx.AsyncBaseTransport | None = None, **kwargs: Any) -> httpx.AsyncClient:
    """AsyncClient with the configured timeout; tests inject an ``httpx.MockTransport``."""
    return httpx.AsyncClient(timeout=httpx.Timeout(settings.http_timeout), transport=transport, **kwargs)


@retry(
    retry=retry_if_exception_type(TRANSIENT_ERRORS),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    stop=stop_after_attempt(settings.http_max_attempts),
    reraise=True,
)
async def send(client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> httpx.Response:
    """Issue one request, retrying timeouts and connection failures with exponential backoff."""
    response = await client.request(method, url, **kwargs)
    logger.debug("%s %s -> %s", method, url, response.status_code)
    return response


def error_detail(response: httpx.Response) -> str:
    """Best-effort human readable error from a JSON or plain-text error body."""
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            err = body.get("error")
            if isinstance(err, dict):
                return str(err.get("message") or err)
            return str(body.get("error_description") or err or body.get("message") or body)
    return response.reason_phrase or response.text[:300] or "Request failed"
