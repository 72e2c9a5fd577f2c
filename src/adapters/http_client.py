"""httpx wrapper.

Why a wrapper:
- Standardizes timeouts, headers and redirects for the CMS, CKAN and downloads.
- Eases testing: a `transport` (e.g. `httpx.MockTransport`) can be injected.
"""

from __future__ import annotations

from typing import Any

import httpx

from core.config import AppSettings


def build_async_client(
    settings: AppSettings | None = None,
    *,
    base_url: str | None = None,
    extra_headers: dict[str, str] | None = None,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an `httpx.AsyncClient` with safe defaults.

    Why a builder:
    - Centralizes timeouts/headers so every service behaves the same way.
    - Keeps the door open for retries or proxies in one place.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    if extra_headers:
        headers.update(extra_headers)

    kwargs: dict[str, Any] = {
        "timeout": httpx.Timeout(timeout or settings.http_timeout_seconds),
        "follow_redirects": True,
        "headers": headers,
    }
    if base_url:
        kwargs["base_url"] = base_url.rstrip("/")
    if transport is not None:
        kwargs["transport"] = transport
    return httpx.AsyncClient(**kwargs)


def response_detail(response: httpx.Response, limit: int = 500) -> str:
    """Short, log-safe description of an error response body."""

    try:
        data = response.json()
    except ValueError:
        text = response.text.strip()
        return text[:limit] if text else response.reason_phrase

    if isinstance(data, dict):
        for key in ("error", "message", "detail"):
            if key in data and data[key]:
                return str(data[key])[:limit]
    return str(data)[:limit]
