"""Artifact downloads into the per-run work directory."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlparse

import httpx
import structlog

from adapters.http_client import build_async_client
from core.config import AppSettings

logger = structlog.get_logger()


def file_name_from_url(url: str, default: str = "download") -> str:
    name = unquote(PurePosixPath(urlparse(url).path).name)
    return name or default


async def download_file_to(
    url: str,
    directory: Path,
    *,
    settings: AppSettings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Path:
    """Stream `url` into `directory` and return the local path.

    The file keeps the name of the last URL path segment. HTTP errors are
    raised as `httpx.HTTPStatusError`.
    """

    settings = settings or AppSettings()
    directory.mkdir(parents=True, exist_ok=True)
    out_path = directory / file_name_from_url(url)

    logger.info("download_started", url=url, path=str(out_path))
    async with build_async_client(
        settings,
        extra_headers={"Accept": "*/*"},
        timeout=settings.download_timeout_seconds,
        transport=transport,
    ) as client:
        async with client.stream("GET", url) as resp:
            resp.raise_for_status()
            with out_path.open("wb") as fh:
                async for chunk in resp.aiter_bytes():
                    fh.write(chunk)

    logger.info("download_finished", url=url, path=str(out_path), size=out_path.stat().st_size)
    return out_path
