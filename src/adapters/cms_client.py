"""Re:Earth CMS integration API client.

Only the calls the pipelines need are implemented; responses are validated
into `CMSItem`/`CMSAsset` and everything else is passed through untouched.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import httpx
import structlog

from adapters.http_client import build_async_client, response_detail
from core.config import AppSettings
from core.domain.models import CMSAsset, CMSItem
from core.errors import CMSError
from core.interfaces.cms import CMSClient

logger = structlog.get_logger()


class ReearthCMSClient(CMSClient):
    """Thin async client over the CMS integration REST API."""

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        settings: AppSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._settings = settings or AppSettings()
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "ReearthCMSClient":
        base_url, token = settings.require_cms()
        return cls(base_url, token, settings=settings)

    def _client(self, *, timeout: float | None = None) -> httpx.AsyncClient:
        return build_async_client(
            self._settings,
            base_url=self._base_url,
            extra_headers={"Authorization": f"Bearer {self._token}"},
            timeout=timeout,
            transport=self._transport,
        )

    @staticmethod
    def _check(response: httpx.Response, action: str) -> Any:
        if response.is_success:
            if not response.content:
                return None
            return response.json()
        raise CMSError(f"{action}: {response_detail(response)}", status_code=response.status_code)

    async def get_item(self, item_id: str, *, asset: bool = False) -> CMSItem:
        params = {"asset": "true"} if asset else None
        async with self._client() as client:
            resp = await client.get(f"/api/items/{item_id}", params=params)
        data = self._check(resp, f"get item {item_id}")
        logger.debug("cms_item_fetched", item_id=item_id, asset=asset)
        return CMSItem.model_validate(data)

    async def comment_to_item(self, item_id: str, content: str) -> None:
        async with self._client() as client:
            resp = await client.post(f"/api/items/{item_id}/comments", json={"content": content})
        self._check(resp, f"comment to item {item_id}")
        logger.debug("cms_item_commented", item_id=item_id)

    async def update_item(self, item_id: str, fields: list[dict[str, Any]]) -> CMSItem:
        async with self._client() as client:
            resp = await client.patch(f"/api/items/{item_id}", json={"fields": fields})
        data = self._check(resp, f"update item {item_id}")
        logger.debug("cms_item_updated", item_id=item_id, keys=[f.get("key") for f in fields])
        return CMSItem.model_validate(data)

    async def upload_asset(self, project_id: str, path: Path) -> CMSAsset:
        async with self._client(timeout=self._settings.download_timeout_seconds) as client:
            with path.open("rb") as fh:
                resp = await client.post(
                    f"/api/projects/{project_id}/assets",
                    files={"file": (path.name, fh, "application/octet-stream")},
                )
        data = self._check(resp, f"upload asset {path.name}")
        asset = CMSAsset.model_validate(data)
        logger.info("cms_asset_uploaded", project_id=project_id, asset_id=asset.id, file=path.name)
        return asset
