"""CKAN action API client (G空間情報センター).

Every call is `POST {base}/api/3/action/{name}` with a JSON body; CKAN wraps
results as `{"success": bool, "result": ..., "error": ...}`.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from adapters.http_client import build_async_client, response_detail
from core.config import AppSettings
from core.domain.ckan import CkanPackage, CkanResource, PackageSeed
from core.errors import CKANError
from core.interfaces.ckan import CKANClient

logger = structlog.get_logger()


class CkanActionClient(CKANClient):
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
    def from_settings(cls, settings: AppSettings) -> "CkanActionClient":
        base_url, token = settings.require_ckan()
        return cls(base_url, token, settings=settings)

    @property
    def base_url(self) -> str:
        return self._base_url

    async def action(self, name: str, payload: dict[str, Any]) -> Any:
        async with build_async_client(
            self._settings,
            base_url=self._base_url,
            extra_headers={"Authorization": self._token},
            transport=self._transport,
        ) as client:
            resp = await client.post(f"/api/3/action/{name}", json=payload)

        try:
            data = resp.json()
        except ValueError:
            data = None

        if not resp.is_success or not isinstance(data, dict) or not data.get("success"):
            detail = data.get("error") if isinstance(data, dict) and data.get("error") else response_detail(resp)
            raise CKANError(f"{name}: {detail}", status_code=resp.status_code)

        logger.debug("ckan_action_ok", action=name)
        return data.get("result")

    async def find_package(self, name_or_id: str) -> CkanPackage | None:
        try:
            result = await self.action("package_show", {"id": name_or_id})
        except CKANError as exc:
            if exc.status_code == 404:
                return None
            raise
        return CkanPackage.model_validate(result)

    async def create_package(self, seed: PackageSeed) -> CkanPackage:
        result = await self.action("package_create", seed.payload())
        pkg = CkanPackage.model_validate(result)
        logger.info("ckan_package_created", package=pkg.name, package_id=pkg.id)
        return pkg

    async def patch_package(self, package_id: str, seed: PackageSeed) -> CkanPackage:
        payload = seed.payload()
        # The package name is the lookup key; never rename on patch.
        payload.pop("name", None)
        payload["id"] = package_id
        result = await self.action("package_patch", payload)
        pkg = CkanPackage.model_validate(result)
        logger.info("ckan_package_patched", package=pkg.name, package_id=pkg.id)
        return pkg

    async def create_resource(self, resource: CkanResource) -> CkanResource:
        result = await self.action("resource_create", resource.payload())
        return CkanResource.model_validate(result)

    async def patch_resource(self, resource: CkanResource) -> CkanResource:
        if not resource.id:
            raise ValueError("resource id is required to patch a resource")
        result = await self.action("resource_patch", resource.payload())
        return CkanResource.model_validate(result)

    async def reorder_resources(self, package_id: str, resource_ids: list[str]) -> None:
        await self.action("package_resource_reorder", {"id": package_id, "order": resource_ids})
