"""CKAN client contract."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.ckan import CkanPackage, CkanResource, PackageSeed


@runtime_checkable
class CKANClient(Protocol):
    async def find_package(self, name_or_id: str) -> CkanPackage | None:
        """Return the package or None when it does not exist."""

        ...

    async def create_package(self, seed: PackageSeed) -> CkanPackage:
        ...

    async def patch_package(self, package_id: str, seed: PackageSeed) -> CkanPackage:
        ...

    async def create_resource(self, resource: CkanResource) -> CkanResource:
        ...

    async def patch_resource(self, resource: CkanResource) -> CkanResource:
        ...

    async def reorder_resources(self, package_id: str, resource_ids: list[str]) -> None:
        """Move the given resources to the top of the package, in that order."""

        ...
