"""In-memory CMS/CKAN fakes and sample item builders for the tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from core.domain.ckan import CkanPackage, CkanResource, PackageSeed
from core.domain.models import CMSAsset, CMSItem
from core.errors import CKANError, CMSError

ASSET_BASE = "https://assets.example.com"
CODELISTS_URL = f"{ASSET_BASE}/13100_tokyo23-ku_city_2023_citygml_1_op_codelists.zip"


def make_item(item_id: str, fields: dict[str, Any], metadata: dict[str, Any] | None = None) -> CMSItem:
    return CMSItem.model_validate(
        {
            "id": item_id,
            "fields": [{"key": k, "value": v} for k, v in fields.items()],
            "metadataFields": [{"key": k, "value": v} for k, v in (metadata or {}).items()],
        }
    )


def asset(name: str, size: int = 0) -> dict[str, Any]:
    return {"id": f"asset-{name}", "url": f"{ASSET_BASE}/{name}", "totalSize": size}


def city_fields(**overrides: Any) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "city_code": "13100",
        "city_name": "東京都23区",
        "city_name_en": "tokyo23-ku",
        "year": "2023年度",
        "spec": "第3.5版",
        "codelists": {"id": "asset-codelists", "url": CODELISTS_URL},
        "geospatialjp-index": "index-1",
        "geospatialjp-data": "data-1",
        "bldg": "feature-bldg",
        "tran": "feature-tran",
    }
    fields.update(overrides)
    return fields


def data_fields(**overrides: Any) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "citygml": asset("13100_tokyo23-ku_city_2023_citygml_1_op.zip"),
        "plateau": asset("13100_tokyo23-ku_city_2023_3dtiles_mvt_1_op.zip"),
        "related": asset("13100_tokyo23-ku_city_2023_related_1_op.zip"),
        "index_map": asset("13100_indexmap_op.pdf"),
        "index": "# データ目録",
        "index_url": "https://www.geospatial.jp/ckan/dataset/plateau-13100/index",
        "desc_citygml": "CityGMLの説明",
        "desc_plateau": "3D Tilesの説明",
        "desc_related": "関連データセットの説明",
    }
    fields.update(overrides)
    return fields


class FakeCMS:
    def __init__(self, items: dict[str, CMSItem] | None = None) -> None:
        self.items: dict[str, CMSItem] = dict(items or {})
        self.comments: list[tuple[str, str]] = []
        self.updates: list[tuple[str, list[dict[str, Any]]]] = []
        self.uploads: list[tuple[str, Path]] = []
        self.get_calls: list[tuple[str, bool]] = []
        self.fail_get: set[str] = set()
        self.fail_comment = False

    def add(self, item: CMSItem) -> None:
        self.items[item.id] = item

    async def get_item(self, item_id: str, *, asset: bool = False) -> CMSItem:
        self.get_calls.append((item_id, asset))
        if item_id in self.fail_get:
            raise CMSError(f"get item {item_id}: boom", status_code=500)
        if item_id not in self.items:
            raise CMSError(f"get item {item_id}: not found", status_code=404)
        return self.items[item_id]

    async def comment_to_item(self, item_id: str, content: str) -> None:
        if self.fail_comment:
            raise CMSError("comment failed", status_code=500)
        self.comments.append((item_id, content))

    async def update_item(self, item_id: str, fields: list[dict[str, Any]]) -> CMSItem:
        self.updates.append((item_id, fields))
        return self.items[item_id]

    async def upload_asset(self, project_id: str, path: Path) -> CMSAsset:
        self.uploads.append((project_id, path))
        return CMSAsset(id=f"uploaded-{len(self.uploads)}", url=f"{ASSET_BASE}/{path.name}")

    def comments_for(self, item_id: str) -> list[str]:
        return [c for i, c in self.comments if i == item_id]


class FakeCKAN:
    def __init__(self) -> None:
        self.packages: dict[str, CkanPackage] = {}
        self.calls: list[str] = []
        self.reorders: list[tuple[str, list[str]]] = []
        self.fail_on: set[str] = set()
        self._seq = 0

    def _next_id(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}-{self._seq}"

    def _check(self, action: str) -> None:
        self.calls.append(action)
        if action in self.fail_on:
            raise CKANError(f"{action}: failed", status_code=500)

    def _by_id(self, package_id: str) -> CkanPackage:
        for pkg in self.packages.values():
            if pkg.id == package_id:
                return pkg
        raise CKANError("package not found", status_code=404)

    def add_package(self, name: str, resources: list[tuple[str, str]] | None = None, private: bool = False) -> CkanPackage:
        pkg = CkanPackage(id=self._next_id("pkg"), name=name, title=name, private=private)
        for res_id, res_name in resources or []:
            pkg.resources.append(CkanResource(id=res_id, package_id=pkg.id, name=res_name))
        self.packages[name] = pkg
        return pkg

    async def find_package(self, name_or_id: str) -> CkanPackage | None:
        self._check("package_show")
        pkg = self.packages.get(name_or_id)
        return pkg.model_copy(deep=True) if pkg else None

    async def create_package(self, seed: PackageSeed) -> CkanPackage:
        self._check("package_create")
        pkg = CkanPackage(
            id=self._next_id("pkg"),
            name=seed.name,
            title=seed.title,
            owner_org=seed.owner_org,
            private=seed.private,
            notes=seed.notes,
        )
        self.packages[seed.name] = pkg
        return pkg.model_copy(deep=True)

    async def patch_package(self, package_id: str, seed: PackageSeed) -> CkanPackage:
        self._check("package_patch")
        pkg = self._by_id(package_id)
        pkg.title = seed.title
        pkg.notes = seed.notes
        pkg.private = seed.private
        return pkg.model_copy(deep=True)

    async def create_resource(self, resource: CkanResource) -> CkanResource:
        self._check("resource_create")
        pkg = self._by_id(resource.package_id)
        created = resource.model_copy(update={"id": self._next_id("res")})
        pkg.resources.append(created)
        return created.model_copy()

    async def patch_resource(self, resource: CkanResource) -> CkanResource:
        self._check("resource_patch")
        pkg = self._by_id(resource.package_id)
        for i, r in enumerate(pkg.resources):
            if r.id == resource.id:
                pkg.resources[i] = resource.model_copy()
                return resource.model_copy()
        raise CKANError("resource not found", status_code=404)

    async def reorder_resources(self, package_id: str, resource_ids: list[str]) -> None:
        self._check("package_resource_reorder")
        self.reorders.append((package_id, list(resource_ids)))

