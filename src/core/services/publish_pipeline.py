"""Publication of a city's merged artifacts to G空間情報センター (CKAN).

Flow: seed from CMS -> create/update package -> create/update resources in a
fixed order -> reorder -> comment the result on the CMS items. On failure the
error is commented on the city item and the data item, then re-raised.
Resources that were already registered are not rolled back.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from core.domain.ckan import CkanPackage, CkanResource, ResourceInfo
from core.domain.models import CityItem
from core.errors import InvalidItemError, PublishError
from core.interfaces.ckan import CKANClient
from core.interfaces.cms import CMSClient
from core.services.formatting import (
    extract_version_from_resource_name,
    package_url,
    replace_size,
    versioned_name,
)
from core.services.seed import PublishSeed, get_seed, package_seed_from

logger = structlog.get_logger()

INDEX_MAP_DESCRIPTION = (
    "データ整備範囲の標準地域メッシュ（２次メッシュ、３次メッシュ）のメッシュとメッシュ番号を示したPDFファイルです。"
)
FAILURE_COMMENT = "G空間情報センターのデータセットの公開に失敗しました: {error}"
CREATED_COMMENT = "G空間情報センターにデータセットを新規作成しました。 \n{url}"
UPDATED_COMMENT = "G空間情報センターのデータセットを更新しました。 \n{url}"


def _version_sort_key(resource: CkanResource) -> tuple[int, int]:
    version = extract_version_from_resource_name(resource.name)
    if version is None:
        return (1, 0)
    return (0, -version)


@dataclass
class PublishResult:
    package: CkanPackage
    created: bool
    url: str
    resources: list[CkanResource] = field(default_factory=list)


class GspatialjpPublisher:
    def __init__(
        self,
        *,
        cms: CMSClient,
        ckan: CKANClient,
        ckan_base: str,
        ckan_org: str | None = None,
        ckan_private: bool = False,
    ) -> None:
        self._cms = cms
        self._ckan = ckan
        self._ckan_base = ckan_base
        self._ckan_org = ckan_org
        self._ckan_private = ckan_private

    def package_url(self, pkg: CkanPackage) -> str:
        return package_url(self._ckan_base, pkg.name)

    async def publish_item(self, city_item_id: str) -> PublishResult:
        """Fetch the city item from the CMS and publish it."""

        raw = await self._cms.get_item(city_item_id, asset=True)
        return await self.publish(CityItem.from_cms(raw))

    async def publish(self, city_item: CityItem) -> PublishResult:
        logger.info("publish_started", city_item_id=city_item.id)
        try:
            return await self._publish(city_item)
        except Exception as exc:
            await self._comment_failure(city_item, exc)
            raise

    async def _publish(self, city_item: CityItem) -> PublishResult:
        if not city_item.is_complete():
            raise InvalidItemError(f"invalid city item: {city_item.id}")

        try:
            seed = await get_seed(self._cms, city_item)
        except Exception as exc:
            raise PublishError(f"failed to get seed: {exc}") from exc

        logger.debug("publish_seed", seed=seed.model_dump())
        if not seed.valid():
            raise PublishError("アップロード可能なアイテムがありません。")

        try:
            pkg, created = await self.create_or_update_package(city_item, seed)
        except Exception as exc:
            raise PublishError(f"G空間情報センターでパッケージの検索・作成に失敗しました: {exc}") from exc

        resources: list[CkanResource] = []
        for label, info in self._resource_infos(seed):
            try:
                resources.append(await self.create_or_update_resource(pkg, info))
            except Exception as exc:
                raise PublishError(f"G空間情報センターでリソースの作成に失敗しました（{label}）: {exc}") from exc

        if resources:
            order = self.resource_order(pkg, [r.id for r in resources])
            logger.debug("publish_reorder", package_id=pkg.id, order=order)
            try:
                await self._ckan.reorder_resources(pkg.id, order)
            except Exception as exc:
                raise PublishError(
                    "G空間情報センターでリソースの並び替えに失敗しました"
                    f"（リソースの登録・更新自体は既に完了しています）: {exc}"
                ) from exc

        url = self.package_url(pkg)
        template = CREATED_COMMENT if created else UPDATED_COMMENT
        comment = template.format(url=url)
        await self._comment_quietly(seed.gspatialjp_data_item_id, comment, target="data_item")
        await self._comment_quietly(city_item.id, comment, target="city_item")

        logger.info("publish_finished", city_item_id=city_item.id, package=pkg.name, created=created)
        return PublishResult(package=pkg, created=created, url=url, resources=resources)

    def _resource_infos(self, seed: PublishSeed) -> list[tuple[str, ResourceInfo]]:
        """Resources in publication order, labelled for error messages."""

        infos: list[tuple[str, ResourceInfo]] = []
        if seed.index:
            infos.append(
                ("データ目録", ResourceInfo(name=versioned_name("データ目録", seed.v), url=seed.index_url, description=seed.index))
            )
        if seed.index_map_url:
            infos.append(
                ("索引図", ResourceInfo(name=versioned_name("索引図", seed.v), url=seed.index_map_url, description=INDEX_MAP_DESCRIPTION))
            )
        if seed.citygml:
            infos.append(
                ("CityGML", ResourceInfo(name=versioned_name("CityGML", seed.v), url=seed.citygml, description=seed.citygml_description))
            )
        if seed.plateau:
            infos.append(
                ("3D Tiles,MVT", ResourceInfo(name=versioned_name("3D Tiles, MVT", seed.v), url=seed.plateau, description=seed.plateau_description))
            )
        if seed.related:
            infos.append(
                ("関連データセット", ResourceInfo(name=versioned_name("関連データセット", seed.v), url=seed.related, description=seed.related_description))
            )

        for g in seed.generics:
            if g.asset is None or not g.asset.url:
                continue
            if not g.name:
                raise PublishError(f"その他データセットの名前は必須です。: {g.model_dump()}")
            if g.asset.total_size == 0:
                raise PublishError(f"その他データセットのアセットサイズを正しく取得できませんでした。: {g.model_dump()}")
            infos.append(
                ("その他データセット", ResourceInfo(name=g.name, url=g.asset.url, description=replace_size(g.desc, g.asset.total_size)))
            )

        # Resources are matched by name, so a repeated name would overwrite the earlier one.
        seen: set[str] = set()
        for _, info in infos:
            if info.name in seen:
                raise PublishError(f"リソース名が重複しています: {info.name}")
            seen.add(info.name)
        return infos

    async def create_or_update_package(self, city_item: CityItem, seed: PublishSeed) -> tuple[CkanPackage, bool]:
        pkg_seed = package_seed_from(city_item, seed, owner_org=self._ckan_org, private=self._ckan_private)
        existing = await self._ckan.find_package(pkg_seed.name)
        if existing is None:
            return await self._ckan.create_package(pkg_seed), True

        # Keep the visibility chosen on the catalog side for existing packages.
        pkg_seed.private = existing.private
        return await self._ckan.patch_package(existing.id, pkg_seed), False

    async def create_or_update_resource(self, pkg: CkanPackage, info: ResourceInfo) -> CkanResource:
        existing = pkg.resource_by_name(info.name)
        resource = CkanResource(
            id=existing.id if existing else "",
            package_id=pkg.id,
            name=info.name,
            url=info.url,
            description=info.description,
        )
        if existing is None:
            created = await self._ckan.create_resource(resource)
            logger.info("ckan_resource_created", package=pkg.name, resource=info.name, resource_id=created.id)
            pkg.resources.append(created)
            return created

        updated = await self._ckan.patch_resource(resource)
        logger.info("ckan_resource_updated", package=pkg.name, resource=info.name, resource_id=updated.id)
        return updated

    @staticmethod
    def resource_order(pkg: CkanPackage, published_ids: list[str]) -> list[str]:
        """Published resources first, then older resources by version (newest first)."""

        ordered = list(dict.fromkeys(published_ids))
        published = set(ordered)
        rest = [r for r in pkg.resources if r.id and r.id not in published]
        rest.sort(key=_version_sort_key)
        return [*ordered, *(r.id for r in rest)]

    async def _comment_failure(self, city_item: CityItem, exc: Exception) -> None:
        comment = FAILURE_COMMENT.format(error=exc)
        await self._comment_quietly(city_item.id, comment, target="city_item")
        if city_item.gspatialjp_data:
            await self._comment_quietly(city_item.gspatialjp_data, comment, target="data_item")

    async def _comment_quietly(self, item_id: str, comment: str, *, target: str) -> None:
        if not item_id:
            return
        try:
            await self._cms.comment_to_item(item_id, comment)
        except Exception as exc:
            logger.error("cms_comment_failed", target=target, item_id=item_id, error=str(exc))
