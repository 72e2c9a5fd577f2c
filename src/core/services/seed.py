"""Publication seeds: what the publisher will push to CKAN for one city."""

from __future__ import annotations

import re

import structlog
from pydantic import BaseModel, Field

from core.domain.ckan import CkanExtra, CkanTag, PackageSeed
from core.domain.models import CityItem, GenericDataset, GspatialjpDataItem, GspatialjpIndexItem
from core.errors import InvalidItemError
from core.interfaces.cms import CMSClient

logger = structlog.get_logger()

_RE_SLUG_INVALID = re.compile(r"[^a-z0-9_-]+")


class PublishSeed(BaseModel):
    v: int = Field(default=0, ge=0, description="Major version of the PLATEAU spec.")
    citygml: str = ""
    citygml_description: str = ""
    plateau: str = ""
    plateau_description: str = ""
    related: str = ""
    related_description: str = ""
    index: str = Field(default="", description="Index (データ目録) markdown.")
    index_url: str = ""
    index_map_url: str = ""
    generics: list[GenericDataset] = Field(default_factory=list)
    gspatialjp_data_item_id: str = ""

    def valid(self) -> bool:
        return bool(self.citygml or self.plateau or self.related)


async def get_seed(cms: CMSClient, city_item: CityItem) -> PublishSeed:
    """Collect the publishable artifacts from the data and index items."""

    if not city_item.gspatialjp_data:
        raise InvalidItemError(f"city item {city_item.id} has no geospatialjp data item")

    data_item = GspatialjpDataItem.from_cms(await cms.get_item(city_item.gspatialjp_data, asset=True))

    generics: list[GenericDataset] = []
    if city_item.gspatialjp_index:
        index_item = GspatialjpIndexItem.from_cms(await cms.get_item(city_item.gspatialjp_index, asset=True))
        generics = index_item.generics
    else:
        logger.warning("gspatialjp_index_item_missing", city_item_id=city_item.id)

    return PublishSeed(
        v=city_item.spec_version_major_int(),
        citygml=data_item.citygml_url,
        citygml_description=data_item.citygml_description,
        plateau=data_item.plateau_url,
        plateau_description=data_item.plateau_description,
        related=data_item.related_url,
        related_description=data_item.related_description,
        index=data_item.index,
        index_url=data_item.index_url,
        index_map_url=data_item.index_map_url,
        generics=generics,
        gspatialjp_data_item_id=data_item.id,
    )


def package_name_for(city_item: CityItem) -> str:
    raw = f"{city_item.city_code}-{city_item.city_name_en}-{city_item.year_int()}".lower()
    return _RE_SLUG_INVALID.sub("-", raw).strip("-")


def package_seed_from(
    city_item: CityItem,
    seed: PublishSeed,
    *,
    owner_org: str | None = None,
    private: bool = False,
) -> PackageSeed:
    year = city_item.year_int()
    return PackageSeed(
        name=package_name_for(city_item),
        title=f"3D都市モデル（Project PLATEAU）{city_item.city_name}（{year}年度）",
        owner_org=owner_org,
        private=private,
        notes=f"{city_item.city_name}の3D都市モデル（Project PLATEAU）のデータセットです。",
        tags=[CkanTag(name="PLATEAU"), CkanTag(name="3D都市モデル"), CkanTag(name=city_item.city_name)],
        extras=[
            CkanExtra(key="city_code", value=city_item.city_code),
            CkanExtra(key="year", value=str(year)),
            CkanExtra(key="spec_version", value=str(seed.v)),
        ],
    )
