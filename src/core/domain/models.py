"""CMS-side domain models (Pydantic v2).

Why Pydantic in the domain:
- Raw CMS items are loosely typed lists of fields; these models give the
  pipelines a typed, validated view without coupling the core to HTTP.
- Parsing rules (year, spec version, update count) live next to the data.

Note:
- These models describe *what* the items hold, not *how* they are fetched.
"""

from __future__ import annotations

import json
import re
from pathlib import PurePosixPath
from typing import Any, ClassVar
from urllib.parse import unquote, urlparse

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from core.domain.status import ItemStatus

_RE_YEAR = re.compile(r"\d{4}")
_RE_FIRST_INT = re.compile(r"\d+")
_RE_UPDATE_COUNT = re.compile(r"_(\d+)_op(?:_|\.|$)")


class CMSAsset(BaseModel):
    """Asset attached to a CMS field (expanded when items are fetched with assets)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(default="", description="Asset id.")
    url: str = Field(default="", description="Public URL of the asset file.")
    total_size: int = Field(
        default=0,
        ge=0,
        alias="totalSize",
        description="Total size in bytes (archives report the unpacked total).",
    )

    @classmethod
    def from_value(cls, value: Any) -> "CMSAsset | None":
        """Accept both the expanded object and the bare asset id."""

        if isinstance(value, cls):
            return value
        if isinstance(value, dict):
            return cls.model_validate(value)
        if isinstance(value, str) and value:
            return cls(id=value)
        return None

    @property
    def file_name(self) -> str:
        if not self.url:
            return ""
        return unquote(PurePosixPath(urlparse(self.url).path).name)


class CMSField(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    key: str = Field(..., min_length=1)
    type: str = Field(default="")
    value: Any = None


class CMSItem(BaseModel):
    """Opaque CMS item: a bag of typed fields plus metadata fields."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(..., min_length=1)
    model_id: str | None = Field(default=None, alias="modelId")
    fields: list[CMSField] = Field(default_factory=list)
    metadata_fields: list[CMSField] = Field(default_factory=list, alias="metadataFields")

    def field(self, key: str) -> CMSField | None:
        for f in self.fields:
            if f.key == key:
                return f
        for f in self.metadata_fields:
            if f.key == key:
                return f
        return None

    def value(self, key: str) -> Any:
        f = self.field(key)
        return f.value if f is not None else None

    def text(self, key: str) -> str:
        v = self.value(key)
        if v is None:
            return ""
        if isinstance(v, str):
            return v.strip()
        return str(v)

    def asset(self, key: str) -> CMSAsset | None:
        v = self.value(key)
        if isinstance(v, list):
            v = v[0] if v else None
        return CMSAsset.from_value(v)

    def assets(self, key: str) -> list[CMSAsset]:
        v = self.value(key)
        values = v if isinstance(v, list) else [v]
        out: list[CMSAsset] = []
        for raw in values:
            asset = CMSAsset.from_value(raw)
            if asset is not None:
                out.append(asset)
        return out

    def reference(self, key: str) -> str:
        """Referenced item id (reference fields may hold an id or an expanded item)."""

        v = self.value(key)
        if isinstance(v, dict):
            v = v.get("id")
        return v.strip() if isinstance(v, str) else ""


class CityItem(BaseModel):
    """A city entry: identity of the city and links to its other items."""

    KEY_CITY_CODE: ClassVar[str] = "city_code"
    KEY_CITY_NAME: ClassVar[str] = "city_name"
    KEY_CITY_NAME_EN: ClassVar[str] = "city_name_en"
    KEY_YEAR: ClassVar[str] = "year"
    KEY_SPEC: ClassVar[str] = "spec"
    KEY_CODE_LISTS: ClassVar[str] = "codelists"
    KEY_GSPATIALJP_INDEX: ClassVar[str] = "geospatialjp-index"
    KEY_GSPATIALJP_DATA: ClassVar[str] = "geospatialjp-data"

    id: str = Field(..., min_length=1)
    city_code: str = ""
    city_name: str = ""
    city_name_en: str = ""
    year: str = ""
    spec: str = ""
    code_lists: str = Field(default="", description="URL of the code-lists zip.")
    gspatialjp_index: str = ""
    gspatialjp_data: str = ""
    feature_items: dict[str, str] = Field(
        default_factory=dict,
        description="Feature type -> feature item id.",
    )

    @classmethod
    def from_cms(cls, item: CMSItem, feature_types: list[str] | None = None) -> "CityItem":
        code_lists = item.asset(cls.KEY_CODE_LISTS)
        features: dict[str, str] = {}
        for ty in feature_types or []:
            ref = item.reference(ty)
            if ref:
                features[ty] = ref

        return cls(
            id=item.id,
            city_code=item.text(cls.KEY_CITY_CODE),
            city_name=item.text(cls.KEY_CITY_NAME),
            city_name_en=item.text(cls.KEY_CITY_NAME_EN),
            year=item.text(cls.KEY_YEAR),
            spec=item.text(cls.KEY_SPEC),
            code_lists=code_lists.url if code_lists else "",
            gspatialjp_index=item.reference(cls.KEY_GSPATIALJP_INDEX),
            gspatialjp_data=item.reference(cls.KEY_GSPATIALJP_DATA),
            feature_items=features,
        )

    def is_complete(self) -> bool:
        return bool(self.city_code and self.city_name and self.city_name_en and self.gspatialjp_data)

    def year_int(self) -> int:
        """`2023年度` -> 2023; 0 when no four-digit year is present."""

        m = _RE_YEAR.search(self.year)
        return int(m.group(0)) if m else 0

    def spec_version_major_int(self) -> int:
        """`第3.2版` -> 3; 0 when the spec string carries no number."""

        m = _RE_FIRST_INT.search(self.spec)
        return int(m.group(0)) if m else 0

    def update_count(self) -> int:
        """Update count encoded as `_N_op` in the code-lists file name, else 0."""

        name = unquote(PurePosixPath(urlparse(self.code_lists).path).name)
        m = _RE_UPDATE_COUNT.search(name)
        return int(m.group(1)) if m else 0

    def file_name(self, ty: str, suffix: str = "") -> str:
        return (
            f"{self.city_code}_{self.city_name_en}_city_{self.year_int()}"
            f"_{ty}_{self.update_count()}_op{suffix}"
        )


class FeatureItem(BaseModel):
    """Per-feature-type item holding the source CityGML packages."""

    id: str = Field(..., min_length=1)
    feature_type: str = ""
    data: list[str] = Field(default_factory=list, description="Asset URLs.")
    dic: str = Field(default="", description="Code dictionary as JSON text.")

    @classmethod
    def from_cms(cls, item: CMSItem, feature_type: str = "") -> "FeatureItem":
        return cls(
            id=item.id,
            feature_type=feature_type,
            data=[a.url for a in item.assets("data") if a.url],
            dic=item.text("dic"),
        )

    def parsed_dic(self) -> dict[str, Any]:
        """Decoded dictionary; raises `ValueError` on malformed JSON."""

        if not self.dic:
            return {}
        data = json.loads(self.dic)
        if not isinstance(data, dict):
            raise ValueError(f"dic of feature item {self.id} is not a JSON object")
        return data


class GenericDataset(BaseModel):
    """Free-form extra dataset listed in the index item."""

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    desc: str = ""
    asset: CMSAsset | None = None

    @classmethod
    def from_value(cls, value: Any) -> "GenericDataset | None":
        if not isinstance(value, dict):
            return None
        return cls(
            name=str(value.get("name") or "").strip(),
            desc=str(value.get("desc") or ""),
            asset=CMSAsset.from_value(value.get("asset")),
        )


class GspatialjpIndexItem(BaseModel):
    id: str = Field(..., min_length=1)
    generic: str = Field(default="", description="Markdown listing the generic datasets.")
    generics: list[GenericDataset] = Field(default_factory=list)

    @classmethod
    def from_cms(cls, item: CMSItem) -> "GspatialjpIndexItem":
        raw = item.value("generic_datasets")
        generics: list[GenericDataset] = []
        for v in raw if isinstance(raw, list) else []:
            g = GenericDataset.from_value(v)
            if g is not None:
                generics.append(g)
        return cls(id=item.id, generic=item.text("generic"), generics=generics)


class GspatialjpDataItem(BaseModel):
    """Merged artifacts, descriptions and processing statuses for one city."""

    KEY_CITYGML: ClassVar[str] = "citygml"
    KEY_PLATEAU: ClassVar[str] = "plateau"
    KEY_MAXLOD: ClassVar[str] = "maxlod"
    KEY_RELATED: ClassVar[str] = "related"
    KEY_INDEX: ClassVar[str] = "index"
    KEY_INDEX_URL: ClassVar[str] = "index_url"
    KEY_INDEX_MAP: ClassVar[str] = "index_map"
    KEY_STATUS_CITYGML: ClassVar[str] = "merge_citygml_status"
    KEY_STATUS_PLATEAU: ClassVar[str] = "merge_plateau_status"
    KEY_STATUS_MAXLOD: ClassVar[str] = "merge_maxlod_status"

    id: str = Field(..., min_length=1)
    citygml_url: str = ""
    plateau_url: str = ""
    maxlod_url: str = ""
    related_url: str = ""
    index_map_url: str = ""
    index: str = ""
    index_url: str = ""
    citygml_description: str = ""
    plateau_description: str = ""
    related_description: str = ""
    merge_citygml_status: ItemStatus | None = None
    merge_plateau_status: ItemStatus | None = None
    merge_maxlod_status: ItemStatus | None = None

    @classmethod
    def from_cms(cls, item: CMSItem) -> "GspatialjpDataItem":
        def url(key: str) -> str:
            a = item.asset(key)
            return a.url if a else ""

        return cls(
            id=item.id,
            citygml_url=url(cls.KEY_CITYGML),
            plateau_url=url(cls.KEY_PLATEAU),
            maxlod_url=url(cls.KEY_MAXLOD),
            related_url=url(cls.KEY_RELATED),
            index_map_url=url(cls.KEY_INDEX_MAP),
            index=item.text(cls.KEY_INDEX),
            index_url=item.text(cls.KEY_INDEX_URL),
            citygml_description=item.text("desc_citygml"),
            plateau_description=item.text("desc_plateau"),
            related_description=item.text("desc_related"),
            merge_citygml_status=ItemStatus.parse(item.value(cls.KEY_STATUS_CITYGML)),
            merge_plateau_status=ItemStatus.parse(item.value(cls.KEY_STATUS_PLATEAU)),
            merge_maxlod_status=ItemStatus.parse(item.value(cls.KEY_STATUS_MAXLOD)),
        )

    def should_merge_citygml(self) -> bool:
        return self.merge_citygml_status != ItemStatus.RUNNING

    def should_merge_plateau(self) -> bool:
        return self.merge_plateau_status != ItemStatus.RUNNING

    def should_merge_maxlod(self) -> bool:
        return self.merge_maxlod_status != ItemStatus.RUNNING
