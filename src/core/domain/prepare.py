"""Inputs of the publication-preparation run."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from core.domain.models import CityItem, FeatureItem, GspatialjpDataItem


class PrepareConfig(BaseModel):
    """Options of a single preparation run (one city item)."""

    city_item_id: str = Field(..., min_length=1)
    project_id: str | None = None
    skip_citygml: bool = False
    skip_plateau: bool = False
    skip_maxlod: bool = False
    skip_index: bool = False
    skip_related: bool = False
    validate_maxlod: bool = False
    wet_run: bool = False
    clean: bool = False
    skip_incomplete_items: bool = False
    ignore_status: bool = False
    feature_types: list[str] = Field(default_factory=list)

    def has_command(self) -> bool:
        all_skipped = (
            self.skip_citygml
            and self.skip_plateau
            and self.skip_maxlod
            and self.skip_related
            and self.skip_index
        )
        return not all_skipped or self.validate_maxlod


@dataclass
class MergeContext:
    """Everything a preparation collaborator needs for one city."""

    tmp_dir: Path
    city_item: CityItem
    all_feature_items: dict[str, FeatureItem]
    gspatialjp_data_item: GspatialjpDataItem | None
    wet_run: bool = False
    feature_types: list[str] = field(default_factory=list)

    def file_name(self, ty: str, suffix: str = "") -> str:
        return self.city_item.file_name(ty, suffix)


@dataclass
class IndexSeed:
    """Input of the index (データ目録) generation."""

    city_name: str
    city_code: str
    year: int
    v: int
    citygml_zip_path: Path
    plateau_zip_path: Path
    related_zip_path: Path | None = None
    generic: str = ""
    dic: dict[str, list[Any]] = field(default_factory=dict)
