"""Contracts of the geospatial preparation collaborators.

The merging and validation of CityGML/3D Tiles/MaxLOD packages is done by
external code. The pipeline only knows these call signatures; concrete
implementations are supplied at runtime as a `Preparers` registry.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from core.domain.prepare import IndexSeed, MergeContext

if TYPE_CHECKING:
    from core.services.cms_wrapper import CMSWrapper


class ValidateStep(Protocol):
    """Check the MaxLOD table already stored in the CMS; raises on failure."""

    async def __call__(self, cw: "CMSWrapper", mc: MergeContext) -> None:
        ...


class ArtifactStep(Protocol):
    """Build one merged file (zip or MaxLOD csv) and return its local path."""

    async def __call__(self, cw: "CMSWrapper", mc: MergeContext) -> Path:
        ...


class PlateauStep(Protocol):
    """Build the 3D Tiles/MVT zip; returns the path and non-fatal warnings."""

    async def __call__(self, cw: "CMSWrapper", mc: MergeContext) -> tuple[Path, list[str]]:
        ...


class IndexStep(Protocol):
    """Render the index (データ目録) markdown from the merged zips."""

    async def __call__(self, cw: "CMSWrapper", seed: IndexSeed, feature_types: list[str]) -> str:
        ...


@dataclass
class Preparers:
    """Registry of collaborators; a missing entry means the step is unavailable."""

    prepare_maxlod: ArtifactStep | None = None
    validate_maxlod: ValidateStep | None = None
    prepare_related: ArtifactStep | None = None
    prepare_citygml: ArtifactStep | None = None
    prepare_plateau: PlateauStep | None = None
    prepare_index: IndexStep | None = None

    def available(self) -> list[str]:
        return [name for name, step in vars(self).items() if step is not None]
