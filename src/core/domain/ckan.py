"""CKAN catalog records.

Only the attributes the publisher reads or writes are modelled; everything
else CKAN returns is ignored.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class CkanResource(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    package_id: str = ""
    name: str = ""
    url: str = ""
    description: str = ""
    format: str | None = None

    def payload(self) -> dict[str, Any]:
        data = self.model_dump(exclude_none=True)
        if not data.get("id"):
            data.pop("id", None)
        return data


class CkanTag(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)


class CkanExtra(BaseModel):
    model_config = ConfigDict(extra="ignore")

    key: str = Field(..., min_length=1)
    value: str = ""


class CkanPackage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    name: str = Field(..., min_length=1)
    title: str = ""
    owner_org: str | None = None
    private: bool = False
    notes: str = ""
    resources: list[CkanResource] = Field(default_factory=list)

    def resource_by_name(self, name: str) -> CkanResource | None:
        for r in self.resources:
            if r.name == name:
                return r
        return None


class PackageSeed(BaseModel):
    """Attributes the publisher sets when creating or updating a package."""

    name: str = Field(..., min_length=2, max_length=100, pattern=r"^[a-z0-9_-]+$")
    title: str = Field(..., min_length=1)
    owner_org: str | None = None
    private: bool = False
    notes: str = ""
    author: str | None = None
    license_id: str | None = None
    tags: list[CkanTag] = Field(default_factory=list)
    extras: list[CkanExtra] = Field(default_factory=list)

    def payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ResourceInfo(BaseModel):
    """A resource the publisher wants present in the package."""

    name: str = Field(..., min_length=1)
    url: str = ""
    description: str = ""
