"""CMS client contract.

Why Protocol:
- Structural typing: the Re:Earth CMS adapter and the in-memory test fake are
  interchangeable without inheritance.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from core.domain.models import CMSAsset, CMSItem


@runtime_checkable
class CMSClient(Protocol):
    """Minimal CMS surface used by the pipelines."""

    async def get_item(self, item_id: str, *, asset: bool = False) -> CMSItem:
        """Fetch one item; `asset=True` expands asset fields into objects."""

        ...

    async def comment_to_item(self, item_id: str, content: str) -> None:
        ...

    async def update_item(self, item_id: str, fields: list[dict[str, Any]]) -> CMSItem:
        """Update the given fields (`{"key", "type", "value"}` dicts) of an item."""

        ...

    async def upload_asset(self, project_id: str, path: Path) -> CMSAsset:
        ...
