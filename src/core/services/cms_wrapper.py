"""CMS write-side helpers bound to one city's G空間情報センター data item.

All writes (comments, status changes, uploads) go through this wrapper so the
dry-run mode can log them instead of touching the CMS. Comment and status
failures are logged, never raised: they must not hide the error being
reported.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog

from core.domain.models import CMSAsset, GspatialjpDataItem
from core.domain.status import ItemStatus
from core.errors import ConfigurationError
from core.interfaces.cms import CMSClient

logger = structlog.get_logger()

STATUS_KEYS: dict[str, str] = {
    "citygml": GspatialjpDataItem.KEY_STATUS_CITYGML,
    "plateau": GspatialjpDataItem.KEY_STATUS_PLATEAU,
    "maxlod": GspatialjpDataItem.KEY_STATUS_MAXLOD,
}

ERROR_COMMENT = "公開準備処理中にエラーが発生しました：{error}"


class CMSWrapper:
    def __init__(
        self,
        cms: CMSClient,
        *,
        data_item_id: str,
        city_item_id: str,
        project_id: str | None = None,
        skip_citygml: bool = False,
        skip_plateau: bool = False,
        skip_maxlod: bool = False,
        skip_index: bool = False,
        wet_run: bool = False,
    ) -> None:
        self.cms = cms
        self.data_item_id = data_item_id
        self.city_item_id = city_item_id
        self.project_id = project_id
        self.skip_citygml = skip_citygml
        self.skip_plateau = skip_plateau
        self.skip_maxlod = skip_maxlod
        self.skip_index = skip_index
        self.wet_run = wet_run

    async def comment(self, text: str) -> None:
        if not self.wet_run:
            logger.info("dry_run_comment", item_id=self.data_item_id, comment=text)
            return
        try:
            await self.cms.comment_to_item(self.data_item_id, text)
        except Exception as exc:
            logger.error("cms_comment_failed", item_id=self.data_item_id, error=str(exc))

    async def commentf(self, template: str, *args: Any) -> None:
        await self.comment(template % args if args else template)

    async def update_data_item(self, fields: list[dict[str, Any]]) -> None:
        if not fields:
            return
        if not self.wet_run:
            logger.info("dry_run_update", item_id=self.data_item_id, fields=fields)
            return
        await self.cms.update_item(self.data_item_id, fields)

    async def set_status(self, status: ItemStatus, *, citygml: bool, plateau: bool, maxlod: bool) -> None:
        targets = {"citygml": citygml, "plateau": plateau, "maxlod": maxlod}
        fields = [
            {"key": STATUS_KEYS[name], "type": "select", "value": status.value}
            for name, enabled in targets.items()
            if enabled
        ]
        try:
            await self.update_data_item(fields)
        except Exception as exc:
            logger.error("cms_status_update_failed", status=status.label(), error=str(exc))

    async def notify_running(self) -> None:
        await self.set_status(
            ItemStatus.RUNNING,
            citygml=not self.skip_citygml,
            plateau=not self.skip_plateau,
            maxlod=not self.skip_maxlod,
        )

    async def notify_error(self, err: Exception, *, citygml: bool, plateau: bool, maxlod: bool) -> None:
        await self.set_status(ItemStatus.ERROR, citygml=citygml, plateau=plateau, maxlod=maxlod)
        await self.comment(ERROR_COMMENT.format(error=err))

    async def upload_artifact(self, key: str, path: Path) -> CMSAsset | None:
        """Upload a merged file and attach it to the data item field `key`.

        The step's status (when `key` has one) becomes SUCCESS. Returns None in
        dry-run mode.
        """

        if not self.wet_run:
            logger.info("dry_run_upload", key=key, path=str(path))
            return None
        if not self.project_id:
            raise ConfigurationError(
                "CMS project id is required to upload assets: "
                "pass --project-id or set PLATEAU_GSPATIAL_CMS_PROJECT_ID"
            )

        asset = await self.cms.upload_asset(self.project_id, path)
        fields: list[dict[str, Any]] = [{"key": key, "type": "asset", "value": asset.id}]
        if key in STATUS_KEYS:
            fields.append({"key": STATUS_KEYS[key], "type": "select", "value": ItemStatus.SUCCESS.value})
        await self.update_data_item(fields)
        logger.info("artifact_uploaded", key=key, asset_id=asset.id, url=asset.url)
        return asset

    async def update_index(self, text: str) -> None:
        await self.update_data_item([{"key": GspatialjpDataItem.KEY_INDEX, "type": "markdown", "value": text}])
