"""Publication preparation for one city item.

Reads the city, index, data and feature items from the CMS, validates the
business rules (year, spec version, update count, statuses) and then drives
the preparation collaborators in a fixed order: MaxLOD, related, CityGML,
3D Tiles/MVT and finally the index. Merged files are uploaded back to the
data item through `CMSWrapper`.

Everything runs sequentially; a failing step marks its status as ERROR,
comments the error and propagates it.
"""

from __future__ import annotations

import random
import shutil
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, TypeVar

import structlog

from adapters.downloader import download_file_to
from core.config import AppSettings
from core.domain.models import CityItem, FeatureItem, GspatialjpDataItem, GspatialjpIndexItem
from core.domain.prepare import IndexSeed, MergeContext, PrepareConfig
from core.errors import ConfigurationError, InvalidItemError, NoCommandError, PreparationError
from core.interfaces.cms import CMSClient
from core.interfaces.preparers import Preparers
from core.services.cms_wrapper import CMSWrapper

logger = structlog.get_logger()

T = TypeVar("T")
Downloader = Callable[[str, Path], Awaitable[Path]]

DONE_COMMENT = "公開準備処理が完了しました。"
WARNING_COMMENT = "公開準備処理中に警告が発生しました：\n"
INVALID_YEAR_COMMENT = "公開準備処理を開始できません。整備年度が不正です: %s"
INVALID_SPEC_COMMENT = "公開準備処理を開始できません。仕様書バージョンが不正です: %s"
INVALID_UPDATE_COUNT_COMMENT = (
    "公開準備処理を開始できません。codeListsのzipファイルの命名規則が不正のため版数を読み取れませんでした。"
    "もう一度ファイル名の命名規則を確認してください。_1_op_のような文字が必須です。: %s"
)


@dataclass
class PrepareResult:
    city_item_id: str
    skipped: bool = False
    reason: str | None = None
    tmp_dir: Path | None = None
    maxlod_path: Path | None = None
    related_path: Path | None = None
    citygml_path: Path | None = None
    plateau_path: Path | None = None
    index_generated: bool = False
    warnings: list[str] = field(default_factory=list)


def new_tmp_dir(base: Path) -> Path:
    name = f"{datetime.now():%Y%m%d-%H%M%S}-{random.randrange(1000)}"
    path = base / name
    path.mkdir(parents=True, exist_ok=True)
    return path


def merge_dics(items: dict[str, FeatureItem]) -> dict[str, list[Any]]:
    """Merge the code dictionaries of every feature item.

    Entries under the same dictionary key are concatenated in feature-type
    order; duplicates are dropped. Malformed dictionaries are skipped.
    """

    merged: dict[str, list[Any]] = {}
    for ty in sorted(items):
        item = items[ty]
        try:
            dic = item.parsed_dic()
        except ValueError as exc:
            logger.warning("feature_dic_invalid", feature_type=ty, item_id=item.id, error=str(exc))
            continue
        for key, entries in dic.items():
            bucket = merged.setdefault(key, [])
            for entry in entries if isinstance(entries, list) else [entries]:
                if entry not in bucket:
                    bucket.append(entry)
    return merged


async def get_all_feature_items(cms: CMSClient, city_item: CityItem) -> dict[str, FeatureItem]:
    items: dict[str, FeatureItem] = {}
    for ty, item_id in city_item.feature_items.items():
        raw = await cms.get_item(item_id, asset=True)
        items[ty] = FeatureItem.from_cms(raw, ty)
    return items


def _uploading_steps(conf: PrepareConfig) -> list[str]:
    flags = {
        "maxlod": conf.skip_maxlod,
        "related": conf.skip_related,
        "citygml": conf.skip_citygml,
        "plateau": conf.skip_plateau,
    }
    return [name for name, skipped in flags.items() if not skipped]


def _index_possible(conf: PrepareConfig, gdata_item: GspatialjpDataItem) -> bool:
    """The index needs both zips, either merged in this run or already stored."""

    if conf.skip_index:
        return False
    has_citygml = not conf.skip_citygml or bool(gdata_item.citygml_url)
    has_plateau = not conf.skip_plateau or bool(gdata_item.plateau_url)
    return has_citygml and has_plateau


def _required_steps(conf: PrepareConfig, gdata_item: GspatialjpDataItem) -> list[str]:
    steps: list[str] = []
    if not conf.skip_maxlod:
        steps.append("prepare_maxlod")
    elif conf.validate_maxlod:
        steps.append("validate_maxlod")
    if not conf.skip_related:
        steps.append("prepare_related")
    if not conf.skip_citygml:
        steps.append("prepare_citygml")
    if not conf.skip_plateau:
        steps.append("prepare_plateau")
    if _index_possible(conf, gdata_item):
        steps.append("prepare_index")
    return steps


class PreparePipeline:
    def __init__(
        self,
        *,
        cms: CMSClient,
        preparers: Preparers,
        settings: AppSettings | None = None,
        downloader: Downloader | None = None,
    ) -> None:
        self._cms = cms
        self._preparers = preparers
        self._settings = settings or AppSettings()
        self._download = downloader or self._default_download

    async def _default_download(self, url: str, directory: Path) -> Path:
        return await download_file_to(url, directory, settings=self._settings)

    async def run(self, conf: PrepareConfig) -> PrepareResult:
        log = logger.bind(city_item_id=conf.city_item_id)
        log.info("prepare_started", conf=conf.model_dump())
        # Status checks below toggle skip flags; keep the caller's object intact.
        conf = conf.model_copy(deep=True)

        if not conf.has_command():
            raise NoCommandError()
        if not conf.feature_types:
            raise ConfigurationError("feature types is required")

        log.info("fetching_city_item")
        try:
            city_raw = await self._cms.get_item(conf.city_item_id, asset=True)
        except Exception as exc:
            raise PreparationError(f"failed to get city item: {exc}") from exc

        city_item = CityItem.from_cms(city_raw, conf.feature_types)
        log.debug("city_item", city_item=city_item.model_dump())

        if not city_item.is_complete():
            if conf.skip_incomplete_items:
                log.info("prepare_skipped", reason="city item is incomplete")
                return PrepareResult(conf.city_item_id, skipped=True, reason="city item is incomplete")
            raise InvalidItemError(f"invalid city item: {conf.city_item_id}")

        index_item: GspatialjpIndexItem | None = None
        if city_item.gspatialjp_index:
            try:
                index_item = GspatialjpIndexItem.from_cms(
                    await self._cms.get_item(city_item.gspatialjp_index, asset=False)
                )
            except Exception as exc:
                raise PreparationError(f"failed to get index item: {exc}") from exc

        try:
            gdata_item = GspatialjpDataItem.from_cms(await self._cms.get_item(city_item.gspatialjp_data, asset=True))
        except Exception as exc:
            raise PreparationError(f"failed to get geospatialjp data item: {exc}") from exc
        log.debug("gspatialjp_data_item", item=gdata_item.model_dump())

        if not conf.ignore_status:
            if not gdata_item.should_merge_citygml():
                log.info("step_skipped_running", step="citygml")
                conf.skip_citygml = True
            if not gdata_item.should_merge_plateau():
                log.info("step_skipped_running", step="plateau")
                conf.skip_plateau = True
            if not gdata_item.should_merge_maxlod():
                log.info("step_skipped_running", step="maxlod")
                conf.skip_maxlod = True

        if not conf.has_command():
            raise NoCommandError()

        missing = [s for s in _required_steps(conf, gdata_item) if getattr(self._preparers, s) is None]
        if missing:
            raise PreparationError(f"no preparer registered for: {', '.join(missing)}")

        project_id = conf.project_id or self._settings.cms_project_id
        uploading = _uploading_steps(conf)
        if conf.wet_run and uploading and not project_id:
            raise ConfigurationError(
                f"CMS project id is required to upload {', '.join(uploading)}: "
                "pass --project-id or set PLATEAU_GSPATIAL_CMS_PROJECT_ID"
            )

        cw = CMSWrapper(
            self._cms,
            data_item_id=city_item.gspatialjp_data,
            city_item_id=conf.city_item_id,
            project_id=project_id,
            skip_citygml=conf.skip_citygml,
            skip_plateau=conf.skip_plateau,
            skip_maxlod=conf.skip_maxlod,
            skip_index=conf.skip_index,
            wet_run=conf.wet_run,
        )

        checks = (
            (city_item.year_int(), "year is invalid", INVALID_YEAR_COMMENT, city_item.year),
            (city_item.spec_version_major_int(), "spec version is invalid", INVALID_SPEC_COMMENT, city_item.spec),
            (city_item.update_count(), "update count is invalid", INVALID_UPDATE_COUNT_COMMENT, city_item.code_lists),
        )
        for value, reason, comment, raw in checks:
            if value:
                continue
            if conf.skip_incomplete_items:
                log.info("prepare_skipped", reason=reason)
                return PrepareResult(conf.city_item_id, skipped=True, reason=reason)
            await cw.commentf(comment, raw)
            raise InvalidItemError(f"{reason}: {raw}")

        tmp_dir = new_tmp_dir(self._settings.tmp_dir_base)
        log.info("tmp_dir_created", tmp_dir=str(tmp_dir))
        try:
            return await self._prepare(conf, cw, city_item, index_item, gdata_item, tmp_dir)
        finally:
            if conf.clean:
                log.info("tmp_dir_cleaning", tmp_dir=str(tmp_dir))
                try:
                    shutil.rmtree(tmp_dir)
                except OSError as exc:
                    log.warning("tmp_dir_cleanup_failed", tmp_dir=str(tmp_dir), error=str(exc))

    async def _prepare(
        self,
        conf: PrepareConfig,
        cw: CMSWrapper,
        city_item: CityItem,
        index_item: GspatialjpIndexItem | None,
        gdata_item: GspatialjpDataItem,
        tmp_dir: Path,
    ) -> PrepareResult:
        log = logger.bind(city_item_id=conf.city_item_id)
        result = PrepareResult(conf.city_item_id, tmp_dir=tmp_dir)

        log.info("fetching_feature_items", feature_types=list(city_item.feature_items))
        try:
            all_feature_items = await get_all_feature_items(self._cms, city_item)
        except Exception as exc:
            await cw.notify_error(
                exc,
                citygml=not conf.skip_citygml,
                plateau=not conf.skip_plateau,
                maxlod=not conf.skip_maxlod,
            )
            raise PreparationError(f"failed to get all feature items: {exc}") from exc

        dic = merge_dics(all_feature_items)
        log.debug("merged_dic", keys=sorted(dic))

        mc = MergeContext(
            tmp_dir=tmp_dir,
            city_item=city_item,
            all_feature_items=all_feature_items,
            gspatialjp_data_item=gdata_item,
            wet_run=conf.wet_run,
            feature_types=conf.feature_types,
        )

        await cw.notify_running()

        p = self._preparers
        if not conf.skip_maxlod:
            result.maxlod_path = await self._step(
                cw, "maxlod", self._artifact(cw, p.prepare_maxlod(cw, mc), GspatialjpDataItem.KEY_MAXLOD), maxlod=True
            )
        elif conf.validate_maxlod:
            await self._step(cw, "validate_maxlod", p.validate_maxlod(cw, mc), maxlod=True)

        if not conf.skip_related:
            result.related_path = await self._step(
                cw, "related", self._artifact(cw, p.prepare_related(cw, mc), GspatialjpDataItem.KEY_RELATED)
            )
        elif not conf.skip_index and gdata_item.related_url:
            result.related_path = await self._fetch_merged("related", gdata_item.related_url, tmp_dir)

        if not conf.skip_citygml:
            result.citygml_path = await self._step(
                cw, "citygml", self._artifact(cw, p.prepare_citygml(cw, mc), GspatialjpDataItem.KEY_CITYGML), citygml=True
            )
        elif not conf.skip_index and gdata_item.citygml_url:
            result.citygml_path = await self._fetch_merged("citygml", gdata_item.citygml_url, tmp_dir)

        if not conf.skip_plateau:
            path, warnings = await self._step(cw, "plateau", self._plateau(cw, p.prepare_plateau(cw, mc)), plateau=True)
            if warnings:
                result.warnings.extend(warnings)
                await cw.comment(WARNING_COMMENT + "\n".join(warnings))
            result.plateau_path = path
        elif not conf.skip_index and gdata_item.plateau_url:
            result.plateau_path = await self._fetch_merged("plateau", gdata_item.plateau_url, tmp_dir)

        log.info("merged_paths", citygml=str(result.citygml_path), plateau=str(result.plateau_path))

        if not conf.skip_index and result.citygml_path and result.plateau_path:
            seed = IndexSeed(
                city_name=city_item.city_name,
                city_code=city_item.city_code,
                year=city_item.year_int(),
                v=city_item.spec_version_major_int(),
                citygml_zip_path=result.citygml_path,
                plateau_zip_path=result.plateau_path,
                related_zip_path=result.related_path,
                generic=index_item.generic if index_item else "",
                dic=dic,
            )
            await self._step(cw, "index", self._index(cw, p.prepare_index(cw, seed, conf.feature_types)))
            result.index_generated = True
        else:
            log.info("index_skipped")

        await cw.comment(DONE_COMMENT)
        log.info("prepare_finished")
        return result

    async def _step(
        self,
        cw: CMSWrapper,
        name: str,
        call: Awaitable[T],
        *,
        citygml: bool = False,
        plateau: bool = False,
        maxlod: bool = False,
    ) -> T:
        logger.info("step_started", step=name)
        try:
            value = await call
        except Exception as exc:
            logger.error("step_failed", step=name, error=str(exc))
            await cw.notify_error(exc, citygml=citygml, plateau=plateau, maxlod=maxlod)
            raise
        logger.info("step_finished", step=name)
        return value

    @staticmethod
    async def _artifact(cw: CMSWrapper, call: Awaitable[Path], key: str) -> Path:
        path = await call
        await cw.upload_artifact(key, path)
        return path

    @staticmethod
    async def _plateau(cw: CMSWrapper, call: Awaitable[tuple[Path, list[str]]]) -> tuple[Path, list[str]]:
        path, warnings = await call
        await cw.upload_artifact(GspatialjpDataItem.KEY_PLATEAU, path)
        return path, warnings

    @staticmethod
    async def _index(cw: CMSWrapper, call: Awaitable[str]) -> str:
        text = await call
        await cw.update_index(text)
        return text

    async def _fetch_merged(self, name: str, url: str, tmp_dir: Path) -> Path:
        try:
            return await self._download(url, tmp_dir)
        except Exception as exc:
            raise PreparationError(f"failed to download merged {name}: {exc}") from exc


async def command_single(
    conf: PrepareConfig,
    *,
    cms: CMSClient,
    preparers: Preparers,
    settings: AppSettings | None = None,
) -> PrepareResult:
    """Run the preparation for one city item."""

    return await PreparePipeline(cms=cms, preparers=preparers, settings=settings).run(conf)
