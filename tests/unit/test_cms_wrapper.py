"""Unit tests for the CMS write-side wrapper."""

from pathlib import Path

import pytest

from core.domain.status import ItemStatus
from core.errors import ConfigurationError
from core.services.cms_wrapper import CMSWrapper


def _wrapper(cms, **kwargs) -> CMSWrapper:
    kwargs.setdefault("wet_run", True)
    return CMSWrapper(cms, data_item_id="data-1", city_item_id="city-1", project_id="project-1", **kwargs)


@pytest.mark.asyncio
async def test_dry_run_does_not_write(fake_cms, tmp_path: Path):
    cw = _wrapper(fake_cms, wet_run=False)

    await cw.comment("hello")
    await cw.notify_running()
    await cw.update_index("# index")
    asset = await cw.upload_artifact("citygml", tmp_path / "a.zip")

    assert asset is None
    assert fake_cms.comments == []
    assert fake_cms.updates == []
    assert fake_cms.uploads == []


@pytest.mark.asyncio
async def test_commentf_formats_and_targets_data_item(fake_cms):
    await _wrapper(fake_cms).commentf("年度が%sです", 2019)
    assert fake_cms.comments == [("data-1", "年度が2019です")]


@pytest.mark.asyncio
async def test_notify_running_respects_skips(fake_cms):
    await _wrapper(fake_cms, skip_plateau=True).notify_running()

    (item_id, fields), = fake_cms.updates
    assert item_id == "data-1"
    assert fields == [
        {"key": "merge_citygml_status", "type": "select", "value": ItemStatus.RUNNING.value},
        {"key": "merge_maxlod_status", "type": "select", "value": ItemStatus.RUNNING.value},
    ]


@pytest.mark.asyncio
async def test_notify_error_sets_status_and_comments(fake_cms):
    await _wrapper(fake_cms).notify_error(RuntimeError("merge failed"), citygml=False, plateau=True, maxlod=False)

    assert fake_cms.updates == [
        ("data-1", [{"key": "merge_plateau_status", "type": "select", "value": "エラー"}]),
    ]
    assert fake_cms.comments_for("data-1") == ["公開準備処理中にエラーが発生しました：merge failed"]


@pytest.mark.asyncio
async def test_notify_error_without_targets_only_comments(fake_cms):
    await _wrapper(fake_cms).notify_error(RuntimeError("x"), citygml=False, plateau=False, maxlod=False)
    assert fake_cms.updates == []
    assert len(fake_cms.comments) == 1


@pytest.mark.asyncio
async def test_comment_failure_is_swallowed(fake_cms):
    fake_cms.fail_comment = True
    await _wrapper(fake_cms).comment("hello")
    assert fake_cms.comments == []


@pytest.mark.asyncio
async def test_upload_artifact_sets_asset_and_success(fake_cms, tmp_path: Path):
    path = tmp_path / "13100_tokyo23-ku_city_2023_citygml_1_op.zip"
    path.write_bytes(b"zip")

    asset = await _wrapper(fake_cms).upload_artifact("citygml", path)

    assert asset is not None and asset.id == "uploaded-1"
    assert fake_cms.uploads == [("project-1", path)]
    assert fake_cms.updates == [
        (
            "data-1",
            [
                {"key": "citygml", "type": "asset", "value": "uploaded-1"},
                {"key": "merge_citygml_status", "type": "select", "value": "完了"},
            ],
        )
    ]


@pytest.mark.asyncio
async def test_upload_related_has_no_status(fake_cms, tmp_path: Path):
    path = tmp_path / "related.zip"
    path.write_bytes(b"zip")

    await _wrapper(fake_cms).upload_artifact("related", path)

    assert fake_cms.updates == [("data-1", [{"key": "related", "type": "asset", "value": "uploaded-1"}])]


@pytest.mark.asyncio
async def test_upload_requires_project(fake_cms, tmp_path: Path):
    cw = CMSWrapper(fake_cms, data_item_id="data-1", city_item_id="city-1", wet_run=True)
    with pytest.raises(ConfigurationError, match="project id"):
        await cw.upload_artifact("citygml", tmp_path / "a.zip")
