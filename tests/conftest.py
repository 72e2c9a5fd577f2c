"""Shared fixtures: settings, in-memory CMS/CKAN fakes and a sample city."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.config import AppSettings
from fakes import FakeCKAN, FakeCMS, asset, city_fields, data_fields, make_item


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    return AppSettings(
        _env_file=None,
        cms_base_url="https://cms.example.com",
        cms_token="cms-secret",
        cms_project_id="project-1",
        ckan_base_url="https://ckan.example.com/",
        ckan_token="ckan-secret",
        ckan_org="plateau",
        tmp_dir_base=tmp_path / "work",
    )


@pytest.fixture
def fake_cms() -> FakeCMS:
    cms = FakeCMS()
    cms.add(make_item("city-1", city_fields()))
    cms.add(make_item("data-1", data_fields()))
    cms.add(
        make_item(
            "index-1",
            {
                "generic": "その他のデータセット一覧",
                "generic_datasets": [
                    {"name": "道路台帳", "desc": "容量: ${{ZIP_SIZE}}", "asset": asset("road.zip", 82854982)},
                    {"name": "未アップロード", "desc": "", "asset": None},
                ],
            },
        )
    )
    cms.add(
        make_item(
            "feature-bldg",
            {
                "data": [asset("bldg_1.zip"), asset("bldg_2.zip")],
                "dic": '{"admin": [{"code": "13101", "description": "千代田区"}]}',
            },
        )
    )
    cms.add(
        make_item(
            "feature-tran",
            {
                "data": [asset("tran.zip")],
                "dic": '{"admin": [{"code": "13101", "description": "千代田区"}, {"code": "13102", "description": "中央区"}]}',
            },
        )
    )
    return cms


@pytest.fixture
def fake_ckan() -> FakeCKAN:
    return FakeCKAN()
