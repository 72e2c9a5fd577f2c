"""CLI tests with Typer's CliRunner; CMS/CKAN clients are replaced by fakes."""

from types import SimpleNamespace

import pytest
from typer.testing import CliRunner

from cli import doctor
from cli import main as cli_main
from core.config import AppSettings
from core.interfaces.preparers import Preparers

runner = CliRunner()


@pytest.fixture
def cli_env(monkeypatch, settings, fake_cms, fake_ckan):
    fake_ckan.base_url = "https://ckan.example.com"
    monkeypatch.setattr(cli_main, "AppSettings", lambda: settings)
    monkeypatch.setattr(cli_main, "configure_logging", lambda *args, **kwargs: None)
    monkeypatch.setattr(cli_main, "ReearthCMSClient", SimpleNamespace(from_settings=lambda s: fake_cms))
    monkeypatch.setattr(cli_main, "CkanActionClient", SimpleNamespace(from_settings=lambda s: fake_ckan))
    return SimpleNamespace(cms=fake_cms, ckan=fake_ckan)


def test_publish_prints_resources(cli_env):
    result = runner.invoke(cli_main.app, ["-q", "publish", "city-1"])

    assert result.exit_code == 0, result.output
    assert "13100-tokyo23-ku-2023" in result.output
    assert "created" in result.output
    assert "13100-tokyo23-ku-2023" in cli_env.ckan.packages


def test_publish_failure_exits_with_error(cli_env):
    cli_env.cms.fail_get.add("data-1")

    result = runner.invoke(cli_main.app, ["-q", "publish", "city-1"])

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_publish_without_configuration(monkeypatch):
    monkeypatch.setattr(cli_main, "AppSettings", lambda: AppSettings(_env_file=None))
    monkeypatch.setattr(cli_main, "configure_logging", lambda *args, **kwargs: None)
    for name in ("CMS_BASE_URL", "CMS_TOKEN", "CKAN_BASE_URL", "CKAN_TOKEN"):
        monkeypatch.delenv(f"PLATEAU_GSPATIAL_{name}", raising=False)

    result = runner.invoke(cli_main.app, ["-q", "publish", "city-1"])

    assert result.exit_code == 1
    assert "CMS is not configured" in result.output


def test_prepare_dry_run(cli_env, monkeypatch, tmp_path):
    async def maxlod(cw, mc):
        path = mc.tmp_dir / mc.file_name("maxlod", ".csv")
        path.write_text("code,type,maxlod\n", encoding="utf-8")
        return path

    seen_refs = []

    def load(ref):
        seen_refs.append(ref)
        return Preparers(prepare_maxlod=maxlod)

    monkeypatch.setattr(cli_main, "load_preparers", load)

    result = runner.invoke(
        cli_main.app,
        [
            "-q",
            "prepare",
            "city-1",
            "-f",
            "bldg",
            "--feature-type",
            "tran",
            "--skip-citygml",
            "--skip-plateau",
            "--skip-related",
            "--skip-index",
            "--preparers",
            "my_preparers:REGISTRY",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "MaxLOD" in result.output
    assert seen_refs == ["my_preparers:REGISTRY"]
    assert cli_env.cms.uploads == []


def test_prepare_with_nothing_to_do(cli_env):
    result = runner.invoke(
        cli_main.app,
        [
            "-q",
            "prepare",
            "city-1",
            "-f",
            "bldg",
            "--skip-citygml",
            "--skip-plateau",
            "--skip-maxlod",
            "--skip-related",
            "--skip-index",
        ],
    )

    assert result.exit_code == 1
    assert "no command to run" in result.output


def test_doctor_run_reports_configuration(monkeypatch, settings):
    async def check(url, s):
        return True, "HTTP 200"

    monkeypatch.setattr(doctor, "AppSettings", lambda: settings)
    monkeypatch.setattr(doctor, "_check_http", check)

    result = runner.invoke(doctor.app, ["run"])

    assert result.exit_code == 0, result.output
    assert "CMS config" in result.output
    assert "CKAN connectivity" in result.output
    assert "doctor setup" not in result.output


def test_doctor_setup_writes_env(monkeypatch, tmp_path):
    written = {}

    def fake_write(values, env_path=None):
        written.update(values)
        return tmp_path / ".env"

    monkeypatch.setattr(doctor, "write_user_env_vars", fake_write)

    result = runner.invoke(
        doctor.app,
        ["setup"],
        input="https://cms.example.com\ncms-token\n\n\nckan-token\nplateau\n",
    )

    assert result.exit_code == 0, result.output
    assert written["PLATEAU_GSPATIAL_CMS_BASE_URL"] == "https://cms.example.com"
    assert written["PLATEAU_GSPATIAL_CMS_PROJECT_ID"] is None
    assert written["PLATEAU_GSPATIAL_CKAN_BASE_URL"] == "https://www.geospatial.jp/ckan"
    assert written["PLATEAU_GSPATIAL_CKAN_ORG"] == "plateau"


def test_prepare_wet_run_without_project_exits_cleanly(cli_env, monkeypatch, settings):
    settings.cms_project_id = None
    calls = []

    async def maxlod(cw, mc):
        calls.append("maxlod")
        return mc.tmp_dir / "maxlod.csv"

    monkeypatch.setattr(cli_main, "load_preparers", lambda ref: Preparers(prepare_maxlod=maxlod))

    result = runner.invoke(
        cli_main.app,
        [
            "-q",
            "prepare",
            "city-1",
            "-f",
            "bldg",
            "--wet-run",
            "--skip-citygml",
            "--skip-plateau",
            "--skip-related",
            "--skip-index",
        ],
    )

    assert result.exit_code == 1
    assert "Error:" in result.output
    assert "project id" in result.output
    assert calls == []
    assert cli_env.cms.comments == []
