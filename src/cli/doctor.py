"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client
from core.config import AppSettings, write_user_env_vars

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_http(url: str, settings: AppSettings) -> tuple[bool, str]:
    try:
        async with build_async_client(settings) as client:
            response = await client.get(url)
        return response.is_success, f"HTTP {response.status_code}"
    except Exception as exc:
        return False, str(exc)


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="PLATEAU G-Spatial Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    cms_ok = bool(settings.cms_base_url and settings.cms_token)
    table.add_row("CMS config", "OK" if cms_ok else "MISSING", settings.cms_base_url or "base URL/token not set")
    table.add_row(
        "CMS project",
        "OK" if settings.cms_project_id else "OPTIONAL",
        settings.cms_project_id or "needed for --wet-run uploads",
    )
    ckan_ok = bool(settings.ckan_base_url and settings.ckan_token)
    table.add_row("CKAN config", "OK" if ckan_ok else "MISSING", settings.ckan_base_url or "base URL/token not set")
    table.add_row("CKAN org", "OK" if settings.ckan_org else "OPTIONAL", settings.ckan_org or "packages without owner_org")

    # Connectivity (best-effort)
    if settings.cms_base_url:
        ok, detail = asyncio.run(_check_http(settings.cms_base_url, settings))
        table.add_row("CMS connectivity", "OK" if ok else "FAIL", detail)
    if settings.ckan_base_url:
        status_url = f"{settings.ckan_base_url.rstrip('/')}/api/3/action/status_show"
        ok, detail = asyncio.run(_check_http(status_url, settings))
        table.add_row("CKAN connectivity", "OK" if ok else "FAIL", detail)

    table.add_row("Work dir", "OK", str(settings.tmp_dir_base.resolve()))

    _console.print(table)

    if not cms_ok or not ckan_ok:
        _console.print(
            "\n[yellow]Note:[/yellow] run `plateau-gspatial doctor setup` to store the CMS/CKAN settings."
        )


@app.command(name="setup")
def setup() -> None:
    """Interactive setup (stores config in the user config .env)."""

    cms_base_url = typer.prompt("CMS base URL").strip()
    cms_token = typer.prompt("CMS token", hide_input=True).strip()
    cms_project_id = typer.prompt("CMS project id", default="", show_default=False).strip()
    ckan_base_url = typer.prompt("CKAN base URL", default="https://www.geospatial.jp/ckan").strip()
    ckan_token = typer.prompt("CKAN token", hide_input=True).strip()
    ckan_org = typer.prompt("CKAN organization", default="", show_default=False).strip()

    if not cms_base_url or not ckan_base_url:
        raise typer.BadParameter("CMS and CKAN base URLs are required")

    env_path = write_user_env_vars(
        {
            "PLATEAU_GSPATIAL_CMS_BASE_URL": cms_base_url,
            "PLATEAU_GSPATIAL_CMS_TOKEN": cms_token,
            "PLATEAU_GSPATIAL_CMS_PROJECT_ID": cms_project_id or None,
            "PLATEAU_GSPATIAL_CKAN_BASE_URL": ckan_base_url,
            "PLATEAU_GSPATIAL_CKAN_TOKEN": ckan_token,
            "PLATEAU_GSPATIAL_CKAN_ORG": ckan_org or None,
        }
    )

    _console.print(f"[green]Saved config to:[/green] {env_path}")
