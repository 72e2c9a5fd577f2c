"""CLI entry point (Typer).

Commands:
- `prepare`: merge/validate artifacts for one city item and upload them to the CMS.
- `publish`: publish the merged artifacts of one city item to G空間情報センター.
- `doctor`: configuration and connectivity checks.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import httpx
import structlog
import typer
from rich.console import Console

from adapters.ckan_client import CkanActionClient
from adapters.cms_client import ReearthCMSClient
from adapters.preparer_loader import load_preparers
from cli import doctor
from cli.ui_components import build_prepare_panel, build_publish_table, print_banner
from core.config import AppSettings, redact_settings
from core.domain.prepare import PrepareConfig
from core.errors import GspatialError
from core.log import configure_logging
from core.services.prepare_pipeline import command_single
from core.services.publish_pipeline import GspatialjpPublisher

app = typer.Typer(
    no_args_is_help=True,
    help="Prepare and publish PLATEAU datasets from the CMS to G空間情報センター.",
)
app.add_typer(doctor.app, name="doctor")

_console = Console()
logger = structlog.get_logger()


def _fail(exc: Exception) -> None:
    _console.print(f"[red]Error:[/red] {exc}")
    raise typer.Exit(code=1)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logs."),
    json_logs: Optional[bool] = typer.Option(None, "--json-logs/--console-logs", help="Log output format."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Hide the banner."),
) -> None:
    settings = AppSettings()
    level = "DEBUG" if verbose else settings.log_level
    configure_logging(level, json_output=settings.log_json if json_logs is None else json_logs)
    if not quiet:
        print_banner(_console)


@app.command()
def prepare(
    city_item_id: str = typer.Argument(..., help="CMS id of the city item."),
    feature_types: list[str] = typer.Option(
        [], "--feature-type", "-f", help="Feature type to include (repeatable), e.g. bldg."
    ),
    project_id: Optional[str] = typer.Option(None, "--project-id", help="CMS project for uploads."),
    skip_citygml: bool = typer.Option(False, "--skip-citygml"),
    skip_plateau: bool = typer.Option(False, "--skip-plateau"),
    skip_maxlod: bool = typer.Option(False, "--skip-maxlod"),
    skip_index: bool = typer.Option(False, "--skip-index"),
    skip_related: bool = typer.Option(False, "--skip-related"),
    validate_maxlod: bool = typer.Option(False, "--validate-maxlod", help="Validate MaxLOD when it is not prepared."),
    wet_run: bool = typer.Option(False, "--wet-run", help="Write to the CMS (default is a dry run)."),
    clean: bool = typer.Option(False, "--clean", help="Remove the work directory at the end."),
    skip_incomplete_items: bool = typer.Option(False, "--skip-incomplete-items"),
    ignore_status: bool = typer.Option(False, "--ignore-status", help="Run even if a step is marked running."),
    preparers_ref: Optional[str] = typer.Option(
        None, "--preparers", help="module:attribute resolving to the Preparers registry."
    ),
) -> None:
    """Prepare the publication artifacts of one city item."""

    settings = AppSettings()
    logger.debug("settings", settings=redact_settings(settings))
    try:
        conf = PrepareConfig(
            city_item_id=city_item_id,
            project_id=project_id,
            skip_citygml=skip_citygml,
            skip_plateau=skip_plateau,
            skip_maxlod=skip_maxlod,
            skip_index=skip_index,
            skip_related=skip_related,
            validate_maxlod=validate_maxlod,
            wet_run=wet_run,
            clean=clean,
            skip_incomplete_items=skip_incomplete_items,
            ignore_status=ignore_status,
            feature_types=feature_types,
        )
        cms = ReearthCMSClient.from_settings(settings)
        preparers = load_preparers(preparers_ref)
        result = asyncio.run(command_single(conf, cms=cms, preparers=preparers, settings=settings))
    except (GspatialError, httpx.HTTPError) as exc:
        _fail(exc)
        return

    _console.print(build_prepare_panel(result))


@app.command()
def publish(
    city_item_id: str = typer.Argument(..., help="CMS id of the city item."),
) -> None:
    """Create or update the G空間情報センター dataset of one city item."""

    settings = AppSettings()
    try:
        cms = ReearthCMSClient.from_settings(settings)
        ckan = CkanActionClient.from_settings(settings)
        publisher = GspatialjpPublisher(
            cms=cms,
            ckan=ckan,
            ckan_base=ckan.base_url,
            ckan_org=settings.ckan_org,
            ckan_private=settings.ckan_private,
        )
        result = asyncio.run(publisher.publish_item(city_item_id))
    except (GspatialError, httpx.HTTPError) as exc:
        _fail(exc)
        return

    _console.print(build_publish_table(result))


def run() -> None:
    app()


if __name__ == "__main__":
    run()
