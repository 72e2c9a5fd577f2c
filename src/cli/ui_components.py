"""CLI UI components (Rich).

Why separate components:
- Keeps command logic apart from presentation details.
- Lets several commands reuse the same tables/panels.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.services.prepare_pipeline import PrepareResult
from core.services.publish_pipeline import PublishResult


def print_banner(console: Console) -> None:
    """Print the welcome banner.

    Why here:
    - Avoids circular imports (main <-> doctor).
    - Lets non-interactive modes skip the banner.
    """

    title = Text("PLATEAU G-Spatial", style="bold cyan")
    subtitle = Text("CMS → G空間情報センター publication worker", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_prepare_panel(result: PrepareResult) -> Panel:
    if result.skipped:
        body = Text(f"Skipped: {result.reason or 'no reason'}", style="yellow")
        return Panel(body, title=f"Prepare {result.city_item_id}", border_style="yellow")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Artifact", style="cyan", no_wrap=True)
    table.add_column("Path", style="white")
    for label, path in (
        ("MaxLOD", result.maxlod_path),
        ("Related", result.related_path),
        ("CityGML", result.citygml_path),
        ("3D Tiles, MVT", result.plateau_path),
    ):
        table.add_row(label, str(path) if path else "-")
    table.add_row("Index", "generated" if result.index_generated else "-")

    if result.warnings:
        for w in result.warnings:
            table.add_row("[yellow]warning[/yellow]", w)

    return Panel(table, title=f"Prepare {result.city_item_id}", border_style="green")


def build_publish_table(result: PublishResult) -> Table:
    """Table of the resources registered in the CKAN package."""

    verb = "created" if result.created else "updated"
    table = Table(title=f"{result.package.name} ({verb})", caption=result.url)
    table.add_column("Resource", style="cyan", no_wrap=True)
    table.add_column("URL", style="magenta")
    table.add_column("ID", style="dim")
    for r in result.resources:
        table.add_row(r.name, r.url or "-", r.id)
    return table
