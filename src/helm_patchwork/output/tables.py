"""Rich table builders for each command."""

from __future__ import annotations

from rich.panel import Panel
from rich.table import Table

from helm_patchwork.models.catalog import Catalog
from helm_patchwork.models.image import Image
from helm_patchwork.models.manifest import PublishedChart, SinglePatchResult
from helm_patchwork.models.tracking import DiscoveredTarget
from helm_patchwork.output.themes import styled_severity_counts, styled_skip_reason, styled_status


def image_table(images: list[Image], title: str = "Images") -> Table:
    table = Table(title=title, expand=True, show_lines=False)
    table.add_column("Registry", style="cyan", no_wrap=True)
    table.add_column("Repository", style="bold white", no_wrap=True)
    table.add_column("Tag", style="magenta")
    table.add_column("Path", style="dim")

    for img in images:
        tag = img.tag or "-"
        if img.overridden_from:
            tag = f"{tag} [dim](was {img.overridden_from})[/dim]"
        table.add_row(img.registry or "-", img.repository, tag, img.path or "-")
    return table


def target_table(targets: list[DiscoveredTarget]) -> Table:
    table = Table(title="Patch Targets", expand=True)
    table.add_column("Name", style="bold white", no_wrap=True)
    table.add_column("Source", style="cyan")
    table.add_column("Target Registry", style="magenta")
    table.add_column("Platforms", style="dim")

    for t in targets:
        table.add_row(t.name, t.source, t.target_registry or "-", t.platforms)
    return table


def patch_result_panel(result: SinglePatchResult) -> Panel:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="bold cyan", no_wrap=True)
    table.add_column("Value")

    table.add_row("Image", result.image_ref)
    table.add_row("Status", styled_status(result.status))
    patched = result.patched_image
    table.add_row("Patched", patched.reference() if patched else "-")
    table.add_row("Fixable Vulns", str(result.vuln_count))
    if result.skip_reason:
        table.add_row("Skip Reason", styled_skip_reason(result.skip_reason))
    if result.error:
        table.add_row("Error", f"[red]{result.error}[/red]")
    table.add_row("Changed", "yes" if result.changed else "no")

    return Panel(table, title=f"[bold]Patch: {result.image_ref}[/bold]", border_style="blue")


def published_chart_table(charts: list[PublishedChart]) -> Table:
    table = Table(title="Wrapper Charts", expand=True)
    table.add_column("Chart", style="bold white", no_wrap=True)
    table.add_column("Version", style="magenta")
    table.add_column("OCI Ref", style="cyan")
    table.add_column("Images", justify="right")

    for c in charts:
        table.add_row(c.name, c.version, c.oci_ref if c.registry else "-", str(len(c.images)))
    return table


def catalog_table(catalog: Catalog) -> Table:
    s = catalog.summary
    table = Table(
        title="Image Catalog",
        caption=(
            f"{s.total_images} images, {s.total_vulns_before} vulns before, "
            f"{s.total_vulns_after} after, {s.fixed_vulns} fixed"
        ),
        expand=True,
    )
    table.add_column("Image", style="bold white", no_wrap=True)
    table.add_column("OS", style="dim")
    table.add_column("Before", justify="right")
    table.add_column("After", justify="right")
    table.add_column("Fixed", justify="right", style="green")
    table.add_column("Remaining by Severity")

    for img in catalog.images:
        table.add_row(
            img.original_ref,
            img.os or "-",
            str(img.before_vulns.total),
            str(img.after_vulns.total),
            str(img.fixed),
            styled_severity_counts(img.after_vulns.severity_counts),
        )
    return table
