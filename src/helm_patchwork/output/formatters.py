"""Table / JSON / YAML output dispatch."""

from __future__ import annotations

import json
from typing import Any

import yaml
from rich.console import Console

from helm_patchwork.models.catalog import Catalog
from helm_patchwork.models.image import Image
from helm_patchwork.models.manifest import PublishedChart, SinglePatchResult
from helm_patchwork.models.tracking import DiscoveredTarget

console = Console()
error_console = Console(stderr=True)


def print_error(message: str) -> None:
    error_console.print(f"[red bold]Error:[/red bold] {message}")


def _emit(data: Any, fmt: str) -> bool:
    """Print *data* as JSON or YAML; return False when a table is wanted."""
    if fmt == "json":
        console.print_json(json.dumps(data, indent=2))
        return True
    if fmt == "yaml":
        console.print(yaml.dump(data, default_flow_style=False, sort_keys=False))
        return True
    return False


def output_images(images: list[Image], fmt: str, title: str = "Images") -> None:
    if not _emit([img.to_dict() for img in images], fmt):
        from helm_patchwork.output.tables import image_table
        console.print(image_table(images, title=title))


def output_targets(targets: list[DiscoveredTarget], fmt: str) -> None:
    if not _emit([t.to_dict() for t in targets], fmt):
        from helm_patchwork.output.tables import target_table
        console.print(target_table(targets))


def output_patch_result(result: SinglePatchResult, fmt: str) -> None:
    if not _emit(result.to_dict(), fmt):
        from helm_patchwork.output.tables import patch_result_panel
        console.print(patch_result_panel(result))


def output_published_charts(charts: list[PublishedChart], fmt: str) -> None:
    if not _emit([c.to_dict() for c in charts], fmt):
        from helm_patchwork.output.tables import published_chart_table
        console.print(published_chart_table(charts))


def output_catalog(catalog: Catalog, fmt: str) -> None:
    if fmt == "json":
        # Summary only; the full document is written to disk.
        console.print_json(json.dumps({"summary": catalog.summary.to_dict()}, indent=2))
    elif fmt == "yaml":
        console.print(yaml.dump({"summary": catalog.summary.to_dict()}, default_flow_style=False))
    else:
        from helm_patchwork.output.tables import catalog_table
        console.print(catalog_table(catalog))
