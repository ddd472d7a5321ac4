"""hpw catalog - Generate the image catalog from scan reports."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from helm_patchwork.cli.options import OutputOption, ReportsDirOption
from helm_patchwork.core.catalog_builder import build_catalog, load_catalog_entries, write_catalog
from helm_patchwork.errors import PatchworkError
from helm_patchwork.output.formatters import output_catalog, print_error

app = typer.Typer()


@app.callback(invoke_without_command=True)
def catalog(
    images_json: Path = typer.Option(..., "--images-json", "-j", help="images.json listing {name, source, target}"),
    catalog_file: Path = typer.Option(..., "--catalog-file", "-f", help="Where to write the catalog JSON"),
    registry: Optional[str] = typer.Option(None, "--registry", help="Registry holding the patched images"),
    reports_dir: Optional[Path] = ReportsDirOption,
    output: str = OutputOption,
) -> None:
    """Join before/after reports per image and write the catalog."""
    try:
        result = build_catalog(load_catalog_entries(images_json), reports_dir, registry or "")
        write_catalog(result, catalog_file)
    except PatchworkError as exc:
        print_error(str(exc))
        raise typer.Exit(code=1) from exc
    output_catalog(result, output)
