"""hpw assemble - Build (and optionally publish) wrapper charts from patch results."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from helm_patchwork.cli.options import OutputOption, ReportsDirOption
from helm_patchwork.config.settings import settings
from helm_patchwork.core.registry_client import RegistryClient
from helm_patchwork.core.wrapper_assembler import assemble_results
from helm_patchwork.errors import PatchworkError
from helm_patchwork.output.formatters import console, output_published_charts, print_error

app = typer.Typer()


@app.callback(invoke_without_command=True)
def assemble(
    manifest: Path = typer.Option(..., "--manifest", "-m", help="Path to manifest.json"),
    results_dir: Optional[Path] = typer.Option(None, "--results-dir", help="Directory with patch result files"),
    reports_dir: Optional[Path] = ReportsDirOption,
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", help="Where to generate wrapper charts"),
    registry: Optional[str] = typer.Option(None, "--registry", help="OCI registry for versioning and publishing"),
    publish: bool = typer.Option(False, "--publish", help="Push charts to the registry"),
    output: str = OutputOption,
) -> None:
    """Create one wrapper chart per upstream chart with at least one changed image."""
    list_tags = RegistryClient().list_tags if registry else None
    try:
        charts = assemble_results(
            manifest,
            results_dir or settings.results_dir,
            output_dir or settings.wrappers_dir,
            reports_dir=reports_dir or settings.reports_dir,
            registry=registry or "",
            publish=publish,
            list_tags=list_tags,
        )
    except PatchworkError as exc:
        print_error(str(exc))
        raise typer.Exit(code=1) from exc

    if not charts:
        console.print("[dim]No charts changed.[/dim]")
        return
    output_published_charts(charts, output)
