"""hpw patch <image> - Patch a single image and record the result."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from helm_patchwork.cli.options import OutputOption, ReportsDirOption, TargetRegistryOption
from helm_patchwork.config.settings import settings
from helm_patchwork.core.patcher import CopaPatcher, patch_single_image
from helm_patchwork.core.registry_client import RegistryClient
from helm_patchwork.errors import PatchworkError
from helm_patchwork.output.formatters import output_patch_result, print_error

app = typer.Typer()
console = Console(stderr=True)


@app.callback(invoke_without_command=True)
def patch(
    image: str = typer.Argument(help="Image reference from the work-queue"),
    target_registry: Optional[str] = TargetRegistryOption,
    result_dir: Optional[Path] = typer.Option(None, "--result-dir", help="Where to write the result JSON"),
    reports_dir: Optional[Path] = ReportsDirOption,
    buildkit_addr: Optional[str] = typer.Option(None, "--buildkit-addr", help="BuildKit daemon address for copa"),
    output: str = OutputOption,
) -> None:
    """Scan, patch and push one image; exits non-zero if patching failed."""
    client = RegistryClient()
    patcher = CopaPatcher(
        report_dir=reports_dir or settings.reports_dir,
        target_registry=target_registry or "",
        buildkit_addr=buildkit_addr or settings.buildkit_addr,
        probe=client.tag_exists,
    )
    try:
        with console.status(f"[bold cyan]Patching[/bold cyan] {image}"):
            result = patch_single_image(image, patcher, result_dir or settings.results_dir, probe=client.tag_exists)
    except PatchworkError as exc:
        print_error(str(exc))
        raise typer.Exit(code=1) from exc
    output_patch_result(result, output)
