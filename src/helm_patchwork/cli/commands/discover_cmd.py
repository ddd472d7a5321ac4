"""hpw discover - Discover images in charts, the inventory and tracked targets."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from helm_patchwork.cli.options import ConfigOption, ImagesFileOption, OutputOption
from helm_patchwork.config.settings import settings
from helm_patchwork.core.discovery import discover_images, load_config
from helm_patchwork.core.matrix_builder import generate_matrix, write_discovery_output
from helm_patchwork.core.overrides import merge_overrides, parse_overrides
from helm_patchwork.core.registry_client import RegistryClient
from helm_patchwork.core.tag_resolver import TagResolver
from helm_patchwork.errors import PatchworkError
from helm_patchwork.models.tracking import TrackingConfig
from helm_patchwork.output.formatters import output_images, print_error

app = typer.Typer()
console = Console(stderr=True)


@app.callback(invoke_without_command=True)
def discover(
    chart_file: Path = typer.Option(Path("Chart.yaml"), "--chart-file", help="Chart.yaml listing upstream charts"),
    images: Path = ImagesFileOption,
    config: Path = ConfigOption,
    overrides_file: Path = typer.Option(
        Path("patchwork.yaml"), "--overrides", help="Override rules; take precedence over all others",
    ),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", help="Where to write manifest.json and matrix.json"),
    output: str = OutputOption,
) -> None:
    """Discover every image to patch and write the manifest and work-queue."""
    client = RegistryClient()
    resolver = TagResolver(client.tag_exists)
    try:
        tracking = load_config(config) if config.exists() else TrackingConfig()
        overrides = merge_overrides(
            tracking.overrides,
            parse_overrides(images),
            parse_overrides(overrides_file),
        )
        with console.status("[bold cyan]Discovering images…") as status:

            def on_chart(name: str, version: str) -> None:
                status.update(f"[bold cyan]Scanning chart[/bold cyan] {name}@{version}")

            manifest = discover_images(
                chart_file,
                images,
                resolver,
                overrides=overrides,
                tracking=tracking,
                list_tags=client.list_tags,
                on_chart=on_chart,
            )
        matrix = generate_matrix(manifest)
        write_discovery_output(manifest, matrix, output_dir or settings.work_dir)
    except PatchworkError as exc:
        print_error(str(exc))
        raise typer.Exit(code=1) from exc

    output_images(manifest.images, output, title="Discovered Images")
    console.print(f"[green]{len(matrix.include)} image(s) queued for patching[/green]")
