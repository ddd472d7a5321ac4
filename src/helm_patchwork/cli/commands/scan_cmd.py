"""hpw scan - Scan tracked images for vulnerabilities in parallel."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from helm_patchwork.cli.options import ConfigOption, TargetRegistryOption
from helm_patchwork.config.settings import settings
from helm_patchwork.core.discovery import load_config
from helm_patchwork.core.registry_client import RegistryClient
from helm_patchwork.core.scanner import build_scan_jobs, scan_images
from helm_patchwork.errors import PatchworkError
from helm_patchwork.output.formatters import print_error

app = typer.Typer()
console = Console(stderr=True)


@app.callback(invoke_without_command=True)
def scan(
    config: Path = ConfigOption,
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", help="Directory for scan reports"),
    parallel: Optional[int] = typer.Option(None, "--parallel", help="Number of concurrent scans"),
    target_registry: Optional[str] = TargetRegistryOption,
    trivy_server: Optional[str] = typer.Option(None, "--trivy-server", help="Trivy server address"),
    patched_only: bool = typer.Option(False, "--patched-only", help="Only scan patched images in the target registry"),
) -> None:
    """Write one Trivy report per source (and patched) image."""
    reports = output_dir or settings.reports_dir
    client = RegistryClient()
    try:
        jobs = build_scan_jobs(
            load_config(config),
            client.list_tags,
            reports,
            target_registry=target_registry or "",
            patched_only=patched_only,
        )
    except PatchworkError as exc:
        print_error(str(exc))
        raise typer.Exit(code=1) from exc

    with console.status(f"[bold cyan]Scanning {len(jobs)} image(s)…") as status:
        done = 0

        def on_done(ref: str, error: str) -> None:
            nonlocal done
            done += 1
            mark = "[red]✗[/red]" if error else "[green]✓[/green]"
            console.print(f"{mark} {ref}")
            status.update(f"[bold cyan]Scanning… [dim]({done}/{len(jobs)})[/dim]")

        failures = scan_images(jobs, parallel=parallel, trivy_server=trivy_server or "", on_done=on_done)

    if failures:
        console.print(f"\n[yellow]{len(failures)} scan(s) failed:[/yellow]")
        for failure in failures:
            console.print(f"  - {failure}")
    console.print(f"\nScan complete: {len(jobs) - len(failures)}/{len(jobs)} successful, reports in {reports}")
