"""hpw targets - List tracked patch targets."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from helm_patchwork.cli.options import ConfigOption, OutputOption, TargetRegistryOption
from helm_patchwork.core.discovery import discover_targets, load_config
from helm_patchwork.core.overrides import merge_overrides, parse_overrides
from helm_patchwork.core.registry_client import RegistryClient
from helm_patchwork.errors import PatchworkError
from helm_patchwork.output.formatters import output_targets, print_error

app = typer.Typer()


@app.callback(invoke_without_command=True)
def targets(
    config: Path = ConfigOption,
    target_registry: Optional[str] = TargetRegistryOption,
    overrides_file: Path = typer.Option(Path("patchwork.yaml"), "--overrides", help="Override rules"),
    output: str = OutputOption,
) -> None:
    """Expand tracked images and charts into concrete image references."""
    client = RegistryClient()
    try:
        tracking = load_config(config)
        overrides = merge_overrides(tracking.overrides, parse_overrides(overrides_file))
        found = discover_targets(tracking, client.list_tags, target_registry or "", overrides=overrides)
    except PatchworkError as exc:
        print_error(str(exc))
        raise typer.Exit(code=1) from exc
    output_targets(found, output)
