"""hpw list - List images in the inventory."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from helm_patchwork.cli.options import ImagesFileOption, OutputOption
from helm_patchwork.core.inventory import parse_images_file
from helm_patchwork.core.overrides import apply_overrides, parse_overrides
from helm_patchwork.errors import PatchworkError
from helm_patchwork.output.formatters import output_images, print_error

app = typer.Typer()


@app.callback(invoke_without_command=True)
def list_images(
    images: Path = ImagesFileOption,
    filter: Optional[str] = typer.Option(None, "--filter", "-f", help="Substring filter on the image reference"),
    raw: bool = typer.Option(False, "--raw", help="Show tags as written, without override rules"),
    output: str = OutputOption,
) -> None:
    """List the images recorded in the inventory."""
    try:
        found = parse_images_file(images)
        if not raw:
            found = apply_overrides(found, parse_overrides(images))
    except PatchworkError as exc:
        print_error(str(exc))
        raise typer.Exit(code=1) from exc
    if filter:
        found = [img for img in found if filter in img.reference()]
    output_images(found, output, title="Inventory")
