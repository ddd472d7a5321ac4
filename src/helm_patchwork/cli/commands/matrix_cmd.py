"""hpw matrix - Print the patch work-queue for a discovery manifest."""

from __future__ import annotations

from pathlib import Path

import typer

from helm_patchwork.core.matrix_builder import generate_matrix, load_manifest, matrix_json
from helm_patchwork.errors import PatchworkError
from helm_patchwork.output.formatters import print_error

app = typer.Typer()


@app.callback(invoke_without_command=True)
def matrix(
    manifest: Path = typer.Option(..., "--manifest", "-m", help="Path to manifest.json"),
) -> None:
    """Print the compact work-queue JSON, one entry per distinct image."""
    try:
        queue = generate_matrix(load_manifest(manifest))
    except PatchworkError as exc:
        print_error(str(exc))
        raise typer.Exit(code=1) from exc
    # Plain stdout: CI captures this as a single-line variable.
    typer.echo(matrix_json(queue))
