"""Root Typer application, mounts sub-commands."""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

app = typer.Typer(
    name="hpw",
    help="Helm Patchwork - Patch the container images behind your Helm charts.",
    no_args_is_help=True,
)


@app.callback()
def root(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose)],
        force=True,
    )


def _register_commands() -> None:
    from helm_patchwork.cli.commands.discover_cmd import app as discover_app
    from helm_patchwork.cli.commands.targets_cmd import app as targets_app
    from helm_patchwork.cli.commands.list_cmd import app as list_app
    from helm_patchwork.cli.commands.matrix_cmd import app as matrix_app
    from helm_patchwork.cli.commands.patch_cmd import app as patch_app
    from helm_patchwork.cli.commands.scan_cmd import app as scan_app
    from helm_patchwork.cli.commands.assemble_cmd import app as assemble_app
    from helm_patchwork.cli.commands.catalog_cmd import app as catalog_app

    app.add_typer(discover_app, name="discover", help="Discover images in charts and the inventory")
    app.add_typer(targets_app, name="targets", help="List tracked patch targets")
    app.add_typer(list_app, name="list", help="List images in the inventory")
    app.add_typer(matrix_app, name="matrix", help="Print the patch work-queue from a manifest")
    app.add_typer(patch_app, name="patch", help="Patch a single image")
    app.add_typer(scan_app, name="scan", help="Scan tracked images for vulnerabilities")
    app.add_typer(assemble_app, name="assemble", help="Build wrapper charts from patch results")
    app.add_typer(catalog_app, name="catalog", help="Generate the image catalog")


_register_commands()


def main() -> None:
    app()
