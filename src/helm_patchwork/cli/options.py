"""Shared CLI options."""

from __future__ import annotations

import typer

OutputOption = typer.Option("table", "--output", "-o", help="Output format: table, json, yaml")
ConfigOption = typer.Option("copa-config.yaml", "--config", "-c", help="Tracking config (tracked images and charts)")
ImagesFileOption = typer.Option("values.yaml", "--images", help="Image inventory file")
TargetRegistryOption = typer.Option(None, "--target-registry", help="Registry that receives patched images")
ReportsDirOption = typer.Option(None, "--reports-dir", help="Directory with vulnerability reports")
