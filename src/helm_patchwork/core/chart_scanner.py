"""Load an unpacked chart with its subcharts and scan the values for images."""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from helm_patchwork.core.helm_cli import extract_tar_gz
from helm_patchwork.core.tag_resolver import TagResolver
from helm_patchwork.core.values_walker import dedup, find_images, join_path
from helm_patchwork.errors import ChartError
from helm_patchwork.models.image import Image

logger = logging.getLogger(__name__)


@dataclass
class LoadedChart:
    name: str
    version: str = ""
    app_version: str = ""
    values: dict[str, Any] = field(default_factory=dict)
    subcharts: list[LoadedChart] = field(default_factory=list)


def _read_yaml(path: Path) -> Any:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ChartError(f"reading {path}: {exc}") from exc


def load_chart(chart_dir: Path) -> LoadedChart:
    """Load Chart.yaml, values.yaml and every subchart under ``charts/``.

    Subcharts may be directories or ``.tgz`` archives; archives are unpacked
    into a scratch directory and loaded the same way.
    """
    chart_file = chart_dir / "Chart.yaml"
    if not chart_file.exists():
        raise ChartError(f"no Chart.yaml in {chart_dir}")
    meta = _read_yaml(chart_file) or {}
    if not isinstance(meta, dict):
        raise ChartError(f"{chart_file} is not a mapping")

    values: dict[str, Any] = {}
    values_file = chart_dir / "values.yaml"
    if values_file.exists():
        loaded = _read_yaml(values_file)
        if isinstance(loaded, dict):
            values = loaded

    chart = LoadedChart(
        name=str(meta.get("name") or chart_dir.name),
        version=str(meta.get("version") or ""),
        app_version=str(meta.get("appVersion") or ""),
        values=values,
    )

    sub_dir = chart_dir / "charts"
    if sub_dir.is_dir():
        for entry in sorted(sub_dir.iterdir()):
            if entry.is_dir() and (entry / "Chart.yaml").exists():
                chart.subcharts.append(load_chart(entry))
            elif entry.is_file() and entry.name.endswith(".tgz"):
                chart.subcharts.append(_load_archive(entry))
    return chart


def _load_archive(archive: Path) -> LoadedChart:
    with tempfile.TemporaryDirectory(prefix="hpw-subchart-") as tmp:
        with open(archive, "rb") as fh:
            extract_tar_gz(fh, "", Path(tmp))
        roots = [p for p in Path(tmp).iterdir() if (p / "Chart.yaml").exists()]
        if not roots:
            raise ChartError(f"{archive.name} does not contain a chart")
        return load_chart(roots[0])


def scan_chart(chart: LoadedChart, resolver: TagResolver, prefix: str = "") -> list[Image]:
    """Walk a chart's values and then each subchart's, under ``prefix.<subchart>``."""
    app_version = chart.app_version

    def _resolve(img: Image) -> str:
        return resolver.resolve(img, app_version)

    images = find_images(chart.values, prefix, _resolve if app_version else None)
    for sub in chart.subcharts:
        images.extend(scan_chart(sub, resolver, join_path(prefix, sub.name)))
    return images


def scan_for_images(chart_dir: Path, resolver: TagResolver) -> list[Image]:
    """Load a chart directory and return its deduplicated images."""
    chart = load_chart(chart_dir)
    images = dedup(scan_chart(chart, resolver))
    logger.debug("Found %d images in %s", len(images), chart.name)
    return images
