"""Extract image references from rendered chart manifests."""

from __future__ import annotations

import logging
from typing import Callable

import yaml

from helm_patchwork.core.helm_cli import render_chart
from helm_patchwork.core.overrides import apply_override
from helm_patchwork.errors import ChartError, ConfigError
from helm_patchwork.models.image import Override
from helm_patchwork.models.tracking import ChartSpec
from helm_patchwork.utils.manifest_parser import collect_image_strings, iter_documents

logger = logging.getLogger(__name__)

# Renders a chart to multi-document YAML. Raises ChartError on failure.
Renderer = Callable[[ChartSpec], str]


def validate_chart_spec(chart: ChartSpec) -> None:
    """Reject specs that could be mistaken for helm flags or point at odd schemes."""
    if chart.name.startswith("-"):
        raise ConfigError(f"chart name must not start with '-': {chart.name!r}")
    if chart.version.startswith("-"):
        raise ConfigError(f"chart version must not start with '-': {chart.version!r}")
    if not chart.repository.startswith(("oci://", "https://", "http://")):
        raise ConfigError(
            f"chart repository must start with oci://, https://, or http://: {chart.repository!r}"
        )


def extract_images_from_manifests(manifest: str) -> list[str]:
    """Return unique ``image`` strings from a rendered manifest, first-seen order."""
    try:
        docs = iter_documents(manifest)
    except yaml.YAMLError as exc:
        raise ChartError(f"decoding rendered manifests: {exc}") from exc
    seen: set[str] = set()
    result: list[str] = []
    for doc in docs:
        collect_image_strings(doc, seen, result)
    return result


def extract_chart_images(
    chart: ChartSpec,
    overrides: dict[str, Override] | None = None,
    renderer: Renderer = render_chart,
) -> list[str]:
    """Render *chart* and return its image references with overrides applied."""
    validate_chart_spec(chart)
    rendered = renderer(chart)
    images = extract_images_from_manifests(rendered)
    logger.debug("Rendered %s@%s: %d images", chart.name, chart.version, len(images))
    return [apply_override(img, overrides or {}) for img in images]
