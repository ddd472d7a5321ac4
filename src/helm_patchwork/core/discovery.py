"""Discovery: charts and tracked images -> inventory -> discovery manifest."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

import yaml

from helm_patchwork.core.chart_scanner import scan_for_images
from helm_patchwork.core.helm_cli import pull_chart, render_chart
from helm_patchwork.core.inventory import merge_chart_images, parse_images_file
from helm_patchwork.core.overrides import apply_overrides_to_manifest
from helm_patchwork.core.tag_resolver import TagResolver
from helm_patchwork.core.tag_strategy import TagLister, find_tags_to_patch
from helm_patchwork.core.template_extractor import Renderer, extract_chart_images
from helm_patchwork.config.settings import settings
from helm_patchwork.errors import ConfigError, PatchworkError
from helm_patchwork.models.image import Image, Override
from helm_patchwork.models.manifest import ChartDiscovery, DiscoveryManifest
from helm_patchwork.models.tracking import ChartSpec, DiscoveredTarget, ImageSpec, TrackingConfig
from helm_patchwork.utils.image_ref import name_from_ref, parse_image_ref

logger = logging.getLogger(__name__)

# Fetches a chart dependency into a directory and returns the unpacked chart path.
ChartPuller = Callable[[ChartSpec, Path], Path]
ProgressCallback = Callable[[str, str], None]

STANDALONE_CHART = ChartSpec(name="standalone", version="0.0.0", repository="file://./charts/standalone")


# ---------------------------------------------------------------------------
# Input documents
# ---------------------------------------------------------------------------

def _load_yaml_mapping(path: Path) -> dict:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"reading {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping")
    return data


def load_config(path: Path) -> TrackingConfig:
    """Read the tracking config (``copa-config.yaml``)."""
    return TrackingConfig.from_dict(_load_yaml_mapping(path))


def load_charts_file(path: Path) -> list[ChartSpec]:
    """Read only the ``dependencies`` of a Chart.yaml; a missing file means none."""
    if not path.exists():
        return []
    deps = _load_yaml_mapping(path).get("dependencies") or []
    return [ChartSpec.from_dict(d) for d in deps if isinstance(d, dict)]


# ---------------------------------------------------------------------------
# Chart-sourced discovery
# ---------------------------------------------------------------------------

def _discover_chart(
    spec: ChartSpec,
    chart_dir: Path,
    resolver: TagResolver,
) -> ChartDiscovery:
    images = scan_for_images(chart_dir, resolver)
    return ChartDiscovery(
        name=spec.name,
        version=spec.version,
        repository=spec.repository,
        images=images,
    )


def discover_chart_images(
    chart_file: Path,
    resolver: TagResolver,
    puller: ChartPuller = pull_chart,
    work_dir: Path | None = None,
    on_chart: ProgressCallback | None = None,
) -> list[ChartDiscovery]:
    """Pull and scan every Chart.yaml dependency plus a local standalone chart.

    A chart that cannot be pulled or scanned is logged and skipped.
    """
    work_dir = work_dir or settings.charts_dir
    discoveries: list[ChartDiscovery] = []

    standalone_dir = chart_file.parent / "charts" / "standalone"
    if standalone_dir.is_dir():
        if on_chart:
            on_chart(STANDALONE_CHART.name, STANDALONE_CHART.version)
        try:
            found = _discover_chart(STANDALONE_CHART, standalone_dir, resolver)
        except PatchworkError as exc:
            logger.warning("Skipping standalone chart: %s", exc)
        else:
            if found.images:
                discoveries.append(found)

    for dep in load_charts_file(chart_file):
        if on_chart:
            on_chart(dep.name, dep.version)
        try:
            chart_dir = puller(dep, work_dir)
            discoveries.append(_discover_chart(dep, chart_dir, resolver))
        except PatchworkError as exc:
            logger.warning("Skipping chart %s@%s: %s", dep.name, dep.version, exc)
            continue
        logger.info("%s@%s: %d images", dep.name, dep.version, len(discoveries[-1].images))

    return discoveries


# ---------------------------------------------------------------------------
# Tracked images and charts
# ---------------------------------------------------------------------------

def _tracked_image(ref: str) -> Image:
    registry, repository, tag = parse_image_ref(ref)
    return Image(registry=registry, repository=repository, tag=tag)


def _tracked_spec_refs(spec: ImageSpec, list_tags: TagLister) -> list[str]:
    """Return ``image:tag`` refs for a tracked image; unknown strategies propagate."""
    tags = find_tags_to_patch(spec, list_tags)
    return [f"{spec.image}:{tag}" for tag in tags]


def discover_images(
    chart_file: Path,
    images_file: Path | None,
    resolver: TagResolver,
    overrides: dict[str, Override] | None = None,
    tracking: TrackingConfig | None = None,
    list_tags: TagLister | None = None,
    renderer: Renderer | None = None,
    puller: ChartPuller = pull_chart,
    work_dir: Path | None = None,
    on_chart: ProgressCallback | None = None,
) -> DiscoveryManifest:
    """Run the full discovery pass and return the manifest.

    Chart-discovered images are merged into *images_file* (append-only) and
    the flat inventory is read back from it, so the file stays the single
    source of truth. Tracked images (``path`` empty) are appended after it.
    """
    manifest = DiscoveryManifest()
    manifest.charts = discover_chart_images(chart_file, resolver, puller, work_dir, on_chart)
    chart_images = [img for chart in manifest.charts for img in chart.images]

    if images_file is not None:
        merge_chart_images(images_file, chart_images)
        manifest.images = parse_images_file(images_file) if images_file.exists() else []
    else:
        manifest.images = list(chart_images)

    overrides = overrides or {}
    apply_overrides_to_manifest(manifest, overrides)

    if tracking is not None and (tracking.images or tracking.charts):
        if list_tags is None and tracking.images:
            raise ConfigError("a tag lister is required to discover tracked images")
        targets = discover_targets(tracking, list_tags, overrides=overrides, renderer=renderer)
        manifest.images.extend(_tracked_image(t.source) for t in targets)

    logger.info("Total images: %d", len(manifest.images))
    return manifest


def discover_targets(
    config: TrackingConfig,
    list_tags: TagLister,
    target_registry: str = "",
    overrides: dict[str, Override] | None = None,
    renderer: Renderer | None = None,
) -> list[DiscoveredTarget]:
    """Enumerate ``{name, source, target-registry, platforms}`` for every tracked image.

    *target_registry* overrides the config-level registry; a per-image
    target registry overrides both. Results are unique by (name, source).
    """
    registry = target_registry or config.target.registry
    overrides = overrides or {}
    results: list[DiscoveredTarget] = []
    seen: set[tuple[str, str]] = set()

    def _add(target: DiscoveredTarget) -> None:
        key = (target.name, target.source)
        if key in seen:
            return
        seen.add(key)
        results.append(target)

    for spec in config.images:
        try:
            refs = _tracked_spec_refs(spec, list_tags)
        except ConfigError:
            raise
        except PatchworkError as exc:
            logger.warning("Failed to discover tags for %s: %s", spec.name, exc)
            continue
        platforms = ",".join(spec.platforms) if spec.platforms else settings.default_platforms
        for ref in refs:
            _add(DiscoveredTarget(
                name=spec.name,
                source=ref,
                target_registry=spec.target.registry or registry,
                platforms=platforms,
            ))

    for chart in config.charts:
        try:
            refs = extract_chart_images(chart, overrides, renderer or render_chart)
        except PatchworkError as exc:
            logger.warning("Failed to discover images from chart %s: %s", chart.name, exc)
            continue
        for ref in refs:
            _add(DiscoveredTarget(
                name=name_from_ref(ref),
                source=ref,
                target_registry=registry,
                platforms=settings.default_platforms,
            ))

    return results

