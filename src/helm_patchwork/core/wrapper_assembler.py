"""Assemble wrapper charts that re-point an upstream chart at patched images."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable

import yaml

from helm_patchwork.core.helm_cli import publish_chart
from helm_patchwork.core.matrix_builder import load_manifest
from helm_patchwork.core.metadata import aggregate_vuln_predicate, generate_chart_sbom
from helm_patchwork.core.result_loader import build_patch_results, chart_has_changes, load_results
from helm_patchwork.core.tag_strategy import TagLister
from helm_patchwork.errors import ChartError, ConfigError, PatchworkError
from helm_patchwork.models.image import Image
from helm_patchwork.models.manifest import ChartDiscovery, PatchResult, PublishedChart, PublishedImage
from helm_patchwork.models.tracking import ChartSpec
from helm_patchwork.utils.encoding import sanitize
from helm_patchwork.utils.version_compare import parse_patch_level

logger = logging.getLogger(__name__)

# Packages and pushes a chart directory; returns the OCI push target.
ChartPublisher = Callable[[Path, str], str]

PUBLISHED_CHARTS_FILE = "published-charts.json"
SBOM_FILE = "sbom.cdx.json"
VULN_PREDICATE_FILE = "vuln-predicate.json"

HELMIGNORE = """\
# Patterns to ignore when building packages
.git/
.gitignore
*.swp
*.bak
*.tmp
*~
.DS_Store
"""


def _dump_yaml(data) -> str:
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False, indent=2)


# ----------------------------------------------------------------------
# Values overlay
# ----------------------------------------------------------------------

def set_image_at_path(root: dict, dot_path: str, img: Image) -> None:
    """Set registry/repository/tag at a dotted path, e.g. ``server.image``.

    Missing intermediate nodes are created; non-mapping nodes on the way are
    replaced. Empty registry and tag are left unset.
    """
    current = root
    for key in dot_path.split("."):
        node = current.get(key)
        if not isinstance(node, dict):
            node = {}
            current[key] = node
        current = node

    if img.registry:
        current["registry"] = img.registry
    current["repository"] = img.repository
    if img.tag:
        current["tag"] = img.tag


def _belongs_in_overlay(pr: PatchResult) -> bool:
    if not pr.succeeded:
        return False
    if pr.skipped:
        # Upstream refs must never be written back as "patched".
        return pr.has_distinct_patched_ref
    return pr.patched is not None


def _override_notes(results: list[PatchResult]) -> str:
    lines = []
    for pr in results:
        if pr.overridden_from and pr.succeeded and not pr.skipped:
            lines.append(
                f"# NOTE: {pr.original.repository} was overridden from "
                f"{json.dumps(pr.overridden_from)} to {json.dumps(pr.original.tag)} "
                "for patch compatibility\n"
            )
    return "".join(lines)


def generate_namespaced_values_override(chart_name: str, results: list[PatchResult], path: Path) -> dict:
    """Write the values overlay for a wrapper chart and return its document.

    The overlay is nested under *chart_name* so it addresses the upstream
    chart as a subchart. With nothing to override an empty mapping is still
    written, clearing refs left by an earlier run.
    """
    inner: dict = {}
    for pr in results:
        if _belongs_in_overlay(pr):
            set_image_at_path(inner, pr.original.path, pr.patched)

    root = {chart_name: inner} if inner else {}
    path.write_text(_override_notes(results) + _dump_yaml(root), encoding="utf-8")
    return root


# ----------------------------------------------------------------------
# Versioning
# ----------------------------------------------------------------------

def next_patch_level(registry: str, chart_name: str, upstream_version: str, list_tags: TagLister) -> int:
    """Highest published ``<upstream_version>-N`` plus one; 0 when none or on error."""
    chart_ref = f"{registry}/charts/{chart_name}"
    try:
        tags = list_tags(chart_ref)
    except PatchworkError:
        logger.debug("Cannot list tags for %s, starting at patch level 0", chart_ref, exc_info=True)
        return 0

    levels = [lvl for lvl in (parse_patch_level(t, upstream_version) for t in tags) if lvl is not None]
    if not levels:
        return 0
    return max(levels) + 1


# ----------------------------------------------------------------------
# Chart directory
# ----------------------------------------------------------------------

def _write_sidecar(results: list[PatchResult], chart_dir: Path, filename: str, value_of) -> None:
    mapping = {}
    for pr in results:
        value = value_of(pr)
        if value:
            mapping[sanitize(pr.original.reference())] = value
    if mapping:
        (chart_dir / filename).write_text(json.dumps(mapping, indent=2), encoding="utf-8")


def create_wrapper_chart(
    dep: ChartSpec,
    results: list[PatchResult],
    output_dir: Path,
    registry: str = "",
    list_tags: TagLister | None = None,
) -> str:
    """Create ``output_dir/<name>`` wrapping *dep* and return the wrapper version.

    The version is ``<upstream>-<patch level>``; without a registry (or a tag
    lister) the patch level is 0.
    """
    chart_dir = output_dir / dep.name
    chart_dir.mkdir(parents=True, exist_ok=True)

    level = 0
    if registry and list_tags is not None:
        level = next_patch_level(registry, dep.name, dep.version, list_tags)
    version = f"{dep.version}-{level}"

    chart_yaml = {
        "apiVersion": "v2",
        "name": dep.name,
        "description": f"{dep.name} with patched container images",
        "type": "application",
        "version": version,
        "dependencies": [dep.to_dict()],
    }
    (chart_dir / "Chart.yaml").write_text(_dump_yaml(chart_yaml), encoding="utf-8")
    generate_namespaced_values_override(dep.name, results, chart_dir / "values.yaml")
    (chart_dir / ".helmignore").write_text(HELMIGNORE, encoding="utf-8")

    _write_sidecar(results, chart_dir, "overrides.json", lambda pr: pr.overridden_from)
    _write_sidecar(results, chart_dir, "paths.json", lambda pr: pr.original.path)
    return version


# ----------------------------------------------------------------------
# Assembly
# ----------------------------------------------------------------------

def _published_images(results: list[PatchResult]) -> list[PublishedImage]:
    return [
        PublishedImage(original=pr.original.reference(), patched=pr.patched_ref)
        for pr in results
        if pr.succeeded and pr.patched_ref
    ]


def assemble_chart(
    chart: ChartDiscovery,
    results: list[PatchResult],
    output_dir: Path,
    reports_dir: Path | None = None,
    registry: str = "",
    publish: bool = False,
    list_tags: TagLister | None = None,
    publisher: ChartPublisher = publish_chart,
) -> PublishedChart:
    dep = ChartSpec(name=chart.name, version=chart.version, repository=chart.repository)
    try:
        version = create_wrapper_chart(dep, results, output_dir, registry, list_tags)
    except OSError as exc:
        raise ChartError(f"creating wrapper chart for {chart.name}: {exc}") from exc
    chart_dir = output_dir / chart.name
    logger.info("Wrapper chart -> %s (%s)", chart_dir, version)

    if publish and registry:
        try:
            publisher(chart_dir, registry)
        except ChartError as exc:
            raise ChartError(f"publishing chart {chart.name}: {exc}") from exc

    sbom_path = chart_dir / SBOM_FILE
    predicate_path = chart_dir / VULN_PREDICATE_FILE
    generate_chart_sbom(chart, results, version, sbom_path)
    aggregate_vuln_predicate(results, reports_dir, predicate_path)

    return PublishedChart(
        name=chart.name,
        version=version,
        registry=registry,
        oci_ref=f"{registry}/charts/{chart.name}:{version}",
        sbom_path=str(sbom_path),
        vuln_predicate_path=str(predicate_path),
        images=_published_images(results),
    )


def assemble_results(
    manifest_path: Path,
    results_dir: Path,
    output_dir: Path,
    reports_dir: Path | None = None,
    registry: str = "",
    publish: bool = False,
    list_tags: TagLister | None = None,
    publisher: ChartPublisher = publish_chart,
) -> list[PublishedChart]:
    """Build one wrapper chart per manifest chart that has a changed image.

    Writes ``published-charts.json`` to *output_dir* when at least one chart
    was assembled and returns the records.
    """
    if publish and not registry:
        raise ConfigError("a registry is required when publishing")

    manifest = load_manifest(manifest_path)
    results = load_results(results_dir)
    published: list[PublishedChart] = []

    for chart in manifest.charts:
        if not chart_has_changes(chart.images, results):
            logger.info("Skipping %s: no images changed", chart.name)
            continue
        joined = build_patch_results(chart.images, results, reports_dir)
        published.append(
            assemble_chart(
                chart, joined, output_dir,
                reports_dir=reports_dir,
                registry=registry,
                publish=publish,
                list_tags=list_tags,
                publisher=publisher,
            )
        )

    if published:
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / PUBLISHED_CHARTS_FILE
        path.write_text(json.dumps([c.to_dict() for c in published], indent=2), encoding="utf-8")
        logger.info("Published %d chart(s) -> %s", len(published), path)
    return published
