"""Join before/after scan reports into the published image catalog."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from helm_patchwork.errors import ConfigError
from helm_patchwork.models.catalog import (
    Catalog,
    CatalogEntry,
    CatalogImage,
    CatalogSummary,
    ScanReport,
    VulnSummary,
)
from helm_patchwork.utils.encoding import sanitize

logger = logging.getLogger(__name__)


def load_catalog_entries(path: Path) -> list[CatalogEntry]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"reading {path}: {exc}") from exc
    if not isinstance(data, list):
        raise ConfigError(f"{path}: expected a JSON array of images")
    return [CatalogEntry.from_dict(d) for d in data if isinstance(d, dict)]


def load_report(reports_dir: Path | None, ref: str) -> ScanReport | None:
    """Read ``reports_dir/<sanitized ref>.json``; None when absent or unreadable."""
    if reports_dir is None or not ref:
        return None
    path = reports_dir / f"{sanitize(ref)}.json"
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.debug("Cannot parse report %s", path, exc_info=True)
        return None
    if not isinstance(data, dict):
        return None
    return ScanReport.from_dict(data)


def build_catalog_image(entry: CatalogEntry, reports_dir: Path | None = None) -> CatalogImage:
    """Summarize one tracked image.

    The remaining ``vulnerabilities`` list comes from the post-patch report;
    a missing report on either side counts as zero findings.
    """
    before = load_report(reports_dir, entry.source)
    after = load_report(reports_dir, entry.target)

    image = CatalogImage(id=sanitize(entry.source), original_ref=entry.source, patched_ref=entry.target)
    if before is not None:
        image.os = before.os
        image.before_vulns = VulnSummary.from_findings(before.findings)
    if after is not None:
        if not image.os:
            image.os = after.os
        image.after_vulns = VulnSummary.from_findings(after.findings)
        image.vulnerabilities = list(after.findings)
    return image


def build_catalog(
    entries: list[CatalogEntry],
    reports_dir: Path | None = None,
    registry: str = "",
) -> Catalog:
    images = sorted(
        (build_catalog_image(e, reports_dir) for e in entries if e.source),
        key=lambda img: img.original_ref,
    )
    summary = CatalogSummary(total_images=len(images))
    for img in images:
        summary.total_vulns_before += img.before_vulns.total
        summary.total_vulns_after += img.after_vulns.total
    # An aggregate delta: a regression and a fix in the same image cancel out.
    summary.fixed_vulns = summary.total_vulns_before - summary.total_vulns_after

    return Catalog(
        generated_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        registry=registry,
        summary=summary,
        images=images,
    )


def write_catalog(catalog: Catalog, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(catalog.to_dict(), indent=2), encoding="utf-8")
    logger.info("Catalog with %d image(s) -> %s", len(catalog.images), output_path)
