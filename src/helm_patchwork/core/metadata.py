"""Per-chart provenance documents: a CycloneDX component list and an aggregated vulnerability predicate."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from helm_patchwork.models.image import Image
from helm_patchwork.models.manifest import ChartDiscovery, PatchResult

logger = logging.getLogger(__name__)

CYCLONEDX_SPEC_VERSION = "1.4"
SCANNER_URI = "https://github.com/aquasecurity/trivy"
INVOCATION_URI = "helm-patchwork-chart-aggregate"


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _write_json(data: dict, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def chart_to_purl(chart: ChartDiscovery) -> str:
    """``pkg:helm/<repo>/<name>@<version>`` with the repository scheme stripped."""
    repo = chart.repository
    for prefix in ("oci://", "https://"):
        if repo.startswith(prefix):
            repo = repo[len(prefix):]
    repo = repo.rstrip("/")
    return f"pkg:helm/{repo}/{chart.name}@{chart.version}"


def image_to_purl(img: Image) -> str:
    purl = f"pkg:oci/{img.repository.replace('/', '%2F')}@{img.tag}"
    if img.registry:
        purl += f"?repository_url={img.registry}"
    return purl


def _includes_image(pr: PatchResult) -> bool:
    return pr.succeeded and bool(pr.patched_ref)


def generate_chart_sbom(
    chart: ChartDiscovery,
    results: list[PatchResult],
    wrapper_version: str,
    output_path: Path,
) -> dict:
    """Write the component inventory for a wrapper chart and return it.

    Mirrored images (skipped with no fixable findings) are listed too; only
    failed images and images without a patched reference are left out.
    """
    components = [{
        "type": "application",
        "name": f"{chart.name} (upstream)",
        "version": chart.version,
        "purl": chart_to_purl(chart),
    }]
    for pr in results:
        if not _includes_image(pr):
            continue
        components.append({
            "type": "container",
            "name": pr.patched.repository,
            "version": pr.patched.tag,
            "purl": image_to_purl(pr.patched),
        })

    sbom = {
        "bomFormat": "CycloneDX",
        "specVersion": CYCLONEDX_SPEC_VERSION,
        "version": 1,
        "metadata": {
            "timestamp": _timestamp(),
            "component": {
                "type": "application",
                "name": chart.name,
                "version": wrapper_version,
            },
        },
        "components": components,
    }
    _write_json(sbom, output_path)
    return sbom


def _read_report(path: Path) -> dict | None:
    try:
        report = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Cannot read report %s: %s", path, exc)
        return None
    if not isinstance(report, dict):
        logger.warning("Report %s is not an object, skipping", path)
        return None
    return report


def aggregate_vuln_predicate(
    results: list[PatchResult],
    reports_dir: Path | None,
    output_path: Path,
) -> dict:
    """Concatenate every image's saved scan findings into one predicate.

    Each finding is tagged with the patched reference of the image it came
    from. Relative report paths are looked up by file name in *reports_dir*.
    """
    now = _timestamp()
    vulnerabilities: list[dict] = []

    for pr in results:
        if not pr.succeeded or not pr.report_path:
            continue
        report_path = Path(pr.report_path)
        if not report_path.is_absolute() and reports_dir is not None:
            report_path = reports_dir / report_path.name
        report = _read_report(report_path)
        if report is None:
            continue

        for res in report.get("Results") or []:
            for vuln in res.get("Vulnerabilities") or []:
                entry = {
                    "VulnerabilityID": vuln.get("VulnerabilityID", ""),
                    "PkgName": vuln.get("PkgName", ""),
                    "Severity": vuln.get("Severity", ""),
                }
                for key in ("InstalledVersion", "FixedVersion", "Title", "Description"):
                    if vuln.get(key):
                        entry[key] = vuln[key]
                entry["Image"] = pr.patched_ref
                vulnerabilities.append(entry)

    predicate = {
        "invocation": {"uri": INVOCATION_URI},
        "scanner": {"uri": SCANNER_URI, "version": "aggregated"},
        "metadata": {"scanStartedOn": now, "scanFinishedOn": now},
        "vulnerabilities": vulnerabilities,
    }
    _write_json(predicate, output_path)
    return predicate
