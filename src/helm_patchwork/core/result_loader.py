"""Read per-item patch results back for assembly."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from helm_patchwork.models.image import Image
from helm_patchwork.models.manifest import PatchResult, SinglePatchResult
from helm_patchwork.utils.encoding import sanitize

logger = logging.getLogger(__name__)


def load_results(results_dir: Path) -> dict[str, SinglePatchResult]:
    """Load every ``*.json`` result keyed by image reference.

    A missing directory yields an empty map. Unreadable or malformed files,
    and files without an ``image_ref``, are warned about and skipped.
    """
    results: dict[str, SinglePatchResult] = {}
    if not results_dir.is_dir():
        return results

    for path in sorted(results_dir.glob("*.json")):
        if not path.is_file():
            continue
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Cannot read result file %s: %s", path.name, exc)
            continue
        if not isinstance(data, dict):
            logger.warning("Result file %s is not an object, skipping", path.name)
            continue
        result = SinglePatchResult.from_dict(data)
        if not result.image_ref:
            logger.warning("Result file %s has an empty image_ref, skipping", path.name)
            continue
        results[result.image_ref] = result
    return results


def build_patch_results(
    images: list[Image],
    results: dict[str, SinglePatchResult],
    reports_dir: Path | None = None,
) -> list[PatchResult]:
    """Join a chart's discovered images with their results.

    An image without a result becomes a skip with reason "no patch result".
    """
    joined: list[PatchResult] = []
    for img in images:
        ref = img.reference()
        pr = PatchResult(original=img, overridden_from=img.overridden_from)
        result = results.get(ref)
        if result is None:
            pr.mark_missing()
            joined.append(pr)
            continue

        if result.error:
            pr.error = result.error
        elif result.skipped:
            pr.skipped = True
            pr.skip_reason = result.skip_reason
            pr.patched = result.patched_image
        else:
            pr.vuln_count = result.vuln_count
            pr.patched = result.patched_image

        if reports_dir is not None:
            report = reports_dir / f"{sanitize(ref)}.json"
            if report.exists():
                pr.report_path = str(report)
        joined.append(pr)
    return joined


def chart_has_changes(images: list[Image], results: dict[str, SinglePatchResult]) -> bool:
    for img in images:
        result = results.get(img.reference())
        if result is not None and result.changed:
            return True
    return False
