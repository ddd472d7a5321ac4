"""Build the patch work-queue and persist discovery output."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from helm_patchwork.errors import ConfigError
from helm_patchwork.models.manifest import DiscoveryManifest, MatrixEntry, MatrixOutput
from helm_patchwork.utils.encoding import sanitize

logger = logging.getLogger(__name__)

MANIFEST_FILE = "manifest.json"
MATRIX_FILE = "matrix.json"


def generate_matrix(manifest: DiscoveryManifest) -> MatrixOutput:
    """One entry per distinct reference of the flat inventory, first-seen order."""
    seen: set[str] = set()
    matrix = MatrixOutput()
    for img in manifest.images:
        ref = img.reference()
        if ref in seen:
            continue
        seen.add(ref)
        matrix.include.append(MatrixEntry(image_ref=ref, image_name=sanitize(ref)))
    return matrix


def matrix_json(matrix: MatrixOutput) -> str:
    """Compact single-line JSON, suitable for a CI job output variable."""
    return json.dumps(matrix.to_dict(), separators=(",", ":"))


def write_discovery_output(manifest: DiscoveryManifest, matrix: MatrixOutput, output_dir: Path) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)
    (output_dir / MANIFEST_FILE).write_text(json.dumps(manifest.to_dict(), indent=2), encoding="utf-8")
    (output_dir / MATRIX_FILE).write_text(matrix_json(matrix), encoding="utf-8")
    logger.info("Wrote %s and %s to %s", MANIFEST_FILE, MATRIX_FILE, output_dir)


def load_manifest(path: Path) -> DiscoveryManifest:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"reading manifest {path}: {exc}") from exc
    return DiscoveryManifest.from_dict(data)
