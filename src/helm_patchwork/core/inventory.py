"""The flat image inventory (a Helm-values style ``values.yaml``).

The inventory is human-edited. Discovery only ever appends to it: existing
text, comments, ordering and the ``overrides`` section are kept
byte-for-byte, and entries a chart stopped using are never removed.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import yaml

from helm_patchwork.core.values_walker import dedup, find_images
from helm_patchwork.errors import ConfigError
from helm_patchwork.models.image import Image

logger = logging.getLogger(__name__)


def _load_values(text: str, path: Path) -> dict:
    try:
        values = yaml.safe_load(text) if text else None
    except yaml.YAMLError as exc:
        raise ConfigError(f"parsing {path}: {exc}") from exc
    return values if isinstance(values, dict) else {}


def parse_images_file(path: Path) -> list[Image]:
    """Return every image in the inventory, deduplicated and sorted by reference."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"reading {path}: {exc}") from exc
    values = _load_values(text, path)
    if not values:
        return []
    images = dedup(find_images(values))
    images.sort(key=lambda img: img.reference())
    return images


def image_entry_key(img: Image) -> str:
    """Top-level key for a new entry: ``prometheus/prometheus`` -> ``prometheus-prometheus``."""
    return img.repository.replace("/", "-")


def _unique_key(img: Image, used: set[str]) -> str:
    base = image_entry_key(img)
    if base not in used:
        return base
    disambiguator = img.registry.replace(".", "-") or "image"
    candidate = f"{base}-{disambiguator}"
    i = 1
    while candidate in used:
        candidate = f"{base}-{disambiguator}-{i}"
        i += 1
    return candidate


def render_entry(key: str, img: Image) -> str:
    lines = [f"{key}:", "  image:"]
    if img.registry:
        lines.append(f"    registry: {img.registry}")
    lines.append(f"    repository: {img.repository}")
    if img.tag:
        lines.append(f"    tag: {json.dumps(img.tag)}")
    return "\n".join(lines) + "\n"


def merge_chart_images(path: Path, images: list[Image]) -> list[Image]:
    """Append images whose exact reference is not yet in the inventory.

    Returns the images that were appended (sorted by reference). Running the
    merge again with the same input appends nothing, so the file stays
    byte-identical.
    """
    if not images:
        return []

    existing = ""
    if path.exists():
        try:
            existing = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"reading {path}: {exc}") from exc

    values = _load_values(existing, path)
    known = {img.reference() for img in find_images(values)}

    new_images: list[Image] = []
    for img in images:
        ref = img.reference()
        if ref in known:
            continue
        known.add(ref)
        new_images.append(img)
    if not new_images:
        return []

    new_images.sort(key=lambda img: img.reference())

    content = existing
    if content and not content.endswith("\n"):
        content += "\n"
    used = {str(k) for k in values}
    for img in new_images:
        key = _unique_key(img, used)
        used.add(key)
        content += render_entry(key, img)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.info("Added %d image(s) to %s", len(new_images), path)
    return new_images
