"""Tag-variant override rules: loading and application."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path

import yaml

from helm_patchwork.errors import ConfigError
from helm_patchwork.models.image import Image, Override
from helm_patchwork.models.manifest import DiscoveryManifest
from helm_patchwork.models.tracking import overrides_from_dict
from helm_patchwork.utils.image_ref import split_ref

logger = logging.getLogger(__name__)


def parse_overrides(path: Path) -> dict[str, Override]:
    """Read the top-level ``overrides`` map of a YAML document.

    A missing file yields no overrides; an unparseable one is a ConfigError.
    """
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"parsing {path}: {exc}") from exc
    if not isinstance(data, dict):
        return {}
    return overrides_from_dict(data.get("overrides") or {})


def merge_overrides(*sources: dict[str, Override]) -> dict[str, Override]:
    """Combine override tables; later sources win on key collisions."""
    merged: dict[str, Override] = {}
    for source in sources:
        merged.update(source)
    return merged


def apply_override(ref: str, overrides: dict[str, Override]) -> str:
    """Rewrite the tag of a reference string with the first matching rule.

    Keys are tried in sorted order so the result does not depend on how the
    table was built. Only the tag is touched.
    """
    name, tag = split_ref(ref)
    for key in sorted(overrides):
        rule = overrides[key]
        if rule.matches(ref, tag):
            return f"{name}:{rule.rewrite_tag(tag)}"
    return ref


def apply_overrides(images: list[Image], overrides: dict[str, Override]) -> list[Image]:
    """Return a copy of *images* with override rules applied to each tag."""
    if not overrides:
        return list(images)
    result: list[Image] = []
    for img in images:
        rewritten = img
        for key in sorted(overrides):
            rule = overrides[key]
            if img.tag and rule.matches(img.reference(), img.tag):
                new_tag = rule.rewrite_tag(img.tag)
                logger.debug("Override %s: %s -> %s", key, img.tag, new_tag)
                rewritten = replace(img, tag=new_tag, overridden_from=img.overridden_from or img.tag)
                break
        result.append(rewritten)
    return result


def apply_overrides_to_manifest(manifest: DiscoveryManifest, overrides: dict[str, Override]) -> None:
    """Apply overrides to the flat inventory and every chart group, in place."""
    if not overrides:
        return
    manifest.images = apply_overrides(manifest.images, overrides)
    for chart in manifest.charts:
        chart.images = apply_overrides(chart.images, overrides)
