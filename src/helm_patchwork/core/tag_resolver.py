"""Resolve ambiguous image tags by probing the registry."""

from __future__ import annotations

import logging
from typing import Callable

from helm_patchwork.models.image import Image

logger = logging.getLogger(__name__)

# Returns True when the reference exists. Must not raise.
TagProbe = Callable[[str], bool]


def _safe_probe(probe: TagProbe, ref: str) -> bool:
    try:
        return bool(probe(ref))
    except Exception:
        logger.debug("Probe for %s raised; treating as absent", ref, exc_info=True)
        return False


def resolve_image_tag(img: Image, probe: TagProbe) -> Image:
    """Return *img* with the ``v``-prefix variant of its tag that actually exists.

    ``v``-prefixed tags are tried as-is then stripped; plain tags as-is then
    prefixed. Falls back to the original tag when neither exists. Digests are
    returned unchanged.
    """
    if not img.tag or img.is_digest:
        return img

    if img.tag.startswith("v"):
        candidate = img.with_tag(img.tag[1:])
    else:
        candidate = img.with_tag("v" + img.tag)

    if _safe_probe(probe, img.reference()):
        return img
    if _safe_probe(probe, candidate.reference()):
        return candidate
    return img


class TagResolver:
    """Pick the real tag for images that only inherit the chart's appVersion.

    Results are memoized per ``registry/repository@appVersion`` for the life
    of the resolver; share one instance across a chart and its subcharts.
    """

    def __init__(self, probe: TagProbe):
        self._probe = probe
        self._cache: dict[str, str] = {}

    @property
    def cache(self) -> dict[str, str]:
        return self._cache

    def resolve(self, img: Image, app_version: str) -> str:
        if not app_version:
            return img.tag
        key = f"{img.registry}/{img.repository}@{app_version}"
        if key in self._cache:
            return self._cache[key]
        tag = self._resolve_uncached(img, app_version)
        self._cache[key] = tag
        return tag

    def _resolve_uncached(self, img: Image, app_version: str) -> str:
        if app_version.startswith("v"):
            return app_version
        resolved = resolve_image_tag(img.with_tag(app_version), self._probe)
        if resolved.tag != app_version:
            logger.debug("Resolved %s appVersion %s -> %s", img.repository, app_version, resolved.tag)
        return resolved.tag
