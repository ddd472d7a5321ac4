"""Select tags to patch for externally-tracked images."""

from __future__ import annotations

import re
from typing import Callable

from helm_patchwork.errors import ConfigError
from helm_patchwork.models import TagStrategyKind
from helm_patchwork.models.tracking import ImageSpec
from helm_patchwork.utils.version_compare import sort_versions

# Lists every tag of an image repository. Raises RegistryError on failure.
TagLister = Callable[[str], list[str]]


def exclude_tags(tags: list[str], exclusions: list[str]) -> list[str]:
    """Return a copy of *tags* without the exact entries in *exclusions*."""
    if not exclusions:
        return list(tags)
    excluded = set(exclusions)
    return [t for t in tags if t not in excluded]


def find_tags_to_patch(spec: ImageSpec, list_tags: TagLister) -> list[str]:
    """Apply the image's tag strategy.

    * ``list``: configured tags verbatim, in order (no registry call).
    * ``pattern``: regex-matching registry tags minus exclusions, ascending
      by version, newest ``maxTags`` kept (0 keeps all).
    * ``latest``: highest version after exclusions.

    Unknown strategy names and invalid patterns raise ConfigError.
    """
    try:
        kind = TagStrategyKind(spec.tags.strategy)
    except ValueError:
        raise ConfigError(f"unknown tag strategy {spec.tags.strategy!r} for image {spec.name!r}") from None

    if kind is TagStrategyKind.LIST:
        return list(spec.tags.tags)

    if kind is TagStrategyKind.LATEST:
        versions = sort_versions(exclude_tags(list_tags(spec.image), spec.tags.exclude))
        return versions[-1:]

    try:
        pattern = re.compile(spec.tags.pattern)
    except re.error as exc:
        raise ConfigError(f"invalid tag pattern {spec.tags.pattern!r} for image {spec.name!r}: {exc}") from exc
    matching = [t for t in list_tags(spec.image) if pattern.search(t)]
    versions = sort_versions(exclude_tags(matching, spec.tags.exclude))
    if spec.tags.max_tags > 0:
        versions = versions[-spec.tags.max_tags:]
    return versions
