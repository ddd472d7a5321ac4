"""Version parsing and ordering for image tags."""

from __future__ import annotations

import re

from packaging.version import Version, InvalidVersion

# Lenient semver as registries use it: optional "v", minor/patch optional,
# "-prerelease" and "+build" suffixes allowed (e.g. "1.27.0-alpine").
_SEMVER_RE = re.compile(
    r"^v?(?P<core>\d+(?:\.\d+){0,2})"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)


def parse_version(v: str) -> Version | None:
    """Parse a version string, returning None on failure."""
    try:
        return Version(v)
    except InvalidVersion:
        # Try stripping leading 'v'
        if v.startswith("v"):
            try:
                return Version(v[1:])
            except InvalidVersion:
                pass
    return None


def _prerelease_key(pre: str | None) -> tuple:
    # A release sorts after every prerelease of the same core version.
    if not pre:
        return (1,)
    idents = tuple((0, int(p), "") if p.isdigit() else (1, 0, p) for p in pre.split("."))
    return (0, idents)


def version_key(tag: str) -> tuple | None:
    """Sort key for a semver-like tag, or None when the tag is not version-like."""
    match = _SEMVER_RE.match(tag)
    if not match:
        return None
    core = parse_version(match.group("core"))
    if core is None:
        return None
    return (core, _prerelease_key(match.group("pre")))


def sort_versions(tags: list[str]) -> list[str]:
    """Return the version-like tags in ascending order; anything else is dropped."""
    keyed = [(version_key(t), t) for t in tags]
    ordered = sorted((pair for pair in keyed if pair[0] is not None), key=lambda pair: pair[0])
    return [t for _, t in ordered]


def parse_patch_level(tag: str, upstream_version: str) -> int | None:
    """Return N for a tag ``<upstream_version>-N``, None for anything else."""
    prefix = upstream_version + "-"
    if not tag.startswith(prefix):
        return None
    rest = tag[len(prefix):]
    if not rest.isdigit():
        return None
    return int(rest)
