"""Tracking configuration models (externally-tracked images and charts)."""

from __future__ import annotations

from dataclasses import dataclass, field

from helm_patchwork.config.settings import DEFAULT_PLATFORMS
from helm_patchwork.models.image import Override


@dataclass
class TagStrategy:
    strategy: str = ""
    pattern: str = ""
    max_tags: int = 0
    tags: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict) -> TagStrategy:
        if not d:
            return cls()
        return cls(
            strategy=d.get("strategy", ""),
            pattern=d.get("pattern", ""),
            max_tags=int(d.get("maxTags", 0) or 0),
            tags=[str(t) for t in d.get("list") or []],
            exclude=[str(t) for t in d.get("exclude") or []],
        )


@dataclass
class TargetSpec:
    registry: str = ""
    tag: str = ""

    @classmethod
    def from_dict(cls, d: dict) -> TargetSpec:
        if not d:
            return cls()
        return cls(registry=d.get("registry", ""), tag=d.get("tag", ""))


@dataclass
class ImageSpec:
    name: str
    image: str
    tags: TagStrategy = field(default_factory=TagStrategy)
    target: TargetSpec = field(default_factory=TargetSpec)
    platforms: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict) -> ImageSpec:
        return cls(
            name=d.get("name", ""),
            image=d.get("image", ""),
            tags=TagStrategy.from_dict(d.get("tags") or {}),
            target=TargetSpec.from_dict(d.get("target") or {}),
            platforms=list(d.get("platforms") or []),
        )


@dataclass
class ChartSpec:
    """Field names match Helm's Chart.yaml ``dependencies`` entries."""

    name: str
    version: str
    repository: str
    condition: str = ""

    def to_dict(self) -> dict[str, str]:
        data = {"name": self.name, "version": self.version, "repository": self.repository}
        if self.condition:
            data["condition"] = self.condition
        return data

    @classmethod
    def from_dict(cls, d: dict) -> ChartSpec:
        return cls(
            name=d.get("name", ""),
            version=str(d.get("version", "")),
            repository=d.get("repository", ""),
            condition=d.get("condition", ""),
        )


@dataclass
class TrackingConfig:
    api_version: str = ""
    kind: str = ""
    target: TargetSpec = field(default_factory=TargetSpec)
    charts: list[ChartSpec] = field(default_factory=list)
    images: list[ImageSpec] = field(default_factory=list)
    overrides: dict[str, Override] = field(default_factory=dict)  # deprecated: use patchwork.yaml

    @classmethod
    def from_dict(cls, d: dict) -> TrackingConfig:
        if not d:
            return cls()
        return cls(
            api_version=d.get("apiVersion", ""),
            kind=d.get("kind", ""),
            target=TargetSpec.from_dict(d.get("target") or {}),
            charts=[ChartSpec.from_dict(c) for c in d.get("charts") or []],
            images=[ImageSpec.from_dict(i) for i in d.get("images") or []],
            overrides=overrides_from_dict(d.get("overrides") or {}),
        )


def overrides_from_dict(raw: dict) -> dict[str, Override]:
    """Parse an ``overrides: {key: {from, to}}`` map; entries without ``from`` are dropped."""
    result: dict[str, Override] = {}
    if not isinstance(raw, dict):
        return result
    for key, value in raw.items():
        if not isinstance(value, dict):
            continue
        from_suffix = value.get("from")
        if not isinstance(from_suffix, str) or not from_suffix:
            continue
        to_suffix = value.get("to") or ""
        result[str(key)] = Override(match_key=str(key), from_suffix=from_suffix, to_suffix=str(to_suffix))
    return result


@dataclass
class DiscoveredTarget:
    name: str
    source: str
    target_registry: str
    platforms: str = DEFAULT_PLATFORMS

    def to_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "source": self.source,
            "target-registry": self.target_registry,
            "platforms": self.platforms,
        }
