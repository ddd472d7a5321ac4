"""Container image models."""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass
class Image:
    repository: str
    registry: str = ""
    tag: str = ""
    path: str = ""
    # Tag the image carried before an override rewrote it; not part of the reference.
    overridden_from: str = ""

    @property
    def is_digest(self) -> bool:
        """True when ``tag`` holds a digest (``sha256:...``); tags never contain a colon."""
        return ":" in self.tag

    def reference(self) -> str:
        """Return ``registry/repository:tag`` (or ``@digest``), omitting absent parts."""
        ref = self.repository
        if self.registry:
            ref = f"{self.registry}/{ref}"
        if self.tag:
            sep = "@" if self.is_digest else ":"
            ref = f"{ref}{sep}{self.tag}"
        return ref

    def with_tag(self, tag: str) -> Image:
        return replace(self, tag=tag)

    def to_dict(self) -> dict[str, str]:
        data = {
            "registry": self.registry,
            "repository": self.repository,
            "tag": self.tag,
            "path": self.path,
        }
        if self.overridden_from:
            data["overridden_from"] = self.overridden_from
        return data

    @classmethod
    def from_dict(cls, d: dict) -> Image:
        return cls(
            repository=d.get("repository", "") or "",
            registry=d.get("registry", "") or "",
            tag=d.get("tag", "") or "",
            path=d.get("path", "") or "",
            overridden_from=d.get("overridden_from", "") or "",
        )


@dataclass
class Override:
    """Tag-variant substitution, e.g. ``0.46.1-distroless-libc`` -> ``0.46.1-debian``."""

    match_key: str
    from_suffix: str
    to_suffix: str = ""

    def matches(self, ref: str, tag: str) -> bool:
        return bool(self.from_suffix) and self.match_key in ref and tag.endswith("-" + self.from_suffix)

    def rewrite_tag(self, tag: str) -> str:
        base = tag[: -len("-" + self.from_suffix)]
        return f"{base}-{self.to_suffix}"
