"""Discovery manifest, work-queue and patch result models."""

from __future__ import annotations

from dataclasses import dataclass, field

from helm_patchwork.models import PatchStatus, SkipReason
from helm_patchwork.models.image import Image


@dataclass
class ChartDiscovery:
    name: str
    version: str
    repository: str
    images: list[Image] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "version": self.version,
            "repository": self.repository,
            "images": [img.to_dict() for img in self.images],
        }

    @classmethod
    def from_dict(cls, d: dict) -> ChartDiscovery:
        return cls(
            name=d.get("name", ""),
            version=d.get("version", ""),
            repository=d.get("repository", ""),
            images=[Image.from_dict(i) for i in d.get("images") or []],
        )


@dataclass
class DiscoveryManifest:
    """``images`` is the canonical flat inventory; ``charts`` keeps the grouping for assembly."""

    charts: list[ChartDiscovery] = field(default_factory=list)
    images: list[Image] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "charts": [c.to_dict() for c in self.charts],
            "images": [img.to_dict() for img in self.images],
        }

    @classmethod
    def from_dict(cls, d: dict) -> DiscoveryManifest:
        if not d:
            return cls()
        return cls(
            charts=[ChartDiscovery.from_dict(c) for c in d.get("charts") or []],
            images=[Image.from_dict(i) for i in d.get("images") or []],
        )


@dataclass
class MatrixEntry:
    image_ref: str
    image_name: str  # sanitized ref, used for artifact naming

    def to_dict(self) -> dict[str, str]:
        return {"image_ref": self.image_ref, "image_name": self.image_name}


@dataclass
class MatrixOutput:
    include: list[MatrixEntry] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"include": [e.to_dict() for e in self.include]}


@dataclass
class SinglePatchResult:
    """Verdict of one external patch invocation, persisted as one JSON file."""

    image_ref: str
    patched_registry: str = ""
    patched_repository: str = ""
    patched_tag: str = ""
    vuln_count: int = 0
    skipped: bool = False
    skip_reason: str = ""
    error: str = ""
    changed: bool = False

    @property
    def status(self) -> PatchStatus:
        if self.error:
            return PatchStatus.FAILED
        if self.skipped:
            return PatchStatus.SKIPPED
        return PatchStatus.PATCHED

    @property
    def patched_image(self) -> Image | None:
        if not self.patched_repository:
            return None
        return Image(
            registry=self.patched_registry,
            repository=self.patched_repository,
            tag=self.patched_tag,
        )

    def to_dict(self) -> dict:
        data: dict = {"image_ref": self.image_ref}
        if self.patched_registry:
            data["patched_registry"] = self.patched_registry
        if self.patched_repository:
            data["patched_repository"] = self.patched_repository
        if self.patched_tag:
            data["patched_tag"] = self.patched_tag
        data["vuln_count"] = self.vuln_count
        data["skipped"] = self.skipped
        if self.skip_reason:
            data["skip_reason"] = self.skip_reason
        if self.error:
            data["error"] = self.error
        data["changed"] = self.changed
        return data

    @classmethod
    def from_dict(cls, d: dict) -> SinglePatchResult:
        return cls(
            image_ref=d.get("image_ref", ""),
            patched_registry=d.get("patched_registry", ""),
            patched_repository=d.get("patched_repository", ""),
            patched_tag=d.get("patched_tag", ""),
            vuln_count=int(d.get("vuln_count", 0) or 0),
            skipped=bool(d.get("skipped", False)),
            skip_reason=d.get("skip_reason", ""),
            error=d.get("error", ""),
            changed=bool(d.get("changed", False)),
        )


@dataclass
class PatchResult:
    """In-memory join of a discovered image with its patch verdict; lives only during assembly."""

    original: Image
    patched: Image | None = None
    vuln_count: int = 0
    skipped: bool = False
    skip_reason: str = ""
    error: str = ""
    report_path: str = ""
    overridden_from: str = ""

    @property
    def succeeded(self) -> bool:
        return not self.error

    @property
    def patched_ref(self) -> str:
        return self.patched.reference() if self.patched else ""

    @property
    def has_distinct_patched_ref(self) -> bool:
        """True when there is a patched ref worth writing that differs from upstream."""
        return bool(self.patched and self.patched.repository) and self.patched_ref != self.original.reference()

    def mark_missing(self) -> None:
        self.skipped = True
        self.skip_reason = SkipReason.NO_RESULT.value


@dataclass
class PublishedImage:
    original: str
    patched: str

    def to_dict(self) -> dict[str, str]:
        return {"original": self.original, "patched": self.patched}


@dataclass
class PublishedChart:
    name: str
    version: str
    registry: str = ""
    oci_ref: str = ""
    sbom_path: str = ""
    vuln_predicate_path: str = ""
    images: list[PublishedImage] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "version": self.version,
            "registry": self.registry,
            "oci_ref": self.oci_ref,
            "sbom_path": self.sbom_path,
            "vuln_predicate_path": self.vuln_predicate_path,
            "images": [i.to_dict() for i in self.images],
        }
