"""Scan report and catalog models."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field


@dataclass
class Finding:
    id: str
    pkg_name: str = ""
    installed_version: str = ""
    fixed_version: str = ""
    severity: str = ""
    title: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "pkgName": self.pkg_name,
            "installedVersion": self.installed_version,
            "fixedVersion": self.fixed_version,
            "severity": self.severity,
            "title": self.title,
        }

    @classmethod
    def from_trivy(cls, d: dict) -> Finding:
        return cls(
            id=d.get("VulnerabilityID", ""),
            pkg_name=d.get("PkgName", ""),
            installed_version=d.get("InstalledVersion", ""),
            fixed_version=d.get("FixedVersion", ""),
            severity=d.get("Severity", ""),
            title=d.get("Title", ""),
        )


@dataclass
class ScanReport:
    """The subset of a Trivy JSON report the catalog needs."""

    os_family: str = ""
    os_name: str = ""
    findings: list[Finding] = field(default_factory=list)

    @property
    def os(self) -> str:
        return " ".join(p for p in (self.os_family, self.os_name) if p)

    @classmethod
    def from_dict(cls, d: dict) -> ScanReport:
        if not d:
            return cls()
        os_info = (d.get("Metadata") or {}).get("OS") or {}
        findings = [
            Finding.from_trivy(v)
            for result in d.get("Results") or []
            for v in result.get("Vulnerabilities") or []
        ]
        return cls(
            os_family=os_info.get("Family", ""),
            os_name=str(os_info.get("Name", "")),
            findings=findings,
        )


@dataclass
class VulnSummary:
    total: int = 0
    severity_counts: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"total": self.total, "severityCounts": dict(self.severity_counts)}

    @classmethod
    def from_findings(cls, findings: list[Finding]) -> VulnSummary:
        counts = Counter(f.severity or "UNKNOWN" for f in findings)
        return cls(total=len(findings), severity_counts=dict(counts))


@dataclass
class CatalogImage:
    id: str
    original_ref: str
    patched_ref: str
    os: str = ""
    before_vulns: VulnSummary = field(default_factory=VulnSummary)
    after_vulns: VulnSummary = field(default_factory=VulnSummary)
    vulnerabilities: list[Finding] = field(default_factory=list)

    @property
    def fixed(self) -> int:
        return self.before_vulns.total - self.after_vulns.total

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "originalRef": self.original_ref,
            "patchedRef": self.patched_ref,
            "os": self.os,
            "beforeVulns": self.before_vulns.to_dict(),
            "afterVulns": self.after_vulns.to_dict(),
            "vulnerabilities": [v.to_dict() for v in self.vulnerabilities],
        }


@dataclass
class CatalogSummary:
    total_images: int = 0
    total_vulns_before: int = 0
    total_vulns_after: int = 0
    fixed_vulns: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "totalImages": self.total_images,
            "totalVulnsBefore": self.total_vulns_before,
            "totalVulnsAfter": self.total_vulns_after,
            "fixedVulns": self.fixed_vulns,
        }


@dataclass
class Catalog:
    generated_at: str
    registry: str = ""
    summary: CatalogSummary = field(default_factory=CatalogSummary)
    images: list[CatalogImage] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "generatedAt": self.generated_at,
            "registry": self.registry,
            "summary": self.summary.to_dict(),
            "images": [img.to_dict() for img in self.images],
        }


@dataclass
class CatalogEntry:
    """One line of ``images.json``: a tracked image and where its patched copy lives."""

    name: str
    source: str
    target: str = ""

    @classmethod
    def from_dict(cls, d: dict) -> CatalogEntry:
        return cls(name=d.get("name", ""), source=d.get("source", ""), target=d.get("target", ""))
