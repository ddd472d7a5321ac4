"""Application configuration and defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_PLATFORMS = "linux/amd64,linux/arm64"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _default_work_dir() -> Path:
    """Return the scratch directory for pulled charts and intermediate files.

    HPW_WORK_DIR wins; otherwise a hidden directory in the current checkout,
    which is where CI jobs expect to find discovery output.
    """
    work_dir = os.environ.get("HPW_WORK_DIR", "")
    if work_dir:
        return Path(work_dir)
    return Path.cwd() / ".patchwork"


@dataclass
class Settings:
    helm_bin: str = field(default_factory=lambda: os.environ.get("HPW_HELM_BIN", "helm"))
    trivy_bin: str = field(default_factory=lambda: os.environ.get("HPW_TRIVY_BIN", "trivy"))
    copa_bin: str = field(default_factory=lambda: os.environ.get("HPW_COPA_BIN", "copa"))
    crane_bin: str = field(default_factory=lambda: os.environ.get("HPW_CRANE_BIN", "crane"))
    docker_bin: str = field(default_factory=lambda: os.environ.get("HPW_DOCKER_BIN", "docker"))
    buildkit_addr: str = field(default_factory=lambda: os.environ.get("HPW_BUILDKIT_ADDR", ""))
    work_dir: Path = field(default_factory=_default_work_dir)
    # Seconds. Probes must stay short: they run once per ambiguous tag.
    probe_timeout: float = field(default_factory=lambda: _env_float("HPW_PROBE_TIMEOUT", 5.0))
    list_timeout: float = field(default_factory=lambda: _env_float("HPW_LIST_TIMEOUT", 30.0))
    render_timeout: float = field(default_factory=lambda: _env_float("HPW_RENDER_TIMEOUT", 300.0))
    patch_timeout: float = field(default_factory=lambda: _env_float("HPW_PATCH_TIMEOUT", 1800.0))
    scan_parallel: int = field(default_factory=lambda: _env_int("HPW_SCAN_PARALLEL", 5))
    default_platforms: str = DEFAULT_PLATFORMS
    patched_suffix: str = "-patched"

    @property
    def charts_dir(self) -> Path:
        return self.work_dir / "charts"

    @property
    def results_dir(self) -> Path:
        return self.work_dir / "results"

    @property
    def reports_dir(self) -> Path:
        return self.work_dir / "reports"

    @property
    def wrappers_dir(self) -> Path:
        return self.work_dir / "wrappers"


# Global singleton
settings = Settings()
