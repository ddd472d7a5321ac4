"""Thin wrappers around the ``helm`` binary plus chart archive handling."""

from __future__ import annotations

import io
import logging
import os
import tarfile
import tempfile
from pathlib import Path

import requests

from helm_patchwork.config.settings import settings
from helm_patchwork.core.process import run_command
from helm_patchwork.errors import ChartError
from helm_patchwork.models.tracking import ChartSpec

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 300


def run_helm(args: list[str], timeout: float | None = None) -> str:
    """Run ``helm <args>`` and return stdout; any failure raises ChartError."""
    return run_command(
        [settings.helm_bin, *args],
        timeout=timeout if timeout is not None else settings.render_timeout,
        error_cls=ChartError,
    )


def is_tarball_url(repository: str) -> bool:
    return repository.endswith((".tgz", ".tar.gz"))


def extract_tar_gz(fileobj, chart_name: str, dest_dir: Path) -> Path:
    """Extract a gzipped chart archive into *dest_dir* and return ``dest_dir/chart_name``.

    Members that would land outside *dest_dir* are skipped, as are links and
    special files.
    """
    dest_dir.mkdir(parents=True, exist_ok=True)
    root = dest_dir.resolve()
    try:
        with tarfile.open(fileobj=fileobj, mode="r:gz") as tar:
            for member in tar:
                target = (root / member.name).resolve()
                if target == root or root not in target.parents:
                    logger.debug("Skipping archive member outside destination: %s", member.name)
                    continue
                if member.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                elif member.isfile():
                    target.parent.mkdir(parents=True, exist_ok=True)
                    src = tar.extractfile(member)
                    if src is None:
                        continue
                    with src, open(target, "wb") as out:
                        out.write(src.read())
                    os.chmod(target, member.mode & 0o777 or 0o644)
    except (tarfile.TarError, OSError) as exc:
        raise ChartError(f"extracting {chart_name}: {exc}") from exc
    return dest_dir / chart_name


def download_tarball(url: str, chart_name: str, dest_dir: Path) -> Path:
    try:
        response = requests.get(url, timeout=DOWNLOAD_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise ChartError(f"fetching {url}: {exc}") from exc
    return extract_tar_gz(io.BytesIO(response.content), chart_name, dest_dir)


def pull_chart(chart: ChartSpec, dest_dir: Path) -> Path:
    """Fetch a chart dependency and return the path of its extracted directory."""
    if is_tarball_url(chart.repository):
        return download_tarball(chart.repository, chart.name, dest_dir)

    with tempfile.TemporaryDirectory(prefix="hpw-pull-") as tmp:
        if chart.repository.startswith("oci://"):
            args = ["pull", f"{chart.repository}/{chart.name}", "--version", chart.version]
        else:
            args = ["pull", chart.name, "--repo", chart.repository, "--version", chart.version]
        run_helm([*args, "--destination", tmp])

        archives = sorted(Path(tmp).glob("*.tgz"))
        if not archives:
            raise ChartError(f"no .tgz produced pulling {chart.name}@{chart.version}")
        with open(archives[0], "rb") as fh:
            return extract_tar_gz(fh, chart.name, dest_dir)


def template_args(chart: ChartSpec) -> list[str]:
    """Build ``helm template`` arguments for an OCI or HTTP chart repository."""
    if chart.repository.startswith("oci://"):
        return ["template", chart.name, f"{chart.repository}/{chart.name}", "--version", chart.version]
    return ["template", chart.name, chart.name, "--repo", chart.repository, "--version", chart.version]


def render_chart(chart: ChartSpec) -> str:
    return run_helm(template_args(chart))


def publish_chart(chart_dir: Path, registry: str) -> str:
    """Build dependencies, package and push a chart; return the OCI push target."""
    oci_url = f"oci://{registry}/charts"
    run_helm(["dependency", "build", str(chart_dir)])
    with tempfile.TemporaryDirectory(prefix="hpw-package-") as tmp:
        run_helm(["package", str(chart_dir), "-d", tmp])
        packages = sorted(Path(tmp).glob("*.tgz"))
        if not packages:
            raise ChartError(f"no .tgz produced packaging {chart_dir}")
        run_helm(["push", str(packages[0]), oci_url])
    logger.info("Published %s to %s", chart_dir.name, oci_url)
    return oci_url
