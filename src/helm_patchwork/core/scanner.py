"""Parallel vulnerability scans of tracked images with ``trivy``."""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from helm_patchwork.config.settings import settings
from helm_patchwork.core.process import CommandRunner, run_command
from helm_patchwork.core.tag_strategy import TagLister, find_tags_to_patch
from helm_patchwork.errors import ConfigError, PatchworkError
from helm_patchwork.models.tracking import TrackingConfig
from helm_patchwork.utils.encoding import sanitize

logger = logging.getLogger(__name__)

# Called as (image_ref, error_or_empty) after each scan finishes.
ScanCallback = Callable[[str, str], None]


@dataclass
class ScanJob:
    name: str
    image_ref: str
    output_file: Path
    is_patched: bool = False


@dataclass
class ScanFailure:
    image_ref: str
    error: str

    def __str__(self) -> str:
        return f"{self.image_ref}: {self.error}"


def build_scan_jobs(
    config: TrackingConfig,
    list_tags: TagLister,
    output_dir: Path,
    target_registry: str = "",
    patched_only: bool = False,
) -> list[ScanJob]:
    """One source scan per selected tag, plus a patched scan when a target registry is set.

    Images whose tags cannot be listed are skipped with a warning.
    """
    if patched_only and not target_registry:
        raise ConfigError("patched-only scanning requires a target registry")

    jobs: list[ScanJob] = []
    for spec in config.images:
        try:
            tags = find_tags_to_patch(spec, list_tags)
        except ConfigError:
            raise
        except PatchworkError as exc:
            logger.warning("Failed to discover tags for %r: %s", spec.name, exc)
            continue

        for tag in tags:
            if not patched_only:
                ref = f"{spec.image}:{tag}"
                jobs.append(ScanJob(spec.name, ref, output_dir / f"{sanitize(ref)}.json"))
            if target_registry:
                ref = f"{target_registry}/{spec.name}:{tag}{settings.patched_suffix}"
                jobs.append(ScanJob(spec.name, ref, output_dir / f"{sanitize(ref)}.json", is_patched=True))
    return jobs


def trivy_scan_args(image_ref: str, trivy_server: str = "") -> list[str]:
    args = [settings.trivy_bin, "image"]
    if trivy_server:
        args += ["--server", trivy_server]
    return args + ["--vuln-type", "os,library", "--format", "json", "--quiet", image_ref]


def _run_trivy(cmd: list[str]) -> str:
    return run_command(cmd, timeout=settings.patch_timeout)


def scan_image(job: ScanJob, trivy_server: str = "", runner: CommandRunner = _run_trivy) -> None:
    """Scan one image and write the JSON report to ``job.output_file``.

    A patched image may not be published yet; its failed scan leaves an
    empty report instead of an error.
    """
    try:
        output = runner(trivy_scan_args(job.image_ref, trivy_server))
    except PatchworkError:
        if not job.is_patched:
            raise
        logger.debug("Patched image %s not scannable, writing empty report", job.image_ref, exc_info=True)
        output = json.dumps({"ArtifactName": job.image_ref, "Results": []}, indent=2)
    job.output_file.write_text(output, encoding="utf-8")


def scan_images(
    jobs: list[ScanJob],
    parallel: int | None = None,
    trivy_server: str = "",
    runner: CommandRunner = _run_trivy,
    on_done: ScanCallback | None = None,
) -> list[ScanFailure]:
    """Run *jobs* on a bounded thread pool and return every failure after all finish."""
    if not jobs:
        return []
    workers = max(1, parallel or settings.scan_parallel)
    for job in jobs:
        job.output_file.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Scanning %d images (concurrency: %d)", len(jobs), workers)

    failures: list[ScanFailure] = []
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(scan_image, job, trivy_server, runner): job for job in jobs}
        for future in as_completed(futures):
            job = futures[future]
            error = ""
            try:
                future.result()
            except Exception as exc:
                # Any worker failure is reported with the rest once all jobs finish.
                error = str(exc) or type(exc).__name__
                failures.append(ScanFailure(job.image_ref, error))
            if on_done:
                on_done(job.image_ref, error)

    failures.sort(key=lambda f: f.image_ref)
    return failures
