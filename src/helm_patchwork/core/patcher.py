"""Patch one queue item: resolve, scan, patch or mirror, and record the verdict."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from helm_patchwork.config.settings import settings
from helm_patchwork.core.process import CommandRunner, run_command
from helm_patchwork.core.tag_resolver import TagProbe, resolve_image_tag
from helm_patchwork.errors import PatchError, PatchworkError
from helm_patchwork.models import SkipReason
from helm_patchwork.models.image import Image
from helm_patchwork.models.manifest import SinglePatchResult
from helm_patchwork.utils.encoding import sanitize
from helm_patchwork.utils.image_ref import parse_image_ref

logger = logging.getLogger(__name__)


@dataclass
class PatchOutcome:
    original: Image
    patched: Image | None = None
    vuln_count: int = 0
    skipped: bool = False
    skip_reason: str = ""
    error: str = ""
    report_path: str = ""


class Patcher(Protocol):
    def patch(self, img: Image) -> PatchOutcome: ...


def count_fixable(report_path: Path) -> int:
    """Count findings with a fixed version in a Trivy JSON report."""
    report = json.loads(report_path.read_text(encoding="utf-8"))
    count = 0
    for result in report.get("Results") or []:
        for vuln in result.get("Vulnerabilities") or []:
            if vuln.get("FixedVersion"):
                count += 1
    return count


def _run_tool(cmd: list[str]) -> str:
    return run_command(cmd, timeout=settings.patch_timeout)


class CopaPatcher:
    """Patches OS-level findings with ``copa`` and publishes to a target registry.

    Without a target registry the patched image stays in the local daemon.
    """

    def __init__(
        self,
        report_dir: Path,
        target_registry: str = "",
        buildkit_addr: str = "",
        probe: TagProbe | None = None,
        runner: CommandRunner = _run_tool,
    ):
        self.report_dir = report_dir
        self.target_registry = target_registry
        self.buildkit_addr = buildkit_addr
        self.probe = probe
        self.runner = runner

    def _target(self, img: Image, tag: str) -> Image:
        return Image(registry=self.target_registry, repository=img.repository, tag=tag)

    def patch(self, img: Image) -> PatchOutcome:
        outcome = PatchOutcome(original=img)
        ref = img.reference()
        # A digest-pinned image gets a tag derived from its digest.
        tag = img.tag.replace(":", "-") if img.is_digest else img.tag or "latest"
        patched_tag = tag + settings.patched_suffix

        if self.target_registry and self.probe is not None:
            existing = self._target(img, patched_tag)
            if self.probe(existing.reference()):
                logger.info("%s already patched as %s", ref, existing.reference())
                outcome.skipped = True
                outcome.skip_reason = SkipReason.UP_TO_DATE.value
                outcome.patched = existing
                return outcome

        self.report_dir.mkdir(parents=True, exist_ok=True)
        report_path = self.report_dir / f"{sanitize(ref)}.json"
        outcome.report_path = str(report_path)
        try:
            self.runner([
                settings.trivy_bin, "image",
                "--vuln-type", "os",
                "--ignore-unfixed",
                "--format", "json",
                "--output", str(report_path),
                ref,
            ])
            outcome.vuln_count = count_fixable(report_path)
        except (PatchworkError, OSError, ValueError) as exc:
            outcome.error = f"scanning {ref}: {exc}"
            return outcome

        if outcome.vuln_count == 0:
            outcome.skipped = True
            outcome.skip_reason = SkipReason.NO_FIXABLE.value
            outcome.patched = img
            if self.target_registry:
                mirror = self._target(img, tag)
                try:
                    self.runner([settings.crane_bin, "copy", ref, mirror.reference()])
                except PatchworkError as exc:
                    outcome.error = f"mirroring {ref}: {exc}"
                    return outcome
                outcome.patched = mirror
            return outcome

        args = [
            settings.copa_bin, "patch",
            "--image", ref,
            "--report", str(report_path),
            "--tag", patched_tag,
            "--timeout", "10m",
        ]
        if self.buildkit_addr:
            args += ["--addr", self.buildkit_addr]
        try:
            self.runner(args)
        except PatchworkError as exc:
            outcome.error = f"patching {ref}: {exc}"
            return outcome

        local = img.with_tag(patched_tag)
        if not self.target_registry:
            outcome.patched = local
            return outcome

        target = self._target(img, patched_tag)
        try:
            self.runner([settings.docker_bin, "tag", local.reference(), target.reference()])
            self.runner([settings.docker_bin, "push", target.reference()])
        except PatchworkError as exc:
            outcome.error = f"pushing {target.reference()}: {exc}"
            return outcome
        outcome.patched = target
        return outcome


def build_result(image_ref: str, outcome: PatchOutcome) -> SinglePatchResult:
    """Translate a patch outcome into the persisted per-item verdict."""
    entry = SinglePatchResult(
        image_ref=image_ref,
        vuln_count=outcome.vuln_count,
        skipped=outcome.skipped,
        skip_reason=outcome.skip_reason,
        error=outcome.error,
    )
    patched = outcome.patched
    record_patched = False
    if not outcome.skipped and not outcome.error:
        record_patched = patched is not None
    elif outcome.skipped and patched is not None and patched.repository:
        # A skip only records a target when it differs from upstream.
        record_patched = patched.reference() != outcome.original.reference()
    if record_patched and patched is not None:
        entry.patched_registry = patched.registry
        entry.patched_repository = patched.repository
        entry.patched_tag = patched.tag

    entry.changed = not outcome.error and (
        not outcome.skipped or outcome.skip_reason != SkipReason.UP_TO_DATE.value
    )
    return entry


def write_result(entry: SinglePatchResult, result_dir: Path) -> Path:
    result_dir.mkdir(parents=True, exist_ok=True)
    path = result_dir / f"{sanitize(entry.image_ref)}.json"
    path.write_text(json.dumps(entry.to_dict(), indent=2), encoding="utf-8")
    return path


def patch_single_image(
    image_ref: str,
    patcher: Patcher,
    result_dir: Path,
    probe: TagProbe | None = None,
) -> SinglePatchResult:
    """Patch one queue entry and write its result file.

    The result file is written before a failure is raised, so assembly can
    still see what happened.
    """
    registry, repository, tag = parse_image_ref(image_ref)
    img = Image(registry=registry, repository=repository, tag=tag)
    if probe is not None:
        resolved = resolve_image_tag(img, probe)
        if resolved.tag != img.tag:
            logger.info("Resolved tag: %s -> %s", img.tag, resolved.tag)
        img = resolved

    outcome = patcher.patch(img)
    entry = build_result(image_ref, outcome)
    path = write_result(entry, result_dir)
    logger.debug("Wrote %s", path)

    if outcome.error:
        raise PatchError(image_ref, outcome.error)
    return entry
