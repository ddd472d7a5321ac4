"""Run external tools (helm, trivy, copa, crane, docker)."""

from __future__ import annotations

import logging
import subprocess
from typing import Callable

from helm_patchwork.errors import PatchworkError

logger = logging.getLogger(__name__)

# Runs a command and returns its stdout; raises PatchworkError on any failure.
CommandRunner = Callable[[list[str]], str]


def run_command(
    cmd: list[str],
    timeout: float | None = None,
    error_cls: type[PatchworkError] = PatchworkError,
) -> str:
    logger.debug("Running %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, encoding="utf-8", errors="replace", timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise error_cls(f"'{cmd[0]}' not found on PATH") from exc
    except OSError as exc:
        raise error_cls(f"running {cmd[0]}: {exc}") from exc
    except subprocess.TimeoutExpired as exc:
        raise error_cls(f"{cmd[0]} {cmd[1] if len(cmd) > 1 else ''} timed out after {exc.timeout}s") from exc
    if result.returncode != 0:
        detail = (result.stderr or result.stdout).strip()
        raise error_cls(f"{' '.join(cmd[:2])} exited {result.returncode}: {detail}")
    return result.stdout
