import subprocess
import sys

import pytest

from helm_patchwork.core.process import run_command
from helm_patchwork.errors import ChartError, PatchworkError


def test_undecodable_output_is_replaced():
    out = run_command([sys.executable, "-c", "import sys; sys.stdout.buffer.write(b'ok \\xff')"])
    assert out == "ok \ufffd"


def test_non_zero_exit_raises_with_stderr():
    cmd = [sys.executable, "-c", "import sys; sys.stderr.write('nope'); sys.exit(3)"]
    with pytest.raises(ChartError, match="exited 3: nope"):
        run_command(cmd, error_cls=ChartError)


def test_missing_binary_raises_patchwork_error():
    with pytest.raises(PatchworkError, match="not found on PATH"):
        run_command(["hpw-no-such-binary-xyz"])


def test_os_errors_become_patchwork_errors(monkeypatch):
    def _denied(*args, **kwargs):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(subprocess, "run", _denied)
    with pytest.raises(ChartError, match="Permission denied"):
        run_command(["copa", "patch"], error_cls=ChartError)
