import io
import tarfile
from pathlib import Path

import pytest

from helm_patchwork.core import helm_cli
from helm_patchwork.errors import ChartError
from helm_patchwork.models.tracking import ChartSpec


def _archive(members: dict) -> io.BytesIO:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, content in members.items():
            data = content.encode()
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    buf.seek(0)
    return buf


def test_extract_skips_members_outside_destination(tmp_path):
    dest = tmp_path / "dest"
    archive = _archive({"web/Chart.yaml": "name: web\n", "../evil.txt": "x", "/abs.txt": "y"})
    chart_dir = helm_cli.extract_tar_gz(archive, "web", dest)
    assert chart_dir == dest / "web"
    assert (chart_dir / "Chart.yaml").read_text() == "name: web\n"
    assert not (tmp_path / "evil.txt").exists()


def test_corrupt_archive_is_a_chart_error(tmp_path):
    with pytest.raises(ChartError):
        helm_cli.extract_tar_gz(io.BytesIO(b"not a tarball"), "web", tmp_path)


def test_template_args_for_oci_and_http():
    oci = ChartSpec(name="web", version="1.0.0", repository="oci://ghcr.io/org/charts")
    http = ChartSpec(name="web", version="1.0.0", repository="https://charts.example.com")
    assert helm_cli.template_args(oci) == ["template", "web", "oci://ghcr.io/org/charts/web", "--version", "1.0.0"]
    assert helm_cli.template_args(http)[3:5] == ["--repo", "https://charts.example.com"]


def test_publish_runs_build_package_push(tmp_path, monkeypatch):
    calls = []

    def fake_run_helm(args, timeout=None):
        calls.append(args[0])
        if args[0] == "package":
            dest = args[args.index("-d") + 1]
            (Path(dest) / "web-1.0.0-0.tgz").write_bytes(b"")
        return ""

    monkeypatch.setattr(helm_cli, "run_helm", fake_run_helm)
    assert helm_cli.publish_chart(tmp_path / "web", "ghcr.io/acme") == "oci://ghcr.io/acme/charts"
    assert calls == ["dependency", "package", "push"]


def test_tarball_urls_are_downloaded(tmp_path, monkeypatch):
    class _Response:
        content = _archive({"web/Chart.yaml": "name: web\n"}).getvalue()

        def raise_for_status(self):
            pass

    monkeypatch.setattr(helm_cli.requests, "get", lambda url, timeout: _Response())
    spec = ChartSpec(name="web", version="1.0.0", repository="https://example.com/web-1.0.0.tgz")
    assert (helm_cli.pull_chart(spec, tmp_path) / "Chart.yaml").exists()
