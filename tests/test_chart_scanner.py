import io
import tarfile

from helm_patchwork.core.chart_scanner import load_chart, scan_for_images
from helm_patchwork.core.tag_resolver import TagResolver


def _write_chart(root, name, values, app_version=""):
    root.mkdir(parents=True, exist_ok=True)
    meta = f"apiVersion: v2\nname: {name}\nversion: 1.0.0\n"
    if app_version:
        meta += f"appVersion: {app_version}\n"
    (root / "Chart.yaml").write_text(meta)
    (root / "values.yaml").write_text(values)


def _tgz(path, name, files: dict):
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for rel, content in files.items():
            data = content.encode()
            info = tarfile.TarInfo(f"{name}/{rel}")
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    path.write_bytes(buf.getvalue())


def test_subcharts_are_scanned_with_prefixed_paths(tmp_path):
    chart = tmp_path / "web"
    _write_chart(chart, "web", "image:\n  repository: org/web\n", app_version="2.10.1")
    _write_chart(chart / "charts" / "cache", "cache", "image:\n  repository: org/cache\n  tag: '7'\n")
    (chart / "charts").mkdir(exist_ok=True)
    _tgz(chart / "charts" / "db-1.0.0.tgz", "db", {
        "Chart.yaml": "apiVersion: v2\nname: db\nversion: 1.0.0\n",
        "values.yaml": "primary:\n  image:\n    repository: org/db\n    tag: '16'\n",
    })

    resolver = TagResolver(lambda ref: ref == "org/web:v2.10.1")
    images = scan_for_images(chart, resolver)

    found = {img.path: img.reference() for img in images}
    assert found == {
        "image": "org/web:v2.10.1",
        "cache.image": "org/cache:7",
        "db.primary.image": "org/db:16",
    }


def test_load_chart_reads_metadata(tmp_path):
    _write_chart(tmp_path / "c", "c", "{}\n", app_version="1.0")
    chart = load_chart(tmp_path / "c")
    assert (chart.name, chart.version, chart.app_version, chart.subcharts) == ("c", "1.0.0", "1.0", [])
