import json

from typer.testing import CliRunner

from helm_patchwork.cli.app import app

runner = CliRunner()


def test_matrix_prints_compact_queue(tmp_path):
    manifest = tmp_path / "manifest.json"
    manifest.write_text(json.dumps({
        "charts": [],
        "images": [
            {"registry": "docker.io", "repository": "library/nginx", "tag": "1.25", "path": ""},
            {"registry": "docker.io", "repository": "library/nginx", "tag": "1.25", "path": "x"},
        ],
    }))
    result = runner.invoke(app, ["matrix", "--manifest", str(manifest)])
    assert result.exit_code == 0
    assert json.loads(result.stdout.strip()) == {
        "include": [{"image_ref": "docker.io/library/nginx:1.25", "image_name": "docker.io_library_nginx_1.25"}],
    }


def test_bad_manifest_exits_non_zero(tmp_path):
    manifest = tmp_path / "manifest.json"
    manifest.write_text("nope")
    result = runner.invoke(app, ["matrix", "--manifest", str(manifest)])
    assert result.exit_code == 1


def test_list_outputs_json(tmp_path):
    values = tmp_path / "values.yaml"
    values.write_text("nginx:\n  image:\n    repository: library/nginx\n    tag: '1.25'\n")
    result = runner.invoke(app, ["list", "--images", str(values), "-o", "json"])
    assert result.exit_code == 0
    assert json.loads(result.stdout)[0]["repository"] == "library/nginx"


def test_catalog_writes_file(tmp_path):
    images_json = tmp_path / "images.json"
    images_json.write_text(json.dumps([{"name": "nginx", "source": "nginx:1.25", "target": "ghcr.io/acme/nginx:1.25-patched"}]))
    out = tmp_path / "catalog.json"
    result = runner.invoke(app, ["catalog", "-j", str(images_json), "-f", str(out), "-o", "json"])
    assert result.exit_code == 0
    assert json.loads(out.read_text())["summary"]["totalImages"] == 1
