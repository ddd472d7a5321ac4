import json

import pytest

from helm_patchwork.core.matrix_builder import generate_matrix, load_manifest, matrix_json, write_discovery_output
from helm_patchwork.errors import ConfigError
from helm_patchwork.models.image import Image
from helm_patchwork.models.manifest import ChartDiscovery, DiscoveryManifest


def _manifest() -> DiscoveryManifest:
    a = Image(registry="docker.io", repository="library/nginx", tag="1.25", path="image")
    b = Image(registry="quay.io", repository="org/app", tag="v1")
    return DiscoveryManifest(
        charts=[ChartDiscovery(name="web", version="1.0.0", repository="https://charts.example.com", images=[a])],
        images=[a, b, Image(registry="docker.io", repository="library/nginx", tag="1.25", path="other")],
    )


def test_matrix_has_unique_references_in_first_seen_order():
    matrix = generate_matrix(_manifest())
    assert [e.image_ref for e in matrix.include] == ["docker.io/library/nginx:1.25", "quay.io/org/app:v1"]
    assert matrix.include[0].image_name == "docker.io_library_nginx_1.25"


def test_matrix_json_is_single_line():
    text = matrix_json(generate_matrix(_manifest()))
    assert "\n" not in text
    assert json.loads(text)["include"][1] == {"image_ref": "quay.io/org/app:v1", "image_name": "quay.io_org_app_v1"}


def test_written_manifest_loads_back(tmp_path):
    manifest = _manifest()
    write_discovery_output(manifest, generate_matrix(manifest), tmp_path)
    loaded = load_manifest(tmp_path / "manifest.json")
    assert loaded.charts[0].images[0].path == "image"
    assert len(loaded.images) == 3
    assert "\n" not in (tmp_path / "matrix.json").read_text()


def test_unreadable_manifest_is_config_error(tmp_path):
    path = tmp_path / "manifest.json"
    path.write_text("{not json")
    with pytest.raises(ConfigError):
        load_manifest(path)
