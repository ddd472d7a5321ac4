import json

import pytest
import yaml

from helm_patchwork.core.wrapper_assembler import (
    assemble_results,
    create_wrapper_chart,
    generate_namespaced_values_override,
    next_patch_level,
    set_image_at_path,
)
from helm_patchwork.errors import PatchworkError, RegistryError
from helm_patchwork.models.image import Image
from helm_patchwork.models.manifest import PatchResult
from helm_patchwork.models.tracking import ChartSpec

REGISTRY = "ghcr.io/acme"


def _patched(path, tag="1.0", **kw) -> PatchResult:
    original = Image(registry="docker.io", repository="org/app", tag=tag, path=path)
    return PatchResult(
        original=original,
        patched=Image(registry=REGISTRY, repository="org/app", tag=tag + "-patched"),
        **kw,
    )


def _write_inputs(tmp_path, results: dict) -> tuple:
    manifest = {
        "charts": [
            {
                "name": "web",
                "version": "1.2.0",
                "repository": "oci://registry.example.com/charts",
                "images": [{"registry": "docker.io", "repository": "org/app", "tag": "1.0", "path": "image"}],
            },
            {
                "name": "idle",
                "version": "0.1.0",
                "repository": "https://charts.example.com",
                "images": [{"registry": "docker.io", "repository": "org/idle", "tag": "2", "path": "image"}],
            },
        ],
        "images": [],
    }
    manifest_path = tmp_path / "manifest.json"
    manifest_path.write_text(json.dumps(manifest))
    results_dir = tmp_path / "results"
    results_dir.mkdir()
    for i, data in enumerate(results.values()):
        (results_dir / f"r{i}.json").write_text(json.dumps(data))
    return manifest_path, results_dir


def test_set_image_at_path_creates_and_replaces_nodes():
    root = {"server": "not-a-map"}
    set_image_at_path(root, "server.image", Image(registry="r", repository="app", tag="1"))
    set_image_at_path(root, "sidecar.image", Image(repository="side"))
    assert root == {
        "server": {"image": {"registry": "r", "repository": "app", "tag": "1"}},
        "sidecar": {"image": {"repository": "side"}},
    }


def test_values_overlay_skip_rules(tmp_path):
    same_as_upstream = PatchResult(
        original=Image(repository="org/same", tag="1", path="same.image"),
        patched=Image(repository="org/same", tag="1"),
        skipped=True,
    )
    results = [
        _patched("server.image", overridden_from="1.0-distroless"),
        PatchResult(original=Image(repository="org/broken", tag="1", path="broken.image"), error="boom"),
        same_as_upstream,
        PatchResult(
            original=Image(repository="org/mirrored", tag="2", path="mirror.image"),
            patched=Image(registry=REGISTRY, repository="org/mirrored", tag="2"),
            skipped=True,
        ),
    ]
    path = tmp_path / "values.yaml"
    generate_namespaced_values_override("web", results, path)
    text = path.read_text()
    assert text.startswith('# NOTE: org/app was overridden from "1.0-distroless" to "1.0"')
    values = yaml.safe_load(text)
    assert set(values["web"]) == {"server", "mirror"}
    assert values["web"]["server"]["image"]["tag"] == "1.0-patched"


def test_empty_overlay_is_an_empty_mapping(tmp_path):
    path = tmp_path / "values.yaml"
    assert generate_namespaced_values_override("web", [], path) == {}
    assert yaml.safe_load(path.read_text()) == {}


def test_patch_levels_increment_over_publications():
    published: list[str] = []

    def list_tags(ref):
        assert ref == f"{REGISTRY}/charts/web"
        return list(published)

    levels = []
    for _ in range(3):
        level = next_patch_level(REGISTRY, "web", "1.2.0", list_tags)
        levels.append(level)
        published.append(f"1.2.0-{level}")
    assert levels == [0, 1, 2]


def test_patch_level_ignores_other_versions_and_errors():
    assert next_patch_level(REGISTRY, "web", "1.2.0", lambda ref: ["1.2.1-7", "1.2.0-x", "1.2.0-3"]) == 4

    def failing(ref):
        raise RegistryError("404")

    assert next_patch_level(REGISTRY, "web", "1.2.0", failing) == 0


def test_create_wrapper_chart_files(tmp_path):
    dep = ChartSpec(name="web", version="1.2.0", repository="oci://registry.example.com/charts")
    version = create_wrapper_chart(dep, [_patched("image", overridden_from="0.9")], tmp_path)
    assert version == "1.2.0-0"

    chart_dir = tmp_path / "web"
    chart = yaml.safe_load((chart_dir / "Chart.yaml").read_text())
    assert chart["apiVersion"] == "v2"
    assert chart["type"] == "application"
    assert chart["version"] == "1.2.0-0"
    assert chart["dependencies"] == [dep.to_dict()]
    assert (chart_dir / ".helmignore").read_text().startswith("# Patterns to ignore")
    assert json.loads((chart_dir / "overrides.json").read_text()) == {"docker.io_org_app_1.0": "0.9"}
    assert json.loads((chart_dir / "paths.json").read_text()) == {"docker.io_org_app_1.0": "image"}


def test_assembly_only_builds_changed_charts(tmp_path):
    manifest_path, results_dir = _write_inputs(tmp_path, {
        "docker.io/org/app:1.0": {
            "image_ref": "docker.io/org/app:1.0",
            "patched_registry": REGISTRY,
            "patched_repository": "org/app",
            "patched_tag": "1.0-patched",
            "vuln_count": 2,
            "skipped": False,
            "changed": True,
        },
        "docker.io/org/idle:2": {
            "image_ref": "docker.io/org/idle:2",
            "patched_registry": REGISTRY,
            "patched_repository": "org/idle",
            "patched_tag": "2-patched",
            "skipped": True,
            "skip_reason": "already up to date",
            "changed": False,
        },
    })
    out = tmp_path / "out"
    published_to = []

    charts = assemble_results(
        manifest_path, results_dir, out,
        registry=REGISTRY,
        publish=True,
        list_tags=lambda ref: ["1.2.0-0"],
        publisher=lambda chart_dir, registry: published_to.append((chart_dir.name, registry)) or "",
    )

    assert [c.name for c in charts] == ["web"]
    assert charts[0].version == "1.2.0-1"
    assert charts[0].oci_ref == f"{REGISTRY}/charts/web:1.2.0-1"
    assert published_to == [("web", REGISTRY)]
    assert not (out / "idle").exists()
    assert (out / "web" / "sbom.cdx.json").exists()
    assert (out / "web" / "vuln-predicate.json").exists()
    records = json.loads((out / "published-charts.json").read_text())
    assert records[0]["images"] == [{"original": "docker.io/org/app:1.0", "patched": f"{REGISTRY}/org/app:1.0-patched"}]


def test_no_changes_writes_nothing(tmp_path):
    manifest_path, results_dir = _write_inputs(tmp_path, {})
    out = tmp_path / "out"
    assert assemble_results(manifest_path, results_dir, out) == []
    assert not (out / "published-charts.json").exists()


def test_publish_requires_registry(tmp_path):
    with pytest.raises(PatchworkError, match="registry"):
        assemble_results(tmp_path / "m.json", tmp_path, tmp_path, publish=True)
