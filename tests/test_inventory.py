from helm_patchwork.core.inventory import image_entry_key, merge_chart_images, parse_images_file
from helm_patchwork.models.image import Image

EXISTING = """\
# Hand-maintained inventory
nginx:
  image:
    registry: docker.io
    repository: library/nginx
    tag: "1.25"

overrides:
  timberio/vector:
    from: distroless-libc
    to: debian
"""


def test_merge_appends_only_new_images_and_keeps_text(tmp_path):
    path = tmp_path / "values.yaml"
    path.write_text(EXISTING)
    added = merge_chart_images(path, [
        Image(registry="docker.io", repository="library/nginx", tag="1.25"),
        Image(registry="quay.io", repository="prometheus/prometheus", tag="v3.2.1"),
    ])
    assert [i.reference() for i in added] == ["quay.io/prometheus/prometheus:v3.2.1"]
    text = path.read_text()
    assert text.startswith(EXISTING)
    assert text[len(EXISTING):] == (
        "prometheus-prometheus:\n"
        "  image:\n"
        "    registry: quay.io\n"
        "    repository: prometheus/prometheus\n"
        '    tag: "v3.2.1"\n'
    )


def test_merge_twice_is_byte_identical(tmp_path):
    path = tmp_path / "values.yaml"
    path.write_text(EXISTING)
    images = [Image(registry="ghcr.io", repository="org/app", tag="1.0")]
    merge_chart_images(path, images)
    first = path.read_bytes()
    assert merge_chart_images(path, images) == []
    assert path.read_bytes() == first


def test_key_collisions_use_registry_then_counter(tmp_path):
    path = tmp_path / "values.yaml"
    merge_chart_images(path, [
        Image(repository="org/app", tag="1"),
        Image(registry="ghcr.io", repository="org/app", tag="1"),
        Image(registry="quay.io", repository="org/app", tag="1"),
        Image(repository="org/app", tag="2"),
    ])
    keys = [line[:-1] for line in path.read_text().splitlines() if not line.startswith(" ")]
    # New entries are written in reference order: ghcr.io, org/app:1, org/app:2, quay.io.
    assert keys == ["org-app", "org-app-image", "org-app-image-1", "org-app-quay-io"]


def test_parse_images_file_sorted_and_ignores_overrides(tmp_path):
    path = tmp_path / "values.yaml"
    path.write_text(EXISTING + "alpine:\n  image:\n    repository: library/alpine\n    tag: '3.20'\n")
    refs = [i.reference() for i in parse_images_file(path)]
    assert refs == ["docker.io/library/nginx:1.25", "library/alpine:3.20"]


def test_entry_key():
    assert image_entry_key(Image(repository="prometheus/prometheus")) == "prometheus-prometheus"
