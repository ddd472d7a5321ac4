from helm_patchwork.core.tag_resolver import TagResolver, resolve_image_tag
from helm_patchwork.models.image import Image


class _Probe:
    def __init__(self, existing):
        self.existing = set(existing)
        self.calls = []

    def __call__(self, ref):
        self.calls.append(ref)
        return ref in self.existing


def test_plain_app_version_resolves_to_v_variant():
    probe = _Probe({"ghcr.io/org/app:v2.10.1"})
    resolver = TagResolver(probe)
    img = Image(registry="ghcr.io", repository="org/app")
    assert resolver.resolve(img, "2.10.1") == "v2.10.1"


def test_v_prefixed_app_version_is_used_without_probing():
    probe = _Probe(set())
    resolver = TagResolver(probe)
    assert resolver.resolve(Image(repository="org/app"), "v2.48.0") == "v2.48.0"
    assert probe.calls == []


def test_resolution_is_memoized_per_repository_and_app_version():
    probe = _Probe({"org/app:1.0.0"})
    resolver = TagResolver(probe)
    img = Image(repository="org/app")
    assert resolver.resolve(img, "1.0.0") == "1.0.0"
    calls = len(probe.calls)
    assert resolver.resolve(img, "1.0.0") == "1.0.0"
    assert len(probe.calls) == calls
    assert resolver.cache == {"/org/app@1.0.0": "1.0.0"}


def test_falls_back_to_original_when_nothing_exists():
    img = Image(repository="org/app", tag="v1.0")
    assert resolve_image_tag(img, _Probe(set())).tag == "v1.0"


def test_v_tag_can_resolve_to_plain_variant():
    img = Image(repository="org/app", tag="v1.0")
    assert resolve_image_tag(img, _Probe({"org/app:1.0"})).tag == "1.0"


def test_raising_probe_counts_as_absent():
    def boom(ref):
        raise RuntimeError("network down")

    img = Image(repository="org/app", tag="1.0")
    assert resolve_image_tag(img, boom) == img
