import pytest

from helm_patchwork.core.tag_strategy import exclude_tags, find_tags_to_patch
from helm_patchwork.errors import ConfigError, RegistryError
from helm_patchwork.models.tracking import ImageSpec, TagStrategy

REGISTRY_TAGS = ["1.25.0", "1.25.1", "1.26.0", "1.27.0", "latest", "1.27.0-alpine"]


def _lister(tags):
    def list_tags(ref):
        return list(tags)

    return list_tags


def _spec(**tags) -> ImageSpec:
    return ImageSpec(name="nginx", image="docker.io/library/nginx", tags=TagStrategy(**tags))


def test_pattern_keeps_newest_max_tags():
    spec = _spec(strategy="pattern", pattern=r"^\d+\.\d+\.\d+$", max_tags=2)
    assert find_tags_to_patch(spec, _lister(REGISTRY_TAGS)) == ["1.26.0", "1.27.0"]


def test_pattern_without_limit_keeps_all_ascending():
    spec = _spec(strategy="pattern", pattern=r"^1\.25", exclude=["1.25.0"])
    assert find_tags_to_patch(spec, _lister(REGISTRY_TAGS)) == ["1.25.1"]


def test_pattern_accepts_prerelease_style_tags():
    spec = _spec(strategy="pattern", pattern=r"-alpine$")
    assert find_tags_to_patch(spec, _lister(REGISTRY_TAGS)) == ["1.27.0-alpine"]


def test_latest_picks_highest_version():
    spec = _spec(strategy="latest", exclude=["1.27.0"])
    assert find_tags_to_patch(spec, _lister(REGISTRY_TAGS)) == ["1.27.0-alpine"]


def test_latest_with_no_versions_is_empty():
    assert find_tags_to_patch(_spec(strategy="latest"), _lister(["latest", "edge"])) == []


def test_list_does_not_call_the_registry():
    def no_registry(ref):
        raise AssertionError("registry must not be queried")

    spec = _spec(strategy="list", tags=["1.0", "2.0"])
    assert find_tags_to_patch(spec, no_registry) == ["1.0", "2.0"]


def test_unknown_strategy_is_a_config_error():
    with pytest.raises(ConfigError, match="unknown tag strategy"):
        find_tags_to_patch(_spec(strategy="newest"), _lister(REGISTRY_TAGS))


def test_invalid_pattern_is_a_config_error():
    with pytest.raises(ConfigError, match="invalid tag pattern"):
        find_tags_to_patch(_spec(strategy="pattern", pattern="("), _lister(REGISTRY_TAGS))


def test_listing_errors_propagate():
    def failing(ref):
        raise RegistryError("timeout")

    with pytest.raises(RegistryError):
        find_tags_to_patch(_spec(strategy="latest"), failing)


def test_exclude_tags_is_exact_match():
    assert exclude_tags(["1.0", "1.0.1"], ["1.0"]) == ["1.0.1"]
