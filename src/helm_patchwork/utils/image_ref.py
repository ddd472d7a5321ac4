"""Image reference parsing helpers."""

from __future__ import annotations

from helm_patchwork.models.image import Image


def split_ref(ref: str) -> tuple[str, str]:
    """Split ``name:tag`` on the last colon that follows the last slash.

    ``docker.io/foo/bar:1.0-alpine`` -> ``("docker.io/foo/bar", "1.0-alpine")``;
    ``localhost:5000/foo`` has no tag.
    """
    last_slash = ref.rfind("/")
    last_colon = ref.rfind(":")
    if last_colon > last_slash:
        return ref[:last_colon], ref[last_colon + 1:]
    return ref, ""


def _looks_like_registry(component: str) -> bool:
    return "." in component or ":" in component or component == "localhost"


def parse_image_ref(ref: str) -> tuple[str, str, str]:
    """Return ``(registry, repository, tag)`` for a reference string.

    A digest takes precedence over a tag and is returned whole as the tag
    (``nginx:1.25@sha256:abc`` -> ``("", "nginx", "sha256:abc")``).
    """
    tag = ""
    if "@" in ref:
        ref, tag = ref.split("@", 1)
        ref, _ = split_ref(ref)
    else:
        ref, tag = split_ref(ref)

    head, sep, rest = ref.partition("/")
    if sep and _looks_like_registry(head):
        return head, rest, tag
    return "", ref, tag


def parse_ref(ref: str) -> Image:
    """Parse an inline ``image: repo[:tag]`` value as found in chart values."""
    tag = ""
    if "@" in ref:
        ref, tag = ref.split("@", 1)
        ref, _ = split_ref(ref)
    else:
        idx = ref.rfind(":")
        if idx > 0 and "/" not in ref[idx:]:
            tag = ref[idx + 1:]
            ref = ref[:idx]
    head, sep, rest = ref.partition("/")
    if sep and ("." in head or ":" in head):
        return Image(registry=head, repository=rest, tag=tag)
    return Image(repository=ref, tag=tag)


def name_from_ref(ref: str) -> str:
    """Derive a short, collision-resistant name for an image reference.

    ``quay.io/some-org/nginx:1.29`` -> ``some-org-nginx``;
    ``quay.io/prometheus/prometheus:v3.2.1`` -> ``prometheus``;
    ``nginx:1.25`` -> ``nginx``.
    """
    ref = ref.split("@", 1)[0]
    ref, _ = split_ref(ref)
    parts = ref.split("/")
    if len(parts) >= 3:
        org, name = parts[-2], parts[-1]
        if org == name:
            return name
        return f"{org}-{name}"
    return parts[-1]
