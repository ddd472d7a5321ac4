"""Heuristic discovery of container images in schema-less values trees.

Two shapes are recognised at every mapping node:

* a structured block ``{registry?, repository, tag?|digest?}`` (a leaf, not
  descended into), accepted when the parent key is ``image`` or a tag/digest
  is present;
* an inline ``image: "repo[:tag]"`` string.

Matches are reported with their dotted path from the root; list items are
addressed as ``path[i]``.
"""

from __future__ import annotations

from typing import Any, Callable

from helm_patchwork.models.image import Image
from helm_patchwork.utils.image_ref import parse_ref

Visitor = Callable[[str, Image], None]


def join_path(base: str, key: str) -> str:
    if not base:
        return key
    return f"{base}.{key}"


def string_val(node: dict, key: str) -> str | None:
    """Return the field as a string when it is a non-empty string or a number."""
    value = node.get(key)
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value or None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    return None


def looks_like_image(repo: str) -> bool:
    if not repo or repo in ("true", "false"):
        return False
    if repo.startswith(("http://", "https://")):
        return False
    return not any(ch.isspace() for ch in repo)


def looks_like_ref(s: str) -> bool:
    return (
        "/" in s
        and not any(ch.isspace() for ch in s)
        and not s.startswith(("http://", "https://"))
    )


def extract_image(node: dict, parent_key: str) -> Image | None:
    """Return the Image for a structured ``{repository, tag}`` block, else None."""
    repo = string_val(node, "repository")
    if repo is None or not looks_like_image(repo):
        return None

    tag = string_val(node, "tag")
    has_digest = string_val(node, "digest") is not None
    if parent_key.lower() != "image" and tag is None and not has_digest:
        return None

    return Image(
        repository=repo,
        registry=string_val(node, "registry") or "",
        tag=tag or "",
    )


def walk(node: Any, path: str, parent_key: str, visit: Visitor, seen: set[int] | None = None) -> None:
    """Visit every image under *node*.

    YAML aliases load as shared objects; each mapping or sequence is entered
    at most once, at the first path that reaches it.
    """
    if seen is None:
        seen = set()
    if isinstance(node, (dict, list)):
        if id(node) in seen:
            return
        seen.add(id(node))

    if isinstance(node, dict):
        img = extract_image(node, parent_key)
        if img is not None:
            visit(path, img)
            return

        inline = string_val(node, "image")
        if inline is not None and looks_like_ref(inline):
            visit(join_path(path, "image"), parse_ref(inline))

        for key, value in node.items():
            walk(value, join_path(path, str(key)), str(key), visit, seen)

    elif isinstance(node, list):
        for i, item in enumerate(node):
            walk(item, f"{path}[{i}]", "", visit, seen)


def find_images(values: dict, prefix: str = "", resolve: Callable[[Image], str] | None = None) -> list[Image]:
    """Collect every image under *values*, stamping each with its path.

    *resolve* is consulted for images without a tag and returns the tag to
    use (empty to leave it unset).
    """
    images: list[Image] = []

    def _visit(path: str, img: Image) -> None:
        img.path = path
        if not img.tag and resolve is not None:
            img.tag = resolve(img)
        images.append(img)

    walk(values, prefix, "", _visit)
    return images


def _normalized_reference(img: Image) -> str:
    ref = img.repository
    if img.registry:
        ref = f"{img.registry}/{ref}"
    if img.tag:
        ref = f"{ref}:{img.tag.removeprefix('v')}"
    return ref


def dedup(images: list[Image]) -> list[Image]:
    """Drop repeated references, treating ``1.2.3`` and ``v1.2.3`` as the same image.

    First occurrence keeps its slot; a later ``v``-prefixed variant replaces
    an earlier plain one in place.
    """
    index: dict[str, int] = {}
    result: list[Image] = []
    for img in images:
        key = _normalized_reference(img)
        if key in index:
            existing = result[index[key]]
            if img.tag.startswith("v") and not existing.tag.startswith("v"):
                result[index[key]] = img
            continue
        index[key] = len(result)
        result.append(img)
    return result
