"""Parse multi-document YAML manifests rendered by ``helm template``."""

from __future__ import annotations

from typing import Any

import yaml


def iter_documents(manifest: str) -> list[dict[str, Any]]:
    """Return every non-empty mapping document of a multi-document YAML string."""
    docs: list[dict[str, Any]] = []
    if not manifest:
        return docs
    for doc in yaml.safe_load_all(manifest):
        if not doc or not isinstance(doc, dict):
            continue
        docs.append(doc)
    return docs


def collect_image_strings(node: Any, seen: set[str], result: list[str]) -> None:
    """Append every non-empty string ``image`` field under *node*, first-seen order."""
    if isinstance(node, dict):
        img = node.get("image")
        if isinstance(img, str) and img and img not in seen:
            seen.add(img)
            result.append(img)
        for value in node.values():
            collect_image_strings(value, seen, result)
    elif isinstance(node, list):
        for item in node:
            collect_image_strings(item, seen, result)
