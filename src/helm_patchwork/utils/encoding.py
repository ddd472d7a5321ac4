"""Filename encoding for image references."""

from __future__ import annotations


def sanitize(ref: str) -> str:
    """Make an image reference safe for use as a filename or artifact name.

    ``/``, ``:`` and ``@`` all become ``_``, so the mapping is lossy.
    """
    return ref.replace("/", "_").replace(":", "_").replace("@", "_")

