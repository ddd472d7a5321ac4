"""Exception hierarchy shared by the core and the CLI."""

from __future__ import annotations


class PatchworkError(Exception):
    """Base class for every error the CLI reports without a traceback."""


class ConfigError(PatchworkError):
    """An authoring mistake in one of the input documents."""


class ChartError(PatchworkError):
    """A chart could not be pulled, rendered, packaged or pushed."""


class RegistryError(PatchworkError):
    """A registry API call failed (network, auth or unexpected status)."""


class PatchError(PatchworkError):
    """The external patcher failed for one image."""

    def __init__(self, image_ref: str, reason: str):
        super().__init__(f"patch failed for {image_ref}: {reason}")
        self.image_ref = image_ref
        self.reason = reason
