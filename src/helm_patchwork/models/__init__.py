"""Data models for Helm Patchwork."""

from __future__ import annotations

import enum


class SkipReason(enum.Enum):
    UP_TO_DATE = "already up to date"
    NO_FIXABLE = "no fixable vulnerabilities"
    NO_RESULT = "no patch result"

    @classmethod
    def from_str(cls, s: str) -> SkipReason | None:
        for member in cls:
            if member.value == s:
                return member
        return None


class PatchStatus(enum.Enum):
    PATCHED = "patched"
    SKIPPED = "skipped"
    FAILED = "failed"


class TagStrategyKind(enum.Enum):
    LIST = "list"
    PATTERN = "pattern"
    LATEST = "latest"
