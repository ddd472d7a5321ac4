"""Status and severity color maps."""

from helm_patchwork.models import PatchStatus, SkipReason

STATUS_COLORS: dict[PatchStatus, str] = {
    PatchStatus.PATCHED: "green",
    PatchStatus.SKIPPED: "yellow",
    PatchStatus.FAILED: "red bold",
}

SKIP_REASON_COLORS: dict[SkipReason, str] = {
    SkipReason.UP_TO_DATE: "green",
    SkipReason.NO_FIXABLE: "cyan",
    SkipReason.NO_RESULT: "red",
}

SEVERITY_COLORS: dict[str, str] = {
    "CRITICAL": "red bold",
    "HIGH": "red",
    "MEDIUM": "yellow",
    "LOW": "blue",
    "UNKNOWN": "dim",
}

SEVERITY_ORDER = ["CRITICAL", "HIGH", "MEDIUM", "LOW", "UNKNOWN"]


def styled_status(status: PatchStatus) -> str:
    color = STATUS_COLORS.get(status, "white")
    return f"[{color}]{status.value}[/{color}]"


def styled_skip_reason(reason: str) -> str:
    if not reason:
        return ""
    member = SkipReason.from_str(reason)
    color = SKIP_REASON_COLORS.get(member, "white") if member else "white"
    return f"[{color}]{reason}[/{color}]"


def styled_severity(severity: str) -> str:
    severity = severity or "UNKNOWN"
    color = SEVERITY_COLORS.get(severity, "white")
    return f"[{color}]{severity}[/{color}]"


def styled_severity_counts(counts: dict[str, int]) -> str:
    ordered = sorted(counts, key=lambda s: SEVERITY_ORDER.index(s) if s in SEVERITY_ORDER else len(SEVERITY_ORDER))
    return " ".join(f"{styled_severity(s)}:{counts[s]}" for s in ordered) or "-"
