"""Base data structures for the build system.

This module contains:
- Run policies: ForceMode, BuildOnlyMode
- Build decisions: DecisionKind, DecisionReason, Decision
- Results: BuildExitStatus, TaskCount, TaskReport, BuildSummary
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


# =============================================================================
# Run policies
# =============================================================================


class ForceMode(StrEnum):
    """Which tasks are built unconditionally.

    Attributes:
        FOR_ROOT: Only the root task is forced.
        NO: No task is forced; every task goes through the build decision.
        YES: Every task is forced.
    """

    FOR_ROOT = "for_root"
    NO = "no"
    YES = "yes"


class BuildOnlyMode(StrEnum):
    """Which tasks are built without running their install commands."""

    FOR_ROOT = "for_root"
    NO = "no"
    YES = "yes"


# =============================================================================
# Build decisions
# =============================================================================


class DecisionKind(StrEnum):
    SKIP = "skip"
    BUILD = "build"
    FORCE_BUILD = "force_build"


class DecisionReason(StrEnum):
    FORCED = "forced"
    ROOT_PACKAGE = "root_package"
    INSTALL_MISSING = "install_missing"
    INSTALL_EXISTS = "install_exists"
    NO_BUILD_INFO = "no_build_info"
    NO_SOURCE_MOD_TIME = "no_source_mod_time"
    SOURCE_CHANGED = "source_changed"
    UP_TO_DATE = "up_to_date"


@dataclass(frozen=True)
class Decision:
    kind: DecisionKind
    reason: DecisionReason
    build_only: bool = False

    @classmethod
    def skip(cls, reason: DecisionReason) -> "Decision":
        return cls(DecisionKind.SKIP, reason)

    @classmethod
    def build(cls, reason: DecisionReason, build_only: bool) -> "Decision":
        return cls(DecisionKind.BUILD, reason, build_only)

    @classmethod
    def force_build(cls, build_only: bool) -> "Decision":
        return cls(DecisionKind.FORCE_BUILD, DecisionReason.FORCED, build_only)

    @property
    def needs_build(self) -> bool:
        return self.kind != DecisionKind.SKIP


# =============================================================================
# Results
# =============================================================================


class BuildExitStatus(StrEnum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class TaskCount:
    discovered: int = 0
    skipped: int = 0
    built: int = 0
    failed: int = 0
    # Never attempted because a dependency failed
    blocked: int = 0

    @property
    def pending(self) -> int:
        return (
            self.discovered - self.skipped - self.built - self.failed - self.blocked
        )


@dataclass
class TaskReport:
    """What happened to a single task during a build."""

    task_id: str
    decision: Decision | None = None
    error: BaseException | None = None

    @property
    def blocked(self) -> bool:
        return self.decision is None and self.error is not None


@dataclass
class BuildSummary:
    """Summary of a build execution."""

    status: BuildExitStatus
    task_count: TaskCount
    error: BaseException | None = None
    reports: dict[str, TaskReport] = field(default_factory=dict)

    def __repr__(self) -> str:
        """Return a human-readable summary of the build."""
        tc = self.task_count
        status_icon = "✓" if self.status == BuildExitStatus.SUCCESS else "✗"
        lines = [
            f"Build {self.status.value.upper()} {status_icon}",
            f"  Discovered: {tc.discovered}",
            f"  Skipped: {tc.skipped}",
            f"  Built: {tc.built}",
            f"  Failed: {tc.failed}",
        ]
        if tc.blocked > 0:
            lines.append(f"  Blocked: {tc.blocked}")
        if tc.pending > 0:
            lines.append(f"  Pending: {tc.pending}")
        if self.error:
            lines.append(f"  Error: {self.error}")
        return "\n".join(lines)
