"""Build module for pkgbuild.

This module provides functions and classes for building task graphs.

Primary build functions:
- build(): Build the graph from a sync context
- build_aio(): Build the graph from an async context
- build_dependencies(): Build only the dependencies of the root task
- build_dependencies_aio(): Async version of build_dependencies()

Building blocks:
- TaskQueue: Concurrency-bounded job queue
- classify() / decide(): Per-task build decision
- build_package(): Runs a package builder for one task

Interfaces:
- PackageBuilderABC: Abstract base class for custom package builders
"""

from pkgbuild.build._base import (
    BuildExitStatus,
    BuildOnlyMode,
    BuildSummary,
    Decision,
    DecisionKind,
    DecisionReason,
    ForceMode,
    TaskCount,
    TaskReport,
)
from pkgbuild.build._orchestrator import (
    build,
    build_aio,
    build_dependencies,
    build_dependencies_aio,
)
from pkgbuild.build.builder import (
    BuildOptions,
    PackageBuilderABC,
    ShellPackageBuilder,
    TaskEvaluator,
)
from pkgbuild.build.decision import (
    SKIP_TRAVERSE_NAMES,
    check_source_mod_time,
    classify,
    decide,
    source_mod_time,
)
from pkgbuild.build.executor import build_package
from pkgbuild.build.queue import TaskQueue

__all__ = [
    # Data structures
    "BuildExitStatus",
    "BuildSummary",
    "TaskCount",
    "TaskReport",
    # Run policies
    "BuildOnlyMode",
    "ForceMode",
    # Build decision
    "Decision",
    "DecisionKind",
    "DecisionReason",
    "SKIP_TRAVERSE_NAMES",
    "check_source_mod_time",
    "classify",
    "decide",
    "source_mod_time",
    # Package builders
    "BuildOptions",
    "PackageBuilderABC",
    "ShellPackageBuilder",
    "TaskEvaluator",
    "build_package",
    # Queue
    "TaskQueue",
    # Build functions
    "build",
    "build_aio",
    "build_dependencies",
    "build_dependencies_aio",
]
