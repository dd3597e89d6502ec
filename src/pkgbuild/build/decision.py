"""Build decision: does a task need to be (re)built?

The decision is made fresh on every run from the state on disk:

- Forced tasks (see ForceMode) are always built, without looking at disk.
- Immutable packages are skipped when their install path exists.
- Root packages are always built.
- Development packages are built when their install path is missing, when
  their build info has no source watermark, or when any file of their source
  tree is newer than the watermark.

The source check takes the maximum mtime over the source tree. It does not
notice content changes whose mtime is older than the watermark (e.g. files
restored by a version control checkout).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pkgbuild import fs
from pkgbuild.build._base import (
    BuildOnlyMode,
    Decision,
    DecisionReason,
    ForceMode,
)
from pkgbuild.build_info import read_build_info
from pkgbuild.config import BuildConfig
from pkgbuild.perf import measure_time
from pkgbuild.task import SourceType, Task

logger = logging.getLogger(__name__)

# Directories never considered part of a package's sources
SKIP_TRAVERSE_NAMES = frozenset(
    {"node_modules", "_esy", "_release", "_build", "_install"}
)


def skip_traverse(path: Path) -> bool:
    return path.name in SKIP_TRAVERSE_NAMES


def resolve_build_only(mode: BuildOnlyMode, is_root: bool) -> bool:
    if mode == BuildOnlyMode.YES:
        return True
    elif mode == BuildOnlyMode.FOR_ROOT:
        return is_root
    elif mode == BuildOnlyMode.NO:
        return False
    else:
        raise ValueError(f"Unsupported build-only mode: {mode}")


def is_forced(mode: ForceMode, is_root: bool) -> bool:
    if mode == ForceMode.YES:
        return True
    elif mode == ForceMode.FOR_ROOT:
        return is_root
    elif mode == ForceMode.NO:
        return False
    else:
        raise ValueError(f"Unsupported force mode: {mode}")


async def classify(
    task: Task,
    root_id: str,
    config: BuildConfig,
    force: ForceMode = ForceMode.FOR_ROOT,
    build_only: BuildOnlyMode = BuildOnlyMode.FOR_ROOT,
) -> Decision:
    """Decide what to do with `task` under the given run policies."""
    is_root = task.id == root_id
    task_build_only = resolve_build_only(build_only, is_root)
    if is_forced(force, is_root):
        return Decision.force_build(task_build_only)
    return await decide(task, config, task_build_only)


async def decide(task: Task, config: BuildConfig, build_only: bool) -> Decision:
    """Decide from the on-disk state whether `task` needs a build."""
    install_path = task.paths.install_path.to_path(config)
    source_type = task.package.source_type

    if source_type == SourceType.IMMUTABLE:
        if await fs.exists(install_path):
            return Decision.skip(DecisionReason.INSTALL_EXISTS)
        return Decision.build(DecisionReason.INSTALL_MISSING, build_only)

    elif source_type == SourceType.ROOT:
        return Decision.build(DecisionReason.ROOT_PACKAGE, build_only)

    elif source_type == SourceType.DEVELOPMENT:
        if not await fs.exists(install_path):
            return Decision.build(DecisionReason.INSTALL_MISSING, build_only)
        return await check_source_mod_time(task, config, build_only)

    else:
        raise ValueError(f"Unsupported source type: {source_type}")


async def check_source_mod_time(
    task: Task, config: BuildConfig, build_only: bool
) -> Decision:
    """Compare the source tree against the watermark in the task's build info."""

    async def f() -> Decision:
        info_path = task.paths.build_info_path.to_path(config)
        source_path = task.paths.source_path.to_path(config)

        build_info = await read_build_info(info_path)
        if build_info is None:
            return Decision.build(DecisionReason.NO_BUILD_INFO, build_only)
        if build_info.source_mod_time is None:
            return Decision.build(DecisionReason.NO_SOURCE_MOD_TIME, build_only)

        current = await source_mod_time(source_path)
        if current > build_info.source_mod_time:
            logger.debug(
                f"Sources of {task.id} changed "
                f"({current} > {build_info.source_mod_time})"
            )
            return Decision.build(DecisionReason.SOURCE_CHANGED, build_only)
        return Decision.skip(DecisionReason.UP_TO_DATE)

    return await measure_time(f"checking mtime for {task.id}", f)


async def source_mod_time(source_path: Path) -> float:
    """Maximum mtime over the source tree, ignoring build/install directories.

    Returns 0.0 for an empty or missing tree.
    """

    def visit(mtime: float, _path: Path, stat: os.stat_result) -> float:
        return stat.st_mtime if stat.st_mtime > mtime else mtime

    return await fs.fold(skip_traverse, visit, 0.0, source_path)
