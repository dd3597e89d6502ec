"""Build orchestration.

This module contains:
- build_aio(): Build the task graph, root included
- build_dependencies_aio(): Build every dependency of the root, but not the root
- build() / build_dependencies(): Sync wrappers for the above

Each run walks the graph with fold_with_all_dependencies(). Every task first
waits for its dependencies, then is classified (see pkgbuild.build.decision).
Tasks that need a build are submitted to a TaskQueue bounding the number of
concurrent builds. Skipped tasks never take a queue slot and forced builds run
inline, outside the bound. A task whose dependency failed is never classified
nor built; the failure is passed on to its dependents unchanged. A task that
cannot be classified fails like a failed build.
"""

from __future__ import annotations

import asyncio
import logging
from typing import IO

from pkgbuild.build._base import (
    BuildExitStatus,
    BuildOnlyMode,
    BuildSummary,
    DecisionKind,
    ForceMode,
    TaskCount,
    TaskReport,
)
from pkgbuild.build.builder import PackageBuilderABC, ShellPackageBuilder
from pkgbuild.build.decision import classify
from pkgbuild.build.executor import build_context, build_package
from pkgbuild.build.queue import TaskQueue
from pkgbuild.config import BuildConfig, config_provider
from pkgbuild.exceptions import BuildError
from pkgbuild.graph import (
    DependencyFutures,
    TaskOutcome,
    fold_with_all_dependencies,
    wait_for_dependencies,
)
from pkgbuild.task import Task, TaskGraph

logger = logging.getLogger(__name__)


async def build_aio(
    graph: TaskGraph,
    *,
    config: BuildConfig | None = None,
    concurrency: int | None = None,
    force: ForceMode = ForceMode.FOR_ROOT,
    build_only: BuildOnlyMode = BuildOnlyMode.FOR_ROOT,
    builder: PackageBuilderABC | None = None,
    quiet: bool = False,
    stderr: IO[bytes] | int | None = None,
) -> BuildSummary:
    """Build the whole graph, root included.

    Args:
        graph: Task graph to build; its root is the build target.
        config: Build configuration (default: from config_provider).
        concurrency: Maximum number of concurrent builds
            (default: config.build_concurrency).
        force: Which tasks are built regardless of their on-disk state.
        build_only: Which tasks skip their install commands.
        builder: Package builder (default: ShellPackageBuilder).
        quiet: Suppress per-task start/complete messages and capture command
            output.
        stderr: Override where build commands write stderr.

    Returns:
        BuildSummary whose `error` is the first failure that reached the root.
    """
    return await _run(
        graph,
        include_root=True,
        config=config,
        concurrency=concurrency,
        force=force,
        build_only=build_only,
        builder=builder,
        quiet=quiet,
        stderr=stderr,
    )


async def build_dependencies_aio(
    graph: TaskGraph,
    *,
    config: BuildConfig | None = None,
    concurrency: int | None = None,
    force: ForceMode = ForceMode.FOR_ROOT,
    build_only: BuildOnlyMode = BuildOnlyMode.FOR_ROOT,
    builder: PackageBuilderABC | None = None,
    quiet: bool = False,
    stderr: IO[bytes] | int | None = None,
) -> BuildSummary:
    """Build every dependency of the root task, but never the root itself.

    Takes the same arguments as build_aio().
    """
    return await _run(
        graph,
        include_root=False,
        config=config,
        concurrency=concurrency,
        force=force,
        build_only=build_only,
        builder=builder,
        quiet=quiet,
        stderr=stderr,
    )


async def _run(
    graph: TaskGraph,
    *,
    include_root: bool,
    config: BuildConfig | None,
    concurrency: int | None,
    force: ForceMode,
    build_only: BuildOnlyMode,
    builder: PackageBuilderABC | None,
    quiet: bool,
    stderr: IO[bytes] | int | None,
) -> BuildSummary:
    if config is None:
        config = config_provider.get()
    if builder is None:
        builder = ShellPackageBuilder(graph)
    queue = TaskQueue(
        config.build_concurrency if concurrency is None else concurrency
    )
    root = graph.root

    task_count = TaskCount()
    reports: dict[str, TaskReport] = {}

    async def run_task(
        task: Task,
        dependencies: DependencyFutures,
        all_dependencies: DependencyFutures,
    ) -> TaskOutcome:
        task_count.discovered += 1
        report = reports[task.id] = TaskReport(task.id)

        dependency_error = await wait_for_dependencies(dependencies)
        if dependency_error is not None:
            logger.debug(f"Not building {task.id}: a dependency failed")
            report.error = dependency_error
            task_count.blocked += 1
            return dependency_error

        try:
            decision = await classify(task, root.id, config, force, build_only)
        except Exception as e:
            context = build_context(task)
            logger.warning(f"{context}: could not decide whether to build: {e}")
            error = BuildError(context, e)
            error.__cause__ = e
            report.error = error
            task_count.failed += 1
            return error
        report.decision = decision
        logger.debug(f"{task.id}: {decision.kind.value} ({decision.reason.value})")

        if not decision.needs_build:
            task_count.skipped += 1
            return None

        async def job() -> TaskOutcome:
            return await build_package(
                task,
                config,
                builder,
                quiet=quiet,
                force=decision.kind == DecisionKind.FORCE_BUILD,
                build_only=decision.build_only,
                stderr=stderr,
            )

        if decision.kind == DecisionKind.FORCE_BUILD:
            error = await job()
        else:
            error = await queue.submit(job)

        if error is not None:
            report.error = error
            task_count.failed += 1
            return error
        task_count.built += 1
        return None

    async def wait_for_root_dependencies(
        task: Task,
        dependencies: DependencyFutures,
        all_dependencies: DependencyFutures,
    ) -> TaskOutcome:
        if task.id == root.id:
            return await wait_for_dependencies(dependencies)
        return await run_task(task, dependencies, all_dependencies)

    f = run_task if include_root else wait_for_root_dependencies
    error = await fold_with_all_dependencies(graph, f)

    summary = BuildSummary(
        status=BuildExitStatus.SUCCESS if error is None else BuildExitStatus.FAILURE,
        task_count=task_count,
        error=error,
        reports=reports,
    )
    if error is None:
        logger.info(f"Build of {root.id} succeeded")
    else:
        logger.warning(f"Build of {root.id} failed: {error}")
    return summary


# =============================================================================
# Convenience wrappers for sync callers
# =============================================================================


def build(
    graph: TaskGraph,
    *,
    config: BuildConfig | None = None,
    concurrency: int | None = None,
    force: ForceMode = ForceMode.FOR_ROOT,
    build_only: BuildOnlyMode = BuildOnlyMode.FOR_ROOT,
    builder: PackageBuilderABC | None = None,
    quiet: bool = False,
    stderr: IO[bytes] | int | None = None,
) -> BuildSummary:
    """Build the graph (sync wrapper for build_aio).

    Note:
        This function cannot be called from within an already running event loop.
        Use `await build_aio()` instead.
    """
    return _run_sync(
        build_aio(
            graph,
            config=config,
            concurrency=concurrency,
            force=force,
            build_only=build_only,
            builder=builder,
            quiet=quiet,
            stderr=stderr,
        ),
        "build",
    )


def build_dependencies(
    graph: TaskGraph,
    *,
    config: BuildConfig | None = None,
    concurrency: int | None = None,
    force: ForceMode = ForceMode.FOR_ROOT,
    build_only: BuildOnlyMode = BuildOnlyMode.FOR_ROOT,
    builder: PackageBuilderABC | None = None,
    quiet: bool = False,
    stderr: IO[bytes] | int | None = None,
) -> BuildSummary:
    """Build the root's dependencies (sync wrapper for build_dependencies_aio)."""
    return _run_sync(
        build_dependencies_aio(
            graph,
            config=config,
            concurrency=concurrency,
            force=force,
            build_only=build_only,
            builder=builder,
            quiet=quiet,
            stderr=stderr,
        ),
        "build_dependencies",
    )


def _run_sync(coro, name: str) -> BuildSummary:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    coro.close()
    raise RuntimeError(
        f"{name}() cannot be used from within an already running event loop. "
        f"Use 'await {name}_aio()' instead."
    )
