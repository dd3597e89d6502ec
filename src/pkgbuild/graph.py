"""Dependency graph traversal.

The traversal schedules one asyncio task per build task, each of which may
await the futures of its dependencies. Outcomes are plain values: None when a
task succeeded (or needed no work) and the exception instance when it failed.
Futures therefore never raise, and a failure travels up the graph as the
return value of every dependent.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from pkgbuild.task import Task, TaskGraph

logger = logging.getLogger(__name__)

TaskOutcome = Exception | None
DependencyFutures = list[tuple[Task, "asyncio.Future[TaskOutcome]"]]
FoldFn = Callable[[Task, DependencyFutures, DependencyFutures], Awaitable[TaskOutcome]]


async def wait_for_dependencies(dependencies: DependencyFutures) -> TaskOutcome:
    """Wait for all dependency futures and return the first failure, if any.

    Failures are reported in dependency order, regardless of which finished
    first.
    """
    outcomes = await asyncio.gather(*(future for _, future in dependencies))
    for outcome in outcomes:
        if outcome is not None:
            return outcome
    return None


async def fold_with_all_dependencies(
    graph: TaskGraph,
    f: FoldFn,
    root: Task | None = None,
) -> TaskOutcome:
    """Run `f` for every task reachable from `root` (default: the graph root).

    `f(task, dependencies, all_dependencies)` is called once per task id,
    with the futures of the task's direct dependencies and of its transitive
    dependencies. It is responsible for awaiting the dependency futures before
    doing work that needs them; the traversal itself never blocks on unrelated
    subtrees. An exception raised by `f` becomes the task's failure outcome.

    Returns:
        The outcome of the root task. All scheduled tasks have finished when
        this returns.

    Raises:
        TaskGraphError: If the graph contains a dependency cycle.
    """
    root = root or graph.root
    # Surfaces cycles before anything is scheduled.
    graph.all_dependencies_of(root)

    futures: dict[str, asyncio.Task[TaskOutcome]] = {}

    async def run(
        task: Task,
        dependencies: DependencyFutures,
        all_dependencies: DependencyFutures,
    ) -> TaskOutcome:
        try:
            return await f(task, dependencies, all_dependencies)
        except Exception as e:
            logger.debug(f"Task {task.id} failed: {e!r}")
            return e

    def schedule(root: Task) -> asyncio.Task[TaskOutcome]:
        # Dependencies are scheduled before their dependents, so every
        # dependency future exists when a task is created.
        pending = [root]
        while pending:
            task = pending[-1]
            if task.id in futures:
                pending.pop()
                continue
            unscheduled = [
                dep for dep in graph.dependencies_of(task) if dep.id not in futures
            ]
            if unscheduled:
                pending.extend(reversed(unscheduled))
                continue

            pending.pop()
            dependencies: DependencyFutures = [
                (dep, futures[dep.id]) for dep in graph.dependencies_of(task)
            ]
            all_dependencies: DependencyFutures = [
                (dep, futures[dep.id]) for dep in graph.all_dependencies_of(task)
            ]
            futures[task.id] = asyncio.create_task(
                run(task, dependencies, all_dependencies), name=f"pkgbuild:{task.id}"
            )
        return futures[root.id]

    outcome = await schedule(root)
    await asyncio.gather(*futures.values())
    return outcome
