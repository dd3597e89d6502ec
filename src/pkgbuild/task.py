"""Task data model.

A `Task` is the build unit of a single resolved package. Tasks reference their
dependencies by id; a `TaskGraph` is the arena holding every task of one
build plan, indexed by id, together with the id of the root task.
"""

from __future__ import annotations

import json
from enum import StrEnum
from pathlib import Path
from typing import Iterable, Iterator

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pkgbuild.config import ConfigPath
from pkgbuild.exceptions import TaskGraphError


class PkgbuildBaseModel(BaseModel):
    """Frozen model that reads and writes camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class SourceType(StrEnum):
    """Rebuild policy of a package.

    IMMUTABLE: built once, a present install path proves the build is valid.
    DEVELOPMENT: edited in place, rebuilt when its sources changed.
    ROOT: the package being worked on, always rebuilt.
    """

    IMMUTABLE = "immutable"
    DEVELOPMENT = "development"
    ROOT = "root"


class Package(PkgbuildBaseModel):
    name: str
    version: str
    source_type: SourceType = SourceType.IMMUTABLE


class TaskPaths(PkgbuildBaseModel):
    install_path: ConfigPath
    source_path: ConfigPath
    build_info_path: ConfigPath


class Task(PkgbuildBaseModel):
    """A node of the build graph.

    Attributes:
        id: Unique identity of the resolved package instance.
        package: Name, version and source type of the package.
        paths: Install, source and build info locations (resolved via config).
        dependencies: Ids of the tasks that must be built before this one.
        build_commands: Command templates run to build the package.
        install_commands: Command templates run to install the package.
        env: Extra environment variables for the commands.
    """

    id: str
    package: Package
    paths: TaskPaths
    dependencies: tuple[str, ...] = ()
    build_commands: tuple[str, ...] = ()
    install_commands: tuple[str, ...] = ()
    env: dict[str, str] = Field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.package.name}@{self.package.version}"


class TaskPlan(PkgbuildBaseModel):
    """Serialized form of a task graph, as stored in plan files."""

    root: str
    tasks: list[Task]


class TaskGraph:
    """Arena of tasks indexed by id.

    Every dependency id must refer to a task in the graph, and the root id must
    be present. Cycles are not checked here; they are reported when the
    transitive dependencies of a task are computed.
    """

    def __init__(self, tasks: Iterable[Task], root_id: str) -> None:
        self._tasks: dict[str, Task] = {}
        for task in tasks:
            if task.id in self._tasks:
                raise TaskGraphError(f"Duplicate task id: {task.id}")
            self._tasks[task.id] = task

        if root_id not in self._tasks:
            raise TaskGraphError(f"Root task {root_id!r} is not in the graph")
        self.root_id = root_id

        for task in self._tasks.values():
            for dep_id in task.dependencies:
                if dep_id not in self._tasks:
                    raise TaskGraphError(
                        f"Task {task.id!r} depends on unknown task {dep_id!r}"
                    )

        self._all_dependencies: dict[str, tuple[Task, ...]] = {}

    @classmethod
    def from_tasks(cls, tasks: Iterable[Task], root_id: str) -> "TaskGraph":
        return cls(tasks, root_id)

    @classmethod
    def from_plan(cls, plan: TaskPlan) -> "TaskGraph":
        return cls(plan.tasks, plan.root)

    def to_plan(self) -> TaskPlan:
        return TaskPlan(root=self.root_id, tasks=list(self._tasks.values()))

    @property
    def root(self) -> Task:
        return self._tasks[self.root_id]

    def __getitem__(self, task_id: str) -> Task:
        return self._tasks[task_id]

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks.values())

    def __len__(self) -> int:
        return len(self._tasks)

    def dependencies_of(self, task: Task) -> list[Task]:
        return [self._tasks[dep_id] for dep_id in task.dependencies]

    def all_dependencies_of(self, task: Task) -> tuple[Task, ...]:
        """Transitive dependencies of `task`, dependencies before dependents."""
        self._collect_all_dependencies(task)
        return self._all_dependencies[task.id]

    def _collect_all_dependencies(self, task: Task) -> None:
        if task.id in self._all_dependencies:
            return
        visiting = {task.id}
        # Post-order walk; each frame holds the next dependency index to visit.
        stack: list[tuple[Task, list[Task], int]] = [
            (task, self.dependencies_of(task), 0)
        ]
        while stack:
            current, deps, index = stack[-1]
            if index < len(deps):
                stack[-1] = (current, deps, index + 1)
                dep = deps[index]
                if dep.id in self._all_dependencies:
                    continue
                if dep.id in visiting:
                    raise TaskGraphError(
                        f"Dependency cycle detected at task {dep.id!r}"
                    )
                visiting.add(dep.id)
                stack.append((dep, self.dependencies_of(dep), 0))
                continue

            stack.pop()
            visiting.discard(current.id)
            seen: dict[str, Task] = {}
            for dep in deps:
                for transitive in self._all_dependencies[dep.id]:
                    seen.setdefault(transitive.id, transitive)
                seen.setdefault(dep.id, dep)
            self._all_dependencies[current.id] = tuple(seen.values())

    def build_order(self) -> list[Task]:
        """All tasks reachable from the root, in an order safe for building."""
        return [*self.all_dependencies_of(self.root), self.root]


def load_task_graph(path: Path | str) -> TaskGraph:
    """Load a task graph from a JSON plan file."""
    with open(path) as f:
        data = json.load(f)
    return TaskGraph.from_plan(TaskPlan.model_validate(data))
