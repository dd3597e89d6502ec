"""Package builders.

A package builder performs the actual build of a single task. The
orchestrator only interprets success (the coroutine returns) or failure (it
raises). Builders own the install path and the build info record of the task
they build.

Builders:
- PackageBuilderABC: Interface for custom builders.
- ShellPackageBuilder: Runs the task's build and install command templates
    in a shell and records the build info.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import IO

import aiofiles.os

from pkgbuild.build.decision import source_mod_time
from pkgbuild.build_info import BuildInfo, write_build_info
from pkgbuild.command_expr import evaluate
from pkgbuild.config import BuildConfig
from pkgbuild.exceptions import CommandError, ExpressionEvaluationError
from pkgbuild.task import Task, TaskGraph

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildOptions:
    """Options passed from the orchestrator to a package builder.

    Attributes:
        quiet: Capture command output instead of streaming it.
        force: Build from scratch, discarding a previous install.
        build_only: Run the build commands but not the install commands.
        stderr: Where command stderr goes (default: inherited, or captured
            when quiet).
    """

    quiet: bool = False
    force: bool = False
    build_only: bool = False
    stderr: IO[bytes] | int | None = None


class PackageBuilderABC(ABC):
    """Abstract base for package builders."""

    @abstractmethod
    async def build(
        self, task: Task, config: BuildConfig, options: BuildOptions
    ) -> None:
        """Build `task`, raising on failure."""
        ...


# =============================================================================
# Shell builder
# =============================================================================

# Directories of an install prefix addressable from command expressions
INSTALL_SUBDIRS = ("bin", "lib", "share", "etc", "man", "doc", "stublibs", "toplevel")


class TaskEvaluator:
    """Resolves command expression identifiers for one task.

    `self.<var>` and `cur.<var>` refer to the task being built and
    `<package-name>.<var>` to one of its dependencies (transitively), where
    `<var>` is one of `install`, `root`, `name`, `version` or a subdirectory
    of the install prefix (see INSTALL_SUBDIRS).
    """

    def __init__(self, task: Task, graph: TaskGraph, config: BuildConfig) -> None:
        self.task = task
        self.config = config
        self._by_name = {
            dep.package.name: dep for dep in graph.all_dependencies_of(task)
        }

    def id(self, id: list[str]) -> str:
        if len(id) != 2:
            raise ExpressionEvaluationError(
                f"Invalid reference {'.'.join(id)!r}: expected <package>.<variable>"
            )
        scope, name = id
        if scope in ("self", "cur"):
            target = self.task
        elif scope in self._by_name:
            target = self._by_name[scope]
        else:
            raise ExpressionEvaluationError(
                f"Unknown package {scope!r} referenced from {self.task.id}"
            )
        return self.package_var(target, name)

    def package_var(self, task: Task, name: str) -> str:
        if name == "name":
            return task.package.name
        if name == "version":
            return task.package.version
        if name == "root":
            return str(task.paths.source_path.to_path(self.config))
        install_path = task.paths.install_path.to_path(self.config)
        if name == "install":
            return str(install_path)
        if name in INSTALL_SUBDIRS:
            return str(install_path / name)
        raise ExpressionEvaluationError(
            f"Unknown variable {name!r} referenced from {self.task.id}"
        )

    def var(self, name: str) -> str:
        return f"${name}"

    def path_sep(self) -> str:
        return "/"

    def colon(self) -> str:
        return ":"


class ShellPackageBuilder(PackageBuilderABC):
    """Builds tasks by running their command templates in a shell.

    Steps:
    1. With `force`, remove any previous install.
    2. Record the source watermark (max source mtime) before building.
    3. Run the build commands, then (unless `build_only`) the install
       commands, in the task's source directory.
    4. Write the build info with the watermark and the time spent.
    """

    def __init__(self, graph: TaskGraph, shell_env: dict[str, str] | None = None):
        self.graph = graph
        self.shell_env = dict(os.environ) if shell_env is None else shell_env

    async def build(
        self, task: Task, config: BuildConfig, options: BuildOptions
    ) -> None:
        start = time.monotonic()
        install_path = task.paths.install_path.to_path(config)
        source_path = task.paths.source_path.to_path(config)

        if options.force and await aiofiles.os.path.exists(install_path):
            logger.debug(f"Removing previous install of {task.id} at {install_path}")
            await asyncio.to_thread(shutil.rmtree, install_path)

        watermark = await source_mod_time(source_path)

        evaluator = TaskEvaluator(task, self.graph, config)
        commands = [evaluate(template, evaluator) for template in task.build_commands]
        if not options.build_only:
            commands += [
                evaluate(template, evaluator) for template in task.install_commands
            ]

        await aiofiles.os.makedirs(install_path, exist_ok=True)
        env = self.command_env(task, config)
        cwd = source_path if await aiofiles.os.path.isdir(source_path) else None
        for command in commands:
            await self.run_command(command, cwd=cwd, env=env, options=options)

        await write_build_info(
            task.paths.build_info_path.to_path(config),
            BuildInfo(
                source_mod_time=watermark,
                time_spent=time.monotonic() - start,
            ),
        )

    def command_env(self, task: Task, config: BuildConfig) -> dict[str, str]:
        env = dict(self.shell_env)
        env.update(
            {
                "cur__name": task.package.name,
                "cur__version": task.package.version,
                "cur__install": str(task.paths.install_path.to_path(config)),
                "cur__root": str(task.paths.source_path.to_path(config)),
            }
        )
        env.update(task.env)
        return env

    async def run_command(
        self,
        command: str,
        cwd: Path | None,
        env: dict[str, str],
        options: BuildOptions,
    ) -> None:
        logger.debug(f"Running: {command}")
        capture = asyncio.subprocess.PIPE if options.quiet else None
        if options.stderr is not None:
            stderr = options.stderr
        elif options.quiet:
            stderr = asyncio.subprocess.STDOUT
        else:
            stderr = None

        process = await asyncio.create_subprocess_shell(
            command,
            cwd=cwd,
            env=env,
            stdout=capture,
            stderr=stderr,
        )
        stdout, _ = await process.communicate()
        if process.returncode != 0:
            output = stdout.decode(errors="replace") if stdout else ""
            raise CommandError(command, process.returncode or 0, output)
