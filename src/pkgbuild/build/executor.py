"""Build executor: runs the package builder for a single task."""

from __future__ import annotations

import logging
from typing import IO

from pkgbuild.build.builder import BuildOptions, PackageBuilderABC
from pkgbuild.config import BuildConfig
from pkgbuild.exceptions import BuildError
from pkgbuild.perf import measure_time
from pkgbuild.task import Task

logger = logging.getLogger(__name__)


def build_context(task: Task) -> str:
    return f"building {task.package.name}@{task.package.version}"


async def build_package(
    task: Task,
    config: BuildConfig,
    builder: PackageBuilderABC,
    *,
    quiet: bool = False,
    force: bool = False,
    build_only: bool = False,
    stderr: IO[bytes] | int | None = None,
) -> BuildError | None:
    """Build `task` with `builder`.

    Returns:
        None on success, otherwise a BuildError carrying the
        "building <name>@<version>" context and the builder's exception as
        its cause.
    """
    context = build_context(task)
    options = BuildOptions(
        quiet=quiet, force=force, build_only=build_only, stderr=stderr
    )

    async def f() -> BuildError | None:
        if not quiet:
            logger.info(f"{context}: starting")
        try:
            await builder.build(task, config, options)
        except Exception as e:
            logger.warning(f"{context}: failed: {e}")
            error = BuildError(context, e)
            error.__cause__ = e
            return error
        if not quiet:
            logger.info(f"{context}: complete")
        return None

    return await measure_time(f"building {task.id}", f)
