"""pkgbuild CLI - Command line interface for pkgbuild.

Usage:
    pkgbuild build <plan.json> [--concurrency N] [--force MODE]
        [--build-only MODE] [--deps-only] [--quiet]
    pkgbuild plan <plan.json>
    pkgbuild version

A plan file is a JSON document {"root": "<task id>", "tasks": [...]}.

Configuration:
    Set PKGBUILD_SANDBOX_PATH, PKGBUILD_STORE_PATH, PKGBUILD_LOCAL_STORE_PATH
    and PKGBUILD_BUILD_CONCURRENCY to override the project configuration in
    .pkgbuild/config.json.
"""

import logging
from pathlib import Path

import typer
from pydantic import ValidationError

from pkgbuild.build import (
    BuildExitStatus,
    BuildOnlyMode,
    ForceMode,
    build,
    build_dependencies,
)
from pkgbuild.config import config_provider
from pkgbuild.exceptions import TaskGraphError
from pkgbuild.task import TaskGraph, load_task_graph

app = typer.Typer(
    name="pkgbuild",
    help="pkgbuild CLI - Build native package graphs",
    no_args_is_help=True,
)


def _load_graph(plan: Path) -> TaskGraph:
    try:
        return load_task_graph(plan)
    except (OSError, ValueError, ValidationError, TaskGraphError) as e:
        typer.echo(f"Error: could not load plan {plan}: {e}", err=True)
        raise typer.Exit(2)


@app.command("build")
def build_command(
    plan: Path = typer.Argument(..., help="Path to the JSON build plan"),
    concurrency: int = typer.Option(
        None,
        "--concurrency",
        "-j",
        min=1,
        help="Maximum number of concurrent builds (default: from config)",
    ),
    force: ForceMode = typer.Option(
        ForceMode.FOR_ROOT,
        "--force",
        help="Which tasks to build regardless of their state",
    ),
    build_only: BuildOnlyMode = typer.Option(
        BuildOnlyMode.FOR_ROOT,
        "--build-only",
        help="Which tasks to build without running install commands",
    ),
    deps_only: bool = typer.Option(
        False,
        "--deps-only",
        help="Build the dependencies of the root task but not the root itself",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Capture build output and hide progress"
    ),
) -> None:
    """Build a task graph.

    Examples:
        pkgbuild build plan.json
        pkgbuild build plan.json -j 8 --force no
        pkgbuild build plan.json --deps-only
    """
    graph = _load_graph(plan)
    run = build_dependencies if deps_only else build
    summary = run(
        graph,
        config=config_provider.get(),
        concurrency=concurrency,
        force=force,
        build_only=build_only,
        quiet=quiet,
    )
    typer.echo(repr(summary))
    if summary.status != BuildExitStatus.SUCCESS:
        raise typer.Exit(1)


@app.command("plan")
def plan_command(
    plan: Path = typer.Argument(..., help="Path to the JSON build plan"),
) -> None:
    """Show the tasks of a plan in build order."""
    graph = _load_graph(plan)
    try:
        order = graph.build_order()
    except TaskGraphError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)
    for task in order:
        typer.echo(f"{task.id}  {task} ({task.package.source_type.value})")


@app.command()
def version() -> None:
    """Show the pkgbuild version."""
    try:
        from importlib.metadata import version as get_version

        ver = get_version("pkgbuild")
    except Exception:
        ver = "unknown"

    typer.echo(f"pkgbuild {ver}")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """pkgbuild CLI - Build native package graphs.

    Use 'pkgbuild build <plan>' to build a plan and 'pkgbuild plan <plan>' to
    inspect the build order.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


if __name__ == "__main__":
    app()
