from pkgbuild.build import (
    BuildExitStatus,
    BuildOnlyMode,
    BuildSummary,
    ForceMode,
    PackageBuilderABC,
    ShellPackageBuilder,
    build,
    build_aio,
    build_dependencies,
    build_dependencies_aio,
)
from pkgbuild.build_info import BuildInfo
from pkgbuild.config import BuildConfig, ConfigPath, config_provider, get_config
from pkgbuild.exceptions import (
    BuildError,
    CommandError,
    ExpressionEvaluationError,
    ExpressionSyntaxError,
    PkgbuildError,
    TaskGraphError,
)
from pkgbuild.graph import fold_with_all_dependencies
from pkgbuild.task import (
    Package,
    SourceType,
    Task,
    TaskGraph,
    TaskPaths,
    TaskPlan,
    load_task_graph,
)

__all__ = [
    "BuildConfig",
    "BuildError",
    "BuildExitStatus",
    "BuildInfo",
    "BuildOnlyMode",
    "BuildSummary",
    "CommandError",
    "ConfigPath",
    "ExpressionEvaluationError",
    "ExpressionSyntaxError",
    "ForceMode",
    "Package",
    "PackageBuilderABC",
    "PkgbuildError",
    "ShellPackageBuilder",
    "SourceType",
    "Task",
    "TaskGraph",
    "TaskGraphError",
    "TaskPaths",
    "TaskPlan",
    "build",
    "build_aio",
    "build_dependencies",
    "build_dependencies_aio",
    "config_provider",
    "fold_with_all_dependencies",
    "get_config",
    "load_task_graph",
]
