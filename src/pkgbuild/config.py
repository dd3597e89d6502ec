"""Centralized configuration for pkgbuild.

Tasks never carry absolute, environment specific paths. Instead their paths
are `ConfigPath`s, strings that may start with one of the prefixes
`%store%`, `%localStore%` or `%sandbox%`, which are substituted with the
directories of the active `BuildConfig`.

Configuration is loaded from multiple sources with the following priority:
1. Explicit arguments to load_config()
2. Environment variables (PKGBUILD_*)
3. Project config (.pkgbuild/config.json in working directory or parents)
4. Defaults

Usage:
    from pkgbuild.config import get_config

    config = get_config()
    install_path = task.paths.install_path.to_path(config)
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, GetCoreSchemaHandler
from pydantic_core import core_schema
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# --- Constants ---

STORE_PREFIX = "%store%"
LOCAL_STORE_PREFIX = "%localStore%"
SANDBOX_PREFIX = "%sandbox%"

PROJECT_CONFIG_DIR = ".pkgbuild"
PROJECT_CONFIG_FILE = "config.json"
DEFAULT_STORE_PATH = str(Path("~/.pkgbuild/store").expanduser().absolute())
LOCAL_STORE_DIRNAME = "_pkgbuild/store"


def default_concurrency() -> int:
    return os.cpu_count() or 1


# --- Config models ---


class BuildConfig(BaseModel):
    """Resolved build configuration.

    Attributes:
        sandbox_path: Root directory of the project being built.
        store_path: Global store holding immutable package builds.
        local_store_path: Per-sandbox store holding development builds.
        build_concurrency: Default number of builds run at the same time.
    """

    sandbox_path: Path = Field(default_factory=lambda: Path.cwd())
    store_path: Path = Field(default_factory=lambda: Path(DEFAULT_STORE_PATH))
    local_store_path: Path | None = None
    build_concurrency: int = Field(default_factory=default_concurrency, ge=1)

    @property
    def resolved_local_store_path(self) -> Path:
        if self.local_store_path is not None:
            return self.local_store_path
        return self.sandbox_path / LOCAL_STORE_DIRNAME


class PkgbuildSettings(BaseSettings):
    """Settings loaded from PKGBUILD_* environment variables."""

    sandbox_path: Path | None = None
    store_path: Path | None = None
    local_store_path: Path | None = None
    build_concurrency: int | None = None

    model_config = SettingsConfigDict(
        env_prefix="PKGBUILD_",
        extra="ignore",
    )


class ProjectConfig(BaseModel):
    """Project-level configuration (.pkgbuild/config.json).

    Relative paths are interpreted relative to the project root.
    """

    store_path: Path | None = None
    local_store_path: Path | None = None
    build_concurrency: int | None = None


# --- ConfigPath ---


class ConfigPath(str):
    """A path which is resolved against a `BuildConfig` before use.

    Examples:
        ConfigPath("%store%/i/foo-1.0.0")
        ConfigPath.local_store("b", "bar-dev")
        ConfigPath("node_modules/bar")  # relative to the sandbox
    """

    @classmethod
    def store(cls, *parts: str) -> "ConfigPath":
        return cls("/".join((STORE_PREFIX, *parts)))

    @classmethod
    def local_store(cls, *parts: str) -> "ConfigPath":
        return cls("/".join((LOCAL_STORE_PREFIX, *parts)))

    @classmethod
    def sandbox(cls, *parts: str) -> "ConfigPath":
        return cls("/".join((SANDBOX_PREFIX, *parts)))

    def to_path(self, config: BuildConfig) -> Path:
        for prefix, base in (
            (STORE_PREFIX, config.store_path),
            (LOCAL_STORE_PREFIX, config.resolved_local_store_path),
            (SANDBOX_PREFIX, config.sandbox_path),
        ):
            if self == prefix:
                return base
            if self.startswith(prefix + "/"):
                return base / self[len(prefix) + 1 :]
        path = Path(self)
        if path.is_absolute():
            return path
        return config.sandbox_path / path

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ):
        return core_schema.no_info_after_validator_function(
            cls,
            core_schema.str_schema(),
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )


# --- Config loading ---


def find_project_config() -> Path | None:
    """Find .pkgbuild/config.json in current directory or parents."""
    current = Path.cwd()
    for directory in [current, *current.parents]:
        config_path = directory / PROJECT_CONFIG_DIR / PROJECT_CONFIG_FILE
        if config_path.exists():
            return config_path
    return None


def load_json_file(path: Path) -> dict[str, Any]:
    """Load a JSON config file, returning empty dict if not found or invalid."""
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.debug(f"Could not load {path}: {e}")
        return {}


def load_config(
    sandbox_path: Path | None = None,
    store_path: Path | None = None,
    local_store_path: Path | None = None,
    build_concurrency: int | None = None,
    use_project_config: bool = True,
) -> BuildConfig:
    """Load configuration from all sources.

    Args:
        sandbox_path: Explicit sandbox (project root) path.
        store_path: Explicit global store path.
        local_store_path: Explicit local store path.
        build_concurrency: Explicit default build concurrency.
        use_project_config: Whether to read .pkgbuild/config.json.

    Returns:
        Fully resolved BuildConfig.
    """
    env_settings = PkgbuildSettings()

    project_config = ProjectConfig()
    project_dir: Path | None = None
    if use_project_config:
        project_path = find_project_config()
        if project_path:
            project_dir = project_path.parent.parent
            project_config = ProjectConfig.model_validate(load_json_file(project_path))

    def from_project(path: Path | None) -> Path | None:
        if path is None or project_dir is None or path.is_absolute():
            return path
        return project_dir / path

    effective_sandbox = (
        sandbox_path or env_settings.sandbox_path or project_dir or Path.cwd()
    )
    effective_store = (
        store_path
        or env_settings.store_path
        or from_project(project_config.store_path)
        or Path(DEFAULT_STORE_PATH)
    )
    effective_local_store = (
        local_store_path
        or env_settings.local_store_path
        or from_project(project_config.local_store_path)
    )
    effective_concurrency = (
        build_concurrency
        or env_settings.build_concurrency
        or project_config.build_concurrency
        or default_concurrency()
    )

    return BuildConfig(
        sandbox_path=effective_sandbox,
        store_path=effective_store,
        local_store_path=effective_local_store,
        build_concurrency=effective_concurrency,
    )


@lru_cache(maxsize=1)
def get_config() -> BuildConfig:
    """Get the cached global configuration.

    Use clear_config_cache() to force a reload.
    """
    return load_config()


def clear_config_cache() -> None:
    """Clear the cached configuration, forcing reload on next get_config()."""
    get_config.cache_clear()


# --- Config provider for dependency injection ---


class ConfigProvider:
    """Provider for BuildConfig that supports dependency injection.

    This allows tests and advanced use cases to override the config.
    """

    def __init__(self) -> None:
        self._override: BuildConfig | None = None

    def get(self) -> BuildConfig:
        """Get the current configuration."""
        if self._override is not None:
            return self._override
        return get_config()

    def set(self, config: BuildConfig) -> None:
        """Override the configuration."""
        self._override = config

    def reset(self) -> None:
        """Reset to default configuration loading."""
        self._override = None
        clear_config_cache()


# Global config provider instance
config_provider = ConfigProvider()
