import os
import typing
from pathlib import Path

import pytest

from pkgbuild.config import BuildConfig, config_provider


# Register custom markers
def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (runs real shell commands)",
    )


@pytest.fixture(scope="function")
def build_config(tmp_path: Path) -> BuildConfig:
    sandbox = tmp_path / "sandbox"
    sandbox.mkdir(parents=True, exist_ok=False)
    return BuildConfig(
        sandbox_path=sandbox,
        store_path=tmp_path / "store",
        local_store_path=tmp_path / "local-store",
        build_concurrency=4,
    )


@pytest.fixture(scope="function", autouse=True)
def overridden_config(
    build_config: BuildConfig,
) -> typing.Generator[BuildConfig, None, None]:
    config_provider.set(build_config)
    try:
        yield build_config
    finally:
        config_provider.reset()


@pytest.fixture(scope="function", autouse=True)
def cleared_pkgbuild_env_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear PKGBUILD_* environment variables for the duration of the test."""
    for var in [var for var in os.environ if var.startswith("PKGBUILD_")]:
        monkeypatch.delenv(var)
