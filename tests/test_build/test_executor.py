import logging

import pytest

from pkgbuild.build import BuildOptions, build_package
from pkgbuild.config import BuildConfig
from pkgbuild.exceptions import BuildError
from pkgbuild.testing import RecordingPackageBuilder, make_task


class TestBuildPackage:
    @pytest.mark.asyncio
    async def test_success(self, build_config: BuildConfig):
        builder = RecordingPackageBuilder()
        task = make_task("foo-1", name="foo", version="1.2.3")

        result = await build_package(
            task, build_config, builder, force=True, build_only=True
        )

        assert result is None
        assert builder.calls == [
            ("foo-1", BuildOptions(force=True, build_only=True))
        ]

    @pytest.mark.asyncio
    async def test_failure_is_returned_with_context(self, build_config: BuildConfig):
        builder = RecordingPackageBuilder(fail=["foo-1"])
        task = make_task("foo-1", name="foo", version="1.2.3")

        result = await build_package(task, build_config, builder)

        assert isinstance(result, BuildError)
        assert result.context == "building foo@1.2.3"
        assert isinstance(result.cause, RuntimeError)
        assert result.__cause__ is result.cause
        assert str(result) == "building foo@1.2.3: Intentional failure of foo-1"

    @pytest.mark.asyncio
    async def test_logs_progress(self, build_config: BuildConfig, caplog):
        task = make_task("foo-1", name="foo")

        with caplog.at_level(logging.INFO, logger="pkgbuild.build.executor"):
            await build_package(task, build_config, RecordingPackageBuilder())

        messages = [r.getMessage() for r in caplog.records]
        assert "building foo@1.0.0: starting" in messages
        assert "building foo@1.0.0: complete" in messages

    @pytest.mark.asyncio
    async def test_quiet_suppresses_progress(self, build_config: BuildConfig, caplog):
        task = make_task("foo-1", name="foo")

        with caplog.at_level(logging.INFO, logger="pkgbuild.build.executor"):
            await build_package(
                task, build_config, RecordingPackageBuilder(), quiet=True
            )

        names = [r.name for r in caplog.records]
        assert "pkgbuild.build.executor" not in names
