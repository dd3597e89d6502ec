from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from pkgbuild import fs
from pkgbuild.perf import measure_time
from pkgbuild.testing import touch


def collect(acc: list[str], path: Path, stat: os.stat_result) -> list[str]:
    return acc + [path.name]


class TestFold:
    @pytest.mark.asyncio
    async def test_visits_files_only(self, tmp_path: Path):
        touch(tmp_path / "a")
        touch(tmp_path / "dir" / "b")
        touch(tmp_path / "dir" / "nested" / "c")
        (tmp_path / "empty").mkdir()

        names = await fs.fold(lambda _: False, collect, [], tmp_path)

        assert sorted(names) == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_skip_traverse_prunes_subtrees(self, tmp_path: Path):
        touch(tmp_path / "keep" / "a")
        touch(tmp_path / "skip" / "b")
        touch(tmp_path / "keep" / "skip" / "c")

        names = await fs.fold(lambda p: p.name == "skip", collect, [], tmp_path)

        assert names == ["a"]

    @pytest.mark.asyncio
    async def test_async_visit(self, tmp_path: Path):
        touch(tmp_path / "a", content="xx")
        touch(tmp_path / "b", content="yyy")

        async def visit(acc: int, path: Path, stat: os.stat_result) -> int:
            return acc + len(await fs.read_file(path))

        assert await fs.fold(lambda _: False, visit, 0, tmp_path) == 5

    @pytest.mark.asyncio
    async def test_missing_root_yields_init(self, tmp_path: Path):
        assert await fs.fold(lambda _: False, collect, ["x"], tmp_path / "no") == [
            "x"
        ]

    @pytest.mark.asyncio
    async def test_does_not_follow_symlinked_directories(self, tmp_path: Path):
        touch(tmp_path / "elsewhere" / "outside")
        root = tmp_path / "root"
        touch(root / "inside")
        os.symlink(tmp_path / "elsewhere", root / "link")

        names = await fs.fold(lambda _: False, collect, [], root)

        # The link itself is visited as an entry, its target is not walked.
        assert sorted(names) == ["inside", "link"]

    @pytest.mark.asyncio
    async def test_exists(self, tmp_path: Path):
        assert await fs.exists(tmp_path)
        assert not await fs.exists(tmp_path / "missing")


class TestReadFile:
    @pytest.mark.asyncio
    async def test_returns_raw_bytes(self, tmp_path: Path):
        path = tmp_path / "blob"
        path.write_bytes(b"\xff\xfe{}")

        assert await fs.read_file(path) == b"\xff\xfe{}"

    @pytest.mark.asyncio
    async def test_missing_file_raises(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            await fs.read_file(tmp_path / "nope")


class TestMeasureTime:
    @pytest.mark.asyncio
    async def test_passes_result_through_and_logs(self, caplog):
        async def f() -> int:
            return 42

        with caplog.at_level(logging.DEBUG, logger="pkgbuild.perf"):
            assert await measure_time("answer", f) == 42

        assert any(r.getMessage().startswith("answer: ") for r in caplog.records)

    @pytest.mark.asyncio
    async def test_passes_exception_through(self, caplog):
        async def f() -> int:
            raise KeyError("missing")

        with caplog.at_level(logging.DEBUG, logger="pkgbuild.perf"):
            with pytest.raises(KeyError):
                await measure_time("failing", f)

        assert any(r.getMessage().startswith("failing: ") for r in caplog.records)
