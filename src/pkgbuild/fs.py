"""Async filesystem helpers used by the build decision.

All operations go through aiofiles so that every stat of a tree walk yields
to the event loop, letting decisions for independent tasks overlap.
"""

from __future__ import annotations

import inspect
import logging
import os
import stat
from pathlib import Path
from typing import Awaitable, Callable, TypeVar

import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)

AccT = TypeVar("AccT")

SkipTraverse = Callable[[Path], bool]
Visit = Callable[[AccT, Path, os.stat_result], AccT | Awaitable[AccT]]


async def exists(path: Path) -> bool:
    return await aiofiles.os.path.exists(path)


async def read_file(path: Path) -> bytes:
    async with aiofiles.open(path, "rb") as f:
        return await f.read()


async def fold(
    skip_traverse: SkipTraverse,
    visit: Visit[AccT],
    init: AccT,
    root: Path,
) -> AccT:
    """Fold over every non-directory entry below `root`.

    Directories for which `skip_traverse(path)` returns True are not descended
    into, and neither are symlinks to directories. Entries that disappear or
    cannot be stat'ed while walking are skipped.

    Args:
        skip_traverse: Predicate selecting directories to prune.
        visit: Called as `visit(acc, path, stat_result)` for each entry,
            returning the new accumulator (or an awaitable of it).
        init: Initial accumulator.
        root: Directory to walk. A missing root yields `init`.

    Returns:
        The final accumulator.
    """
    acc = init
    pending = [root]
    while pending:
        directory = pending.pop()
        try:
            names = await aiofiles.os.listdir(directory)
        except OSError as e:
            logger.debug(f"Skipping unreadable directory {directory}: {e}")
            continue

        for name in sorted(names):
            path = directory / name
            try:
                st = await aiofiles.os.stat(path, follow_symlinks=False)
            except OSError as e:
                logger.debug(f"Skipping {path}: {e}")
                continue

            if stat.S_ISDIR(st.st_mode):
                if not skip_traverse(path):
                    pending.append(path)
                continue

            result = visit(acc, path, st)
            if inspect.isawaitable(result):
                result = await result
            acc = result
    return acc
