"""Persisted record of the last successful build of a task.

The record lives at `task.paths.build_info_path` and is written by the
package builder. The build decision only ever reads it, and treats a record
that is missing or cannot be parsed as "no watermark".
"""

from __future__ import annotations

import logging
from pathlib import Path

import aiofiles
import aiofiles.os
from pydantic import ValidationError

from pkgbuild import fs
from pkgbuild.task import PkgbuildBaseModel

logger = logging.getLogger(__name__)


class BuildInfo(PkgbuildBaseModel):
    """Build metadata.

    Attributes:
        source_mod_time: Maximum modification time of the source tree observed
            when the build started (seconds since epoch). None when the
            builder did not record one.
        time_spent: Wall-clock seconds the build took.
    """

    source_mod_time: float | None = None
    time_spent: float | None = None


async def read_build_info(path: Path) -> BuildInfo | None:
    """Read the build info at `path`, returning None if absent or invalid."""
    try:
        data = await fs.read_file(path)
    except OSError as e:
        logger.debug(f"No build info at {path}: {e}")
        return None

    try:
        return BuildInfo.model_validate_json(data)
    except (ValidationError, UnicodeDecodeError) as e:
        logger.debug(f"Ignoring invalid build info at {path}: {e}")
        return None


async def write_build_info(path: Path, info: BuildInfo) -> None:
    """Write the build info atomically (write to a temp file, then rename)."""
    await aiofiles.os.makedirs(path.parent, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp")
    async with aiofiles.open(tmp_path, "w") as f:
        await f.write(info.model_dump_json(by_alias=True))
    await aiofiles.os.rename(tmp_path, path)
