"""Helpers for testing code built on pkgbuild."""

from pkgbuild.testing._tasks import (
    RecordingPackageBuilder,
    make_task,
    touch,
)

__all__ = [
    "RecordingPackageBuilder",
    "make_task",
    "touch",
]
