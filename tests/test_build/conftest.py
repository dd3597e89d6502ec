"""Fixtures for build tests."""

import pytest

from pkgbuild.task import SourceType, TaskGraph
from pkgbuild.testing import RecordingPackageBuilder, make_task


@pytest.fixture
def builder() -> RecordingPackageBuilder:
    return RecordingPackageBuilder(delay=0.01)


@pytest.fixture
def diamond_graph() -> TaskGraph:
    """Diamond graph with a root package.

    ```
        root
        /  \\
       a    b
        \\  /
         d
    ```
    """
    return TaskGraph.from_tasks(
        [
            make_task("d"),
            make_task("a", dependencies=["d"]),
            make_task("b", dependencies=["d"]),
            make_task("root", SourceType.ROOT, dependencies=["a", "b"]),
        ],
        root_id="root",
    )
