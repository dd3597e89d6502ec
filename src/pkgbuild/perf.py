import logging
import time
import typing

logger = logging.getLogger(__name__)

T = typing.TypeVar("T")


async def measure_time(label: str, f: typing.Callable[[], typing.Awaitable[T]]) -> T:
    """Await `f()` and log how long it took.

    The result (or exception) of `f` is passed through untouched.
    """
    start = time.perf_counter()
    try:
        return await f()
    finally:
        elapsed = time.perf_counter() - start
        logger.debug(f"{label}: {elapsed:.3f}s")
