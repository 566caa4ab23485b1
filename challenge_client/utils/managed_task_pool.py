import asyncio
import logging
from types import TracebackType
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Type

if TYPE_CHECKING:
    from typing import List  # pylint: disable=ungrouped-imports

LOGGER = logging.getLogger(__name__)


class ManagedTaskPool:
    """
    Runs coroutines concurrently, at most `max_workers` at a time. Leaving the `async with` block waits
    for all of them; if any failed, the remaining ones are cancelled and the first failure is raised.
    """

    def __init__(self, max_workers: int) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers({max_workers}) must be positive")
        self._semaphore = asyncio.Semaphore(max_workers)
        self._tasks: "List[asyncio.Task[None]]" = []
        self._entered = False

    async def __aenter__(self) -> "ManagedTaskPool":
        assert not self._entered, "Task pool already entered"
        self._entered = True
        return self

    async def _run(self, func: Callable[[], Awaitable[None]]) -> None:
        async with self._semaphore:
            await func()

    def __call__(self, func: Callable[[], Awaitable[None]]) -> None:
        assert self._entered, "Task pool not entered"
        self._tasks.append(asyncio.ensure_future(self._run(func)))

    async def __aexit__(
        self, exc_type: Optional[Type[BaseException]], exc_val: Optional[BaseException], exc_tb: Optional[TracebackType]
    ) -> None:
        exception: Optional[BaseException] = None
        try:
            # when the body itself raised, the pending tasks are only cancelled
            for task in asyncio.as_completed(self._tasks if exc_type is None else []):
                try:
                    await task
                except Exception as e:  # pylint: disable=broad-except
                    LOGGER.warning("Exception in task pool", exc_info=True)
                    exception = e
                    break
        finally:
            for task in self._tasks:
                task.cancel()
            await asyncio.gather(*self._tasks, return_exceptions=True)
            self._tasks = []
            self._entered = False
        if exception is not None:
            raise exception
