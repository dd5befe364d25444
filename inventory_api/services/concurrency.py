"""Bounded concurrency helpers."""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Iterable, List, Optional, TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class Settled(Generic[R]):
    """Outcome of one task: either a value or the exception it raised."""

    value: Optional[R] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def run_settled(
    items: Iterable[T],
    limit: int,
    worker: Callable[[T], Awaitable[R]],
) -> List[Settled[R]]:
    """Run ``worker`` over ``items`` with at most ``limit`` in flight.

    Every item yields a ``Settled`` in input order. A failing item never
    cancels the others; cancellation of the caller still propagates.
    """
    semaphore = asyncio.Semaphore(max(1, limit))

    async def run_one(item: T) -> Settled[R]:
        async with semaphore:
            try:
                return Settled(value=await worker(item))
            except Exception as e:
                return Settled(error=e)

    return list(await asyncio.gather(*(run_one(item) for item in items)))


async def gather_all(*aws: Awaitable[R]) -> List[R]:
    """Await every awaitable, then raise the first failure if any.

    Unlike a bare ``asyncio.gather`` no sibling is left running after an
    error, so callers can safely clean up shared resources afterwards.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(results)
