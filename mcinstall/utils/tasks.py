"""Bounded concurrent fan-out."""

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar, Union

T = TypeVar("T")


class _Cancelled:
    """Marker for jobs that never started because the batch was cancelled."""

    def __repr__(self) -> str:
        return "CANCELLED"


CANCELLED = _Cancelled()

JobResult = Union[T, Exception, _Cancelled]


async def run_bounded(jobs: Sequence[Callable[[], Awaitable[T]]], limit: int,
                      cancel: Optional[asyncio.Event] = None) -> List[JobResult]:
    """Run ``jobs`` with at most ``limit`` in flight.

    Results come back in submission order, not completion order. A job that
    raises yields its exception in place of a result. Once ``cancel`` is set,
    jobs still waiting for a slot are not started and yield ``CANCELLED``;
    jobs already running are allowed to finish.
    """
    semaphore = asyncio.Semaphore(max(1, limit))

    async def _run(job: Callable[[], Awaitable[T]]) -> JobResult:
        async with semaphore:
            if cancel is not None and cancel.is_set():
                return CANCELLED
            try:
                return await job()
            except Exception as e:
                return e

    return await asyncio.gather(*(_run(job) for job in jobs))


def collect_errors(results: Sequence[JobResult]) -> List[Exception]:
    """Exceptions from a ``run_bounded`` result list, in submission order."""
    return [r for r in results if isinstance(r, Exception)]
