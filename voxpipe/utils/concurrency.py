"""Shared concurrency primitives for the sync and ingestion pipelines.

Two patterns are exposed:

1. **settle_all** -- run awaitables concurrently and collect one
   :class:`Outcome` per input, in input order.  A failing awaitable never
   cancels its siblings; its exception is captured in the outcome instead.
   Used for the per-agent and per-conversation fan-outs.

2. **run_in_batches** -- apply an async function to items in fixed-size
   batches.  Batches run strictly one after another; members of a batch run
   concurrently via ``settle_all``.  This bounds the number of in-flight
   remote requests to the batch size.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Iterable, Sequence, TypeVar

import structlog

from voxpipe.utils.logging import get_logger

_T = TypeVar("_T")
_R = TypeVar("_R")

_logger: structlog.BoundLogger = get_logger(__name__)


@dataclass(frozen=True)
class Outcome(Generic[_T]):
    """Settled result of one awaitable: either a value or an error."""

    value: _T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def _settle(aw: Awaitable[_T]) -> Outcome[_T]:
    try:
        return Outcome(value=await aw)
    except Exception as exc:
        return Outcome(error=exc)


async def settle_all(awaitables: Iterable[Awaitable[_T]]) -> list[Outcome[_T]]:
    """Run awaitables concurrently and collect every outcome.

    Results are returned in the same order as the input.  Only ``Exception``
    subclasses are captured; ``CancelledError`` and other ``BaseException``
    types still propagate so caller-level timeouts keep working.
    """
    return list(await asyncio.gather(*(_settle(aw) for aw in awaitables)))


async def run_in_batches(
    items: Sequence[_T],
    fn: Callable[[_T], Awaitable[_R]],
    batch_size: int,
    logger: structlog.BoundLogger | None = None,
) -> list[Outcome[_R]]:
    """Apply ``fn`` to every item, ``batch_size`` items at a time.

    Batch *N+1* starts only after every task of batch *N* has settled.

    Returns
    -------
    list[Outcome[_R]]
        One outcome per item, in input order.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    if logger is None:
        logger = _logger

    outcomes: list[Outcome[_R]] = []
    for offset in range(0, len(items), batch_size):
        batch = items[offset : offset + batch_size]
        settled = await settle_all(fn(item) for item in batch)
        outcomes.extend(settled)
        logger.debug(
            "batch_settled",
            batch_index=offset // batch_size,
            size=len(batch),
            failures=sum(1 for o in settled if not o.ok),
        )
    return outcomes
