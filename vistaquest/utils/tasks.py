"""
Fork-join helper for independent service calls.

Launches each coroutine as its own task and waits for *all* of them to
settle before deciding the outcome, so no request is still running once
the caller has moved on.  The group fails as a unit: if any task raised,
the first failure (in launch order) is re-raised and every other result,
successful or not, is discarded.
"""

import asyncio
import logging
from typing import Any, Awaitable

logger = logging.getLogger(__name__)


async def fork_join(*coros: Awaitable[Any]) -> list[Any]:
    """Run *coros* concurrently; return their results in order or raise.

    Raises:
        The first exception (in launch order) raised by any coroutine.
    """
    tasks = [asyncio.ensure_future(coro) for coro in coros]
    results = await asyncio.gather(*tasks, return_exceptions=True)

    failures = [r for r in results if isinstance(r, BaseException)]
    if failures:
        for extra in failures[1:]:
            logger.warning("fork_join: discarding additional failure: %r", extra)
        discarded = len(results) - len(failures)
        if discarded:
            logger.info("fork_join: discarding %d successful result(s)", discarded)
        raise failures[0]
    return list(results)
