"""Small asyncio helpers shared by the image services."""

import asyncio
from typing import Any, Awaitable, Iterable, List


async def gather_or_cancel(awaitables: Iterable[Awaitable[Any]]) -> List[Any]:
    """Run awaitables concurrently and return their results in order.

    On the first failure every sibling task is cancelled and awaited before
    the exception propagates, so no task is left running unobserved.
    """
    tasks = [asyncio.ensure_future(awaitable) for awaitable in awaitables]
    if not tasks:
        return []
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
