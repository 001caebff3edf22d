#!/usr/bin/env python3
"""Bounded concurrency helpers.

Applications and networks are independent of each other on the destination,
so a migration may process several of them at once. Everything inside one
application (outputs, devices) or one network (gateways) stays sequential.

    - process_concurrent: Apply an async processor to every item with a
      semaphore bounding how many run at once

Author: LoRaWAN Migration Team
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def process_concurrent(
    items: list[T],
    processor: Callable[[T], Awaitable[Any]],
    max_concurrent: int = 1,
    return_exceptions: bool = False,
) -> list[Any]:
    """Process items concurrently with bounded concurrency.

    With ``max_concurrent=1`` items are processed strictly one after the
    other, in input order.

    Args:
        items: List of items to process
        processor: Async function to apply to each item
        max_concurrent: Maximum concurrent operations (default: 1)
        return_exceptions: If True, return exceptions instead of raising

    Returns:
        List of results in the same order as input items

    Example:
        results = await process_concurrent(
            applications,
            import_one_application,
            max_concurrent=settings.max_concurrency,
        )
    """
    semaphore = asyncio.Semaphore(max(1, max_concurrent))

    async def bounded_processor(item: T) -> Any:
        async with semaphore:
            return await processor(item)

    tasks = [bounded_processor(item) for item in items]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)
