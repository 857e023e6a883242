"""Cooperative cancellation helpers.

A scan is cancelled through an ``asyncio.Event``. Every suspension point of a
probe (ping, HTTP GET, semaphore acquire) is raced against that event so a
cancelled scan unwinds at its next await instead of waiting out timeouts.
"""
import asyncio
from collections.abc import Awaitable
from typing import Final, TypeVar

T = TypeVar("T")


class CancelledType:
    __slots__ = ()

    def __repr__(self) -> str:
        return "CANCELLED"

    def __bool__(self) -> bool:
        return False


CANCELLED: Final = CancelledType()


async def race_cancellation(awaitable: Awaitable[T], cancel_event: asyncio.Event) -> T | CancelledType:
    """Await ``awaitable`` unless ``cancel_event`` is set first.

    Returns the awaitable's result, or ``CANCELLED`` if the event won the race
    (in which case the awaitable is cancelled and awaited). Exceptions raised by
    the awaitable propagate unchanged. When both finish together the result wins.
    """
    if cancel_event.is_set():
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        return CANCELLED

    work = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work.cancel()
        waiter.cancel()
        raise
    waiter.cancel()

    if work in done:
        return work.result()

    work.cancel()
    # Let the cancelled work unwind; whatever it ends with is discarded
    await asyncio.gather(work, return_exceptions=True)
    return CANCELLED
