"""
Polling scheduler: run an async callback now, then every `interval` seconds until stopped.
Start-to-start spacing is kept at `interval` by subtracting the callback's own run time.
The sleep is raced against a stop event, so a stop is seen mid-sleep without polling.
"""
import asyncio
import logging
import signal
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger("netcheck.runner")

Callback = Callable[[Any], Awaitable[Any]]
Shutdown = Callable[[], Awaitable[None]]


def next_delay(interval: float, elapsed: float) -> float:
    """Time left until the next start; an overrunning callback means no wait at all."""
    return max(0.0, interval - elapsed)


async def _wait_or_stop(delay: float, stop_event: asyncio.Event) -> bool:
    """Sleep for delay unless stop_event fires first. Returns True when stopped."""
    if stop_event.is_set():
        return True
    sleeper = asyncio.ensure_future(asyncio.sleep(delay))
    stopper = asyncio.ensure_future(stop_event.wait())
    try:
        await asyncio.wait({sleeper, stopper}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (sleeper, stopper):
            if not task.done():
                task.cancel()
        await asyncio.gather(sleeper, stopper, return_exceptions=True)
    return stop_event.is_set()


async def run_loop(
    interval: float,
    callback: Callback,
    shutdown: Optional[Shutdown] = None,
    stop_event: Optional[asyncio.Event] = None,
) -> int:
    """
    Invoke callback(previous) sequentially, where previous is the last return value (None at first).
    Returns the number of completed invocations once stop_event is set and shutdown has run.
    An exception from callback ends the loop and propagates; shutdown is skipped in that case.
    """
    if stop_event is None:
        stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    previous = None
    count = 0

    while True:
        started = loop.time()
        previous = await callback(previous)
        count += 1
        elapsed = loop.time() - started
        delay = next_delay(interval, elapsed)
        logger.debug("Tick %d done in %.3fs, next in %.3fs", count, elapsed, delay)
        if await _wait_or_stop(delay, stop_event):
            break

    logger.info("Stopping after %d checks", count)
    if shutdown is not None:
        await shutdown()
    return count


def install_stop_handlers(stop_event: asyncio.Event) -> None:
    """Set stop_event on SIGINT/SIGTERM. Must be called from the running loop."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, getattr(signal, "SIGTERM", None)):
        if sig is None:
            continue
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no add_signal_handler
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop_event.set))
