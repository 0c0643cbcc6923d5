"""
Monitoring: one probe per tick, records written on state changes and while offline.
Records: "Started - ..." on the first tick, "Internet unavailable" on every offline tick,
"Internet restored" on offline -> online. Each record carries the full sample under "result".
"""
import asyncio
import logging
from typing import Optional, Sequence

import httpx

from netcheck.check import build_client, check_connection
from netcheck.config import MonitorSettings, TargetConfig
from netcheck.jsonlog import LogMode, RotatingJsonLogger
from netcheck.model import Connectivity
from netcheck.runner import install_stop_handlers, run_loop

logger = logging.getLogger("netcheck.monitor")


async def observe_connection(
    client: httpx.AsyncClient,
    writer: RotatingJsonLogger,
    targets: Sequence[TargetConfig],
    previous: Optional[Connectivity],
    latency_threshold_ms: Optional[int] = None,
) -> Connectivity:
    """Probe once, record what changed, sync the writer. Writer errors propagate."""
    result = await check_connection(client, targets, latency_threshold_ms)
    current = result.connectivity

    if previous is None:
        if current == Connectivity.ONLINE:
            writer.log("Started - Internet available", result=result)
        else:
            writer.log("Started - Internet unavailable", result=result)
    elif current == Connectivity.OFFLINE:
        writer.log("Internet unavailable", result=result)
    elif previous == Connectivity.OFFLINE:
        writer.log("Internet restored", result=result)

    if previous == Connectivity.ONLINE and current == Connectivity.OFFLINE:
        failures = ", ".join(f"{r.target}: {r.error}" for r in result.results if not r.success)
        logger.warning("ONLINE->OFFLINE (%s)", failures)
    elif previous == Connectivity.OFFLINE and current == Connectivity.ONLINE:
        logger.info("OFFLINE->ONLINE (avg %.0fms, %s)", result.avg.total_seconds() * 1000, result.speed.value)
    else:
        logger.debug("Check: %s, avg %.0fms", current, result.avg.total_seconds() * 1000)

    writer.sync()
    return current


def build_writer(settings: MonitorSettings) -> RotatingJsonLogger:
    return RotatingJsonLogger(
        settings.log_dir,
        file_prefix=settings.file_prefix,
        max_size=settings.max_size,
        mode=LogMode(settings.log_mode),
    )


async def run_monitor(
    settings: MonitorSettings,
    stop_event: Optional[asyncio.Event] = None,
    writer: Optional[RotatingJsonLogger] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> int:
    """Monitor until stopped (SIGINT/SIGTERM unless stop_event is given). Returns the number of checks."""
    if stop_event is None:
        stop_event = asyncio.Event()
        install_stop_handlers(stop_event)
    if writer is None:
        writer = build_writer(settings)
    if client is None:
        client = build_client(settings.timeout)

    async def tick(previous: Optional[Connectivity]) -> Connectivity:
        return await observe_connection(client, writer, settings.targets, previous, settings.latency_threshold_ms)

    async def shutdown() -> None:
        writer.log("Graceful shutdown")
        writer.sync()

    logger.info(
        "Monitoring %d targets every %ss (mode=%s, dir=%s); press Ctrl-C to stop",
        len(settings.targets),
        settings.interval,
        settings.log_mode,
        settings.log_dir,
    )
    try:
        async with client:
            return await run_loop(settings.interval, tick, shutdown, stop_event)
    finally:
        writer.close()
