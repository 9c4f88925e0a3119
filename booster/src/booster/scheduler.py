"""
Fixed-cadence driver for the settlement controller.
"""

from __future__ import annotations

import asyncio
import contextlib

from loguru import logger

from booster.constants import DEFAULT_POLL_INTERVAL
from booster.controller import CycleReport, SettlementController


class Scheduler:
    """
    Runs one controller cycle, then waits ``interval`` seconds, until stopped.

    The stop event is only honoured between cycles: a cycle that has started
    always runs to completion. Setting the event during the wait ends the
    wait early.
    """

    def __init__(
        self,
        controller: SettlementController,
        interval: float = DEFAULT_POLL_INTERVAL,
        stop_event: asyncio.Event | None = None,
        max_cycles: int | None = None,
    ):
        self.controller = controller
        self.interval = interval
        self.stop_event = stop_event or asyncio.Event()
        self.max_cycles = max_cycles
        self.cycles_completed = 0
        self.last_report: CycleReport | None = None

    @property
    def running(self) -> bool:
        return not self.stop_event.is_set()

    def stop(self) -> None:
        logger.info("Stopping boost request monitoring...")
        self.stop_event.set()

    async def run(self) -> None:
        logger.info(f"Starting boost request monitoring (interval {self.interval}s)")

        while not self.stop_event.is_set():
            try:
                self.last_report = await self.controller.run_cycle()
            except Exception as e:
                logger.error(f"Error in monitoring loop: {e}")
            self.cycles_completed += 1

            if self.max_cycles is not None and self.cycles_completed >= self.max_cycles:
                break

            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self.stop_event.wait(), timeout=self.interval)

        logger.info(f"Monitoring stopped after {self.cycles_completed} cycles")
