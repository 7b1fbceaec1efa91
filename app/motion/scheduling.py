# app/motion/scheduling.py
from __future__ import annotations

import asyncio


class Scheduler:
    """
    Cooperative suspension points for the tracking loops.

    yield_now():
      - called after every batch frame so a shared event loop stays responsive.
    wait_next_frame():
      - paces the continuous loop at the display cadence.
    """

    def __init__(self, yield_delay_s: float = 0.01, frame_interval_s: float = 1.0 / 60.0) -> None:
        self.yield_delay_s = yield_delay_s
        self.frame_interval_s = frame_interval_s

    async def yield_now(self) -> None:
        await asyncio.sleep(self.yield_delay_s)

    async def wait_next_frame(self) -> None:
        await asyncio.sleep(self.frame_interval_s)


class SteppingScheduler(Scheduler):
    """
    Zero-delay scheduler for tests and headless batch jobs.
    """

    def __init__(self) -> None:
        super().__init__(yield_delay_s=0.0, frame_interval_s=0.0)
