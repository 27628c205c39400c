"""Memory governor: samples process memory before each item and throttles under pressure."""

import gc
import logging
import threading
import time
from typing import Callable

import psutil

log = logging.getLogger(__name__)


def process_rss() -> int:
    return psutil.Process().memory_info().rss


class MemoryGovernor:
    """
    Keeps the run inside a memory budget.

    Above the high-water mark it requests a garbage collection; if usage is
    still above the critical mark afterwards it sleeps for the cooldown.
    """

    def __init__(
        self,
        budget_mb: int,
        high_water: float = 85.0,
        critical: float = 90.0,
        cooldown: float = 5.0,
        sampler: Callable[[], int] = process_rss,
        collect: Callable[[], int] = gc.collect,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.budget_bytes = budget_mb * 1024 * 1024
        self.high_water = high_water
        self.critical = critical
        self.cooldown = cooldown
        self._sampler = sampler
        self._collect = collect
        self._sleep = sleep
        self._lock = threading.Lock()
        self.collections = 0
        self.cooldowns = 0

    def usage_percent(self) -> float:
        if self.budget_bytes <= 0:
            return 0.0
        return 100.0 * self._sampler() / self.budget_bytes

    def check(self) -> float:
        """Sample, and throttle if needed. Returns the final usage percentage."""
        percent = self.usage_percent()
        if percent <= self.high_water:
            return percent

        log.warning("Memory at %.1f%% of budget, collecting garbage", percent)
        self._collect()
        with self._lock:
            self.collections += 1
        percent = self.usage_percent()

        if percent > self.critical:
            log.warning("Memory still at %.1f%%, pausing %.1fs", percent, self.cooldown)
            self._sleep(self.cooldown)
            with self._lock:
                self.cooldowns += 1
            self._collect()
            percent = self.usage_percent()
        return percent
