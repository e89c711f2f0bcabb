"""
Pacing policy: every random choice a run makes (identity, settle time,
backoff, cool-down between tasks) goes through one seedable RNG and one
injectable sleep, so tests can pin timing and selection down.
"""

import asyncio
import random
from typing import Awaitable, Callable

from .settings import ScrapeConfig


class PacingPolicy:
    def __init__(
        self,
        config: ScrapeConfig,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self.rng = rng or random.Random(config.seed)
        self._sleep = sleep

    def user_agent(self) -> str:
        return self.rng.choice(self.config.user_agents)

    def settle_delay(self) -> float:
        return self._uniform_s(self.config.settle_delay_ms)

    def backoff_delay(self) -> float:
        return self._uniform_s(self.config.backoff_delay_ms)

    def release_delay(self) -> float:
        return self._uniform_s(self.config.release_delay_ms)

    async def pause(self, seconds: float) -> None:
        await self._sleep(seconds)

    def _uniform_s(self, bounds_ms) -> float:
        low, high = bounds_ms
        if high <= low:
            return low / 1000.0
        return self.rng.uniform(low, high) / 1000.0
