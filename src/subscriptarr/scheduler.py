"""
scheduler.py

Quota-aware request scheduler.

Responsibilities:
- Daily quota budget with a fixed reset instant (Pacific time, fixed offset)
- Bounded concurrency with FIFO admission
- Minimum spacing between calls
- Persisting quota usage across runs

Charging policy: a call's cost is charged once the operation has finished
executing, whether it returned or raised. A call rejected at admission is
never charged and its operation never runs.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Awaitable, Callable, Deque, Dict, Optional, TypeVar

from subscriptarr import config
from subscriptarr.errors import QuotaExceededError
from subscriptarr.logger import get_logger
from subscriptarr.storage import Storage

logger = get_logger(__name__)
T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def next_reset_at(
    now: datetime,
    reset_hour: int = config.DEFAULT_QUOTA_RESET_HOUR,
    tz: tzinfo = config.QUOTA_RESET_TZ,
) -> datetime:
    """Next occurrence of `reset_hour`:00 in `tz`, strictly after `now`. Returned in UTC."""
    local = now.astimezone(tz)
    candidate = local.replace(hour=reset_hour, minute=0, second=0, microsecond=0)
    if candidate <= local:
        candidate += timedelta(days=1)
    return candidate.astimezone(timezone.utc)


@dataclass
class QuotaState:
    used: int
    limit: int
    reset_at: datetime

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.used)


class QuotaScheduler:
    def __init__(
        self,
        storage: Storage,
        limit: int = config.DEFAULT_DAILY_QUOTA_LIMIT,
        max_concurrent: int = config.DEFAULT_MAX_CONCURRENT,
        min_delay: float = config.DEFAULT_MIN_DELAY_SEC,
        reset_hour: int = config.DEFAULT_QUOTA_RESET_HOUR,
        *,
        clock: Callable[[], datetime] = _utcnow,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if limit <= 0:
            raise ValueError("limit must be > 0")
        if max_concurrent <= 0:
            raise ValueError("max_concurrent must be > 0")

        self.storage = storage
        self.max_concurrent = max_concurrent
        self.min_delay = min_delay
        self.reset_hour = reset_hour

        self._clock = clock
        self._monotonic = monotonic
        self._sleep = sleep

        self.state = QuotaState(
            used=0, limit=limit, reset_at=next_reset_at(clock(), reset_hour)
        )
        self._initialized = False
        self._admission_lock = asyncio.Lock()

        # Cost of admitted calls that have not finished yet
        self._reserved = 0

        self._active = 0
        self._waiters: Deque[asyncio.Future] = deque()
        self._last_finished: Optional[float] = None

    # ------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------

    async def initialize(self) -> None:
        if self._initialized:
            return

        async with self._admission_lock:
            if self._initialized:
                return
            await self._load()

    async def _load(self) -> None:
        data = await self.storage.get(
            [config.STORAGE_KEY_QUOTA_USED, config.STORAGE_KEY_QUOTA_RESET]
        )
        now = self._clock()
        stored_reset = data.get(config.STORAGE_KEY_QUOTA_RESET)

        if isinstance(stored_reset, (int, float)):
            reset_at = datetime.fromtimestamp(stored_reset, tz=timezone.utc)
        else:
            reset_at = now

        if now >= reset_at:
            self.state.used = 0
            self.state.reset_at = next_reset_at(now, self.reset_hour)
            await self._save()
        else:
            used = data.get(config.STORAGE_KEY_QUOTA_USED, 0)
            self.state.used = int(used) if isinstance(used, (int, float)) else 0
            self.state.reset_at = reset_at

        self._initialized = True
        logger.info(
            f"Quota scheduler initialized. Quota: {self.state.used}/{self.state.limit}"
        )

    async def _save(self) -> None:
        try:
            await self.storage.set(
                {
                    config.STORAGE_KEY_QUOTA_USED: self.state.used,
                    config.STORAGE_KEY_QUOTA_RESET: self.state.reset_at.timestamp(),
                }
            )
        except OSError as e:
            logger.warning(f"Failed to persist quota state: {e}")

    # ------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------

    async def _maybe_reset(self, now: datetime) -> None:
        if now >= self.state.reset_at:
            logger.info("Daily quota window elapsed; resetting usage")
            self.state.used = 0
            self.state.reset_at = next_reset_at(now, self.reset_hour)
            await self._save()

    async def _admit(self, cost: int) -> None:
        async with self._admission_lock:
            now = self._clock()
            await self._maybe_reset(now)

            committed = self.state.used + self._reserved
            if committed + cost > self.state.limit:
                reset_in = max(0.0, (self.state.reset_at - now).total_seconds())
                hours = int(-(-reset_in // 3600))
                raise QuotaExceededError(
                    f"Daily quota exceeded ({committed}/{self.state.limit}). "
                    f"Resets in {hours} hours.",
                    reset_in=reset_in,
                    used=committed,
                    limit=self.state.limit,
                )

            self._reserved += cost

    async def _unreserve(self, cost: int) -> None:
        async with self._admission_lock:
            self._reserved -= cost

    async def _charge(self, cost: int) -> None:
        async with self._admission_lock:
            self._reserved -= cost
            self.state.used += cost
            await self._save()

    # ------------------------------------------------------------
    # Concurrency slots (FIFO)
    # ------------------------------------------------------------

    async def _acquire_slot(self) -> None:
        if self._active < self.max_concurrent and not self._waiters:
            self._active += 1
            return

        fut: asyncio.Future = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        try:
            # The releasing call hands its slot over directly; _active is unchanged.
            await fut
        except asyncio.CancelledError:
            if fut.done() and not fut.cancelled():
                self._release_slot()
            else:
                self._waiters.remove(fut)
            raise

    def _release_slot(self) -> None:
        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                fut.set_result(None)
                return
        self._active -= 1

    async def _enforce_spacing(self) -> None:
        if self._last_finished is None or self.min_delay <= 0:
            return
        elapsed = self._monotonic() - self._last_finished
        if elapsed < self.min_delay:
            await self._sleep(self.min_delay - elapsed)

    # ------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------

    async def execute(self, operation: Callable[[], Awaitable[T]], cost: int = 1) -> T:
        """
        Run `operation` under quota, concurrency and spacing limits.

        Raises QuotaExceededError without calling `operation` when the call
        would push usage past the daily limit.
        """
        if cost < 0:
            raise ValueError("cost must be >= 0")

        await self.initialize()
        await self._admit(cost)

        try:
            await self._acquire_slot()
        except BaseException:
            await self._unreserve(cost)
            raise

        dispatched = False
        try:
            await self._enforce_spacing()
            dispatched = True
            try:
                return await operation()
            finally:
                await self._charge(cost)
        finally:
            if not dispatched:
                await self._unreserve(cost)
            self._last_finished = self._monotonic()
            self._release_slot()

    @property
    def in_flight(self) -> int:
        return self._active

    def status(self) -> Dict[str, Any]:
        now = self._clock()
        return {
            "used": self.state.used,
            "limit": self.state.limit,
            "remaining": self.state.remaining,
            "reset_at": self.state.reset_at,
            "reset_in": max(0.0, (self.state.reset_at - now).total_seconds()),
        }

    async def reset_quota(self) -> None:
        await self.initialize()
        async with self._admission_lock:
            self.state.used = 0
            self.state.reset_at = next_reset_at(self._clock(), self.reset_hour)
            await self._save()
        logger.info("Quota manually reset")
