"""
Rate Limiter - Serialize every call to the remote asset store

The store enforces one request budget per credential, so a single limiter is
shared by the whole process: tasks run strictly one at a time, FIFO, with a
minimum gap between the start of one task and the start of the next.
Throttled tasks (HTTP 429) are retried in place with exponential backoff.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from .errors import ThrottledError, ThrottleExhausted

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff: delay = base_delay * multiplier ** attempt"""

    max_retries: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0

    def delay_for(self, attempt: int) -> float:
        return self.base_delay * (self.multiplier**attempt)


def _settle(future: asyncio.Future, result: Any = None, exc: BaseException | None = None):
    # The caller may have given up (disconnect) while the task was running
    if future.done():
        return
    if exc is not None:
        future.set_exception(exc)
    else:
        future.set_result(result)


class RateLimiter:
    """Process-wide FIFO queue with a single consumer"""

    def __init__(
        self,
        interval: float = 1.0,
        retry_policy: Optional[RetryPolicy] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.interval = interval
        self.retry_policy = retry_policy or RetryPolicy(base_delay=interval)
        self._clock = clock
        self._last_start: float | None = None
        self._queue: asyncio.Queue | None = None
        self._worker: asyncio.Task | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "RateLimiter":
        """Build a limiter from the rateLimit config section"""
        cfg = config.get("rateLimit", {})
        interval = cfg.get("intervalMs", 1000) / 1000
        policy = RetryPolicy(
            max_retries=cfg.get("maxRetries", 3),
            base_delay=interval,
            multiplier=cfg.get("multiplier", 2),
        )
        return cls(interval=interval, retry_policy=policy)

    def configure(self, config: dict[str, Any]):
        """Apply new rateLimit settings; takes effect from the next task"""
        fresh = RateLimiter.from_config(config)
        self.interval = fresh.interval
        self.retry_policy = fresh.retry_policy

    async def enqueue(self, task: Callable[[], Awaitable[T]], label: str = "") -> T:
        """Run task when its turn comes and return its result.

        Cancelling the awaiting caller before dispatch drops the task
        without running it.
        """
        queue = self._ensure_worker()
        future = asyncio.get_running_loop().create_future()
        queue.put_nowait((task, label, future))
        return await future

    async def close(self):
        """Stop the worker and cancel tasks still waiting in the queue"""
        worker, queue = self._worker, self._queue
        self._worker = None
        self._queue = None
        if worker is not None and not worker.done():
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass
        while queue is not None and not queue.empty():
            _, _, future = queue.get_nowait()
            future.cancel()

    def _ensure_worker(self) -> asyncio.Queue:
        loop = asyncio.get_running_loop()
        if self._worker is None or self._worker.done() or self._loop is not loop:
            self._loop = loop
            self._queue = asyncio.Queue()
            self._worker = loop.create_task(self._run(self._queue))
        return self._queue

    async def _run(self, queue: asyncio.Queue):
        while True:
            task, label, future = await queue.get()
            try:
                if future.cancelled():
                    continue
                await self._dispatch(task, label, future)
            except asyncio.CancelledError:
                future.cancel()
                raise
            finally:
                queue.task_done()

    async def _wait_turn(self):
        if self._last_start is not None:
            while True:
                remaining = self._last_start + self.interval - self._clock()
                if remaining <= 0:
                    break
                await asyncio.sleep(remaining)
        self._last_start = self._clock()

    async def _dispatch(self, task: Callable[[], Awaitable[Any]], label: str, future: asyncio.Future):
        policy = self.retry_policy
        attempt = 0
        while True:
            await self._wait_turn()
            try:
                result = await task()
            except ThrottledError as e:
                if attempt >= policy.max_retries:
                    print(
                        f"[RateLimiter] {label or 'request'} still throttled (HTTP {e.status}) "
                        f"after {attempt + 1} attempts"
                    )
                    exhausted = ThrottleExhausted(label, attempt + 1)
                    exhausted.__cause__ = e
                    _settle(future, exc=exhausted)
                    return
                delay = policy.delay_for(attempt)
                attempt += 1
                print(
                    f"[RateLimiter] {label or 'request'} throttled. Retrying in {delay:.2f}s... "
                    f"(attempt {attempt}/{policy.max_retries})"
                )
                await asyncio.sleep(delay)
                if future.cancelled():
                    return
                continue
            except Exception as e:
                status = getattr(e, "status", None)
                status_text = f" (HTTP {status})" if status is not None else ""
                print(f"[RateLimiter] {label or 'request'} failed{status_text}: {e}")
                _settle(future, exc=e)
                return
            _settle(future, result=result)
            return
