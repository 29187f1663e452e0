"""
Rate limiter plugin.

Fixed-window request counter per client key. Requests over the limit are
answered with 429 and the chain stops there.

Example:
    ```python
    shared_store = {}
    limiter = create_rate_limiter_plugin(
        max_requests=5,
        window_seconds=60,
        shared_store=shared_store,
        on_limit_reached=lambda context, info: context.response.json(
            {"message": "Sorry, too many requests!", "retryAfter": info.retry_after},
            status_code=429,
        ),
    )
    plugin_system.register(limiter)
    ```
"""

import inspect
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, MutableMapping, Optional, Union

from fastapi import Request

from plugin_system.lib.middleware import HttpContext
from plugin_system.lib.plugins.plugin_base import Plugin

logger = logging.getLogger(__name__)

KeyFunc = Callable[[Request], Union[str, Awaitable[str]]]
LimitHandler = Callable[[HttpContext, "RateLimitInfo"], None]


@dataclass
class RateLimitRecord:
    count: int
    window_start: float


@dataclass
class RateLimitInfo:
    """Details passed to the on_limit_reached callback."""

    key: str
    retry_after: int
    remaining_requests: int
    record: RateLimitRecord


def client_host(request: Request) -> str:
    """Default key: the client's address, or "unknown"."""
    if request.client is None or not request.client.host:
        return "unknown"
    return request.client.host


class RateLimiterPlugin(Plugin):
    """
    Fixed-window rate limiter.

    The record store may be shared between several limiters; access to it
    is guarded by a lock owned by this plugin.
    """

    id = "rateLimiter"

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        on_limit_reached: Optional[LimitHandler] = None,
        disable_cleanup: bool = False,
        shared_store: Optional[MutableMapping[str, RateLimitRecord]] = None,
        key_func: Optional[KeyFunc] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            max_requests: Maximum number of requests allowed per window
            window_seconds: Window duration in seconds
            on_limit_reached: Called instead of the default 429 text reply;
                              gets full control over the response
            disable_cleanup: Keep expired records instead of purging them
            shared_store: Record store to use instead of a private one
            key_func: Derives the client key from the request (sync or async)
            clock: Time source in seconds
        """
        self.max_requests = max_requests
        self.window = window_seconds
        self.on_limit_reached = on_limit_reached
        self.cleanup_enabled = not disable_cleanup
        self.store: MutableMapping[str, RateLimitRecord] = shared_store if shared_store is not None else {}
        self.key_func = key_func or client_host
        self.clock = clock
        self._lock = threading.Lock()
        self._last_cleanup = clock()

    async def process(self, context: HttpContext, next_: Callable[[], None]) -> None:
        key = self.key_func(context.request)
        if inspect.isawaitable(key):
            key = await key

        info = self._hit(key)
        if info is None:
            next_()
            return

        logger.info(f"Rate limit exceeded for '{key}', retry after {info.retry_after}s")
        context.response.status_code = 429
        context.response.set_header("Retry-After", info.retry_after)

        if self.on_limit_reached is not None:
            self.on_limit_reached(context, info)
            return

        context.response.set_header("Content-Type", "text/plain; charset=utf-8")
        context.response.end("Too Many Requests")

    def _hit(self, key: str) -> Optional[RateLimitInfo]:
        """
        Count a request for ``key``.

        Returns:
            None if the request is allowed, otherwise the limit details
        """
        now = self.clock()
        with self._lock:
            if self.cleanup_enabled:
                self._cleanup(now)

            record = self.store.get(key)
            if record is None or now - record.window_start > self.window:
                self.store[key] = RateLimitRecord(count=1, window_start=now)
                return None

            elapsed = now - record.window_start
            if record.count >= self.max_requests:
                return RateLimitInfo(
                    key=key,
                    retry_after=math.ceil(self.window - elapsed),
                    remaining_requests=max(0, self.max_requests - record.count),
                    record=record,
                )

            record.count += 1
            return None

    def _cleanup(self, now: float) -> None:
        # Purge expired records at most once every two windows
        if now - self._last_cleanup < self.window * 2:
            return
        self._last_cleanup = now
        expired = [key for key, record in self.store.items() if now - record.window_start > self.window]
        for key in expired:
            del self.store[key]
        if expired:
            logger.debug(f"Purged {len(expired)} expired rate limit records")


def create_rate_limiter_plugin(max_requests: int, window_seconds: float, **options) -> RateLimiterPlugin:
    """
    Create a rate limiter plugin.

    Args:
        max_requests: Maximum number of requests allowed per window
        window_seconds: Window duration in seconds
        **options: See RateLimiterPlugin

    Returns:
        RateLimiterPlugin instance
    """
    return RateLimiterPlugin(max_requests, window_seconds, **options)
