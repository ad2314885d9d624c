"""
Browser Session Pool.

This module manages a pool of Playwright browser contexts ("sessions") for
page spiders, with exclusive leases, session isolation and health
monitoring.

A lease hands one context to exactly one caller. The context goes back to
the pool when the caller's block (or lease callback) completes; callers
never release it explicitly.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, TypeVar

from pagespider.browser_config import BrowserConfig
from pagespider.constants import (
    DEFAULT_BROWSER_TIMEOUT_MS,
    DEFAULT_POOL_SIZE,
    ERROR_RATE_RECYCLE_THRESHOLD,
    MAX_REQUESTS_PER_CONTEXT,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BrowserHealth(Enum):
    """Browser context health status."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    RECYCLING = "recycling"


@dataclass
class PoolStatus:
    """Current status of the browser pool."""
    total_size: int
    available: int
    in_use: int
    healthy: int
    degraded: int
    unhealthy: int
    total_leases: int
    total_errors: int
    uptime_seconds: float


@dataclass
class ContextMetrics:
    """Metrics for a browser context."""
    context_id: int
    created_at: datetime
    leases_handled: int = 0
    errors: int = 0
    last_used: datetime | None = None
    health: BrowserHealth = BrowserHealth.HEALTHY

    @property
    def error_rate(self) -> float:
        """Calculate error rate for this context."""
        if self.leases_handled == 0:
            return 0.0
        return self.errors / self.leases_handled

    def record_success(self) -> None:
        """Record a lease that completed normally."""
        self.leases_handled += 1
        self.last_used = datetime.now()

    def record_error(self) -> None:
        """Record a lease that ended with an exception."""
        self.leases_handled += 1
        self.errors += 1
        self.last_used = datetime.now()
        # Update health based on error rate
        if self.error_rate > 0.5:
            self.health = BrowserHealth.UNHEALTHY
        elif self.error_rate > 0.2:
            self.health = BrowserHealth.DEGRADED


class BrowserPool:
    """
    Leases isolated browser contexts to page spiders.

    Features:
    - Exclusive leases via async context manager or lease callback
    - Session isolation (cookies, storage, stray pages cleared between leases)
    - Health monitoring and automatic recycling
    - Graceful shutdown
    """

    MAX_REQUESTS_PER_CONTEXT = MAX_REQUESTS_PER_CONTEXT
    ERROR_RATE_RECYCLE_THRESHOLD = ERROR_RATE_RECYCLE_THRESHOLD

    def __init__(
        self,
        max_size: int = DEFAULT_POOL_SIZE,
        headless: bool = True,
        timeout_ms: int = DEFAULT_BROWSER_TIMEOUT_MS,
        user_agent: str | None = None,
        browser_type: str = "chromium",
        launch_args: Optional[list[str]] = None,
        ignore_https_errors: bool = True,
    ):
        """
        Initialize browser pool.

        Args:
            max_size: Maximum number of browser contexts in pool
            headless: Run browsers in headless mode
            timeout_ms: Default timeout for browser operations
            user_agent: Custom user agent string
            browser_type: Playwright engine name (chromium, firefox, webkit)
            launch_args: Extra browser launch arguments
            ignore_https_errors: Accept invalid certificates
        """
        self.max_size = max_size
        self.headless = headless
        self.timeout_ms = timeout_ms
        self.user_agent = user_agent
        self.browser_type = browser_type
        self.launch_args = list(launch_args or [])
        self.ignore_https_errors = ignore_https_errors

        self._playwright = None
        self._browser = None
        self._contexts: dict[int, Any] = {}  # context_id -> BrowserContext
        self._metrics: dict[int, ContextMetrics] = {}  # context_id -> metrics
        self._available: asyncio.Queue[int] = asyncio.Queue()
        self._lock = asyncio.Lock()
        self._started = False
        self._start_time: datetime | None = None
        self._total_leases = 0
        self._total_errors = 0
        self._next_context_id = 0
        self._recycle_tasks: set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, config: BrowserConfig) -> "BrowserPool":
        """Create a pool from a validated BrowserConfig."""
        return cls(
            max_size=config.pool_size,
            headless=config.headless,
            timeout_ms=config.timeout,
            user_agent=config.user_agent,
            browser_type=config.browser_type,
            launch_args=config.launch_args,
            ignore_https_errors=config.ignore_https_errors,
        )

    async def __aenter__(self) -> "BrowserPool":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    async def start(self) -> None:
        """
        Initialize browser pool.

        Launches the browser and creates all contexts.
        """
        if self._started:
            return

        try:
            from playwright.async_api import async_playwright
        except ImportError:
            raise ImportError(
                "playwright package not installed. "
                "Install with: pip install playwright && playwright install"
            )

        self._playwright = await async_playwright().start()
        browser_launcher = getattr(self._playwright, self.browser_type)

        launch_options: dict[str, Any] = {"headless": self.headless}
        if self.launch_args:
            launch_options["args"] = self.launch_args

        self._browser = await browser_launcher.launch(**launch_options)
        self._start_time = datetime.now()

        for _ in range(self.max_size):
            await self._create_context()

        self._started = True
        logger.info(
            f"Browser pool started with {self.max_size} contexts "
            f"(engine: {self.browser_type}, headless={self.headless})"
        )

    async def stop(self) -> None:
        """
        Shutdown browser pool gracefully.

        Closes all contexts and the browser instance.
        """
        if not self._started:
            return

        if self._recycle_tasks:
            await asyncio.gather(*self._recycle_tasks, return_exceptions=True)

        for context_id, context in list(self._contexts.items()):
            try:
                await context.close()
            except Exception as e:
                logger.warning(f"Error closing context {context_id}: {e}")

        self._contexts.clear()
        self._metrics.clear()

        if self._browser:
            try:
                await self._browser.close()
            except Exception as e:
                logger.warning(f"Error closing browser: {e}")
            self._browser = None

        if self._playwright:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.warning(f"Error stopping playwright: {e}")
            self._playwright = None

        self._started = False
        logger.info("Browser pool stopped")

    async def _create_context(self) -> int:
        """
        Create a new browser context and make it available.

        Returns:
            Context ID
        """
        context_options: dict[str, Any] = {
            "ignore_https_errors": self.ignore_https_errors,
        }
        if self.user_agent:
            context_options["user_agent"] = self.user_agent

        context = await self._browser.new_context(**context_options)
        context.set_default_timeout(self.timeout_ms)

        context_id = self._next_context_id
        self._next_context_id += 1

        self._contexts[context_id] = context
        self._metrics[context_id] = ContextMetrics(
            context_id=context_id,
            created_at=datetime.now(),
        )

        await self._available.put(context_id)

        logger.debug(f"Created browser context {context_id}")
        return context_id

    async def _recycle_context(self, context_id: int) -> None:
        """
        Recycle a browser context by closing and creating a new one.
        """
        async with self._lock:
            old_context = self._contexts.pop(context_id, None)
            self._metrics.pop(context_id, None)

            if old_context:
                try:
                    await old_context.close()
                except Exception as e:
                    logger.warning(f"Error closing context {context_id}: {e}")

            if not self._started:
                return

            new_id = await self._create_context()
            logger.info(f"Recycled context {context_id} -> {new_id}")

    async def _clear_context_state(self, context_id: int) -> None:
        """
        Clear cookies, storage and leftover pages for a context.
        """
        context = self._contexts.get(context_id)
        if not context:
            return

        try:
            await context.clear_cookies()

            for page in list(context.pages):
                try:
                    await page.evaluate("() => { localStorage.clear(); sessionStorage.clear(); }")
                except Exception:
                    pass  # Page might be closed or navigating
                try:
                    await page.close()
                except Exception:
                    pass
        except Exception as e:
            logger.warning(f"Error clearing context {context_id} state: {e}")

    @asynccontextmanager
    async def acquire(self, clear_state: bool = True):
        """
        Lease a browser context from the pool.

        Usage:
            async with pool.acquire() as session:
                page = await session.new_page()

        Args:
            clear_state: Clear cookies/storage before use

        Yields:
            Playwright BrowserContext, exclusively owned for the block
        """
        if not self._started:
            raise RuntimeError("Browser pool not started. Call start() first.")

        context_id = await self._available.get()
        while context_id not in self._contexts or context_id not in self._metrics:
            # Stale id of a recycled context, drop it
            context_id = await self._available.get()

        context = self._contexts[context_id]
        metrics = self._metrics[context_id]

        try:
            if clear_state:
                await self._clear_context_state(context_id)

            self._total_leases += 1

            try:
                yield context
                metrics.record_success()
            except Exception:
                metrics.record_error()
                self._total_errors += 1
                raise

        finally:
            should_recycle = (
                metrics.leases_handled >= self.MAX_REQUESTS_PER_CONTEXT or
                metrics.error_rate > self.ERROR_RATE_RECYCLE_THRESHOLD or
                metrics.health == BrowserHealth.UNHEALTHY
            )

            if should_recycle:
                # Recycle in background
                task = asyncio.create_task(self._recycle_context(context_id))
                self._recycle_tasks.add(task)
                task.add_done_callback(self._recycle_tasks.discard)
            else:
                await self._available.put(context_id)

    async def use(self, callback: Callable[[Any], Awaitable[T]], clear_state: bool = True) -> T:
        """
        Lease a context for the duration of a callback.

        The context is returned to the pool when the callback's awaitable
        completes, whether it succeeds or raises.

        Args:
            callback: Async callable receiving the leased BrowserContext
            clear_state: Clear cookies/storage before use

        Returns:
            Whatever the callback returns
        """
        async with self.acquire(clear_state=clear_state) as session:
            return await callback(session)

    def check_health(self, context_id: int) -> BrowserHealth:
        """
        Check health of a specific context.
        """
        metrics = self._metrics.get(context_id)
        if not metrics:
            return BrowserHealth.UNHEALTHY

        return metrics.health

    def get_status(self) -> PoolStatus:
        """Get current pool status."""
        healthy = sum(1 for m in self._metrics.values() if m.health == BrowserHealth.HEALTHY)
        degraded = sum(1 for m in self._metrics.values() if m.health == BrowserHealth.DEGRADED)
        unhealthy = sum(1 for m in self._metrics.values() if m.health == BrowserHealth.UNHEALTHY)

        uptime = 0.0
        if self._start_time:
            uptime = (datetime.now() - self._start_time).total_seconds()

        return PoolStatus(
            total_size=len(self._contexts),
            available=self._available.qsize(),
            in_use=len(self._contexts) - self._available.qsize(),
            healthy=healthy,
            degraded=degraded,
            unhealthy=unhealthy,
            total_leases=self._total_leases,
            total_errors=self._total_errors,
            uptime_seconds=uptime,
        )

    @property
    def available_count(self) -> int:
        """Number of available contexts."""
        return self._available.qsize()

    @property
    def is_started(self) -> bool:
        """Whether pool has been started."""
        return self._started
