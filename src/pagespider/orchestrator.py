"""
Crawl orchestrator contract.

A spider only ever talks to its orchestrator through a CrawlContext passed
into start(): configuration, its own target identity, a sink for discovered
requests and the next() signal. Frontier management and scheduling live
behind this interface and are not part of this package.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from pagespider.browser_config import CrawlerOption
from pagespider.models import DiscoveredRequest

logger = logging.getLogger(__name__)


class CrawlContext(ABC):
    """
    What a spider needs from the crawl orchestrator.

    Implementations must treat every reported request as a one-way,
    consume-once notification and buffer internally if they cannot keep up.
    next() may be signaled more than once per spider (once per finish()
    call, including a forced finish from the page timeout).
    """

    def __init__(
        self,
        page_url: str,
        crawler_option: CrawlerOption,
        page_result: Optional[DiscoveredRequest] = None,
    ):
        """
        Initialize the context.

        Args:
            page_url: URL the spider should render
            crawler_option: Crawl-wide options, read-only for spiders
            page_result: Precomputed identity of the page itself
        """
        self.page_url = page_url
        self.crawler_option = crawler_option
        self.page_result = page_result or DiscoveredRequest.from_url(page_url)

    @abstractmethod
    def add_request(self, spider, request: DiscoveredRequest) -> None:
        """Receive one newly discovered request from a spider."""
        pass

    @abstractmethod
    def next(self) -> None:
        """Advance the frontier; the spider is done with its page."""
        pass


class CollectingContext(CrawlContext):
    """
    Context that records everything a single spider reports.

    Usage:
        context = CollectingContext(url, CrawlerOption(page_timeout=30000))
        await spider.start(context)
        await context.wait_done()
        for request in context.requests:
            ...
    """

    def __init__(
        self,
        page_url: str,
        crawler_option: CrawlerOption,
        page_result: Optional[DiscoveredRequest] = None,
        on_request: Optional[Callable[[DiscoveredRequest], None]] = None,
    ):
        super().__init__(page_url, crawler_option, page_result)
        self.requests: list[DiscoveredRequest] = []
        self.next_calls = 0
        self._on_request = on_request
        self._done = asyncio.Event()

    def add_request(self, spider, request: DiscoveredRequest) -> None:
        self.requests.append(request)
        logger.debug(f"Discovered {request.method} {request.url} ({request.resource_type})")
        if self._on_request:
            self._on_request(request)

    def next(self) -> None:
        self.next_calls += 1
        self._done.set()

    @property
    def is_done(self) -> bool:
        return self._done.is_set()

    async def wait_done(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the first next() signal.

        Args:
            timeout: Seconds to wait, None for no limit

        Returns:
            True if the spider signaled completion in time
        """
        try:
            await asyncio.wait_for(self._done.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True
