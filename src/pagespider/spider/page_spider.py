"""
Page-rendering spider.

Renders exactly one page in a leased browser session and reports every
request the rendering surfaces to the crawl orchestrator:

    lease session -> navigate -> capture -> interact -> report -> tear down

Three things can end a spider: run() completing, the page-timeout timer
firing while run() is still busy, and an exception anywhere in between.
They race, so finish() separates two effects:

- cleanup (revoke listeners, close the page) happens at most once, guarded
  by the FINISHED state;
- the orchestrator's next() is signaled on every finish() call.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from pagespider.config import SpiderTuning
from pagespider.constants import (
    DEFAULT_METHOD,
    DOCUMENT_RESOURCE_TYPE,
    NAVIGATION_WAIT_UNTIL,
    NOT_FOUND_STATUS,
)
from pagespider.extractor import extract_requests_from_page
from pagespider.infrastructure.browser_pool import BrowserPool
from pagespider.infrastructure.interceptor import CaptureSubscription, RequestInterceptor
from pagespider.models import DiscoveredRequest, SpiderState
from pagespider.orchestrator import CrawlContext
from pagespider.spider.base import Spider, SpiderStateError
from pagespider.utils.interaction import InteractionSimulator
from pagespider.utils.page_guards import install_beforeunload_guard, rewrite_anchor_targets
from pagespider.utils.url_utils import is_crawlable_url

logger = logging.getLogger(__name__)

LinkExtractor = Callable[[object], Awaitable[list[DiscoveredRequest]]]


class PageSpider(Spider):
    """
    Spider that renders a page in a real browser.

    Usage:
        async with BrowserPool(max_size=1) as pool:
            context = CollectingContext(url, CrawlerOption(page_timeout=30000))
            await PageSpider(pool).start(context)
    """

    spider_type = "page"

    def __init__(
        self,
        pool: BrowserPool,
        interceptor: Optional[RequestInterceptor] = None,
        simulator: Optional[InteractionSimulator] = None,
        tuning: Optional[SpiderTuning] = None,
        link_extractor: LinkExtractor = extract_requests_from_page,
    ):
        """
        Initialize the spider.

        Args:
            pool: Session pool to lease a browser context from
            interceptor: Request interceptor (default captures everything)
            simulator: Interaction simulator for the monkey phase
            tuning: Settle delay and navigation-interruption heuristics
            link_extractor: Async callable returning requests found in the final DOM
        """
        super().__init__()
        self.pool = pool
        self.interceptor = interceptor or RequestInterceptor()
        self.simulator = simulator or InteractionSimulator()
        self.tuning = tuning or SpiderTuning()
        self.link_extractor = link_extractor

        self.session = None
        self.page = None
        self.page_url: Optional[str] = None
        self.capture: Optional[CaptureSubscription] = None

        # Identity hashes already reported (or the page's own)
        self.existed_hashes: set[str] = set()

        # Where the page went when navigation interrupted the pipeline
        self._redirected_urls: list[str] = []
        self._skip_extraction = False
        self._timer: Optional[asyncio.TimerHandle] = None
        self._timeout_task: Optional[asyncio.Future] = None
        self._close_task: Optional[asyncio.Future] = None

    async def start(self, context: Optional[CrawlContext]) -> None:
        """
        Render the context's page and report what it surfaces.

        Never raises for page or browser misbehaviour; every path ends in
        finish().

        Args:
            context: Crawl context supplying target URL and options
        """
        if context is None:
            logger.error("Crawl context is not ready, page spider finishes immediately")
            await self.finish()
            return

        self.context = context
        self.page_url = context.page_url
        self._enter(SpiderState.NAVIGATING)

        try:
            await self.pool.use(self._render_in_session)
        except Exception as e:
            logger.error(f"Session lease failed for {self.page_url}: {e}")
            await self.finish()

    async def _render_in_session(self, session) -> None:
        """Lease callback: run the pipeline under the page-timeout timer."""
        self.session = session
        timeout_seconds = self.context.crawler_option.page_timeout / 1000.0
        grace_seconds = self.tuning.run_grace_ms / 1000.0

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(timeout_seconds, self._on_page_timeout)
        run_task = asyncio.ensure_future(self.run())

        try:
            done, _ = await asyncio.wait({run_task}, timeout=timeout_seconds + grace_seconds)
            if not done:
                logger.warning(f"Spider run ignored page timeout, cancelling: {self.page_url}")
                run_task.cancel()
                try:
                    await run_task
                except asyncio.CancelledError:
                    pass
            elif not run_task.cancelled() and run_task.exception() is not None:
                logger.error(f"Spider run failed for {self.page_url}: {run_task.exception()}")

            await self.finish()
        finally:
            self._timer.cancel()
            if not run_task.done():
                run_task.cancel()
            if self._close_task is not None:
                try:
                    await self._close_task
                except Exception:
                    pass
            # The lease ends with this callback
            self.session = None

    def _on_page_timeout(self) -> None:
        logger.warning(f"Page timeout reached, forcing finish: {self.page_url}")
        self._timeout_task = asyncio.ensure_future(self.finish())

    async def run(self) -> None:
        """Navigation and capture phase."""
        if self.session is None:
            logger.error(f"Spider session is not ready: {self.page_url}")
            return

        try:
            self.page = await self.session.new_page()
        except Exception as e:
            logger.error(f"Create entry page error for {self.page_url}: {e}")
            return

        if self.is_finished:
            # Forced finish happened while the page was being created
            await self._close_page()
            return

        option = self.context.crawler_option

        try:
            # Cookies set after navigation would miss the first request
            if option.cookies:
                await self.session.add_cookies(self._prepare_cookies(option.cookies))

            self.capture = await self.interceptor.install(self.session, self.page)

            self.existed_hashes.add(self.context.page_result.hash)

            response = await self.page.goto(
                self.page_url,
                timeout=self.tuning.navigation_timeout_ms(option.page_timeout),
                wait_until=NAVIGATION_WAIT_UNTIL,
            )

            if response is not None and response.status == NOT_FOUND_STATUS:
                logger.info(f"Page not found, skipping interaction: {self.page_url}")
                self._skip_extraction = True
                return

            await rewrite_anchor_targets(self.page)

            if not option.allow_redirect:
                await install_beforeunload_guard(self.page)

            await self._monkey_dance()
        except Exception as e:
            if self.tuning.is_navigation_interrupted(e):
                # The page went somewhere we could not observe; follow up next pass
                current_url = self.page.url
                logger.info(f"Navigation interrupted on {self.page_url}, queueing {current_url}")
                self._redirected_urls.append(current_url)
            else:
                logger.error(f"Spider error on {self.page_url}: {e}")
        finally:
            try:
                await self._parse()
            except Exception as e:
                logger.error(f"Failed to report results for {self.page_url}: {e}")

            await self.finish()

    async def _monkey_dance(self) -> None:
        """Interaction phase: both simulation passes, then a settling delay."""
        if self.page is None:
            raise SpiderStateError("Page spider has no page. Call start() first.")

        self._enter(SpiderState.INTERACTING)

        results = await asyncio.gather(
            self.simulator.monkey_click(self.page),
            self.simulator.gremlins(self.page),
            return_exceptions=True,
        )
        for name, result in zip(("monkey_click", "gremlins"), results):
            if isinstance(result, BaseException):
                logger.warning(f"Interaction pass {name} failed on {self.page_url}: {result}")

        await self.page.wait_for_timeout(self.tuning.settle_delay_ms)

    async def _parse(self) -> None:
        """Reporting phase: opened URLs, then intercepted requests, then DOM links."""
        if self.page is None:
            raise SpiderStateError("Page spider has no page. Call start() first.")

        if self.is_finished:
            logger.debug(f"Spider already finished, dropping results: {self.page_url}")
            return

        self._enter(SpiderState.REPORTING)

        current_url = self.page.url
        if is_crawlable_url(current_url) and current_url != self.page_url:
            logger.info(f"Page moved: {self.page_url} -> {current_url}")
            self.page_url = current_url

        opened_urls = self.capture.opened_urls if self.capture else []
        for url in opened_urls + self._redirected_urls:
            if not is_crawlable_url(url):
                continue
            self._report(DiscoveredRequest.from_url(url, DEFAULT_METHOD, DOCUMENT_RESOURCE_TYPE))

        captured = self.capture.requests if self.capture else []
        for request in captured:
            self._report(request)

        if self._skip_extraction:
            return

        # Last, so it sees the most complete DOM and only adds what is new
        for request in await self.link_extractor(self.page):
            self._report(request)

    def _report(self, request: DiscoveredRequest) -> bool:
        """Hand a request to the orchestrator unless it was seen already."""
        if self.is_finished:
            return False
        if request.hash in self.existed_hashes:
            return False
        self.existed_hashes.add(request.hash)
        self.context.add_request(self, request)
        return True

    async def finish(self) -> None:
        """
        Tear down once, signal the orchestrator every time.

        Cleanup failures are swallowed; they must never block the signal.
        """
        try:
            first_call = not self.is_finished
            self.state = SpiderState.FINISHED

            if first_call and self.page is not None:
                if self.capture is not None:
                    self.capture.revoke_all()

                if not self.page.is_closed():
                    self._close_task = asyncio.ensure_future(self._close_page())
        except Exception:
            pass  # Teardown is best effort
        finally:
            if self.context is not None:
                self.context.next()

    async def _close_page(self) -> None:
        try:
            await self.page.close()
        except Exception:
            pass

    def _enter(self, state: SpiderState) -> None:
        if not self.is_finished:
            self.state = state

    def _prepare_cookies(self, cookies: list[dict]) -> list[dict]:
        """Scope cookies without url/domain to the target page."""
        prepared = []
        for cookie in cookies:
            cookie = dict(cookie)
            if not cookie.get("url") and not cookie.get("domain"):
                cookie["url"] = self.page_url
            prepared.append(cookie)
        return prepared


async def spider_page(
    pool: BrowserPool,
    context: CrawlContext,
    **spider_kwargs,
) -> PageSpider:
    """
    Render one page with a fresh PageSpider.

    Args:
        pool: Started BrowserPool
        context: Crawl context for the page
        **spider_kwargs: Passed through to PageSpider

    Returns:
        The finished spider
    """
    spider = PageSpider(pool, **spider_kwargs)
    await spider.start(context)
    return spider
