"""
Request interception for a single rendered page.

install() attaches listeners to a leased session and its page and returns a
CaptureSubscription. The subscription keeps filling while the page renders,
so callers read it when they report, not when they install.

Captured:
- every outbound request of the page (method, URL, resource type)
- URLs of pages/tabs the rendering opens inside the session (those pages
  are closed once their URL is known)

Dialogs raised by the page are dismissed, which also answers a
beforeunload prompt with "stay on this page".
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from pagespider.constants import ELEMENT_ACTION_TIMEOUT_MS
from pagespider.models import DiscoveredRequest
from pagespider.utils.url_utils import is_crawlable_url

logger = logging.getLogger(__name__)

# How long an opened tab gets to commit its first navigation (ms)
OPENED_PAGE_COMMIT_TIMEOUT_MS = 5 * ELEMENT_ACTION_TIMEOUT_MS


@dataclass
class ListenerHandle:
    """Revocation token for one event subscription."""

    emitter: Any
    event: str
    callback: Callable[..., Any]
    revoked: bool = field(default=False, init=False)

    def revoke(self) -> bool:
        """Remove the listener. Only the first call has an effect.

        Returns:
            True if this call performed the revocation
        """
        if self.revoked:
            return False
        self.revoked = True
        try:
            self.emitter.remove_listener(self.event, self.callback)
        except Exception as e:
            logger.debug(f"Failed to remove '{self.event}' listener: {e}")
        return True


class CaptureSubscription:
    """Live view of everything captured for one page."""

    def __init__(self):
        self._requests: list[DiscoveredRequest] = []
        self._opened_urls: list[str] = []
        self._listeners: list[ListenerHandle] = []
        self._tasks: set[asyncio.Task] = set()

    @property
    def requests(self) -> list[DiscoveredRequest]:
        """Requests captured so far, in capture order."""
        return list(self._requests)

    @property
    def opened_urls(self) -> list[str]:
        """URLs of pages opened so far, in discovery order."""
        return list(self._opened_urls)

    @property
    def listeners(self) -> list[ListenerHandle]:
        return list(self._listeners)

    def record_request(self, request: DiscoveredRequest) -> None:
        self._requests.append(request)

    def add_opened_url(self, url: str) -> None:
        """Queue a URL as if the page had opened it in a new tab."""
        if is_crawlable_url(url):
            self._opened_urls.append(url)

    def add_listener(self, emitter: Any, event: str, callback: Callable[..., Any]) -> ListenerHandle:
        """Subscribe a callback and keep its revocation handle."""
        emitter.on(event, callback)
        handle = ListenerHandle(emitter, event, callback)
        self._listeners.append(handle)
        return handle

    def track(self, coro) -> None:
        """Run a background coroutine owned by this subscription."""
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def revoke_all(self) -> int:
        """Revoke every listener and cancel pending background work.

        Returns:
            Number of listeners revoked by this call
        """
        revoked = 0
        for handle in self._listeners:
            if handle.revoke():
                revoked += 1
        for task in list(self._tasks):
            task.cancel()
        return revoked


class RequestInterceptor:
    """
    Installs request and new-page capture on a session/page pair.

    Usage:
        interceptor = RequestInterceptor(block_resources=["image"])
        capture = await interceptor.install(session, page)
        await page.goto(url)
        for request in capture.requests:
            ...
        capture.revoke_all()
    """

    def __init__(
        self,
        block_resources: Optional[Iterable[str]] = None,
        close_opened_pages: bool = True,
    ):
        """
        Initialize the interceptor.

        Args:
            block_resources: Resource types to abort after recording
            close_opened_pages: Close tabs opened by the page once their URL is known
        """
        self.block_resources = frozenset(block_resources or ())
        self.close_opened_pages = close_opened_pages

    async def install(self, session, page) -> CaptureSubscription:
        """
        Attach capture listeners.

        Args:
            session: Leased Playwright BrowserContext
            page: Page that is about to be rendered

        Returns:
            CaptureSubscription that fills while the page renders
        """
        capture = CaptureSubscription()

        def on_request(request):
            try:
                url = request.url
                if not is_crawlable_url(url):
                    return
                capture.record_request(
                    DiscoveredRequest.from_url(url, request.method, request.resource_type)
                )
            except Exception as e:
                logger.debug(f"Ignoring unreadable request: {e}")

        def on_page(new_page):
            if new_page is page:
                return
            capture.track(self._capture_opened_page(new_page, capture))

        def on_dialog(dialog):
            capture.track(self._dismiss_dialog(dialog))

        capture.add_listener(page, "request", on_request)
        capture.add_listener(session, "page", on_page)
        capture.add_listener(page, "dialog", on_dialog)

        if self.block_resources:
            await page.route("**/*", self._route_handler)

        return capture

    async def _route_handler(self, route) -> None:
        """Abort blocked resource types; the request event already recorded them."""
        try:
            if route.request.resource_type in self.block_resources:
                await route.abort()
            else:
                await route.continue_()
        except Exception as e:
            logger.debug(f"Route handling failed: {e}")

    async def _capture_opened_page(self, new_page, capture: CaptureSubscription) -> None:
        """Record the URL a newly opened page navigates to, then close it."""
        try:
            if new_page.url in ("", "about:blank"):
                try:
                    await new_page.wait_for_load_state(
                        "domcontentloaded", timeout=OPENED_PAGE_COMMIT_TIMEOUT_MS
                    )
                except Exception:
                    pass  # Still read whatever URL it reached
            url = new_page.url
            if is_crawlable_url(url):
                capture.add_opened_url(url)
                logger.debug(f"Captured opened page: {url}")
        except Exception as e:
            logger.debug(f"Could not read opened page: {e}")
        finally:
            if self.close_opened_pages:
                try:
                    await new_page.close()
                except Exception:
                    pass

    @staticmethod
    async def _dismiss_dialog(dialog) -> None:
        try:
            logger.debug(f"Dismissing {dialog.type} dialog")
            await dialog.dismiss()
        except Exception as e:
            logger.debug(f"Dialog dismiss failed: {e}")
