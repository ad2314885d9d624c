"""Static link extraction from a rendered page's DOM."""

import logging
import re
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from pagespider.constants import DEFAULT_METHOD, DOCUMENT_RESOURCE_TYPE
from pagespider.models import DiscoveredRequest
from pagespider.utils.url_utils import is_crawlable_url

logger = logging.getLogger(__name__)

# (tag, attribute, resource type)
SOURCE_ATTRIBUTES = (
    ("a", "href", DOCUMENT_RESOURCE_TYPE),
    ("area", "href", DOCUMENT_RESOURCE_TYPE),
    ("iframe", "src", DOCUMENT_RESOURCE_TYPE),
    ("frame", "src", DOCUMENT_RESOURCE_TYPE),
    ("script", "src", "script"),
    ("img", "src", "image"),
    ("video", "src", "media"),
    ("audio", "src", "media"),
    ("source", "src", "media"),
    ("embed", "src", "other"),
)

# rel values of <link> mapped to resource types; anything else is "other"
LINK_REL_TYPES = {
    "stylesheet": "stylesheet",
    "icon": "image",
    "shortcut icon": "image",
    "apple-touch-icon": "image",
    "alternate": DOCUMENT_RESOURCE_TYPE,
    "next": DOCUMENT_RESOURCE_TYPE,
    "prev": DOCUMENT_RESOURCE_TYPE,
    "canonical": DOCUMENT_RESOURCE_TYPE,
    "manifest": "manifest",
}

META_REFRESH_URL = re.compile(r"url\s*=\s*['\"]?([^'\";]+)", re.IGNORECASE)


class _Collector:
    """Ordered, hash-deduplicated accumulator."""

    def __init__(self, base_url: str):
        self.base_url = base_url
        self._seen: set[str] = set()
        self.results: list[DiscoveredRequest] = []

    def add(self, raw_url: Optional[str], resource_type: str, method: str = DEFAULT_METHOD) -> None:
        if not raw_url:
            return
        raw_url = raw_url.strip()
        if not raw_url or raw_url.startswith("#"):
            return

        absolute = urljoin(self.base_url, raw_url)
        if not is_crawlable_url(absolute):
            return

        request = DiscoveredRequest.from_url(absolute, method, resource_type)
        if request.hash in self._seen:
            return
        self._seen.add(request.hash)
        self.results.append(request)


def extract_requests_from_html(html: str, base_url: str) -> list[DiscoveredRequest]:
    """Extract navigable resources from an HTML document.

    Args:
        html: Rendered HTML
        base_url: URL the document was rendered at

    Returns:
        Requests in document order, one per identity hash
    """
    soup = BeautifulSoup(html or "", "html.parser")

    base_tag = soup.find("base", href=True)
    if base_tag:
        base_url = urljoin(base_url, base_tag["href"])

    collector = _Collector(base_url)

    for tag_name, attribute, resource_type in SOURCE_ATTRIBUTES:
        for tag in soup.find_all(tag_name):
            collector.add(tag.get(attribute), resource_type)

    for link in soup.find_all("link", href=True):
        rel = " ".join(link.get("rel") or []).lower()
        resource_type = link.get("as") or LINK_REL_TYPES.get(rel, "other")
        collector.add(link["href"], resource_type)

    for form in soup.find_all("form"):
        method = (form.get("method") or DEFAULT_METHOD).upper()
        action = form.get("action")
        collector.add(action if action else base_url, DOCUMENT_RESOURCE_TYPE, method)

    for meta in soup.find_all("meta"):
        if (meta.get("http-equiv") or "").lower() != "refresh":
            continue
        match = META_REFRESH_URL.search(meta.get("content") or "")
        if match:
            collector.add(match.group(1), DOCUMENT_RESOURCE_TYPE)

    return collector.results


async def extract_requests_from_page(page) -> list[DiscoveredRequest]:
    """Extract navigable resources from a live page's current DOM.

    Args:
        page: Playwright page object

    Returns:
        Requests discovered by static inspection
    """
    html = await page.content()
    requests = extract_requests_from_html(html, page.url)
    logger.debug(f"Extracted {len(requests)} requests from {page.url}")
    return requests
