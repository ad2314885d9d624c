"""Page-rendering spider: render one page, capture what it requests, report new crawl targets."""

__version__ = "0.1.0"

from pagespider.models import DiscoveredRequest, SpiderState
from pagespider.browser_config import BrowserConfig, CrawlerOption
from pagespider.config import SpiderTuning, settings
from pagespider.orchestrator import CrawlContext, CollectingContext
from pagespider.extractor import extract_requests_from_html, extract_requests_from_page

from pagespider.infrastructure import (
    BrowserPool,
    BrowserHealth,
    PoolStatus,
    ContextMetrics,
    RequestInterceptor,
    CaptureSubscription,
    ListenerHandle,
)

from pagespider.spider import (
    Spider,
    SpiderStateError,
    PageSpider,
    spider_page,
)

from pagespider.utils import (
    InteractionSimulator,
    InteractionConfig,
    normalize_url,
    compute_request_hash,
)

__all__ = [
    # Core
    "PageSpider",
    "Spider",
    "SpiderStateError",
    "spider_page",
    # Models
    "DiscoveredRequest",
    "SpiderState",
    # Configuration
    "BrowserConfig",
    "CrawlerOption",
    "SpiderTuning",
    "settings",
    # Orchestrator contract
    "CrawlContext",
    "CollectingContext",
    # Link extraction
    "extract_requests_from_html",
    "extract_requests_from_page",
    # Infrastructure
    "BrowserPool",
    "BrowserHealth",
    "PoolStatus",
    "ContextMetrics",
    "RequestInterceptor",
    "CaptureSubscription",
    "ListenerHandle",
    # Utils
    "InteractionSimulator",
    "InteractionConfig",
    "normalize_url",
    "compute_request_hash",
]
