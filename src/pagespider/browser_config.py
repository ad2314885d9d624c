"""
Browser and crawler configuration for Playwright-based page spidering.

This module provides validated Pydantic configuration models for the
browser pool and for the per-crawl options the orchestrator hands to each
spider, plus pre-configured instances for common use cases.
"""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from pagespider.constants import DEFAULT_BROWSER_TIMEOUT_MS, DEFAULT_POOL_SIZE


class BrowserConfig(BaseModel):
    """
    Configuration for the BrowserPool and the request interceptor.

    All fields are validated by Pydantic to ensure type safety and valid values.
    """

    headless: bool = Field(
        default=True,
        description="Run browser in headless mode (no visible UI)"
    )

    browser_type: Literal["chromium", "firefox", "webkit"] = Field(
        default="chromium",
        description="Browser engine to use for rendering"
    )

    timeout: int = Field(
        default=DEFAULT_BROWSER_TIMEOUT_MS,
        description="Default timeout for browser operations in milliseconds",
        ge=1000,
        le=300000
    )

    pool_size: int = Field(
        default=DEFAULT_POOL_SIZE,
        description="Number of browser contexts kept in the pool",
        ge=1,
        le=64
    )

    user_agent: Optional[str] = Field(
        default=None,
        description="Custom user agent for every context. None keeps the engine default."
    )

    ignore_https_errors: bool = Field(
        default=True,
        description="Render pages with invalid certificates instead of failing"
    )

    block_resources: List[str] = Field(
        default_factory=list,
        description="Resource types to abort after recording (e.g., 'image', 'font', 'media')"
    )

    launch_args: List[str] = Field(
        default_factory=list,
        description="Additional browser launch arguments (e.g., '--disable-http2')"
    )

    class Config:
        """Pydantic model configuration."""
        frozen = False
        validate_assignment = True


class CrawlerOption(BaseModel):
    """
    Per-crawl options owned by the orchestrator and read by every spider.

    Absence of an optional value means the feature is disabled: no cookies
    are applied, and redirects are not allowed.
    """

    cookies: Optional[List[Dict[str, Any]]] = Field(
        default=None,
        description="Cookies applied to the session before navigation (Playwright cookie dicts)"
    )

    page_timeout: int = Field(
        ...,
        description="Navigation timeout and forced-finish deadline in milliseconds",
        gt=0
    )

    allow_redirect: Optional[bool] = Field(
        default=None,
        description="Allow the page to navigate itself away. Falsy installs a beforeunload guard."
    )

    class Config:
        """Pydantic model configuration."""
        frozen = True


# --- Pre-configured Instances for Common Use Cases ---

FAST_CONFIG = BrowserConfig(
    headless=True,
    timeout=15000,
    block_resources=["image", "font", "media"],
)
"""
Fast configuration optimized for throughput.

Heavy resources are still reported as discovered requests but never
downloaded. Best for crawling many pages quickly.
"""

FULL_CONFIG = BrowserConfig(
    headless=False,
    timeout=30000,
    pool_size=1,
    block_resources=[],
)
"""
Full configuration for debugging.

Runs a single visible browser context and downloads every resource.
"""
