# src/pagespider/constants.py
"""Centralized constants for the page spider.

This module contains magic numbers and default values that are used
across multiple modules. For user-configurable tuning, see config.py
and SpiderTuning.
"""

# =============================================================================
# Spider Lifecycle Constants
# =============================================================================

# Delay after interaction so deferred XHRs and DOM mutations can surface
DEFAULT_SETTLE_DELAY_MS = 5000

# Substrings (case-insensitive) identifying "page navigated away mid-flight" errors
DEFAULT_NAVIGATION_INTERRUPTED_MARKERS = ("navigation",)

# Extra time a hung run() gets after the page timeout before it is cancelled
DEFAULT_RUN_GRACE_MS = 2000

# Navigation times out this much before the forced-finish timer fires, so a
# slow page still reports what it captured
DEFAULT_NAVIGATION_MARGIN_MS = 1000

# Navigation is considered done once the DOM is parsed
NAVIGATION_WAIT_UNTIL = "domcontentloaded"

# Response status that short-circuits interaction and link extraction
NOT_FOUND_STATUS = 404


# =============================================================================
# Request Identity Constants
# =============================================================================

DEFAULT_METHOD = "GET"

DOCUMENT_RESOURCE_TYPE = "document"

# Schemes that never produce a crawlable request
IGNORED_URL_SCHEMES = ("data", "blob", "about", "javascript", "mailto", "tel", "chrome", "file")

# Ports dropped during URL normalization
DEFAULT_PORTS = {"http": 80, "https": 443}


# =============================================================================
# Interaction Constants
# =============================================================================

# Selectors considered "clickable" by the directed click pass
CLICKABLE_SELECTORS = (
    "button",
    "[onclick]",
    "[role='button']",
    "a[href^='javascript']",
    "input[type='submit']",
    "input[type='button']",
)

# Upper bound on elements clicked by the directed click pass
MAX_MONKEY_CLICKS = 20

# Upper bound on randomized events injected by the fuzzing pass
MAX_GREMLIN_EVENTS = 40

# Wall-clock budget (seconds) for each interaction pass
INTERACTION_TIME_BUDGET_SECONDS = 10.0

# Per-element action timeout (ms)
ELEMENT_ACTION_TIMEOUT_MS = 1000

# Keys pressed by the fuzzing pass
GREMLIN_KEYS = ("Tab", "Enter", "ArrowDown", "ArrowUp", "Escape", "PageDown", "Space")


# =============================================================================
# Browser Pool Constants
# =============================================================================

DEFAULT_POOL_SIZE = 4

DEFAULT_BROWSER_TIMEOUT_MS = 30000

# Maximum requests before recycling a context
MAX_REQUESTS_PER_CONTEXT = 100

# Error rate threshold for recycling
ERROR_RATE_RECYCLE_THRESHOLD = 0.3
