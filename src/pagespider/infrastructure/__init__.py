"""
Infrastructure Package.

Provides the browser session pool and per-page request interception.
"""

from .browser_pool import (
    BrowserPool,
    BrowserHealth,
    PoolStatus,
    ContextMetrics,
)
from .interceptor import (
    RequestInterceptor,
    CaptureSubscription,
    ListenerHandle,
)

__all__ = [
    # Browser Pool
    "BrowserPool",
    "BrowserHealth",
    "PoolStatus",
    "ContextMetrics",
    # Request Interception
    "RequestInterceptor",
    "CaptureSubscription",
    "ListenerHandle",
]
