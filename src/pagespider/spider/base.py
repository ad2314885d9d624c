"""Spider contract shared by every spider variant."""

from abc import ABC, abstractmethod
from typing import Optional

from pagespider.models import SpiderState
from pagespider.orchestrator import CrawlContext


class SpiderStateError(RuntimeError):
    """A spider phase was invoked out of order (caller bug, not a flaky browser)."""


class Spider(ABC):
    """
    Abstract base class for spiders.

    A spider handles exactly one target per instance. Variants share this
    capability set, not mutable state: start() receives the crawl context,
    run() is the variant's internal pipeline and finish() tears down and
    signals the orchestrator.
    """

    def __init__(self):
        self.context: Optional[CrawlContext] = None
        self.state = SpiderState.UNINITIALIZED

    @property
    @abstractmethod
    def spider_type(self) -> str:
        """Short name of the spider variant."""
        pass

    @property
    def is_finished(self) -> bool:
        return self.state is SpiderState.FINISHED

    @abstractmethod
    async def start(self, context: Optional[CrawlContext]) -> None:
        """Process the context's target and eventually call finish()."""
        pass

    @abstractmethod
    async def run(self) -> None:
        """Variant-specific pipeline. Not for callers outside start()."""
        pass

    @abstractmethod
    async def finish(self) -> None:
        """Tear down (once) and signal the orchestrator (every call)."""
        pass
