"""Command-line interface for rendering a single page."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from pagespider.browser_config import BrowserConfig, CrawlerOption
from pagespider.config import SpiderTuning, settings
from pagespider.infrastructure.browser_pool import BrowserPool
from pagespider.infrastructure.interceptor import RequestInterceptor
from pagespider.logging_config import get_logger, setup_logging
from pagespider.models import DiscoveredRequest
from pagespider.orchestrator import CollectingContext
from pagespider.spider.page_spider import spider_page
from pagespider.utils.interaction import InteractionConfig, InteractionSimulator

logger = get_logger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Render one page in a browser and print every request it surfaces"
    )
    parser.add_argument("url", help="URL to render")
    parser.add_argument(
        "--timeout", type=int, default=30000,
        help="Page timeout in milliseconds (default: 30000)"
    )
    parser.add_argument(
        "--cookies", type=str, metavar="PATH",
        help="JSON file with a list of cookies to apply before navigation"
    )
    parser.add_argument(
        "--allow-redirect", action="store_true",
        help="Let the page navigate itself away (no beforeunload guard)"
    )
    parser.add_argument(
        "--headed", action="store_true",
        help="Show the browser window"
    )
    parser.add_argument(
        "--browser", choices=["chromium", "firefox", "webkit"], default=settings.BROWSER_TYPE,
        help="Browser engine (default: chromium)"
    )
    parser.add_argument(
        "--block", nargs="*", default=[], metavar="TYPE",
        help="Resource types to record but not download (e.g. image font media)"
    )
    parser.add_argument(
        "--settle-delay", type=int, default=None, metavar="MS",
        help="Pause after interaction in milliseconds"
    )
    parser.add_argument(
        "--tuning-file", type=str, metavar="PATH",
        help="JSON file with spider tuning values"
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Seed for reproducible interaction fuzzing"
    )
    parser.add_argument(
        "--format", choices=["jsonl", "json"], default="jsonl",
        help="Output format (default: jsonl)"
    )
    parser.add_argument(
        "--log-level", default=settings.LOG_LEVEL,
        help="Log level (default: INFO)"
    )
    parser.add_argument(
        "--log-file", default=settings.LOG_FILE,
        help="Optional log file path"
    )
    return parser.parse_args(argv)


def load_cookies(path: str) -> list[dict]:
    """Load a cookie list from a JSON file.

    Accepts either a bare list or an object with a "cookies" key.
    """
    with open(Path(path), 'r') as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("cookies", [])
    if not isinstance(data, list):
        raise ValueError(f"Cookie file {path} must contain a list of cookies")
    return data


def build_tuning(args: argparse.Namespace) -> SpiderTuning:
    tuning = SpiderTuning.from_file(args.tuning_file) if args.tuning_file else SpiderTuning.from_env()
    if args.settle_delay is not None:
        tuning.settle_delay_ms = args.settle_delay
    return tuning


async def render(args: argparse.Namespace) -> list[DiscoveredRequest]:
    """Render the page described by parsed arguments.

    Returns:
        Discovered requests in report order
    """
    browser_config = BrowserConfig(
        headless=settings.HEADLESS and not args.headed,
        browser_type=args.browser,
        pool_size=1,
        user_agent=settings.USER_AGENT,
        block_resources=args.block,
    )
    crawler_option = CrawlerOption(
        cookies=load_cookies(args.cookies) if args.cookies else None,
        page_timeout=args.timeout,
        allow_redirect=args.allow_redirect or None,
    )
    context = CollectingContext(args.url, crawler_option)

    async with BrowserPool.from_config(browser_config) as pool:
        await spider_page(
            pool,
            context,
            interceptor=RequestInterceptor(block_resources=browser_config.block_resources),
            simulator=InteractionSimulator(InteractionConfig(seed=args.seed)),
            tuning=build_tuning(args),
        )

    logger.info(f"Discovered {len(context.requests)} requests from {args.url}")
    return context.requests


def print_requests(requests: list[DiscoveredRequest], output_format: str) -> None:
    if output_format == "json":
        print(json.dumps([r.to_dict() for r in requests], indent=2))
        return
    for request in requests:
        print(json.dumps(request.to_dict()))


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the pagespider console script."""
    args = parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    try:
        requests = asyncio.run(render(args))
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130
    except Exception as e:
        logger.error(f"Rendering failed: {e}")
        return 1

    print_requests(requests, args.format)
    return 0


if __name__ == "__main__":
    sys.exit(main())
