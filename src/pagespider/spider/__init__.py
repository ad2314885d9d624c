"""Spiders: one instance renders and reports exactly one target."""

from .base import Spider, SpiderStateError
from .page_spider import PageSpider, spider_page

__all__ = [
    "Spider",
    "SpiderStateError",
    "PageSpider",
    "spider_page",
]
