"""
Depth-bounded web crawler that follows links (and optionally collects page
assets) from a seed URL, recording each fetched resource and its size.
"""
from depth_crawler.core import (
    ASSET_RULES,
    LINK_RULE,
    CrawlConfig,
    Crawler,
    CrawlSession,
    DepthBudget,
    DownloadRecord,
    ResourceKind,
    ResourceRule,
    VisitedSet,
    crawl,
)
from depth_crawler.fetch import FetchError, HttpFetcher, Response
from depth_crawler.urls import BaseAuthority, InvalidSeedURL, canonicalize

__version__ = "1.0.0"
__all__ = [
    "ASSET_RULES",
    "LINK_RULE",
    "BaseAuthority",
    "CrawlConfig",
    "CrawlSession",
    "Crawler",
    "DepthBudget",
    "DownloadRecord",
    "FetchError",
    "HttpFetcher",
    "InvalidSeedURL",
    "ResourceKind",
    "ResourceRule",
    "Response",
    "VisitedSet",
    "canonicalize",
    "crawl",
]
