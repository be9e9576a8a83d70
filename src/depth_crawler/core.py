"""
Core crawling logic and data structures.
"""
from __future__ import annotations

import logging
import threading
from collections import defaultdict, deque
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Deque, Dict, List, Optional, Set, Tuple

from depth_crawler.fetch import (
    DEFAULT_TIMEOUT_S,
    DEFAULT_USER_AGENT,
    FetchError,
    Fetcher,
    FetchOutcome,
    HttpFetcher,
    failure_reason,
)
from depth_crawler.html import Content, parse_document, query_attributes
from depth_crawler.urls import BaseAuthority, Canonicalizer

logger = logging.getLogger(__name__)


class ResourceKind(str, Enum):
    LINK = "link"    # followed, consumes depth budget
    ASSET = "asset"  # collected only


@dataclass(frozen=True, slots=True)
class ResourceRule:
    """Which elements/attributes on a page yield candidate resource URLs."""
    selector: str
    attribute: str
    kind: ResourceKind = ResourceKind.LINK


LINK_RULE = ResourceRule("a", "href", ResourceKind.LINK)

ASSET_RULES: Tuple[ResourceRule, ...] = (
    ResourceRule("img", "src", ResourceKind.ASSET),
    ResourceRule("script", "src", ResourceKind.ASSET),
    ResourceRule('link[rel="stylesheet"]', "href", ResourceKind.ASSET),
)


@dataclass(frozen=True, slots=True)
class CrawlConfig:
    """Crawl options, fixed for the lifetime of a Crawler."""
    max_depth: int = 10
    include_assets: bool = False
    timeout_s: float = DEFAULT_TIMEOUT_S
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {self.max_depth}")
        if self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be > 0, got {self.timeout_s}")


@dataclass(slots=True)
class DownloadRecord:
    """A successfully fetched resource."""
    resource: str
    size: int


class VisitedSet:
    """Canonical URLs already scheduled in this crawl. Only ever grows."""

    def __init__(self) -> None:
        self._urls: Set[str] = set()

    def admit(self, url: Optional[str]) -> bool:
        """Record url and return True if it is non-empty and unseen."""
        if not url or url in self._urls:
            return False
        self._urls.add(url)
        return True

    def __contains__(self, url: object) -> bool:
        return url in self._urls

    def __len__(self) -> int:
        return len(self._urls)


class DepthBudget:
    """
    Global budget of link hops for a whole crawl.

    Every link descent anywhere in the traversal spends from the same counter,
    so once it is exhausted no further links are followed on any page. This is
    a crawl-wide limit, not the depth of an individual path.
    """

    def __init__(self, limit: int):
        self.limit = limit
        self.spent = 0

    @property
    def exhausted(self) -> bool:
        return self.spent >= self.limit

    def consume(self) -> None:
        self.spent += 1

    def allows_descent(self) -> bool:
        # Inclusive: a page reached with the last unit of budget is still scanned
        return self.spent == 0 or self.spent <= self.limit


@dataclass(slots=True)
class CrawlSession:
    """All mutable state of one crawl run."""
    visited: VisitedSet
    budget: DepthBudget
    records: List[DownloadRecord] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)
    error_counts: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    seed_failure: Optional[str] = None

    @classmethod
    def start(cls, max_depth: int) -> "CrawlSession":
        return cls(visited=VisitedSet(), budget=DepthBudget(max_depth))

    @property
    def total_bytes(self) -> int:
        return sum(r.size for r in self.records)

    def record_download(self, url: str, size: int) -> None:
        self.records.append(DownloadRecord(resource=url, size=size))

    def record_failure(self, url: str, outcome: FetchOutcome) -> None:
        """Record an unreachable resource by error category."""
        self.failures[url] = failure_reason(outcome)
        if isinstance(outcome, FetchError):
            self.error_counts["connection_error"] += 1
        else:
            self.error_counts[str(outcome.status)] += 1


@dataclass(slots=True)
class _RuleScan:
    """Pending candidates of one rule on one page."""
    rule: ResourceRule
    candidates: List[Optional[str]]
    position: int = 0

    def done(self) -> bool:
        return self.position >= len(self.candidates)

    def next_candidate(self) -> Optional[str]:
        value = self.candidates[self.position]
        self.position += 1
        return value


@dataclass(slots=True)
class PageFrame:
    """A page on the work stack with the budget spent on arrival and its unvisited candidates."""
    url: str
    depth: int
    scans: Deque[_RuleScan]


class Crawler:
    """
    Depth-bounded crawler rooted at a seed URL.

    Pages are scanned depth-first: each newly admitted link is fetched and its
    own page fully processed before the next sibling is looked at. Assets
    (when enabled) are fetched and recorded but never scanned.
    """

    def __init__(
        self,
        seed_url: str,
        config: Optional[CrawlConfig] = None,
        fetcher: Optional[Fetcher] = None,
        **overrides,
    ):
        self.authority = BaseAuthority.from_url(seed_url)
        self.seed_url = seed_url.strip()

        config = config or CrawlConfig()
        self.config = replace(config, **overrides) if overrides else config

        # A fetcher created here is owned by the crawler and closed with it
        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or HttpFetcher(
            timeout_s=self.config.timeout_s,
            user_agent=self.config.user_agent,
        )
        self.canonicalize = Canonicalizer(self.authority)

    @property
    def rules(self) -> Tuple[ResourceRule, ...]:
        """Rules applied to every page, assets before links."""
        if self.config.include_assets:
            return ASSET_RULES + (LINK_RULE,)
        return (LINK_RULE,)

    def close(self) -> None:
        if self._owns_fetcher:
            self.fetcher.close()

    def __enter__(self) -> "Crawler":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def run(self, cancel: Optional[threading.Event] = None) -> List[DownloadRecord]:
        """Crawl from the seed and return the download records in fetch order."""
        return self.crawl(cancel).records

    def crawl(self, cancel: Optional[threading.Event] = None) -> CrawlSession:
        """Crawl from the seed and return the full session, including failures."""
        session = CrawlSession.start(self.config.max_depth)

        outcome = self.fetcher.fetch(self.seed_url)
        if not outcome.ok:
            session.seed_failure = failure_reason(outcome)
            session.record_failure(self.seed_url, outcome)
            logger.warning("Seed %s could not be fetched: %s", self.seed_url, session.seed_failure)
            return session

        logger.info("Crawling from %s (max depth %d)", self.seed_url, self.config.max_depth)
        self.scan_page(outcome.data, session, cancel)
        return session

    def scan_page(
        self,
        content: Content,
        session: Optional[CrawlSession] = None,
        cancel: Optional[threading.Event] = None,
    ) -> CrawlSession:
        """Process everything reachable from content within the depth budget."""
        if session is None:
            session = CrawlSession.start(self.config.max_depth)

        stack: List[PageFrame] = [self._frame(self.seed_url, content, session.budget.spent)]
        while stack:
            if cancel is not None and cancel.is_set():
                logger.info("Crawl cancelled with %d page(s) still open", len(stack))
                break

            frame = stack[-1]
            if not frame.scans:
                logger.debug("Finished %s (reached at depth %d)", stack.pop().url, frame.depth)
                continue

            scan = frame.scans[0]
            if scan.done():
                frame.scans.popleft()
                continue

            if scan.rule.kind is ResourceKind.LINK and session.budget.exhausted:
                logger.debug("Depth budget exhausted, dropping remaining links on %s", frame.url)
                frame.scans.popleft()
                continue

            child = self._visit(scan.next_candidate(), scan.rule, session)
            if child is not None:
                stack.append(child)

        return session

    def _frame(self, url: str, content: Content, depth: int) -> PageFrame:
        soup = parse_document(content)
        scans = deque(
            _RuleScan(rule, query_attributes(soup, rule.selector, rule.attribute))
            for rule in self.rules
        )
        return PageFrame(url=url, depth=depth, scans=scans)

    def _visit(
        self,
        raw: Optional[str],
        rule: ResourceRule,
        session: CrawlSession,
    ) -> Optional[PageFrame]:
        """Fetch one candidate; return a frame to descend into, if any."""
        # Self-links to the root are never followed
        if raw == "/":
            return None

        url = self.canonicalize(raw)
        if not session.visited.admit(url):
            return None

        is_link = rule.kind is ResourceKind.LINK
        if is_link:
            session.budget.consume()

        outcome = self.fetcher.fetch(url)
        if not outcome.ok:
            session.record_failure(url, outcome)
            logger.debug("Skipping %s: %s", url, failure_reason(outcome))
            return None

        session.record_download(url, outcome.size)
        logger.info("Fetched %s %s (%d bytes)", rule.kind.value, url, outcome.size)

        if is_link and session.budget.allows_descent():
            return self._frame(url, outcome.data, session.budget.spent)
        return None


def crawl(
    seed_url: str,
    max_depth: int = 10,
    include_assets: bool = False,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    user_agent: str = DEFAULT_USER_AGENT,
    cancel: Optional[threading.Event] = None,
) -> CrawlSession:
    """
    Crawl from seed_url and return the finished session.

    Args:
        seed_url: Absolute http(s) URL to start from.
        max_depth: Global budget of link hops.
        include_assets: Also fetch images, scripts and stylesheets.
        timeout_s: Per-request timeout in seconds.
        user_agent: User-Agent header to use for requests.
        cancel: Optional event; when set the crawl stops before its next fetch.

    Raises:
        InvalidSeedURL: If seed_url has no usable hostname.
    """
    config = CrawlConfig(
        max_depth=max_depth,
        include_assets=include_assets,
        timeout_s=timeout_s,
        user_agent=user_agent,
    )
    with Crawler(seed_url, config=config) as crawler:
        return crawler.crawl(cancel)
