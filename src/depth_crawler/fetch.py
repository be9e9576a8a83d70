"""
HTTP fetching. Fetchers never raise on network failure; they return a
Response or a FetchError.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional, Protocol, Union

import requests
from requests.structures import CaseInsensitiveDict

DEFAULT_USER_AGENT = "DepthCrawler/1.0"
DEFAULT_TIMEOUT_S = 15.0

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Response:
    """A completed HTTP exchange, successful or not."""
    url: str
    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    data: bytes = b""

    def __post_init__(self) -> None:
        self.headers = CaseInsensitiveDict(self.headers)
        if isinstance(self.data, str):
            self.data = self.data.encode("utf-8")

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def size(self) -> int:
        """Numeric Content-Length if present, else the body length, else 0."""
        content_length = (self.headers.get("content-length") or "").strip()
        if content_length.isdigit() and int(content_length):
            return int(content_length)
        return len(self.data or b"")


@dataclass(frozen=True, slots=True)
class FetchError:
    """A fetch that produced no response (DNS, connection, timeout, ...)."""
    url: str
    reason: str

    ok = False


FetchOutcome = Union[Response, FetchError]


class Fetcher(Protocol):
    def fetch(self, url: str) -> FetchOutcome:
        ...


def failure_reason(outcome: FetchOutcome) -> str:
    """Short description of why an outcome does not count as a success."""
    if isinstance(outcome, FetchError):
        return outcome.reason
    return f"HTTP {outcome.status}"


class HttpFetcher:
    """Fetcher backed by a requests.Session with a per-request timeout."""

    def __init__(
        self,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        user_agent: str = DEFAULT_USER_AGENT,
        session: Optional[requests.Session] = None,
    ):
        self.timeout_s = timeout_s
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = user_agent

    def fetch(self, url: str) -> FetchOutcome:
        try:
            resp = self.session.get(url, timeout=self.timeout_s, allow_redirects=True)
        except requests.RequestException as e:
            logger.debug("Fetch failed for %s: %s", url, e)
            return FetchError(url=url, reason=f"{type(e).__name__}: {e}")

        return Response(
            url=url,
            status=resp.status_code,
            headers=dict(resp.headers),
            data=resp.content,
        )

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpFetcher":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
