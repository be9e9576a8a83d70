"""Shared fixtures: an in-memory fetcher standing in for the network."""
from __future__ import annotations

from collections import Counter
from typing import Dict, List, Mapping, Optional, Tuple, Union

import pytest

from depth_crawler.fetch import FetchError, FetchOutcome, Response

Page = Union[str, bytes, Tuple[int, Union[str, bytes]], Tuple[int, Union[str, bytes], Mapping[str, str]]]


class FakeFetcher:
    """Serves canned pages by URL and remembers every fetch.

    A page is either a body (served with status 200) or a tuple of
    (status, body) / (status, body, headers). Unknown URLs give a FetchError.
    """

    def __init__(self, pages: Dict[str, Page], on_fetch=None):
        self.pages = pages
        self.calls: List[str] = []
        self.on_fetch = on_fetch

    def fetch(self, url: str) -> FetchOutcome:
        self.calls.append(url)
        if self.on_fetch is not None:
            self.on_fetch(url)

        page = self.pages.get(url)
        if page is None:
            return FetchError(url=url, reason="ConnectionError: no such host")

        headers: Optional[Mapping[str, str]] = None
        if isinstance(page, tuple):
            status, body, *rest = page
            headers = rest[0] if rest else None
        else:
            status, body = 200, page
        return Response(url=url, status=status, headers=headers or {}, data=body)

    def call_counts(self) -> Counter:
        return Counter(self.calls)


@pytest.fixture
def fake_fetcher():
    def make(pages: Dict[str, Page], on_fetch=None) -> FakeFetcher:
        return FakeFetcher(pages, on_fetch=on_fetch)
    return make
