"""
HTML attribute queries over fetched page content.
"""
from __future__ import annotations

from typing import List, Optional, Union

from bs4 import BeautifulSoup

Content = Union[str, bytes]


def parse_document(content: Content) -> BeautifulSoup:
    """Parse page content once so several selectors can be run against it."""
    return BeautifulSoup(content or "", "lxml")


def query_attributes(
    content: Union[Content, BeautifulSoup],
    selector: str,
    attribute: str,
) -> List[Optional[str]]:
    """Return the attribute value of every element matching selector, in document order.

    Elements lacking the attribute yield None.
    """
    soup = content if isinstance(content, BeautifulSoup) else parse_document(content)
    values: List[Optional[str]] = []
    for element in soup.select(selector):
        value = element.get(attribute)
        # Multi-valued attributes (rel, class) come back as lists
        if isinstance(value, list):
            value = " ".join(value)
        values.append(value)
    return values
