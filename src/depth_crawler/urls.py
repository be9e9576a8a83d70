"""
URL canonicalization against the crawl's base authority.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin, urlsplit

ALLOWED_SCHEMES: frozenset[str] = frozenset(("http", "https"))


class InvalidSeedURL(ValueError):
    """Raised when the seed URL cannot be parsed or has no hostname."""


@dataclass(frozen=True, slots=True)
class BaseAuthority:
    """Protocol, hostname and port of the seed URL."""
    protocol: str
    hostname: str
    port: Optional[int] = None

    @classmethod
    def from_url(cls, seed_url: str) -> "BaseAuthority":
        """Derive the authority from a seed URL, raising InvalidSeedURL if unusable."""
        try:
            parsed = urlsplit((seed_url or "").strip())
            port = parsed.port
        except ValueError as e:
            raise InvalidSeedURL(f"Invalid seed URL: {seed_url!r} ({e})") from e

        if not parsed.hostname:
            raise InvalidSeedURL(f"Invalid seed URL: {seed_url!r}")
        if parsed.scheme.lower() not in ALLOWED_SCHEMES:
            raise InvalidSeedURL(f"Unsupported scheme in seed URL: {seed_url!r}")

        return cls(protocol=f"{parsed.scheme.lower()}:", hostname=parsed.hostname, port=port)

    @property
    def root(self) -> str:
        return f"{self.protocol}//{_host(self.hostname)}{_port_suffix(self.port)}/"


def _port_suffix(port: Optional[int]) -> str:
    return f":{port}" if port is not None else ""


def _host(hostname: str) -> str:
    # IPv6 literals need their brackets back
    return f"[{hostname}]" if ":" in hostname else hostname


def canonicalize(candidate: Optional[str], authority: BaseAuthority) -> Optional[str]:
    """
    Resolve a candidate URL into the canonical form used as the dedup key.

    - Empty or missing candidates give None
    - Candidates without a hostname inherit protocol/hostname/port from the authority
    - Output is {protocol}//{hostname}{:port}{path}; a path of "" or "/" is omitted
    - ";params" stay part of the path; query strings and fragments are dropped
    - Non-http(s) schemes and malformed ports give None
    """
    if not candidate:
        return None
    candidate = candidate.strip()
    if not candidate:
        return None

    try:
        parsed = urlsplit(urljoin(authority.root, candidate))
        port = parsed.port
    except ValueError:
        return None

    if parsed.scheme.lower() not in ALLOWED_SCHEMES or not parsed.hostname:
        return None

    path = parsed.path if parsed.path not in ("", "/") else ""
    return f"{parsed.scheme.lower()}://{_host(parsed.hostname)}{_port_suffix(port)}{path}"


class Canonicalizer:
    """Binds canonicalize() to the authority of one crawl."""

    def __init__(self, authority: BaseAuthority):
        self.authority = authority

    def __call__(self, candidate: Optional[str]) -> Optional[str]:
        return canonicalize(candidate, self.authority)
