"""
Command-line interface for the crawler.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlsplit

from depth_crawler.core import CrawlSession, crawl
from depth_crawler.fetch import DEFAULT_TIMEOUT_S, DEFAULT_USER_AGENT
from depth_crawler.urls import InvalidSeedURL


def print_summary(session: CrawlSession) -> None:
    """Print crawl summary to stderr."""
    sys.stderr.write("=" * 50 + "\n")
    sys.stderr.write("CRAWL SUMMARY\n")
    sys.stderr.write("=" * 50 + "\n\n")

    if session.seed_failure:
        sys.stderr.write(f"Seed could not be fetched: {session.seed_failure}\n\n")

    sys.stderr.write(f"Resources downloaded:   {len(session.records)}\n")
    sys.stderr.write(f"Total bytes:            {session.total_bytes}\n")
    sys.stderr.write(f"Link hops taken:        {session.budget.spent}/{session.budget.limit}\n\n")

    if session.error_counts:
        sys.stderr.write("Errors by type:\n")
        for error_type, count in sorted(session.error_counts.items()):
            label = "Connection errors" if error_type == "connection_error" else f"HTTP {error_type}"
            sys.stderr.write(f"  {label}: {count}\n")
    else:
        sys.stderr.write("No errors encountered.\n")

    sys.stderr.write("\n")


def generate_output_path(seed_url: str, directory: Path = Path("crawls")) -> Path:
    """Default results file for a crawl, named after the seed host and the current time."""
    host = (urlsplit(seed_url).hostname or "unknown").replace(".", "_")
    directory.mkdir(parents=True, exist_ok=True)
    return directory / f"{host}_{datetime.now():%Y%m%d_%H%M%S}.json"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Crawl links (and optionally assets) from a seed URL up to a depth budget."
    )
    parser.add_argument("seed_url", help="Seed URL (e.g. https://example.com)")
    parser.add_argument("--max-depth", type=int, default=10, help="Link hops allowed for the whole crawl (default: 10)")
    parser.add_argument("--include-assets", action="store_true", help="Also download images, scripts and stylesheets")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT_S, help="Request timeout in seconds (default: 15)")
    parser.add_argument("--user-agent", default=DEFAULT_USER_AGENT, help="User-Agent header")
    parser.add_argument("--out", help="Output file path, or '-' for stdout (default: auto-generated in crawls/)")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON")
    parser.add_argument("--verbose", action="store_true", help="Show progress and summary")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the crawler CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.max_depth < 0:
        parser.error("--max-depth must be >= 0")
    if args.timeout <= 0:
        parser.error("--timeout must be > 0")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        session = crawl(
            seed_url=args.seed_url,
            max_depth=args.max_depth,
            include_assets=args.include_assets,
            timeout_s=args.timeout,
            user_agent=args.user_agent,
        )
    except InvalidSeedURL as e:
        sys.stderr.write(f"{e}\n")
        return 2

    if args.verbose:
        print_summary(session)

    payload = [asdict(r) for r in session.records]
    json_text = json.dumps(payload, ensure_ascii=False, indent=2 if args.pretty else None)

    if args.out == "-":
        print(json_text)
    else:
        output_path = Path(args.out) if args.out else generate_output_path(args.seed_url)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json_text, encoding="utf-8")
        if args.verbose:
            sys.stderr.write(f"Results written to: {output_path}\n")

    return 0 if session.seed_failure is None else 1


if __name__ == "__main__":
    raise SystemExit(main())
