"""抓取、解析与清洗模块."""

from feedstash.fetcher.errors import FetchError, ParseError, SanitizeError
from feedstash.fetcher.fetch import (
    PARSERS,
    FeedFetcher,
    Fetcher,
    FetchParams,
    FetchResult,
)
from feedstash.fetcher.sanitize import sanitize_html, silently_sanitize_html

__all__ = [
    "PARSERS",
    "FeedFetcher",
    "FetchError",
    "FetchParams",
    "FetchResult",
    "Fetcher",
    "ParseError",
    "SanitizeError",
    "sanitize_html",
    "silently_sanitize_html",
]
