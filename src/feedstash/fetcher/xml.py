"""RSS/Atom 解析（基于 feedparser）."""

import io
import logging
from typing import Any

import feedparser

from feedstash.fetcher.errors import ParseError
from feedstash.fetcher.sanitize import silently_sanitize_html
from feedstash.fetcher.urls import absolute_url, resolve_url
from feedstash.models.item import RawItem

logger = logging.getLogger(__name__)

# feedparser 把没有 rel 的链接记为 alternate，与显式的 alternate 无法区分
_PREFERRED_RELS = ("self", "alternate")


def parse_xml(data: bytes, params: Any = None) -> list[RawItem]:
    """将 RSS 或 Atom 文档解析为原始条目.

    只要找到任意条目就返回（即使文档存在格式问题）；没有条目时，
    格式错误或无法识别的文档会抛出 ParseError，格式正确的空 Feed 返回空列表。
    """
    # 传入文件对象，避免 feedparser 把 bytes 当作文件名或 URL
    parsed = feedparser.parse(
        io.BytesIO(data), sanitize_html=False, resolve_relative_uris=False
    )

    if not parsed.entries:
        if parsed.bozo:
            msg = f"无法解析为 RSS 或 Atom: {parsed.get('bozo_exception')}"
            raise ParseError(msg)
        if not parsed.version:
            msg = "无法解析为 RSS 或 Atom: 未识别的文档类型"
            raise ParseError(msg)
        return []

    if parsed.bozo:
        logger.warning(f"Feed 存在格式问题: {parsed.get('bozo_exception')}")

    base_url = absolute_url(parsed.feed.get("link", ""))
    items: list[RawItem] = []
    for pos, entry in enumerate(parsed.entries):
        item_url = resolve_url(_entry_link(entry), base_url)
        content = _coalesce(
            *(c.get("value", "") for c in entry.get("content", [])),
            entry.get("summary", ""),
        )
        items.append(
            RawItem(
                url=item_url or "",
                title=entry.get("title", "").strip(),
                authors=_entry_authors(entry),
                content=silently_sanitize_html(content, item_url),
                position=pos,
            )
        )
    return items


def _entry_link(entry: Any) -> str:
    """选择条目最合适的链接：rel 为 self/alternate 的优先，否则取第一个."""
    links = entry.get("links", [])
    for link in links:
        if link.get("rel", "alternate") in _PREFERRED_RELS and link.get("href"):
            return link["href"]
    if links:
        return links[0].get("href", "")
    return entry.get("link", "")


def _entry_authors(entry: Any) -> str:
    """合并条目的作者（包括 dc:creator）为逗号分隔的字符串."""
    names = [a.get("name", "").strip() for a in entry.get("authors", [])]
    names = [name for name in names if name]
    if not names and entry.get("author"):
        names = [entry["author"].strip()]
    return ", ".join(names)


def _coalesce(*values: str) -> str:
    for value in values:
        if value:
            return value
    return ""
