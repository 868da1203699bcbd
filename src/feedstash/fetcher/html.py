"""通用 HTML 页面抓取.

在页面中查找匹配的容器元素，把容器内的每个链接视为候选条目。
指向同一 URL 的多个链接会被合并（常见于缩略图和标题分别链接到同一篇文章的布局）。
"""

import html
from dataclasses import dataclass, field
from typing import Any

from bs4 import BeautifulSoup, NavigableString, Tag

from feedstash.fetcher.encodings import lookup_encoding
from feedstash.fetcher.errors import ParseError
from feedstash.fetcher.sanitize import DEFAULT_ALLOWED_TAGS, silently_sanitize_html
from feedstash.fetcher.urls import resolve_url
from feedstash.models.item import RawItem
from feedstash.models.params import HTMLParams, ParamsError, parse_params

UNKNOWN_TITLE = "未知标题"

_IMG_SRC_ATTRS = ("src", "data-src")


@dataclass
class CandidateItem:
    """从 HTML 中提取的候选条目."""

    url: str
    position: int = 0
    # 从链接内部提取的片段（文本或 img 标签），由调用方决定哪个作为标题
    parts: list[str] = field(default_factory=list)
    # 与 parts 一一对应、可以安全拼接为 HTML 的版本
    fragments: list[str] = field(default_factory=list)

    def merge(self, other: "CandidateItem") -> None:
        """合并另一个指向同一 URL 的候选条目."""
        self.parts.extend(other.parts)
        self.fragments.extend(other.fragments)

    def to_raw_item(self, title_pos: int) -> RawItem:
        """转换为原始条目."""
        if title_pos < len(self.parts):
            title = self.parts[title_pos]
        elif self.parts:
            title = self.parts[0]
        else:
            title = UNKNOWN_TITLE
        return RawItem(
            url=self.url,
            title=title,
            content=silently_sanitize_html("<br/>".join(self.fragments)),
            position=self.position,
        )


def parse_html(data: bytes, params: Any) -> list[RawItem]:
    """按参数从 HTML 页面中提取原始条目."""
    try:
        p = parse_params(params, HTMLParams)
    except ParamsError as e:
        msg = f"无法解析 HTML Feed 参数: {e}"
        raise ParseError(msg) from e

    markup: bytes | str = data
    if p.encoding:
        codec = lookup_encoding(p.encoding)
        if codec is None:
            msg = f"找不到编码: {p.encoding}"
            raise ParseError(msg)
        # 无法解码的字节替换为 U+FFFD，不让整页失败
        markup = data.decode(codec, errors="replace")

    doc = BeautifulSoup(markup, "lxml")
    renderer = BeautifulSoup("", "html.parser")

    candidates: dict[str, CandidateItem] = {}
    for container in _find_containers(doc, p.container_tag, p.container_attrs):
        for anchor in container.find_all("a"):
            candidate = _extract_candidate(
                anchor, renderer, p.base_url, p.allowed_prefixes
            )
            if candidate is None:
                continue
            existing = candidates.get(candidate.url)
            if existing is None:
                candidate.position = len(candidates)
                candidates[candidate.url] = candidate
            else:
                existing.merge(candidate)

    # 字典保持插入顺序，即首次出现的顺序
    return [c.to_raw_item(p.title_pos) for c in candidates.values()]


def _find_containers(doc: BeautifulSoup, tag: str, attrs: dict[str, str]) -> list[Tag]:
    """按文档顺序查找匹配的容器；已匹配容器的内部不再继续查找."""
    containers: list[Tag] = []
    stack: list[Tag] = [doc]
    while stack:
        node = stack.pop()
        if node is not doc and node.name == tag and _match_attrs(node, attrs):
            containers.append(node)
            continue
        children = [c for c in node.children if isinstance(c, Tag)]
        stack.extend(reversed(children))
    return containers


def _match_attrs(tag: Tag, attrs: dict[str, str]) -> bool:
    """tag 是否具有 attrs 中的全部属性且值完全相同."""
    for key, want in attrs.items():
        got = tag.get(key)
        if got is None:
            return False
        if isinstance(got, list):
            got = " ".join(got)
        if got != want:
            return False
    return True


def _extract_candidate(
    anchor: Tag,
    renderer: BeautifulSoup,
    base_url: str,
    allowed_prefixes: list[str],
) -> CandidateItem | None:
    """从链接中提取候选条目；链接无效或不在允许的前缀内时返回 None."""
    href = anchor.get("href")
    if not isinstance(href, str):
        return None
    url = resolve_url(href, base_url, allowed_prefixes)
    if not url:
        return None

    candidate = CandidateItem(url=url)
    for node in anchor.descendants:
        if isinstance(node, Tag):
            if node.name == "img":
                img = _render_img(node, renderer, base_url)
                if img:
                    candidate.parts.append(img)
                    candidate.fragments.append(img)
        # 只取父节点在白名单中的文本，避免 style 等无用内容
        elif (
            type(node) is NavigableString
            and node.parent is not None
            and node.parent.name in DEFAULT_ALLOWED_TAGS
        ):
            text = node.strip()
            if text:
                candidate.parts.append(text)
                candidate.fragments.append(html.escape(text, quote=False))
    return candidate


def _render_img(node: Tag, renderer: BeautifulSoup, base_url: str) -> str:
    """把图片渲染为只带解析后 src 的 img 标签."""
    for key, value in node.attrs.items():
        if key not in _IMG_SRC_ATTRS or not isinstance(value, str):
            continue
        src = resolve_url(value, base_url)
        if src is None:
            return ""
        return str(renderer.new_tag("img", attrs={"src": src}))
    return ""
