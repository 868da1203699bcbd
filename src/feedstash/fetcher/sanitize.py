"""HTML 清洗.

将不可信的 HTML 片段重写为白名单内的安全子集：只保留允许的标签和属性，
不允许的标签连同其所有后代（包括其中的文本和脚本）一起丢弃。
"""

from collections.abc import Collection, Iterator, Mapping
from urllib.parse import urljoin

from bs4 import BeautifulSoup, NavigableString, PageElement, ParserRejectedMarkup, Tag

from feedstash.fetcher.errors import SanitizeError
from feedstash.fetcher.urls import is_absolute, parse_url

DEFAULT_ALLOWED_TAGS: frozenset[str] = frozenset(
    {
        "a",
        "abbr",
        "acronym",
        "b",
        "blockquote",
        "br",
        "code",
        "del",
        "div",
        "em",
        "figure",
        "figcaption",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "i",
        "img",
        "ins",
        "li",
        "ol",
        "p",
        "pre",
        "s",
        "span",
        "strike",
        "strong",
        "u",
        "ul",
    }
)

DEFAULT_ALLOWED_ATTRS: dict[str, frozenset[str]] = {
    "a": frozenset({"href", "title"}),
    "abbr": frozenset({"title"}),
    "acronym": frozenset({"title"}),
    "img": frozenset({"alt", "src"}),
}

# 这些节点本身不输出，但会继续遍历其子节点
_TRANSPARENT_TAGS = frozenset({"html", "body"})
# 直接位于这些节点下的文本等同于位于 body 中
_BODY_LIKE = frozenset({"body", BeautifulSoup.ROOT_TAG_NAME})

_URL_ATTRS = frozenset({"href", "src"})


def sanitize_html(
    fragment: str,
    allowed_tags: Collection[str],
    allowed_attrs: Mapping[str, Collection[str]],
    base_url: str | None = None,
) -> str:
    """清洗 HTML 片段.

    Args:
        fragment: 不可信的 HTML 片段
        allowed_tags: 允许保留的标签
        allowed_attrs: 每个标签允许保留的属性
        base_url: 用于解析 href/src 中相对 URL 的基准地址

    Returns:
        清洗后的 HTML 片段

    Raises:
        SanitizeError: 片段无法解析或嵌套层级过深
    """
    try:
        doc = BeautifulSoup(fragment, "html.parser")
    except ParserRejectedMarkup as e:
        msg = f"无法解析 HTML: {e}"
        raise SanitizeError(msg) from e
    except RecursionError as e:
        msg = "无法解析 HTML: 嵌套层级过深"
        raise SanitizeError(msg) from e

    try:
        out = _copy_allowed(doc, allowed_tags, allowed_attrs, base_url)
        return out.decode(formatter="minimal").strip()
    except RecursionError as e:
        msg = "无法清洗 HTML: 嵌套层级过深"
        raise SanitizeError(msg) from e


def silently_sanitize_html(fragment: str, base_url: str | None = None) -> str:
    """使用默认白名单清洗 HTML，出错时返回空字符串."""
    try:
        return sanitize_html(
            fragment, DEFAULT_ALLOWED_TAGS, DEFAULT_ALLOWED_ATTRS, base_url
        )
    except SanitizeError:
        return ""


def _copy_allowed(
    doc: BeautifulSoup,
    allowed_tags: Collection[str],
    allowed_attrs: Mapping[str, Collection[str]],
    base_url: str | None,
) -> BeautifulSoup:
    """把 doc 中允许的部分复制到新文档.

    使用显式栈遍历，深度不受输入嵌套层级限制。新标签在创建时就按顺序
    挂到父节点下，所以栈的弹出顺序不影响输出顺序。
    """
    out = BeautifulSoup("", "html.parser")
    stack: list[tuple[Tag, Tag]] = [(doc, out)]
    while stack:
        node, new_parent = stack.pop()
        for child, keep_text in _iter_children(node, allowed_tags):
            if isinstance(child, Tag):
                if child.name in allowed_tags:
                    attrs = _copy_attrs(
                        child, allowed_attrs.get(child.name, ()), base_url
                    )
                    new_tag = out.new_tag(child.name, attrs=attrs)
                    new_parent.append(new_tag)
                    stack.append((child, new_tag))
            # 注释、CDATA、doctype 等都是 NavigableString 的子类，一律丢弃
            elif type(child) is NavigableString and keep_text:
                new_parent.append(NavigableString(str(child)))
    return out


def _iter_children(
    node: Tag, allowed_tags: Collection[str]
) -> Iterator[tuple[PageElement, bool]]:
    """按顺序产出子节点及其中的文本是否保留；html/body 展开为其子节点."""
    stack = [(iter(node.children), _keeps_text(node, allowed_tags))]
    while stack:
        children, keep_text = stack[-1]
        child = next(children, None)
        if child is None:
            stack.pop()
            continue
        if (
            isinstance(child, Tag)
            and child.name not in allowed_tags
            and child.name in _TRANSPARENT_TAGS
        ):
            stack.append((iter(child.children), _keeps_text(child, allowed_tags)))
            continue
        yield child, keep_text


def _keeps_text(node: Tag, allowed_tags: Collection[str]) -> bool:
    return node.name in allowed_tags or node.name in _BODY_LIKE


def _copy_attrs(
    tag: Tag,
    allowed: Collection[str],
    base_url: str | None,
) -> dict[str, str]:
    """复制允许的属性，解析 href/src；非法 URL 只丢弃该属性."""
    attrs: dict[str, str] = {}
    for key, value in tag.attrs.items():
        if key not in allowed:
            continue
        if isinstance(value, list):
            value = " ".join(value)
        if key in _URL_ATTRS:
            parsed = parse_url(value)
            if parsed is None:
                continue
            if base_url and not is_absolute(parsed):
                parsed = urljoin(base_url, parsed)
            value = parsed
        attrs[key] = value
    return attrs
