"""URL 校验与解析."""

import re
from urllib.parse import urljoin, urlsplit

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def parse_url(value: str) -> str | None:
    """校验 URL，返回去除首尾空白后的值；无效时返回 None.

    缺少 scheme 却以冒号开头、包含控制字符、百分号转义不完整、
    端口或 IPv6 地址格式错误的 URL 都视为无效。
    """
    value = value.strip()
    if not value or value.startswith(":"):
        return None
    if _CONTROL_CHARS.search(value) or _BAD_ESCAPE.search(value):
        return None
    try:
        # 端口或 IPv6 地址非法时抛出 ValueError
        _ = urlsplit(value).port
    except ValueError:
        return None
    return value


def is_absolute(value: str) -> bool:
    """是否为带 scheme 的绝对 URL."""
    return bool(urlsplit(value).scheme)


def absolute_url(value: str) -> str | None:
    """value 是合法的绝对 URL 时返回它，否则返回 None."""
    parsed = parse_url(value)
    if parsed is None or not is_absolute(parsed):
        return None
    return parsed


def resolve_url(
    value: str,
    base_url: str | None,
    allowed_prefixes: list[str] | None = None,
) -> str | None:
    """将 value 相对 base_url 解析，并按前缀白名单过滤.

    value 无效、需要解析但 base_url 无效、或解析结果不匹配任何允许的前缀时
    返回 None。allowed_prefixes 为 None 时不做前缀检查。
    """
    parsed = parse_url(value)
    if parsed is None:
        return None

    resolved = parsed
    if base_url and not is_absolute(parsed):
        base = parse_url(base_url)
        if base is None:
            return None
        resolved = urljoin(base, parsed)

    if allowed_prefixes is None:
        return resolved
    for prefix in allowed_prefixes:
        if resolved.startswith(prefix):
            return resolved
    return None
