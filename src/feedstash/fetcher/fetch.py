"""Feed 抓取：发起请求并按 Feed 类型分派给对应的解析器."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, Field

from feedstash.fetcher.errors import FetchError
from feedstash.fetcher.html import parse_html
from feedstash.fetcher.image import parse_image
from feedstash.fetcher.xml import parse_xml
from feedstash.models.item import RawItem
from feedstash.models.params import PARAMS_BY_TYPE, FeedType, ParamsError, parse_params
from feedstash.utils import timeutil

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; feedstash/0.1)"
DEFAULT_TIMEOUT_SECONDS = 30.0

Parser = Callable[[bytes, Any], list[RawItem]]

PARSERS: dict[str, Parser] = {
    FeedType.XML: parse_xml,
    FeedType.HTML: parse_html,
    FeedType.IMAGE: parse_image,
}


@dataclass
class FetchParams:
    """抓取并解析一个 Feed 所需的参数."""

    url: str
    feed_name: str
    feed_type: str
    feed_params: Any = None


class FetchResult(BaseModel):
    """抓取结果."""

    items: list[RawItem] = Field(default_factory=list)
    timestamp: int = 0
    error: str | None = None


class FeedFetcher(Protocol):
    """Store 使用的抓取接口，测试中可以替换为假实现."""

    async def fetch(self, params: FetchParams) -> FetchResult: ...


class Fetcher:
    """基于 httpx 的 Feed 抓取器.

    错误不会抛出，而是带上下文放在 FetchResult.error 中返回；
    这一层不做重试，重试由下一次定时刷新完成。
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
            transport=transport,
        )

    async def aclose(self) -> None:
        """关闭客户端."""
        await self._client.aclose()

    async def fetch(self, params: FetchParams) -> FetchResult:
        """抓取并解析 params 指定的 Feed."""
        logger.info(f"开始抓取 Feed: {params.feed_name}")

        parser = PARSERS.get(params.feed_type)
        if parser is None:
            return FetchResult(error=f"不支持的 Feed 类型: {params.feed_type}")

        # 在发起网络请求之前校验参数
        try:
            parse_params(params.feed_params, PARAMS_BY_TYPE[FeedType(params.feed_type)])
        except ParamsError as e:
            return FetchResult(error=f"无法解析 Feed 参数: {e}")

        try:
            response = await self._client.get(params.url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            return FetchResult(error=f"无法发起请求: {type(e).__name__}: {e}")

        logger.info(f"解析 Feed: {params.feed_name} (类型={params.feed_type})")
        try:
            # 解析是 CPU 密集的同步操作，放到线程中执行
            items = await asyncio.to_thread(
                parser, response.content, params.feed_params
            )
        except FetchError as e:
            return FetchResult(error=f"无法解析 Feed: {e}")

        logger.info(f"Feed 已抓取并解析: {params.feed_name} (条目={len(items)})")
        return FetchResult(items=items, timestamp=timeutil.now())
