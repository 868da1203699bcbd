"""测试 Feed 抓取与分派."""

from collections.abc import AsyncGenerator
from unittest.mock import patch

import httpx
import pytest
import pytest_asyncio

from feedstash.fetcher.fetch import Fetcher, FetchParams

RSS = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"><channel><title>x</title><link>https://feeds.test/</link>
<item><title>One</title><link>https://feeds.test/1</link></item>
</channel></rss>
"""


class Recorder:
    """记录请求并按路径返回响应的传输层处理器."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/feed.xml":
            return httpx.Response(200, content=RSS)
        if path == "/old":
            return httpx.Response(301, headers={"Location": "/feed.xml"})
        if path == "/garbage":
            return httpx.Response(200, content=b"definitely not a feed")
        if path == "/refused":
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(404)


@pytest.fixture
def recorder() -> Recorder:
    """创建请求记录器."""
    return Recorder()


@pytest_asyncio.fixture
async def fetcher(recorder: Recorder) -> AsyncGenerator[Fetcher, None]:
    """创建使用模拟传输层的 Fetcher."""
    f = Fetcher(transport=httpx.MockTransport(recorder))
    yield f
    await f.aclose()


def _params(path: str, feed_type: str = "xml", feed_params: object = None) -> FetchParams:
    return FetchParams(
        url=f"https://feeds.test{path}",
        feed_name="Test",
        feed_type=feed_type,
        feed_params=feed_params,
    )


class TestFetchSuccess:
    """测试成功抓取."""

    async def test_items_and_timestamp(self, fetcher: Fetcher) -> None:
        """返回解析后的条目和抓取时间."""
        with patch("feedstash.utils.timeutil.now", return_value=1234):
            result = await fetcher.fetch(_params("/feed.xml"))

        assert result.error is None
        assert result.timestamp == 1234
        assert [item.url for item in result.items] == ["https://feeds.test/1"]

    async def test_follows_redirects(self, fetcher: Fetcher, recorder: Recorder) -> None:
        """自动跟随重定向."""
        result = await fetcher.fetch(_params("/old"))
        assert result.error is None
        assert len(result.items) == 1
        assert [r.url.path for r in recorder.requests] == ["/old", "/feed.xml"]


class TestFetchErrors:
    """测试错误包装."""

    async def test_unknown_type(self, fetcher: Fetcher, recorder: Recorder) -> None:
        """未知类型不发起请求."""
        result = await fetcher.fetch(_params("/feed.xml", feed_type="json"))
        assert result.error == "不支持的 Feed 类型: json"
        assert result.items == []
        assert recorder.requests == []

    async def test_invalid_params_checked_before_request(
        self, fetcher: Fetcher, recorder: Recorder
    ) -> None:
        """参数错误在发起请求之前报告."""
        result = await fetcher.fetch(
            _params("/feed.xml", feed_type="html", feed_params={"container_tag": "div"})
        )
        assert result.error is not None
        assert result.error.startswith("无法解析 Feed 参数: cannot validate")
        assert recorder.requests == []

    async def test_http_error_status(self, fetcher: Fetcher) -> None:
        """非 2xx 响应视为请求失败."""
        result = await fetcher.fetch(_params("/missing"))
        assert result.error is not None
        assert result.error.startswith("无法发起请求")
        assert "404" in result.error

    async def test_transport_error(self, fetcher: Fetcher) -> None:
        """连接失败视为请求失败."""
        result = await fetcher.fetch(_params("/refused"))
        assert result.error is not None
        assert result.error.startswith("无法发起请求")
        assert "connection refused" in result.error

    async def test_parse_error(self, fetcher: Fetcher) -> None:
        """解析失败带上下文返回."""
        result = await fetcher.fetch(_params("/garbage"))
        assert result.error is not None
        assert result.error.startswith("无法解析 Feed: 无法解析为 RSS 或 Atom")
        assert result.timestamp == 0

    async def test_image_feed(self, fetcher: Fetcher) -> None:
        """按类型分派给图片解析器."""
        result = await fetcher.fetch(
            _params(
                "/feed.xml",
                feed_type="img",
                feed_params={"mime_type": "image/png", "url": "https://x", "title": "T"},
            )
        )
        assert result.error is None
        assert len(result.items) == 1
        assert result.items[0].url.startswith("https://x#")
