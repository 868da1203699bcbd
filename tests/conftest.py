"""测试配置和 fixtures."""

from pathlib import Path

import pytest

from feedstash.fetcher.fetch import FetchParams, FetchResult
from feedstash.models.feed import InputFeed
from feedstash.models.item import RawItem
from feedstash.models.params import FeedType


def make_raw_items(
    count: int, prefix: str = "https://example.com/item", start: int = 0
) -> list[RawItem]:
    """生成 count 个有效的原始条目."""
    return [
        RawItem(
            url=f"{prefix}/{i}",
            title=f"Item {i}",
            authors="Alice",
            content=f"<p>content {i}</p>",
            position=i - start,
        )
        for i in range(start, start + count)
    ]


class FakeFetcher:
    """按 URL 返回预设结果的假抓取器."""

    def __init__(self) -> None:
        self.results: dict[str, FetchResult | Exception] = {}
        self.calls: list[FetchParams] = []

    def set_items(self, url: str, items: list[RawItem], timestamp: int) -> None:
        self.results[url] = FetchResult(items=items, timestamp=timestamp)

    def set_error(self, url: str, error: str) -> None:
        self.results[url] = FetchResult(error=error)

    async def fetch(self, params: FetchParams) -> FetchResult:
        self.calls.append(params)
        result = self.results.get(params.url)
        if isinstance(result, Exception):
            raise result
        if result is None:
            return FetchResult(error="未配置结果")
        return result


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    """创建假抓取器."""
    return FakeFetcher()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """快照文件路径（文件尚不存在）."""
    return tmp_path / "db.json"


@pytest.fixture
def input_feeds() -> list[InputFeed]:
    """两个 XML Feed."""
    return [
        InputFeed(name="Feed A", url="https://a.example.com/feed", type=FeedType.XML),
        InputFeed(name="Feed B", url="https://b.example.com/feed", type=FeedType.XML),
    ]
