"""测试自动刷新调度."""

import asyncio

from conftest import FakeFetcher, make_raw_items

from feedstash.core.store import MemoryStore, StoreParams
from feedstash.models.feed import InputFeed
from feedstash.models.params import FeedType
from feedstash.scheduler.tasks import refresh_task

URL = "https://a.example.com/feed"
FEEDS = [InputFeed(name="A", url=URL, type=FeedType.XML)]


class TestAutoRefresh:
    """测试定时刷新."""

    async def test_auto_refresh_calls_callback(self, fake_fetcher: FakeFetcher) -> None:
        """自动刷新完成后调用回调."""
        fake_fetcher.set_items(URL, make_raw_items(1), 1000)
        refreshed = asyncio.Event()

        async with MemoryStore(
            StoreParams(
                initial_feeds=FEEDS,
                refresh_interval=0.05,
                fetcher=fake_fetcher,
                refresh_callback=refreshed.set,
            )
        ):
            await asyncio.wait_for(refreshed.wait(), timeout=5)

        # 启动时的一次加上至少一次自动刷新
        assert len(fake_fetcher.calls) >= 2

    async def test_initial_refresh_skips_callback(self, fake_fetcher: FakeFetcher) -> None:
        """启动时的刷新和手动刷新不调用回调."""
        calls: list[None] = []

        async with MemoryStore(
            StoreParams(
                initial_feeds=FEEDS,
                refresh_interval=60,
                fetcher=fake_fetcher,
                refresh_callback=lambda: calls.append(None),
            )
        ) as store:
            await store.refresh()

        assert len(fake_fetcher.calls) == 2
        assert calls == []

    async def test_close_stops_auto_refresh(self, fake_fetcher: FakeFetcher) -> None:
        """关闭后不再自动刷新."""
        refreshed = asyncio.Event()
        store = MemoryStore(
            StoreParams(
                initial_feeds=FEEDS,
                refresh_interval=0.05,
                fetcher=fake_fetcher,
                refresh_callback=refreshed.set,
            )
        )
        await store.start()
        await asyncio.wait_for(refreshed.wait(), timeout=5)
        await store.close()

        count = len(fake_fetcher.calls)
        await asyncio.sleep(0.2)
        assert len(fake_fetcher.calls) == count

    async def test_disabled_auto_refresh(self, fake_fetcher: FakeFetcher) -> None:
        """间隔为 0 时只在启动时刷新一次."""
        async with MemoryStore(
            StoreParams(initial_feeds=FEEDS, fetcher=fake_fetcher)
        ) as store:
            await asyncio.sleep(0.1)
            assert store._scheduler is None

        assert len(fake_fetcher.calls) == 1


class TestRefreshTask:
    """测试调度任务本身."""

    async def test_refresh_task_runs_auto_refresh(self, fake_fetcher: FakeFetcher) -> None:
        """任务以自动模式刷新."""
        calls: list[None] = []
        store = MemoryStore(
            StoreParams(
                fetcher=fake_fetcher, refresh_callback=lambda: calls.append(None)
            )
        )
        await store.load_feeds(FEEDS)

        await refresh_task(store)

        assert len(fake_fetcher.calls) == 1
        assert calls == [None]

    async def test_refresh_task_after_close_is_noop(
        self, fake_fetcher: FakeFetcher
    ) -> None:
        """关闭后触发的任务不再刷新."""
        store = MemoryStore(StoreParams(fetcher=fake_fetcher))
        await store.load_feeds(FEEDS)
        await store.close()

        await refresh_task(store)

        assert fake_fetcher.calls == []
