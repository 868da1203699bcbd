"""内存中的 Feed 列表.

MemoryStore 持有全部 Feed，负责按期望列表同步 Feed、并发刷新、生成摘要
（包括虚拟的 "all" Feed）、标记已读，以及把列表定期持久化到快照文件。
所有对 Feed 列表的访问都在同一把锁内进行；抓取本身在锁外并发执行。
"""

import asyncio
import contextlib
import logging
import os
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from feedstash.core import persist
from feedstash.fetcher.fetch import FeedFetcher, Fetcher, FetchParams, FetchResult
from feedstash.models.feed import Feed, FeedSummary, InputFeed
from feedstash.models.item import ItemSummary
from feedstash.scheduler.tasks import create_refresh_scheduler, shutdown_scheduler
from feedstash.utils import timeutil

logger = logging.getLogger(__name__)

ALL_FEED_UID = "all"
ALL_FEED_NAME = "All"
# 虚拟 "all" Feed 的条目上限
ALL_FEED_MAX_ITEMS = 2048

# 延迟持久化信号队列的容量，队列满时直接丢弃信号
POSTPONE_QUEUE_SIZE = 5


@dataclass
class StoreParams:
    """MemoryStore 配置."""

    # 初始的期望 Feed 列表，见 MemoryStore.load_feeds
    initial_feeds: list[InputFeed] = field(default_factory=list)
    # 快照文件路径，为空时只在内存中保存
    db_path: str = ""
    # 自动持久化间隔（秒），0 表示禁用
    persist_interval: float = 0
    # 自动刷新间隔（秒），0 表示禁用
    refresh_interval: float = 0
    # 同时进行的抓取数量上限，0 表示不限制
    fetch_concurrency: int = 0
    # 为空时使用默认的 Fetcher
    fetcher: FeedFetcher | None = None
    # 每次自动刷新完成后调用
    refresh_callback: Callable[[], None] | None = None
    # 每次尝试持久化后调用，参数为错误（成功时为 None）
    persist_callback: Callable[[Exception | None], None] | None = None


class MemoryStore:
    """内存 Feed 列表，可选地由 JSON 快照文件支持."""

    def __init__(self, params: StoreParams | None = None) -> None:
        self.params = params or StoreParams()

        self._feeds: dict[str, Feed] = {}
        self._lock = asyncio.Lock()
        self._refresh_lock = asyncio.Lock()

        # 自己创建的 Fetcher 需要在关闭时释放
        self._own_fetcher: Fetcher | None = None
        if self.params.fetcher is None:
            self._own_fetcher = Fetcher()
        self._fetcher: FeedFetcher = self.params.fetcher or self._own_fetcher

        self._persist_enabled = False
        self._persist_task: asyncio.Task[None] | None = None
        self._postpone: asyncio.Queue[None] = asyncio.Queue(
            maxsize=POSTPONE_QUEUE_SIZE
        )
        self._closing = asyncio.Event()
        self._closed = False

        self._scheduler: AsyncIOScheduler | None = None

    async def __aenter__(self) -> "MemoryStore":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def start(self) -> None:
        """加载快照和初始 Feed，执行一次刷新，然后启动后台任务."""
        self._persist_enabled = await self._init_persist()
        await self.load_feeds(self.params.initial_feeds)
        await self.refresh()

        if self._persist_enabled:
            if self.params.persist_interval > 0:
                self._persist_task = asyncio.create_task(self._persist_loop())
            else:
                logger.info("自动持久化已禁用")

        if self.params.refresh_interval > 0:
            self._scheduler = create_refresh_scheduler(
                self, self.params.refresh_interval
            )
        else:
            logger.info("自动刷新已禁用")

    async def close(self) -> None:
        """停止后台任务，等待进行中的刷新结束，然后执行最后一次持久化."""
        if self._closed:
            return
        self._closed = True

        if self._scheduler is not None:
            shutdown_scheduler(self._scheduler)
            self._scheduler = None

        # 不取消进行中的刷新，只等待其完成
        async with self._refresh_lock:
            pass

        self._closing.set()
        if self._persist_task is not None:
            await self._persist_task
            self._persist_task = None
        elif self._persist_enabled:
            await self._persist("close")

        if self._own_fetcher is not None:
            await self._own_fetcher.aclose()
        logger.info("Feed 列表已关闭")

    async def load_feeds(self, desired: Iterable[InputFeed] | None) -> None:
        """使 Feed 列表与 desired 保持一致.

        已存在的 Feed（按 UID 匹配）会保留条目并更新名称、类型和参数；
        不存在的会新建；不在 desired 中的会被丢弃。desired 为空时清空列表。
        """
        async with self._lock:
            feeds: dict[str, Feed] = {}
            kept = 0
            for input_feed in desired or []:
                candidate = Feed(
                    name=input_feed.name,
                    url=input_feed.url,
                    type=input_feed.type.value,
                    params=input_feed.params,
                )
                feed = self._feeds.get(candidate.uid())
                if feed is None:
                    feed = candidate
                else:
                    feed.name = candidate.name
                    feed.type = candidate.type
                    feed.params = candidate.params
                    kept += 1
                feeds[feed.uid()] = feed

            discarded = sum(1 for key in self._feeds if key not in feeds)
            self._feeds = feeds

        logger.info(
            f"Feed 列表已加载: 保留={kept}, 新增={len(feeds) - kept}, "
            f"丢弃={discarded}"
        )

    async def refresh(self, auto: bool = False) -> None:
        """并发抓取所有 Feed 并合并结果，全部完成后返回.

        单个 Feed 的失败只记录在该 Feed 上，不影响其他 Feed。
        auto 为 True 时（自动刷新），完成后调用 refresh_callback。
        """
        async with self._refresh_lock:
            if auto and self._closed:
                return

            async with self._lock:
                targets = [
                    (
                        feed_uid,
                        FetchParams(
                            url=feed.url,
                            feed_name=feed.name,
                            feed_type=feed.type,
                            feed_params=feed.params,
                        ),
                    )
                    for feed_uid, feed in self._feeds.items()
                ]

            logger.info(f"开始刷新 {len(targets)} 个 Feed")
            limit = self.params.fetch_concurrency
            limiter = (
                asyncio.Semaphore(limit) if limit > 0 else contextlib.nullcontext()
            )
            await asyncio.gather(
                *(self._refresh_feed(key, params, limiter) for key, params in targets)
            )
            logger.info("Feed 刷新完成")

        if auto and self.params.refresh_callback is not None:
            self.params.refresh_callback()
        self._delay_persist()

    async def _refresh_feed(
        self,
        feed_uid: str,
        params: FetchParams,
        limiter: contextlib.AbstractAsyncContextManager,
    ) -> None:
        """抓取单个 Feed 并在锁内合并结果."""
        try:
            async with limiter:
                result = await self._fetcher.fetch(params)
        except Exception as e:
            logger.exception(f"抓取 Feed 异常: {params.feed_name} - {e}")
            result = FetchResult(error=f"抓取 Feed 异常: {e}")

        async with self._lock:
            feed = self._feeds.get(feed_uid)
            if feed is None:
                logger.info(f"Feed 在刷新期间已被移除，丢弃结果: {params.feed_name}")
                return
            feed.refresh(result.items, result.timestamp, result.error)

    async def summary(self) -> list[FeedSummary]:
        """返回所有 Feed（包括虚拟的 "all" Feed）的摘要，按名称排序."""
        async with self._lock:
            summaries = [self._all_feed_summary(with_items=False)]
            summaries.extend(feed.summary() for feed in self._feeds.values())
        self._delay_persist()
        return sorted(summaries, key=lambda s: s.name)

    async def feed_summary(self, feed_uid: str) -> FeedSummary | None:
        """返回指定 Feed 的摘要（包含条目），找不到时返回 None."""
        async with self._lock:
            if feed_uid == ALL_FEED_UID:
                result = self._all_feed_summary(with_items=True)
            else:
                feed = self._feeds.get(feed_uid)
                result = feed.summary(with_items=True) if feed else None
        self._delay_persist()
        return result

    async def feed_item(self, feed_uid: str, item_uid: str) -> ItemSummary | None:
        """返回指定条目的摘要（包含内容），找不到时返回 None.

        feed_uid 为 "all" 时在所有 Feed 中查找，条目归属到其来源 Feed。
        """
        async with self._lock:
            result = None
            if feed_uid == ALL_FEED_UID:
                feeds = list(self._feeds.values())
            else:
                feed = self._feeds.get(feed_uid)
                feeds = [feed] if feed else []
            for feed in feeds:
                item = feed.items.get(item_uid)
                if item is not None:
                    result = item.summary(feed, include_content=True)
                    break
        self._delay_persist()
        return result

    async def mark_read(
        self, feed_uid: str, item_uid: str = "", before: int | None = None
    ) -> bool:
        """标记已读，返回是否找到目标.

        - feed_uid 为 "all": 所有 Feed 中时间戳不晚于 before 的条目
        - item_uid 非空: 只标记该条目
        - 否则: 该 Feed 中时间戳不晚于 before 的条目

        before 为空时取当前时间。
        """
        if before is None:
            before = timeutil.now()

        found = False
        async with self._lock:
            feed = self._feeds.get(feed_uid)
            if feed_uid == ALL_FEED_UID:
                for feed in self._feeds.values():
                    feed.mark_all_read(before)
                found = True
            elif feed is not None:
                if item_uid:
                    item = feed.items.get(item_uid)
                    if item is not None:
                        item.mark_read()
                        found = True
                else:
                    feed.mark_all_read(before)
                    found = True
        self._delay_persist()
        return found

    def _all_feed_summary(self, with_items: bool) -> FeedSummary:
        """构建虚拟的 "all" Feed 并返回其摘要；调用方需持有锁."""
        all_feed = Feed(name=ALL_FEED_NAME, last_refreshed_at=timeutil.now())
        origins: dict[str, Feed] = {}
        for feed in self._feeds.values():
            for item in feed.items.values():
                item_uid = item.uid()
                all_feed.items[item_uid] = item
                origins[item_uid] = feed
        all_feed.prune(ALL_FEED_MAX_ITEMS)
        return all_feed.summary(with_items, origins)

    async def save(self, path: str | os.PathLike[str] | None = None) -> None:
        """把 Feed 列表写入快照文件（默认为 db_path）."""
        target = self._snapshot_path(path)
        async with self._lock:
            data = persist.dump_snapshot(self._feeds)
            await asyncio.to_thread(persist.write_snapshot, target, data)

    async def load(self, path: str | os.PathLike[str] | None = None) -> None:
        """从快照文件读取 Feed 列表（默认为 db_path），替换当前列表."""
        target = self._snapshot_path(path)
        async with self._lock:
            self._feeds = await asyncio.to_thread(persist.read_snapshot, target)

    def _snapshot_path(
        self, path: str | os.PathLike[str] | None
    ) -> str | os.PathLike[str]:
        target = path or self.params.db_path
        if not target:
            msg = "未配置快照文件路径"
            raise ValueError(msg)
        return target

    async def _init_persist(self) -> bool:
        """加载已有快照，返回是否可以启用持久化.

        文件不存在时会被创建；空文件视为没有历史数据。加载失败时本次运行
        不再写入该文件，避免覆盖无法解析但可能可以恢复的数据。
        """
        db_path = self.params.db_path
        if not db_path:
            logger.info("未配置持久化")
            return False

        try:
            persist.ensure_snapshot_file(db_path)
            await self.load()
        except (OSError, ValueError) as e:
            logger.error(f"无法加载快照文件 {db_path}: {e}")
            logger.warning("快照加载失败，本次运行不启用持久化")
            return False

        logger.info(f"已从快照文件加载 {len(self._feeds)} 个 Feed: {db_path}")
        return True

    async def _persist_loop(self) -> None:
        """定期持久化；收到延迟信号时重新计时，关闭时执行最后一次持久化."""
        interval = self.params.persist_interval
        logger.info(f"自动持久化已启用: {self.params.db_path} (间隔={interval}s)")

        while True:
            postponed = asyncio.ensure_future(self._postpone.get())
            closing = asyncio.ensure_future(self._closing.wait())
            try:
                done, _ = await asyncio.wait(
                    {postponed, closing},
                    timeout=interval,
                    return_when=asyncio.FIRST_COMPLETED,
                )
            finally:
                for waiter in (postponed, closing):
                    if not waiter.done():
                        waiter.cancel()

            if closing in done:
                logger.info("停止自动持久化")
                await self._persist("close")
                return
            if postponed in done:
                logger.debug("收到延迟持久化信号，重新计时")
                continue

            logger.info("到达自动持久化间隔")
            await self._persist("auto")

    async def _persist(self, reason: str) -> None:
        """尝试持久化，记录错误并通知回调，不向外抛出."""
        error: Exception | None = None
        try:
            await self.save()
        except (OSError, ValueError) as e:
            logger.error(
                f"无法持久化 Feed 列表 (原因={reason}, 文件={self.params.db_path}): {e}"
            )
            error = e
        else:
            logger.info(
                f"Feed 列表已持久化 (原因={reason}, 文件={self.params.db_path})"
            )

        if self.params.persist_callback is not None:
            self.params.persist_callback(error)

    def _delay_persist(self) -> None:
        """请求推迟下一次自动持久化；信号队列已满时丢弃."""
        try:
            self._postpone.put_nowait(None)
        except asyncio.QueueFull:
            logger.debug("延迟持久化信号队列已满，自动持久化可能未运行")
