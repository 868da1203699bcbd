"""Feed 订阅源模型."""

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from feedstash.models.item import Item, ItemSummary, RawItem, uid
from feedstash.models.params import CapParams, FeedType, ParamsError, parse_params

logger = logging.getLogger(__name__)

# 自适应淘汰窗口：观察到的原始条目数的两倍，限制在 [下限, 上限] 之间
ADAPTIVE_MIN_ITEMS = 100
ADAPTIVE_MAX_ITEMS = 200

NO_ITEMS_ERROR = "上次刷新未找到任何条目"


class InputFeed(BaseModel):
    """外部提供的期望订阅源（例如来自配置）."""

    name: str
    url: str
    type: FeedType
    params: Any = None


class FeedSummary(BaseModel):
    """Feed 的对外展示结构."""

    uid: str
    url: str
    name: str
    items: list[ItemSummary] | None = None
    last_updated: int
    last_error: str
    item_count: int
    read_count: int


class Feed(BaseModel):
    """订阅源.

    url 为空时视为由应用管理的虚拟 Feed（例如 "all"），此时 UID 取名称的小写。
    params 保留为原始 JSON 值，由对应类型的解析器负责解释。
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(default="", description="用户定义的名称")
    type: str = Field(default="", description="Feed 类型: xml|html|img")
    url: str = Field(default="", description="抓取地址")
    items: dict[str, Item] = Field(default_factory=dict, description="UID -> 条目")
    params: Any = Field(default=None, description="类型相关参数")
    last_refreshed_at: int = Field(default=0, alias="updated_at")
    last_refresh_error: str = Field(default="", alias="error")

    @field_validator("items", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    def uid(self) -> str:
        """Feed 的唯一标识."""
        if not self.url:
            return self.name.lower()
        return uid(self.url)

    def sorted_items(self) -> list[Item]:
        """按时间戳降序、位置升序、URL 升序排列的条目."""
        return sorted(
            self.items.values(),
            key=lambda item: (-item.timestamp, item.position, item.url),
        )

    def prune(self, n: int = 0, observed_raw_items: int = 0) -> None:
        """淘汰排序靠后的条目，直到数量不超过 n.

        n 为 0 时：优先使用参数中的 max_items；否则如果 observed_raw_items 大于 0，
        取其两倍并限制在 100 到 200 之间。最终的 n 不为正数（包括既没有上限
        也没有观察值的情况）或条目数不超过 n 时不做任何事。
        """
        if n == 0:
            try:
                n = parse_params(self.params, CapParams).max_items
            except ParamsError:
                if observed_raw_items > 0:
                    n = min(
                        max(observed_raw_items * 2, ADAPTIVE_MIN_ITEMS),
                        ADAPTIVE_MAX_ITEMS,
                    )

        if n <= 0 or len(self.items) <= n:
            return

        kept = self.sorted_items()[:n]
        self.items = {uid(item.url): item for item in kept}

    def refresh(
        self,
        raw_items: list[RawItem],
        timestamp: int,
        fetch_error: str | None = None,
    ) -> None:
        """用抓取结果（或抓取错误）更新 Feed，然后执行淘汰."""
        logger.info(
            f"刷新 Feed: {self.name} (现有条目={len(self.items)}, "
            f"抓取错误={fetch_error or '无'})"
        )

        # 抓取失败或没有条目时保留已有条目，只记录错误
        if fetch_error:
            self.last_refresh_error = fetch_error
            return
        if not raw_items:
            self.last_refresh_error = NO_ITEMS_ERROR
            return

        feed_uid = self.uid()
        for pos, raw in enumerate(raw_items):
            if not raw.is_valid():
                logger.info(f"Feed {self.name} 第 {pos} 个条目无效，跳过")
                continue

            item_uid = raw.uid()
            item = self.items.get(item_uid)
            if item is None:
                item = Item(feed_uid=feed_uid, timestamp=timestamp)
                self.items[item_uid] = item
            item.refresh(raw)

        self.last_refreshed_at = timestamp
        self.last_refresh_error = ""

        self.prune(0, len(raw_items))
        logger.info(f"Feed 已刷新: {self.name} (条目={len(self.items)})")

    def mark_all_read(self, before: int) -> None:
        """将时间戳不晚于 before 的条目标记为已读."""
        for item in self.items.values():
            if item.timestamp <= before:
                item.mark_read()

    def summary(
        self,
        with_items: bool = False,
        item_mapper: dict[str, "Feed"] | None = None,
    ) -> FeedSummary:
        """生成 Feed 摘要.

        item_mapper 通常为空，只在构建汇总多个 Feed 的虚拟 Feed 时使用，
        用于把每个条目归属到其来源 Feed。
        """
        items = self.sorted_items()
        read_count = sum(1 for item in items if item.read)

        item_summaries = None
        if with_items:
            item_summaries = []
            for item in items:
                origin = self
                if item_mapper is not None:
                    origin = item_mapper[item.uid()]
                item_summaries.append(item.summary(origin))

        return FeedSummary(
            uid=self.uid(),
            url=self.url,
            name=self.name,
            items=item_summaries,
            last_updated=self.last_refreshed_at,
            last_error=self.last_refresh_error,
            item_count=len(items),
            read_count=read_count,
        )
