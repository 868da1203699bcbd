"""Item 条目模型."""

import hashlib
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from feedstash.models.feed import Feed


def uid(value: str) -> str:
    """根据输入字符串生成唯一 ID（SHA-256 十六进制摘要）."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


class RawItem(BaseModel):
    """解析器产出的原始条目（尚未去重合并）."""

    url: str = Field(default="", description="条目链接")
    title: str = Field(default="", description="标题")
    authors: str = Field(default="", description="作者（逗号分隔）")
    content: str = Field(default="", description="已清洗的 HTML 片段")
    position: int = Field(default=0, description="首次出现时在文档中的位置")

    def is_valid(self) -> bool:
        """同时具有 URL 和标题才视为有效."""
        return bool(self.url and self.title)

    def uid(self) -> str:
        """有效条目返回基于 URL 的 UID，否则返回空字符串."""
        if not self.is_valid():
            return ""
        return uid(self.url)


class ItemSummary(BaseModel):
    """条目的对外展示结构.

    url、title、authors 直接来自订阅源且未经清洗，嵌入页面前需要转义；
    content 已经过清洗，可以直接嵌入。
    """

    uid: str
    feed_uid: str
    feed_name: str
    url: str
    title: str
    timestamp: int
    authors: str
    read: bool
    content: str | None = None


class Item(RawItem):
    """应用内的条目，在原始条目基础上记录来源、首次出现时间和已读状态."""

    feed_uid: str = Field(default="", description="所属 Feed 的 UID")
    timestamp: int = Field(default=0, description="首次出现时间")
    read: bool = Field(default=False, description="是否已读")

    def refresh(self, raw: RawItem) -> bool:
        """用新的原始条目更新可变字段，返回是否有变化."""
        # 只有在初始化时（URL 为空）才设置位置
        if not self.url and self.position != raw.position:
            self.position = raw.position

        changed = False
        for name in ("url", "title", "authors", "content"):
            value = getattr(raw, name)
            if getattr(self, name) != value:
                setattr(self, name, value)
                changed = True
        return changed

    def mark_read(self) -> None:
        """标记为已读."""
        self.read = True

    def summary(self, feed: "Feed", include_content: bool = False) -> ItemSummary:
        """生成条目摘要，归属到给定的 Feed."""
        return ItemSummary(
            uid=self.uid(),
            feed_uid=feed.uid(),
            feed_name=feed.name,
            url=self.url,
            title=self.title,
            timestamp=self.timestamp,
            authors=self.authors,
            read=self.read,
            content=self.content if include_content else None,
        )
