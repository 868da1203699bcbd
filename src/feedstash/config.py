"""应用配置管理."""

import logging
from functools import lru_cache

from pydantic import TypeAdapter, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from feedstash.models.feed import InputFeed

logger = logging.getLogger(__name__)

_input_feeds_adapter = TypeAdapter(list[InputFeed])


class Settings(BaseSettings):
    """应用配置（环境变量）."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # 持久化配置
    db_path: str = "db.json"
    persist_interval_seconds: float = 60

    # 刷新配置
    refresh_interval_seconds: float = 300
    fetch_concurrency: int = 8
    fetch_timeout_seconds: float = 30

    # Feed 列表（InputFeed 的 JSON 数组）
    feeds: str = "[]"

    log_level: str = "INFO"

    def input_feeds(self) -> list[InputFeed]:
        """解析 feeds 配置；配置无效时记录错误并返回空列表."""
        try:
            return _input_feeds_adapter.validate_json(self.feeds)
        except ValidationError as e:
            logger.error(f"Feed 列表配置无效: {e}")
            return []


@lru_cache
def get_settings() -> Settings:
    """获取应用配置（带缓存）."""
    return Settings()
