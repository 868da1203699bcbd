"""测试配置加载与入口装配."""

import pytest

from feedstash.config import Settings, get_settings
from feedstash.fetcher.fetch import Fetcher
from feedstash.main import build_store
from feedstash.models.params import FeedType


class TestSettings:
    """测试 Settings."""

    def test_defaults(self) -> None:
        """默认值."""
        settings = Settings(_env_file=None)
        assert settings.db_path == "db.json"
        assert settings.persist_interval_seconds == 60
        assert settings.refresh_interval_seconds == 300
        assert settings.fetch_concurrency == 8
        assert settings.fetch_timeout_seconds == 30
        assert settings.input_feeds() == []

    def test_environment_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """从环境变量读取配置."""
        monkeypatch.setenv("DB_PATH", "/tmp/feeds.json")
        monkeypatch.setenv("REFRESH_INTERVAL_SECONDS", "10")
        monkeypatch.setenv(
            "FEEDS",
            '[{"name": "Blog", "url": "https://e.com/feed", "type": "xml"}]',
        )

        settings = Settings(_env_file=None)

        assert settings.db_path == "/tmp/feeds.json"
        assert settings.refresh_interval_seconds == 10
        feeds = settings.input_feeds()
        assert len(feeds) == 1
        assert feeds[0].name == "Blog"
        assert feeds[0].type is FeedType.XML

    def test_invalid_feeds_ignored(self) -> None:
        """无效的 Feed 列表被忽略."""
        assert Settings(_env_file=None, feeds="not json").input_feeds() == []
        assert (
            Settings(
                _env_file=None,
                feeds='[{"name": "x", "url": "https://e.com", "type": "json"}]',
            ).input_feeds()
            == []
        )

    def test_get_settings_is_cached(self) -> None:
        """get_settings 返回缓存的实例."""
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()


class TestBuildStore:
    """测试入口装配."""

    async def test_build_store_from_settings(self) -> None:
        """按配置创建 Feed 列表."""
        settings = Settings(
            _env_file=None,
            db_path="x.json",
            persist_interval_seconds=5,
            refresh_interval_seconds=0,
            fetch_concurrency=3,
            feeds='[{"name": "Blog", "url": "https://e.com/feed", "type": "xml"}]',
        )

        store = build_store(settings)

        assert store.params.db_path == "x.json"
        assert store.params.persist_interval == 5
        assert store.params.refresh_interval == 0
        assert store.params.fetch_concurrency == 3
        assert [f.name for f in store.params.initial_feeds] == ["Blog"]
        assert isinstance(store.params.fetcher, Fetcher)
        await store.params.fetcher.aclose()
