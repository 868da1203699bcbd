"""feedstash 主程序入口."""

import asyncio
import logging
import signal

from feedstash.config import Settings, get_settings
from feedstash.core.store import MemoryStore, StoreParams
from feedstash.fetcher.fetch import Fetcher

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """配置日志."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # 第三方库日志过于详细
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def build_store(settings: Settings) -> MemoryStore:
    """根据配置创建 Feed 列表（尚未启动）."""
    return MemoryStore(
        StoreParams(
            initial_feeds=settings.input_feeds(),
            db_path=settings.db_path,
            persist_interval=settings.persist_interval_seconds,
            refresh_interval=settings.refresh_interval_seconds,
            fetch_concurrency=settings.fetch_concurrency,
            fetcher=Fetcher(timeout=settings.fetch_timeout_seconds),
        )
    )


async def serve(settings: Settings) -> None:
    """启动 Feed 列表并运行到收到 SIGINT/SIGTERM 为止."""
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    store = build_store(settings)
    fetcher = store.params.fetcher

    logger.info("feedstash 正在启动...")
    try:
        async with store:
            logger.info("feedstash 启动完成！")
            await stop.wait()
            logger.info("正在关闭...")
    finally:
        if isinstance(fetcher, Fetcher):
            await fetcher.aclose()
    logger.info("feedstash 已关闭")


def run() -> None:
    """命令行入口."""
    settings = get_settings()
    setup_logging(settings.log_level)
    asyncio.run(serve(settings))


if __name__ == "__main__":
    run()
