"""定时任务定义."""

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler

if TYPE_CHECKING:
    from feedstash.core.store import MemoryStore

logger = logging.getLogger(__name__)


async def refresh_task(store: "MemoryStore") -> None:
    """自动刷新任务：刷新所有 Feed."""
    logger.info("开始自动刷新...")
    try:
        await store.refresh(auto=True)
    except Exception as e:
        logger.exception(f"自动刷新失败: {e}")
        return
    logger.info("自动刷新完成")


def create_refresh_scheduler(
    store: "MemoryStore", interval_seconds: float
) -> AsyncIOScheduler:
    """创建并启动自动刷新调度器（需要在事件循环中调用）."""
    scheduler = AsyncIOScheduler()

    # 上一次刷新未完成时跳过本次调度
    scheduler.add_job(
        refresh_task,
        "interval",
        seconds=interval_seconds,
        args=[store],
        id="refresh_task",
        name="Feed 自动刷新",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.start()
    logger.info(f"自动刷新已启用，刷新间隔: {interval_seconds} 秒")

    return scheduler


def shutdown_scheduler(scheduler: AsyncIOScheduler) -> None:
    """关闭调度器，不等待进行中的任务."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("自动刷新调度器已关闭")
