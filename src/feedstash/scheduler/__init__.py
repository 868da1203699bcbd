"""定时任务模块."""

from feedstash.scheduler.tasks import (
    create_refresh_scheduler,
    refresh_task,
    shutdown_scheduler,
)

__all__ = ["create_refresh_scheduler", "refresh_task", "shutdown_scheduler"]
