"""时间工具."""

import time


def now() -> int:
    """当前 Unix 时间戳（秒）."""
    return int(time.time())
