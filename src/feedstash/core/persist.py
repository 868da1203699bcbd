"""Feed 列表快照的序列化与文件读写.

快照格式: {"feeds": {<feed uid>: <feed>}}，字段名使用 JSON 别名
（updated_at、error）。
"""

import contextlib
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from feedstash.models.feed import Feed


class Snapshot(BaseModel):
    """持久化的 Feed 列表."""

    feeds: dict[str, Feed] = Field(default_factory=dict)

    @field_validator("feeds", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value


def dump_snapshot(feeds: dict[str, Feed]) -> str:
    """把 Feed 列表序列化为 JSON 文本."""
    return Snapshot(feeds=feeds).model_dump_json(by_alias=True)


def parse_snapshot(data: str | bytes) -> dict[str, Feed]:
    """从 JSON 文本反序列化 Feed 列表；空内容视为空列表.

    Raises:
        pydantic.ValidationError: 内容不是合法的快照
    """
    if not data.strip():
        return {}
    return Snapshot.model_validate_json(data).feeds


def ensure_snapshot_file(path: str | os.PathLike[str]) -> None:
    """文件不存在时创建一个空文件."""
    Path(path).touch(mode=0o600, exist_ok=True)


def read_snapshot(path: str | os.PathLike[str]) -> dict[str, Feed]:
    """读取快照文件."""
    return parse_snapshot(Path(path).read_bytes())


def write_snapshot(path: str | os.PathLike[str], data: str) -> None:
    """原子地写入快照：先写入同目录下的临时文件，再替换目标文件."""
    target = Path(path)
    fd, tmp_path = tempfile.mkstemp(
        dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        os.replace(tmp_path, target)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise
