"""Feed 类型参数.

每种 Feed 类型拥有自己的参数模型。参数在 Feed 上以原始 JSON 值保存，
使用时再通过 parse_params 转换并校验。
"""

from enum import StrEnum
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class FeedType(StrEnum):
    """Feed 类型."""

    XML = "xml"
    HTML = "html"
    IMAGE = "img"


class ParamsError(ValueError):
    """Feed 参数无法解析或校验失败."""


class FeedParams(BaseModel):
    """所有 Feed 参数的公共部分."""

    model_config = ConfigDict(extra="ignore")

    max_items: int = Field(default=0, description="条目数量上限，0 表示自适应")

    def check(self) -> None:
        """语义校验，失败时抛出 ValueError."""


class CapParams(FeedParams):
    """只关心条目上限的参数视图，用于淘汰策略."""

    def check(self) -> None:
        if self.max_items <= 0:
            msg = "max_items 必须为正数"
            raise ValueError(msg)


class XMLParams(FeedParams):
    """RSS/Atom Feed 参数."""


class HTMLParams(FeedParams):
    """通用 HTML 抓取参数."""

    encoding: str = Field(default="", description="页面编码，为空时自动检测")
    container_tag: str = Field(default="", description="容器标签")
    container_attrs: dict[str, str] = Field(default_factory=dict)
    title_pos: int = Field(default=0, description="标题在片段中的位置")
    base_url: str = Field(default="", description="解析相对链接的基准 URL")
    allowed_prefixes: list[str] = Field(default_factory=list)

    def check(self) -> None:
        if not self.container_tag:
            msg = "container_tag 不能为空"
            raise ValueError(msg)
        if self.title_pos < 0:
            msg = "title_pos 不能为负数"
            raise ValueError(msg)
        if not self.base_url:
            msg = "base_url 不能为空"
            raise ValueError(msg)
        if not self.allowed_prefixes:
            msg = "allowed_prefixes 不能为空"
            raise ValueError(msg)


class ImageParams(FeedParams):
    """单图片 Feed 参数."""

    mime_type: str = ""
    url: str = ""
    title: str = ""

    def check(self) -> None:
        if not self.mime_type:
            msg = "mime_type 不能为空"
            raise ValueError(msg)
        if not self.url:
            msg = "url 不能为空"
            raise ValueError(msg)
        if not self.title:
            msg = "title 不能为空"
            raise ValueError(msg)


PARAMS_BY_TYPE: dict[FeedType, type[FeedParams]] = {
    FeedType.XML: XMLParams,
    FeedType.HTML: HTMLParams,
    FeedType.IMAGE: ImageParams,
}

P = TypeVar("P", bound=FeedParams)


def parse_params(value: Any, model: type[P]) -> P:
    """将原始参数转换为 model 并校验.

    Raises:
        ParamsError: 结构不符（cannot parse）或语义校验失败（cannot validate）
    """
    if value is None:
        value = {}
    try:
        params = model.model_validate(value)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc']) or model.__name__}: {err['msg']}"
            for err in e.errors()
        )
        msg = f"cannot parse: {details}"
        raise ParamsError(msg) from e

    try:
        params.check()
    except ValueError as e:
        msg = f"cannot validate: {e}"
        raise ParamsError(msg) from e
    return params
