"""单图片 Feed 解析.

适用于同一 URL 下定期更新的图片（例如天气图、摄像头截图）。
"""

import base64
import hashlib
from datetime import UTC, datetime
from typing import Any

from bs4 import BeautifulSoup

from feedstash.fetcher.errors import ParseError
from feedstash.fetcher.sanitize import silently_sanitize_html
from feedstash.models.item import RawItem
from feedstash.models.params import ImageParams, ParamsError, parse_params
from feedstash.utils import timeutil


def parse_image(data: bytes, params: Any) -> list[RawItem]:
    """把图片数据转换为单个原始条目.

    标题附带抓取时间，因此每次抓取标题都会变化；URL 附带图片内容的 SHA-256，
    因此只有图片内容变化时才会产生新条目。
    """
    try:
        p = parse_params(params, ImageParams)
    except ParamsError as e:
        msg = f"无法解析图片 Feed 参数: {e}"
        raise ParseError(msg) from e

    date = datetime.fromtimestamp(timeutil.now(), UTC).strftime("%Y-%m-%d %H:%M:%S UTC")
    src = f"data:{p.mime_type};base64,{base64.b64encode(data).decode('ascii')}"
    img = BeautifulSoup("", "html.parser").new_tag("img", attrs={"src": src})

    return [
        RawItem(
            url=f"{p.url}#{hashlib.sha256(data).hexdigest()}",
            title=f"{p.title} - {date}",
            # 内容只有一个 data URL 图片，不需要基准 URL
            content=silently_sanitize_html(str(img)),
        )
    ]
