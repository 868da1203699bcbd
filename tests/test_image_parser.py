"""测试单图片 Feed 解析."""

import base64
import hashlib
import re
from unittest.mock import patch

import pytest

from feedstash.fetcher.errors import ParseError
from feedstash.fetcher.image import parse_image

PARAMS = {"mime_type": "image/png", "url": "https://example.com/cam.png", "title": "Cam"}
DATA = b"\x89PNG\r\n\x1a\nfake image bytes"


class TestParseImage:
    """测试图片条目生成."""

    def test_single_item(self) -> None:
        """每次抓取只产生一个条目."""
        items = parse_image(DATA, PARAMS)
        assert len(items) == 1
        assert items[0].position == 0

    def test_url_contains_content_hash(self) -> None:
        """URL 附带图片内容的 SHA-256."""
        item = parse_image(DATA, PARAMS)[0]
        assert item.url == f"https://example.com/cam.png#{hashlib.sha256(DATA).hexdigest()}"

    def test_identity_changes_with_content(self) -> None:
        """图片内容变化时 URL 随之变化，内容不变时 URL 不变."""
        first = parse_image(DATA, PARAMS)[0]
        same = parse_image(DATA, PARAMS)[0]
        other = parse_image(DATA + b"!", PARAMS)[0]
        assert first.url == same.url
        assert first.url != other.url

    def test_title_has_fetch_time(self) -> None:
        """标题附带 UTC 抓取时间."""
        title = parse_image(DATA, PARAMS)[0].title
        assert re.fullmatch(r"Cam - \d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} UTC", title)

    def test_content_is_data_url_image(self) -> None:
        """内容为嵌入图片数据的 img 标签."""
        encoded = base64.b64encode(DATA).decode("ascii")
        item = parse_image(DATA, PARAMS)[0]
        assert item.content == f'<img src="data:image/png;base64,{encoded}"/>'

    @pytest.mark.parametrize("missing", ["mime_type", "url", "title"])
    def test_required_params(self, missing: str) -> None:
        """缺少任一参数时抛出 ParseError."""
        params = {k: v for k, v in PARAMS.items() if k != missing}
        with pytest.raises(ParseError, match="无法解析图片 Feed 参数"):
            parse_image(DATA, params)

    def test_title_time_follows_clock(self) -> None:
        """标题时间与抓取时钟一致."""
        with patch("feedstash.utils.timeutil.now", return_value=86400):
            title = parse_image(DATA, PARAMS)[0].title
        assert title == "Cam - 1970-01-02 00:00:00 UTC"
