"""抓取与解析错误."""


class FetchError(Exception):
    """抓取流水线中的错误."""


class ParseError(FetchError):
    """抓取到的内容无法解析为条目."""


class SanitizeError(FetchError):
    """HTML 片段无法清洗."""
