"""HTML 页面编码名称.

除 Python 编解码器名称外，还接受 charmap 风格的名称（如 ``Windows1252``、
``KOI8R``），以兼容按这种写法配置的 Feed。
"""

import codecs

CHARMAP_ENCODINGS: dict[str, str] = {
    "CodePage037": "cp037",
    "CodePage437": "cp437",
    "CodePage850": "cp850",
    "CodePage852": "cp852",
    "CodePage855": "cp855",
    "CodePage858": "cp858",
    "CodePage860": "cp860",
    "CodePage862": "cp862",
    "CodePage863": "cp863",
    "CodePage865": "cp865",
    "CodePage866": "cp866",
    "CodePage1140": "cp1140",
    "ISO8859_1": "iso8859_1",
    "ISO8859_2": "iso8859_2",
    "ISO8859_3": "iso8859_3",
    "ISO8859_4": "iso8859_4",
    "ISO8859_5": "iso8859_5",
    "ISO8859_6": "iso8859_6",
    # E/I 变体只在文字方向上有区别，字符表相同
    "ISO8859_6E": "iso8859_6",
    "ISO8859_6I": "iso8859_6",
    "ISO8859_7": "iso8859_7",
    "ISO8859_8": "iso8859_8",
    "ISO8859_8E": "iso8859_8",
    "ISO8859_8I": "iso8859_8",
    "ISO8859_9": "iso8859_9",
    "ISO8859_10": "iso8859_10",
    "ISO8859_13": "iso8859_13",
    "ISO8859_14": "iso8859_14",
    "ISO8859_15": "iso8859_15",
    "ISO8859_16": "iso8859_16",
    "KOI8R": "koi8_r",
    "KOI8U": "koi8_u",
    "Macintosh": "mac_roman",
    "MacintoshCyrillic": "mac_cyrillic",
    "Windows874": "cp874",
    "Windows1250": "cp1250",
    "Windows1251": "cp1251",
    "Windows1252": "cp1252",
    "Windows1253": "cp1253",
    "Windows1254": "cp1254",
    "Windows1255": "cp1255",
    "Windows1256": "cp1256",
    "Windows1257": "cp1257",
    "Windows1258": "cp1258",
}


def lookup_encoding(name: str) -> str | None:
    """把编码名称解析为 Python 编解码器名称，找不到时返回 None."""
    candidate = CHARMAP_ENCODINGS.get(name, name)
    try:
        return codecs.lookup(candidate).name
    except LookupError:
        return None
