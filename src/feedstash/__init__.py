"""feedstash: 个人 Feed 聚合器."""

__version__ = "0.1.0"
