"""数据模型."""

from feedstash.models.feed import Feed, FeedSummary, InputFeed
from feedstash.models.item import Item, ItemSummary, RawItem, uid
from feedstash.models.params import (
    FeedParams,
    FeedType,
    HTMLParams,
    ImageParams,
    ParamsError,
    XMLParams,
    parse_params,
)

__all__ = [
    "Feed",
    "FeedParams",
    "FeedSummary",
    "FeedType",
    "HTMLParams",
    "ImageParams",
    "InputFeed",
    "Item",
    "ItemSummary",
    "ParamsError",
    "RawItem",
    "XMLParams",
    "parse_params",
    "uid",
]
