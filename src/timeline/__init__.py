"""线性时间线模块

维护由内容片段与插播广告组成的单条线性时间线，支持在线插入、
拆分、删除与裁剪。
"""

from src.timeline.errors import (
    EntryNotFoundError,
    InvalidOperationError,
    OutOfRangeError,
    SchedulerError,
)
from src.timeline.models import ClipKind, RollType, TimelineEntry
from src.timeline.playlist import SequentialPlaylist

__all__ = [
    "ClipKind",
    "RollType",
    "TimelineEntry",
    "SequentialPlaylist",
    "SchedulerError",
    "EntryNotFoundError",
    "OutOfRangeError",
    "InvalidOperationError",
]
