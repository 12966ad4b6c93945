"""按 id 与时间点查找时间线条目。"""

from __future__ import annotations

from typing import Sequence

from src.timeline.errors import EntryNotFoundError
from src.timeline.models import TimelineEntry

# 1 毫秒，吸收反复浮点运算带来的舍入误差
DEFAULT_TOLERANCE_S = 0.001


def is_near_zero(value: float, tolerance: float = DEFAULT_TOLERANCE_S) -> bool:
    return abs(value) < tolerance


def index_of_id(
    entries: Sequence[TimelineEntry], entry_id: int, caller: str | None = None
) -> int:
    """返回 id 对应条目的位置

    Raises:
        EntryNotFoundError: 没有该 id 的条目
    """
    for i, entry in enumerate(entries):
        if entry.id == entry_id:
            return i
    raise EntryNotFoundError(f"{caller or '[unnamed]'} called with invalid id {entry_id}")


def position_at_time(
    entries: Sequence[TimelineEntry],
    time_point: float,
    tolerance: float = DEFAULT_TOLERANCE_S,
) -> int:
    """查找包含时间点的条目位置

    正向扫描，起点与时间点足够接近，或 ``[start, start + duration)``
    包含时间点即命中；多个零时长条目起点相同时返回第一个。

    Returns:
        条目位置；未命中时返回 ``len(entries)``，调用方需按越界处理
    """
    for i, entry in enumerate(entries):
        start = entry.linear_start
        if is_near_zero(start - time_point, tolerance) or (
            start <= time_point < start + entry.linear_duration
        ):
            return i
    return len(entries)
