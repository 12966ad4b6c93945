"""顺序播放列表

时间线的唯一合法修改入口，封装条目索引与拼接引擎。
每条逻辑时间线对应一个显式构造的实例。
"""

from __future__ import annotations

from typing import Any, Optional, Tuple

from src.infra.config.settings import get_settings
from src.timeline.entry_index import index_of_id, position_at_time
from src.timeline.errors import EntryNotFoundError, OutOfRangeError
from src.timeline.models import TimelineEntry, TimelineState
from src.timeline.splice import SpliceEngine


class SequentialPlaylist:
    """顺序播放列表

    单写者、同步执行：每个操作要么完整生效，要么在修改前抛出异常。
    """

    def __init__(self, tolerance: Optional[float] = None) -> None:
        """初始化播放列表

        Args:
            tolerance: 边界比较容差（秒），默认从配置读取
        """
        if tolerance is None:
            tolerance = get_settings().near_zero_tolerance_s
        self._state = TimelineState(tolerance=tolerance)
        self._engine = SpliceEngine(self._state)

    # 修改操作

    def create_entry(
        self, split_from_id: Optional[int] = None, split_offset: float = 0.0
    ) -> TimelineEntry:
        return self._engine.create_entry(split_from_id, split_offset)

    def insert_at_time(self, entry: TimelineEntry) -> None:
        self._engine.insert_at_time(entry)

    def append_after_end(self, entry: TimelineEntry) -> None:
        self._engine.append_after_end(entry)

    def prepend_before_start(self, entry: TimelineEntry) -> None:
        self._engine.prepend_before_start(entry)

    def insert_after_id(self, anchor_id: int, entry: TimelineEntry) -> None:
        self._engine.insert_after_id(anchor_id, entry)

    def insert_seek_marker(self, entry: TimelineEntry) -> Optional[TimelineEntry]:
        return self._engine.insert_seek_marker(entry)

    def remove(self, entry_id: int) -> TimelineEntry:
        return self._engine.remove(entry_id)

    def clear(self) -> None:
        self._engine.clear()

    def trim_before(self, time_point: float) -> None:
        self._engine.trim_before(time_point)

    def trim_after(self, time_point: float) -> None:
        self._engine.trim_after(time_point)

    # 只读访问

    @property
    def entries(self) -> Tuple[TimelineEntry, ...]:
        return tuple(self._state.entries)

    @property
    def linear_duration(self) -> float:
        """整条时间线的线性时长（秒）"""
        return self._state.linear_duration

    @property
    def tolerance(self) -> float:
        return self._state.tolerance

    def __len__(self) -> int:
        return len(self._state.entries)

    def entry_at_time(self, time_point: float) -> TimelineEntry:
        """获取包含时间点的条目（多个零时长条目起点相同时取第一个）

        Raises:
            OutOfRangeError: 时间点不在时间线范围内
        """
        entries = self._state.entries
        index = position_at_time(entries, time_point, self._state.tolerance)
        if index == len(entries):
            raise OutOfRangeError(f"entry_at_time {time_point} outside timeline range")
        return entries[index]

    def find_entry(self, entry_id: int) -> Optional[TimelineEntry]:
        try:
            return self._state.entries[index_of_id(self._state.entries, entry_id, "find_entry")]
        except EntryNotFoundError:
            return None

    def entry_after_id(self, entry_id: int) -> Optional[TimelineEntry]:
        """获取紧跟在 id 之后的条目；位于末尾时返回 None"""
        entries = self._state.entries
        i = index_of_id(entries, entry_id, "entry_after_id")
        return entries[i + 1] if i < len(entries) - 1 else None

    def entry_before_id(self, entry_id: int) -> Optional[TimelineEntry]:
        """获取 id 之前的条目；位于开头时返回 None"""
        entries = self._state.entries
        i = index_of_id(entries, entry_id, "entry_before_id")
        return entries[i - 1] if i > 0 else None

    def on_played_entry(self, entry: TimelineEntry) -> Optional[TimelineEntry]:
        """播放完成通知；条目设置了 delete_after_played 时将其删除

        Returns:
            被删除的条目；未删除时返回 None
        """
        if entry.delete_after_played:
            return self.remove(entry.id)
        return None

    def snapshot(self) -> list[dict[str, Any]]:
        return [entry.to_dict() for entry in self._state.entries]
