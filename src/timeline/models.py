"""时间线数据模型"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


class ClipKind(str, Enum):
    """片段类型"""

    MEDIA = "Media"
    STATIC = "Static"
    VAST = "VAST"
    SEEK_TO_START = "SeekToStart"
    PROGRAM_CONTENT = "ProgramContent"


class RollType(str, Enum):
    """广告挂载方式"""

    PRE = "Pre"
    POST = "Post"
    MID = "Mid"
    POD = "Pod"


@dataclass(eq=False)
class TimelineEntry:
    """时间线条目

    表示线性时间线上的一段连续区间。``id`` / ``lineage_id`` /
    ``mutation_count`` 只读，仅由拼接引擎修改。
    """

    _id: int
    _lineage_id: int
    clip_uri: Optional[str] = None
    clip_kind: Optional[ClipKind] = None
    linear_start: float = 0.0
    linear_duration: float = 0.0  # 0 表示标记条目（前/后贴片占位、seek-to-start）
    media_begin: float = 0.0
    media_end: float = 0.0
    is_advertisement: bool = True
    playback_policy: Any = field(default_factory=dict)
    delete_after_played: bool = False
    _mutation_count: int = 0

    @property
    def id(self) -> int:
        return self._id

    @property
    def lineage_id(self) -> int:
        """最初内容条目的 id，被拆分出的兄弟条目共享该值。"""
        return self._lineage_id

    @property
    def mutation_count(self) -> int:
        return self._mutation_count

    @property
    def linear_end(self) -> float:
        return self.linear_start + self.linear_duration

    @property
    def is_marker(self) -> bool:
        return self.linear_duration == 0

    def _mark_changed(self) -> None:
        self._mutation_count += 1

    def to_dict(self) -> dict[str, Any]:
        """序列化为对外的 JSON 结构"""
        return {
            "id": self._id,
            "lineageId": self._lineage_id,
            "mutationCount": self._mutation_count,
            "clipURI": self.clip_uri,
            "clipKind": self.clip_kind.value if self.clip_kind else None,
            "linearStart": self.linear_start,
            "linearDuration": self.linear_duration,
            "mediaBegin": self.media_begin,
            "mediaEnd": self.media_end,
            "isAdvertisement": self.is_advertisement,
            "playbackPolicy": self.playback_policy,
            "deleteAfterPlayed": self.delete_after_played,
        }


@dataclass
class TimelineState:
    """播放列表的内部状态，由 SequentialPlaylist 持有、SpliceEngine 修改。"""

    entries: List[TimelineEntry] = field(default_factory=list)
    linear_duration: float = 0.0
    next_id: int = 1  # 从 1 开始，id 永远为真值
    tolerance: float = 0.001

    def allocate_id(self) -> int:
        entry_id = self.next_id
        self.next_id += 1
        return entry_id
