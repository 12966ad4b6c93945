"""广告调度器。

把播放器层面的概念（前贴片、中插、后贴片、广告组、内容追加、
seek-to-start 标记）映射到顺序播放列表的操作上，并做最短时长校验。
"""

from __future__ import annotations

from typing import Optional

import structlog

from src.domain.models.schedule_params import (
    ContentClipParams,
    ScheduleAdParams,
    SeekMarkerParams,
)
from src.infra.config.settings import get_settings
from src.timeline.errors import InvalidOperationError
from src.timeline.models import ClipKind, RollType, TimelineEntry
from src.timeline.playlist import SequentialPlaylist

logger = structlog.get_logger(__name__)


class AdScheduler:
    """点播内容的广告调度器。"""

    def __init__(
        self,
        playlist: Optional[SequentialPlaylist] = None,
        *,
        min_clip_duration_s: float | None = None,
    ) -> None:
        """初始化调度器

        Args:
            playlist: 要操作的播放列表，默认新建一个
            min_clip_duration_s: 片段最短时长，默认从配置读取
        """
        settings = get_settings()
        self._playlist = playlist if playlist is not None else SequentialPlaylist()
        self._min_clip_duration_s = (
            settings.min_clip_duration_s if min_clip_duration_s is None else min_clip_duration_s
        )

    @property
    def playlist(self) -> SequentialPlaylist:
        return self._playlist

    def _is_duration_too_small(self, duration: float) -> bool:
        return duration < self._min_clip_duration_s

    def reset_timeline(self) -> None:
        """清空时间线。"""
        self._playlist.clear()
        logger.info("scheduler.timeline_reset")

    def remove_clip(self, entry_id: int) -> TimelineEntry:
        removed = self._playlist.remove(entry_id)
        logger.info(
            "scheduler.clip_removed",
            entry_id=removed.id,
            clip_kind=removed.clip_kind.value if removed.clip_kind else None,
            total_duration=self._playlist.linear_duration,
        )
        return removed

    def append_content(self, params: ContentClipParams) -> TimelineEntry:
        """追加内容片段。必须在插播广告之前调用一次或多次。"""
        duration = params.media_end - params.media_begin
        if self._is_duration_too_small(duration):
            raise InvalidOperationError(f"append_content duration too small: {duration}")

        entry = self._playlist.create_entry()
        entry.clip_uri = params.clip_uri
        entry.clip_kind = ClipKind.PROGRAM_CONTENT
        entry.media_begin = params.media_begin
        entry.media_end = params.media_end
        entry.linear_duration = duration
        entry.is_advertisement = False

        self._playlist.append_after_end(entry)
        logger.info(
            "scheduler.content_appended",
            entry_id=entry.id,
            linear_start=entry.linear_start,
            linear_duration=entry.linear_duration,
        )
        return entry

    def schedule_ad(self, params: ScheduleAdParams) -> TimelineEntry:
        """插播广告。包含该广告的内容必须已经追加。"""
        try:
            roll_type = RollType(params.roll_type)
        except ValueError:
            raise InvalidOperationError(
                f"schedule_ad invalid roll type: {params.roll_type}"
            ) from None

        if params.media_end is not None:
            media_duration = params.media_end - params.media_begin
            if self._is_duration_too_small(media_duration):
                raise InvalidOperationError(
                    f"schedule_ad media_end too small. Delta: {media_duration}"
                )
            media_end = params.media_end
        elif params.linear_duration == 0:
            raise InvalidOperationError(
                "schedule_ad cannot determine media_end given missing media_end "
                "and zero linear_duration"
            )
        else:
            media_end = params.media_begin + params.linear_duration

        if roll_type is RollType.POD and params.pod_anchor_id is None:
            raise InvalidOperationError("schedule_ad Pod requires pod_anchor_id")
        if roll_type is RollType.MID and params.mid_start_time is None:
            raise InvalidOperationError("schedule_ad Mid requires mid_start_time")

        entry = self._playlist.create_entry()
        entry.clip_uri = params.clip_uri
        entry.clip_kind = params.clip_kind
        entry.linear_duration = params.linear_duration
        entry.media_begin = params.media_begin
        entry.media_end = media_end
        entry.is_advertisement = True
        entry.playback_policy = params.playback_policy
        entry.delete_after_played = params.delete_after_played

        if roll_type is RollType.PRE:
            entry.linear_duration = 0.0
            self._playlist.prepend_before_start(entry)
        elif roll_type is RollType.POST:
            entry.linear_duration = 0.0
            self._playlist.append_after_end(entry)
        elif roll_type is RollType.POD:
            self._playlist.insert_after_id(params.pod_anchor_id, entry)  # type: ignore[arg-type]
        else:
            entry.linear_start = params.mid_start_time  # type: ignore[assignment]
            self._playlist.insert_at_time(entry)

        logger.info(
            "scheduler.ad_scheduled",
            entry_id=entry.id,
            roll_type=roll_type.value,
            linear_start=entry.linear_start,
            linear_duration=entry.linear_duration,
        )
        return entry

    def set_seek_marker(self, params: SeekMarkerParams | None = None) -> TimelineEntry | None:
        """设置 seek-to-start 标记。必须在追加内容之后调用。

        Returns:
            新建的标记条目；已存在标记时返回 None
        """
        entry = self._playlist.create_entry()
        if params is not None and params.clip_uri:
            entry.clip_uri = params.clip_uri
        entry.clip_kind = ClipKind.SEEK_TO_START
        entry.media_end = -1.0  # 无上界
        entry.delete_after_played = True
        entry.is_advertisement = True

        inserted = self._playlist.insert_seek_marker(entry)
        if inserted is None:
            logger.info("scheduler.seek_marker_exists")
        return inserted

    def entry_at_time(self, time_point: float) -> TimelineEntry:
        return self._playlist.entry_at_time(time_point)

    def entry_after(self, entry_id: int) -> TimelineEntry | None:
        return self._playlist.entry_after_id(entry_id)

    def entry_before(self, entry_id: int) -> TimelineEntry | None:
        return self._playlist.entry_before_id(entry_id)

    def total_duration(self) -> float:
        return self._playlist.linear_duration

    def notify_played(self, entry: TimelineEntry) -> TimelineEntry | None:
        """播放完成通知；设置了 delete_after_played 的条目会被删除。"""
        removed = self._playlist.on_played_entry(entry)
        if removed is not None:
            logger.info("scheduler.played_entry_removed", entry_id=removed.id)
        return removed
