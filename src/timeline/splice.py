"""时间线拼接引擎

在线插入、拆分、焊接与裁剪条目，并维持时间线的连续性。

每个操作都先完成全部校验，再做第一次结构性修改；校验失败时时间线
保持调用前的状态。
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import structlog

from src.timeline.entry_index import index_of_id, is_near_zero, position_at_time
from src.timeline.errors import InvalidOperationError, OutOfRangeError
from src.timeline.models import ClipKind, TimelineEntry, TimelineState

logger = structlog.get_logger(__name__)


class SpliceEngine:
    """拼接引擎

    直接修改 ``TimelineState`` 中的条目列表，只应由 SequentialPlaylist 调用。
    """

    def __init__(self, state: TimelineState) -> None:
        self._state = state

    @property
    def _entries(self) -> List[TimelineEntry]:
        return self._state.entries

    def _near_zero(self, value: float) -> bool:
        return is_near_zero(value, self._state.tolerance)

    # ------------------------------------------------------------------
    # 创建与拆分
    # ------------------------------------------------------------------

    def create_entry(
        self, split_from_id: Optional[int] = None, split_offset: float = 0.0
    ) -> TimelineEntry:
        """创建新条目

        Args:
            split_from_id: 可选，被拆分条目的 id；给出时新条目是其右半部分
            split_offset: 拆分点相对被拆分条目起点的偏移（秒）

        Returns:
            待填充的新条目，尚未插入时间线
        """
        if split_from_id is None:
            entry_id = self._state.allocate_id()
            return TimelineEntry(_id=entry_id, _lineage_id=entry_id)

        source = self._entries[index_of_id(self._entries, split_from_id, "create_entry")]
        if source.linear_duration == 0:
            raise InvalidOperationError(f"create_entry: entry {split_from_id} cannot be split")
        return self._split_copy(source, split_offset)

    def _split_copy(self, source: TimelineEntry, offset: float) -> TimelineEntry:
        return TimelineEntry(
            _id=self._state.allocate_id(),
            _lineage_id=source.lineage_id,
            clip_uri=source.clip_uri,
            clip_kind=source.clip_kind,
            linear_start=source.linear_start + offset,
            linear_duration=source.linear_duration - offset,
            media_begin=source.media_begin + offset,
            media_end=source.media_end,
            is_advertisement=source.is_advertisement,
            playback_policy=source.playback_policy,
            delete_after_played=source.delete_after_played,
        )

    # ------------------------------------------------------------------
    # 插入
    # ------------------------------------------------------------------

    @staticmethod
    def _check_overlay(covered: TimelineEntry, duration: float) -> None:
        # 贴片广告不能跨越其他广告，也不能超出被覆盖的内容片段
        if covered.is_advertisement:
            raise InvalidOperationError("overlay across another ad")
        if duration > covered.linear_duration:
            raise InvalidOperationError("overlay beyond end of program content clip")

    @staticmethod
    def _apply_overlay(covered: TimelineEntry, duration: float) -> None:
        covered.linear_start += duration
        covered.linear_duration -= duration
        covered.media_begin += duration
        covered._mark_changed()

    def insert_at_time(self, entry: TimelineEntry) -> None:
        """在 ``entry.linear_start`` 处插入中插或贴片广告"""
        if not entry.is_advertisement:
            raise InvalidOperationError("insert_at_time of non-advertisement")

        entries = self._entries
        index = position_at_time(entries, entry.linear_start, self._state.tolerance)
        if index == len(entries):
            raise OutOfRangeError(
                f"insert_at_time linear_start {entry.linear_start} outside timeline range"
            )
        covering = entries[index]
        offset = entry.linear_start - covering.linear_start
        # 略早于下一个条目起点时，按下一个条目的边界处理，不切出极短的碎片
        if (
            not self._near_zero(offset)
            and index + 1 < len(entries)
            and self._near_zero(entries[index + 1].linear_start - entry.linear_start)
        ):
            index += 1
            covering = entries[index]
            offset = entry.linear_start - covering.linear_start

        if self._near_zero(offset):
            # 落在已有条目起点上：插到它前面
            if entry.linear_duration > 0:
                self._check_overlay(covering, entry.linear_duration)
            entry.linear_start = covering.linear_start
            if entry.linear_duration > 0:
                self._apply_overlay(covering, entry.linear_duration)
            entries.insert(index, entry)
            logger.debug(
                "timeline.inserted_at_boundary",
                entry_id=entry.id,
                before_id=covering.id,
                linear_start=entry.linear_start,
            )
            return

        if covering.is_advertisement:
            raise InvalidOperationError("insert_at_time splitting ad")
        if entry.linear_duration > covering.linear_duration - offset:
            raise InvalidOperationError("overlay beyond end of program content clip")

        remainder = self._split_copy(covering, offset)
        covering.linear_duration = offset
        covering.media_end = remainder.media_begin
        covering._mark_changed()

        entry.linear_start = covering.linear_end
        if entry.linear_duration > 0:
            self._apply_overlay(remainder, entry.linear_duration)

        entries[index + 1 : index + 1] = [entry, remainder]
        logger.debug(
            "timeline.split",
            entry_id=entry.id,
            split_id=covering.id,
            remainder_id=remainder.id,
            lineage_id=covering.lineage_id,
            split_at=entry.linear_start,
        )

    def append_after_end(self, entry: TimelineEntry) -> None:
        """追加到时间线末尾"""
        if entry.is_advertisement and entry.linear_duration > 0:
            raise InvalidOperationError("append_after_end of an overlay ad")

        entries = self._entries
        if entries:
            entry.linear_start = entries[-1].linear_end
        self._state.linear_duration += entry.linear_duration
        entries.append(entry)

    def prepend_before_start(self, entry: TimelineEntry) -> None:
        """插入到时间线开头；非零时长时覆盖第一个条目的开头"""
        entries = self._entries
        if entry.linear_duration > 0:
            if not entries:
                raise InvalidOperationError("prepend_before_start overlay on empty timeline")
            self._check_overlay(entries[0], entry.linear_duration)

        if entries:
            entry.linear_start = entries[0].linear_start
            if entry.linear_duration > 0:
                self._apply_overlay(entries[0], entry.linear_duration)
        entries.insert(0, entry)

    def insert_after_id(self, anchor_id: int, entry: TimelineEntry) -> None:
        """广告组（pod）插入：紧跟在 ``anchor_id`` 对应条目之后"""
        entries = self._entries
        i = index_of_id(entries, anchor_id, "insert_after_id")
        anchor = entries[i]
        if anchor.clip_kind == ClipKind.SEEK_TO_START:
            raise InvalidOperationError(
                f"insert_after_id: cannot insert after SeekToStart entry {anchor_id}"
            )

        if entry.is_marker:
            entry.linear_start = anchor.linear_end
            entries.insert(i + 1, entry)
            return

        if i + 1 == len(entries):
            raise InvalidOperationError("overlay beyond end of timeline")
        following = entries[i + 1]
        if following.is_advertisement:
            raise InvalidOperationError("overlay across another ad")

        # VAST 占位后紧跟 Media：视为晚绑定，解析出的素材接管 VAST 的时间段
        late_bound = (
            anchor.clip_kind == ClipKind.VAST
            and entry.clip_kind == ClipKind.MEDIA
            and anchor.linear_duration > 0
        )
        reclaimed = anchor.linear_duration if late_bound else 0.0
        if entry.linear_duration > following.linear_duration + reclaimed:
            raise InvalidOperationError("overlay beyond end of program content clip")

        if late_bound:
            entry.linear_start = anchor.linear_start
            following.linear_start -= reclaimed
            following.linear_duration += reclaimed
            following.media_begin -= reclaimed
            following._mark_changed()
            logger.debug("timeline.vast_resolved", vast_id=anchor.id, entry_id=entry.id)
        else:
            entry.linear_start = following.linear_start

        self._apply_overlay(following, entry.linear_duration)
        entries.insert(i + 1, entry)

    def insert_seek_marker(self, entry: TimelineEntry) -> Optional[TimelineEntry]:
        """在第一个非零时长条目前插入 seek-to-start 标记

        Returns:
            插入的条目；时间线中已有 seek-to-start 标记时返回 None
        """
        entries = self._entries
        for i, existing in enumerate(entries):
            if existing.clip_kind == ClipKind.SEEK_TO_START:
                return None
            if existing.linear_duration > 0:
                entry.clip_kind = ClipKind.SEEK_TO_START
                entry.linear_start = existing.linear_start
                entries.insert(i, entry)
                return entry
        raise InvalidOperationError("insert_seek_marker: timeline has no content")

    # ------------------------------------------------------------------
    # 删除与裁剪
    # ------------------------------------------------------------------

    def remove(self, entry_id: int) -> TimelineEntry:
        """删除广告条目

        被删广告两侧若是同一内容拆分出的兄弟条目，则焊接回一个条目；
        若删除的是贴片广告并留下空隙，则把后续条目向前拉回以填补空隙。

        Returns:
            被删除的条目
        """
        entries = self._entries
        i = index_of_id(entries, entry_id, "remove")
        removed = entries[i]
        if not removed.is_advertisement:
            raise InvalidOperationError("remove of main content is not allowed")

        before = entries[i - 1] if i > 0 else None
        after = entries[i + 1] if i + 1 < len(entries) else None
        siblings: Optional[Tuple[TimelineEntry, TimelineEntry]] = None
        if before is not None and after is not None and before.lineage_id == after.lineage_id:
            siblings = (before, after)

        # 删除（及焊接）之后紧跟在删除点后的条目
        follower_index = i + 2 if siblings else i + 1
        follower = entries[follower_index] if follower_index < len(entries) else None

        if siblings:
            kept, absorbed = siblings
            anchor_end = kept.linear_end + absorbed.linear_duration + removed.linear_duration
        else:
            # 前面可能是起点空隙前的标记，或与晚绑定素材重叠的 VAST
            anchor_end = removed.linear_start
        # 前面只有零时长标记（或无条目）时，起点处的空隙是允许的
        spans_time = (
            siblings is not None
            or removed.linear_duration > 0
            or (before is not None and before.linear_duration > 0)
        )

        gap = False
        if follower is not None and spans_time:
            width = follower.linear_start - anchor_end
            gap = width > 0 and not self._near_zero(width)
            # 贴片之后紧跟暂停时间线的广告视为状态不一致
            if gap and follower.is_advertisement and follower.linear_duration == 0:
                raise InvalidOperationError(
                    "overlay ad removed should not be followed by another zero-duration ad"
                )
            if gap and removed.linear_duration == 0:
                raise InvalidOperationError(
                    "removing a zero-duration ad should not introduce gaps in the linear timeline"
                )

        was_tail = i == len(entries) - 1
        del entries[i]
        if was_tail:
            self._state.linear_duration -= removed.linear_duration
        removed._mark_changed()
        # 清除标记，避免播放完成通知再次删除
        removed.delete_after_played = False

        if siblings:
            kept, absorbed = siblings
            kept.linear_duration += absorbed.linear_duration + removed.linear_duration
            kept.media_end = absorbed.media_end
            kept._mark_changed()
            absorbed._mark_changed()
            del entries[i]
            logger.debug(
                "timeline.welded",
                entry_id=kept.id,
                absorbed_id=absorbed.id,
                lineage_id=kept.lineage_id,
            )

        if gap:
            self._close_gap(i, removed.linear_duration)

        return removed

    def _close_gap(self, index: int, duration: float) -> None:
        # 后续广告整体前移，第一个内容条目向前扩展收回被覆盖的部分
        entries = self._entries
        j = index
        while j < len(entries) and entries[j].is_advertisement:
            entries[j].linear_start -= duration
            entries[j]._mark_changed()
            j += 1
        if j < len(entries):
            content = entries[j]
            content.linear_start -= duration
            content.linear_duration += duration
            content.media_begin -= duration
            content._mark_changed()
        else:
            # 后面没有内容可扩展，时间线随之缩短
            self._state.linear_duration -= duration
        logger.debug("timeline.gap_closed", index=index, duration=duration)

    def clear(self) -> None:
        self._entries.clear()
        self._state.linear_duration = 0.0

    def trim_before(self, time_point: float) -> None:
        """删除或截短 ``time_point`` 之前的条目（保留前贴片标记与 seek 标记）"""
        entries = self._entries
        i = 0
        while i < len(entries) and entries[i].is_advertisement and entries[i].is_marker:
            i += 1
        if i < len(entries) and entries[i].clip_kind == ClipKind.SEEK_TO_START:
            i += 1

        while i < len(entries) and entries[i].linear_start < time_point:
            entry = entries[i]
            if entry.linear_end <= time_point:
                del entries[i]
                continue
            delta = time_point - entry.linear_start
            entry.linear_duration -= delta
            entry.media_begin += delta
            entry.linear_start = time_point
            entry._mark_changed()
            break

        self._refresh_duration()
        logger.debug("timeline.trimmed_before", time_point=time_point, entry_count=len(entries))

    def trim_after(self, time_point: float) -> None:
        """删除或截短 ``time_point`` 之后的条目；后贴片标记移到 ``time_point``"""
        entries = self._entries
        i = len(entries) - 1
        while i >= 0 and entries[i].is_advertisement and entries[i].is_marker:
            entries[i].linear_start = time_point
            entries[i]._mark_changed()
            i -= 1

        if i >= 0:
            tail = entries[i]
            if tail.linear_end <= time_point:
                # 结束时间后延：延长最后一个内容（或贴片广告）
                if not self._near_zero(time_point - tail.linear_end):
                    tail.linear_duration = time_point - tail.linear_start
                    tail.media_end = tail.media_begin + tail.linear_duration
                    tail._mark_changed()
            else:
                while i >= 0 and entries[i].linear_end > time_point:
                    entry = entries[i]
                    if entry.linear_start >= time_point:
                        del entries[i]
                    else:
                        entry.linear_duration = time_point - entry.linear_start
                        entry.media_end = entry.media_begin + entry.linear_duration
                        entry._mark_changed()
                        break
                    i -= 1

        self._refresh_duration()
        logger.debug("timeline.trimmed_after", time_point=time_point, entry_count=len(entries))

    def _refresh_duration(self) -> None:
        # 线性跨度：第一个非零时长条目的起点到最后一个条目的终点
        entries = self._entries
        first = next((entry for entry in entries if not entry.is_marker), None)
        if first is None:
            self._state.linear_duration = 0.0
            return
        self._state.linear_duration = entries[-1].linear_end - first.linear_start
