"""调度请求参数模型。

对外使用 camelCase 字段名，内部使用 snake_case。
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.timeline.models import ClipKind


class ScheduleParamsModel(BaseModel):
    # 时间与时长必须是有限数，NaN / Infinity 一律拒绝
    model_config = ConfigDict(populate_by_name=True, extra="ignore", allow_inf_nan=False)


class ContentClipParams(ScheduleParamsModel):
    """追加内容片段的参数；时长为 media_end - media_begin。"""

    clip_uri: str | None = Field(default=None, alias="clipURI")
    media_begin: float = Field(..., alias="mediaBegin")
    media_end: float = Field(..., alias="mediaEnd")


class ScheduleAdParams(ScheduleParamsModel):
    """插播广告的参数。"""

    clip_uri: str | None = Field(default=None, alias="clipURI")
    clip_kind: ClipKind | None = Field(default=None, alias="clipKind")
    media_begin: float = Field(default=0.0, alias="mediaBegin")
    media_end: float | None = Field(default=None, alias="mediaEnd")
    # 0 表示暂停时间线的广告，非零表示覆盖内容的贴片广告
    linear_duration: float = Field(default=0.0, ge=0, alias="linearDuration")
    # 保持为字符串，未知取值由调度器按 InvalidOperation 拒绝
    roll_type: str | None = Field(default=None, alias="rollType")
    playback_policy: Any = Field(default_factory=dict, alias="playbackPolicy")
    delete_after_played: bool = Field(default=False, alias="deleteAfterPlayed")
    pod_anchor_id: int | None = Field(default=None, alias="podAnchorId")  # 仅 Pod 使用
    mid_start_time: float | None = Field(default=None, alias="midStartTime")  # 仅 Mid 使用


class SeekMarkerParams(ScheduleParamsModel):
    clip_uri: str | None = Field(default=None, alias="clipURI")  # 给出时表示直播内容


class EntryIdParams(ScheduleParamsModel):
    entry_id: int = Field(..., alias="entryId")


class TimeParams(ScheduleParamsModel):
    time: float
