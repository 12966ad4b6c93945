"""调度器的 JSON 请求/响应信封。

请求是一个 JSON 对象，``func`` 指定操作名，参数可以平铺在顶层，
也可以放在 ``params`` 对象中。响应为 ``{"result": ...}``，
出错时为 ``{"error": {"category", "message", "trace"}}``。
所有异常都通过信封返回，不会抛给宿主。
"""

from __future__ import annotations

import json
import traceback
from typing import Any, Callable

import structlog
from pydantic import ValidationError

from src.domain.models.schedule_params import (
    ContentClipParams,
    EntryIdParams,
    ScheduleAdParams,
    SeekMarkerParams,
    TimeParams,
)
from src.domain.services.ad_scheduler import AdScheduler
from src.infra.config.settings import get_settings
from src.infra.observability import timeline_metrics
from src.timeline.errors import InvalidOperationError, SchedulerError
from src.timeline.models import TimelineEntry

logger = structlog.get_logger(__name__)

Handler = Callable[[dict[str, Any]], Any]


def _entry_or_none(entry: TimelineEntry | None) -> dict[str, Any] | None:
    return entry.to_dict() if entry is not None else None


class JsonCommandRunner:
    """把 JSON 信封翻译成 AdScheduler 调用。"""

    def __init__(
        self,
        scheduler: AdScheduler,
        *,
        timeline_id: str | None = None,
        include_trace: bool | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._timeline_id = timeline_id
        self._include_trace = (
            get_settings().envelope_include_trace if include_trace is None else include_trace
        )
        self._handlers: dict[str, Handler] = {
            "resetTimeline": self._reset_timeline,
            "removeClip": self._remove_clip,
            "appendContent": self._append_content,
            "scheduleAd": self._schedule_ad,
            "setSeekMarker": self._set_seek_marker,
            "entryAtTime": self._entry_at_time,
            "entryAfter": self._entry_after,
            "entryBefore": self._entry_before,
            "totalDuration": self._total_duration,
            "notifyPlayed": self._notify_played,
            "snapshot": self._snapshot,
        }

    @property
    def operations(self) -> list[str]:
        return sorted(self._handlers)

    def run(self, payload: str) -> str:
        """执行一个 JSON 请求并返回 JSON 响应。"""
        func: str | None = None
        try:
            request = self._parse(payload)
            func = request["func"]
            handler = self._handlers.get(func)
            if handler is None:
                raise InvalidOperationError(f"unknown operation: {func}")
            params = request["params"] if isinstance(request.get("params"), dict) else request

            timeline_metrics.add_command(func, timeline_id=self._timeline_id)
            try:
                result = handler(params)
            except ValidationError as exc:
                raise InvalidOperationError(f"invalid params for {func}: {exc}") from exc
        except SchedulerError as exc:
            logger.warning(
                "envelope.failed",
                func=func,
                category=exc.category,
                message=str(exc),
                timeline_id=self._timeline_id,
            )
            timeline_metrics.add_command_failure(
                func, category=exc.category, timeline_id=self._timeline_id
            )
            return self._error(exc, exc.category)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "envelope.crashed",
                func=func,
                timeline_id=self._timeline_id,
                error=str(exc),
                exc_info=True,
            )
            timeline_metrics.add_command_failure(
                func, category="InternalError", timeline_id=self._timeline_id
            )
            return self._error(exc, "InternalError")

        timeline_metrics.set_entry_count(
            len(self._scheduler.playlist), timeline_id=self._timeline_id
        )
        return json.dumps({"result": result}, ensure_ascii=False)

    def _parse(self, payload: str) -> dict[str, Any]:
        try:
            request = json.loads(payload)
        except (TypeError, ValueError) as exc:
            raise InvalidOperationError(f"request is not valid JSON: {exc}") from exc
        if not isinstance(request, dict) or not isinstance(request.get("func"), str):
            raise InvalidOperationError("func property missing or not a string")
        return request

    def _error(self, exc: BaseException, category: str) -> str:
        error: dict[str, Any] = {"category": category, "message": str(exc)}
        if self._include_trace:
            lines = traceback.format_exception(type(exc), exc, exc.__traceback__)
            error["trace"] = [line for chunk in lines for line in chunk.rstrip().splitlines()]
        return json.dumps({"error": error}, ensure_ascii=False)

    # 各操作

    def _reset_timeline(self, params: dict[str, Any]) -> None:
        self._scheduler.reset_timeline()

    def _remove_clip(self, params: dict[str, Any]) -> dict[str, Any]:
        entry_id = EntryIdParams.model_validate(params).entry_id
        return self._scheduler.remove_clip(entry_id).to_dict()

    def _append_content(self, params: dict[str, Any]) -> dict[str, Any]:
        return self._scheduler.append_content(ContentClipParams.model_validate(params)).to_dict()

    def _schedule_ad(self, params: dict[str, Any]) -> dict[str, Any]:
        return self._scheduler.schedule_ad(ScheduleAdParams.model_validate(params)).to_dict()

    def _set_seek_marker(self, params: dict[str, Any]) -> dict[str, Any] | None:
        entry = self._scheduler.set_seek_marker(SeekMarkerParams.model_validate(params))
        return _entry_or_none(entry)

    def _entry_at_time(self, params: dict[str, Any]) -> dict[str, Any]:
        time_point = TimeParams.model_validate(params).time
        return self._scheduler.entry_at_time(time_point).to_dict()

    def _entry_after(self, params: dict[str, Any]) -> dict[str, Any] | None:
        entry_id = EntryIdParams.model_validate(params).entry_id
        return _entry_or_none(self._scheduler.entry_after(entry_id))

    def _entry_before(self, params: dict[str, Any]) -> dict[str, Any] | None:
        entry_id = EntryIdParams.model_validate(params).entry_id
        return _entry_or_none(self._scheduler.entry_before(entry_id))

    def _total_duration(self, params: dict[str, Any]) -> float:
        return self._scheduler.total_duration()

    def _notify_played(self, params: dict[str, Any]) -> dict[str, Any] | None:
        entry_id = EntryIdParams.model_validate(params).entry_id
        entry = self._scheduler.playlist.find_entry(entry_id)
        if entry is None:
            # 已被删除的条目再次通知时不做任何事
            return None
        return _entry_or_none(self._scheduler.notify_played(entry))

    def _snapshot(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        return self._scheduler.playlist.snapshot()
