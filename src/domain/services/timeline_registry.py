"""时间线注册表。

每条时间线是一个独立的 AdScheduler + SequentialPlaylist，由注册表持有。
时间线核心不加锁，注册表为每条时间线持有一把互斥锁，
在一次命令执行期间独占整条时间线。API 层通过 ``asyncio.to_thread`` 在
线程池中调用 ``run`` / ``snapshot``，并发请求在这把锁上排队。
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from uuid import uuid4

import structlog

from src.domain.services.ad_scheduler import AdScheduler
from src.infra.config.settings import get_settings
from src.services.envelope.json_runner import JsonCommandRunner
from src.timeline.playlist import SequentialPlaylist

logger = structlog.get_logger(__name__)


@dataclass
class TimelineHandle:
    timeline_id: str
    scheduler: AdScheduler
    runner: JsonCommandRunner
    lock: threading.Lock = field(default_factory=threading.Lock)


class TimelineRegistry:
    def __init__(self, max_timelines: int | None = None) -> None:
        settings = get_settings()
        self._max_timelines = max_timelines or settings.max_timelines
        self._handles: dict[str, TimelineHandle] = {}
        self._handles_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._handles)

    def create(self, timeline_id: str | None = None) -> TimelineHandle:
        """创建一条空时间线。

        Raises:
            ValueError: id 已存在或已达到数量上限
        """
        timeline_id = timeline_id or str(uuid4())
        with self._handles_lock:
            if timeline_id in self._handles:
                raise ValueError(f"Timeline already exists: {timeline_id}")
            if len(self._handles) >= self._max_timelines:
                raise ValueError(f"Timeline limit reached: {self._max_timelines}")
            scheduler = AdScheduler(SequentialPlaylist())
            handle = TimelineHandle(
                timeline_id=timeline_id,
                scheduler=scheduler,
                runner=JsonCommandRunner(scheduler, timeline_id=timeline_id),
            )
            self._handles[timeline_id] = handle
        logger.info("timeline_registry.created", timeline_id=timeline_id)
        return handle

    def get(self, timeline_id: str) -> TimelineHandle | None:
        return self._handles.get(timeline_id)

    def drop(self, timeline_id: str) -> bool:
        with self._handles_lock:
            handle = self._handles.pop(timeline_id, None)
        if handle is None:
            return False
        logger.info("timeline_registry.dropped", timeline_id=timeline_id)
        return True

    def run(self, timeline_id: str, payload: str) -> str | None:
        """在时间线锁内执行一个 JSON 命令；时间线不存在时返回 None。"""
        handle = self.get(timeline_id)
        if handle is None:
            return None
        with handle.lock, structlog.contextvars.bound_contextvars(timeline_id=timeline_id):
            return handle.runner.run(payload)

    def snapshot(self, timeline_id: str) -> tuple[float, list[dict]] | None:
        handle = self.get(timeline_id)
        if handle is None:
            return None
        with handle.lock:
            playlist = handle.scheduler.playlist
            return playlist.linear_duration, playlist.snapshot()
