#!/usr/bin/env python
"""Pytest fixtures for ad timeline project."""
# ruff: noqa: E402

import sys
from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.api.main import app
from src.api.v1.routes import timelines
from src.domain.models.schedule_params import ContentClipParams, ScheduleAdParams
from src.domain.services.ad_scheduler import AdScheduler
from src.domain.services.timeline_registry import TimelineRegistry
from src.timeline.playlist import SequentialPlaylist


@pytest.fixture(scope="function")
async def app_client(monkeypatch: pytest.MonkeyPatch) -> AsyncGenerator[AsyncClient, None]:
    """每个测试函数使用独立的时间线注册表和客户端。"""
    monkeypatch.setattr(timelines, "registry", TimelineRegistry())

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def playlist() -> SequentialPlaylist:
    return SequentialPlaylist(tolerance=0.001)


@pytest.fixture
def scheduler(playlist: SequentialPlaylist) -> AdScheduler:
    return AdScheduler(playlist, min_clip_duration_s=1.0)


# =============================================================================
# Factory Fixtures
# =============================================================================


@pytest.fixture
def content_params_factory() -> Callable[..., ContentClipParams]:
    """创建 ContentClipParams 的工厂函数。"""

    def _create(
        media_begin: float = 0.0,
        media_end: float = 100.0,
        clip_uri: str = "https://cdn.example.com/content.mp4",
    ) -> ContentClipParams:
        return ContentClipParams(clip_uri=clip_uri, media_begin=media_begin, media_end=media_end)

    return _create


@pytest.fixture
def ad_params_factory() -> Callable[..., ScheduleAdParams]:
    """创建 ScheduleAdParams 的工厂函数。"""

    def _create(
        roll_type: str = "Mid",
        linear_duration: float = 0.0,
        media_begin: float = 0.0,
        media_end: float | None = 30.0,
        clip_kind: str = "Media",
        clip_uri: str = "https://ads.example.com/ad.mp4",
        **kwargs: Any,
    ) -> ScheduleAdParams:
        return ScheduleAdParams(
            clip_uri=clip_uri,
            clip_kind=clip_kind,
            media_begin=media_begin,
            media_end=media_end,
            linear_duration=linear_duration,
            roll_type=roll_type,
            **kwargs,
        )

    return _create


@pytest.fixture
def content_220(
    scheduler: AdScheduler, content_params_factory: Callable[..., ContentClipParams]
) -> AdScheduler:
    """单个 [0, 220) 内容片段的时间线。"""
    scheduler.append_content(content_params_factory(media_begin=0.0, media_end=220.0))
    return scheduler
