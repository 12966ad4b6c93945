"""时间线调度 API。"""

from __future__ import annotations

import asyncio
from typing import Annotated, Any

from fastapi import APIRouter, HTTPException, Path, Request, Response
from pydantic import BaseModel

from src.domain.services.timeline_registry import TimelineRegistry

router = APIRouter(prefix="/api/v1/timelines", tags=["timelines"])
registry = TimelineRegistry()


class TimelineCreateRequest(BaseModel):
    timeline_id: str | None = None


class TimelineCreateResponse(BaseModel):
    timeline_id: str


class TimelineResponse(BaseModel):
    timeline_id: str
    total_duration: float
    entries: list[dict[str, Any]]


@router.post("", response_model=TimelineCreateResponse, status_code=201)
async def create_timeline(body: TimelineCreateRequest | None = None) -> TimelineCreateResponse:
    try:
        handle = registry.create(body.timeline_id if body else None)
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return TimelineCreateResponse(timeline_id=handle.timeline_id)


@router.get("/{timeline_id}", response_model=TimelineResponse)
async def get_timeline(
    timeline_id: Annotated[str, Path(description="时间线 ID")],
) -> TimelineResponse:
    snapshot = await asyncio.to_thread(registry.snapshot, timeline_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="时间线不存在")
    total_duration, entries = snapshot
    return TimelineResponse(timeline_id=timeline_id, total_duration=total_duration, entries=entries)


@router.post("/{timeline_id}/commands")
async def run_command(
    timeline_id: Annotated[str, Path(description="时间线 ID")],
    request: Request,
) -> Response:
    """执行一个 JSON 信封命令；调度错误以错误信封返回，状态码仍为 200。

    命令在线程池中执行，同一时间线的并发命令由注册表的时间线锁串行化。
    """
    payload = (await request.body()).decode("utf-8", errors="replace")
    result = await asyncio.to_thread(registry.run, timeline_id, payload)
    if result is None:
        raise HTTPException(status_code=404, detail="时间线不存在")
    return Response(content=result, media_type="application/json")


@router.delete("/{timeline_id}", status_code=204)
async def delete_timeline(
    timeline_id: Annotated[str, Path(description="时间线 ID")],
) -> Response:
    if not registry.drop(timeline_id):
        raise HTTPException(status_code=404, detail="时间线不存在")
    return Response(status_code=204)
