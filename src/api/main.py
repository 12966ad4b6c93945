from __future__ import annotations

from fastapi import FastAPI

from src.api.v1.routes import timelines
from src.infra.config.settings import get_settings
from src.infra.observability.otel import configure_logging, configure_tracing

# 配置日志（需要在应用启动前）
configure_logging()

app = FastAPI(title="广告插播时间线 API")
app.include_router(timelines.router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "ok"}


@app.on_event("startup")
async def initialize_infra() -> None:
    """在 API 启动时初始化链路追踪。"""

    settings = get_settings()
    if settings.otel_enabled:
        configure_tracing()
