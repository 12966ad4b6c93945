"""OpenTelemetry 与结构化日志初始化。"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
import structlog

from src.infra.config.settings import get_settings

_LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10MB
_LOG_FILE_BACKUPS = 5


def configure_tracing(service_name: str = "ad-timeline") -> None:
    settings = get_settings()
    resource = Resource.create(
        {"service.name": service_name, "deployment.environment": settings.environment}
    )
    provider = TracerProvider(resource=resource)
    exporter = OTLPSpanExporter(endpoint=settings.otel_endpoint, insecure=True)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)


def _file_handler(path: Path, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path,
        maxBytes=_LOG_FILE_MAX_BYTES,
        backupCount=_LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def configure_logging(log_dir: str | None = None, log_level: str | None = None) -> None:
    """配置结构化日志，同时输出到控制台和文件。

    - 控制台: 终端下彩色输出，否则 JSON
    - 文件: JSON 格式（app.log 全量，error.log 仅 WARNING 及以上）

    时间线命令执行期间通过 contextvars 绑定的 ``timeline_id`` 会出现在每条日志中。
    可以被多次调用，每次都会重置 root logger 的 handlers。

    Args:
        log_dir: 日志目录，默认从配置读取
        log_level: 日志级别，默认从配置读取
    """
    settings = get_settings()
    level_name = log_level or settings.log_level
    level = getattr(logging, level_name)
    directory = Path(log_dir or settings.log_dir)
    directory.mkdir(parents=True, exist_ok=True)

    is_tty = sys.stdout.isatty()
    console_renderer: Any
    if is_tty:
        console_renderer = structlog.dev.ConsoleRenderer(colors=True)
    else:
        console_renderer = structlog.processors.JSONRenderer(ensure_ascii=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    json_formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
    )
    console_formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            console_renderer,
        ],
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(console_formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)
    root_logger.addHandler(_file_handler(directory / "app.log", level, json_formatter))
    root_logger.addHandler(_file_handler(directory / "error.log", logging.WARNING, json_formatter))

    structlog.get_logger(__name__).info(
        "logging_configured",
        log_dir=str(directory.absolute()),
        log_level=level_name,
        console_mode="color" if is_tty else "json",
    )
