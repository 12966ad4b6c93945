"""时间线调度指标的 OpenTelemetry 封装。"""

from __future__ import annotations

from typing import Any

from opentelemetry import metrics
from opentelemetry.metrics import Meter

meter: Meter = metrics.get_meter("ad_timeline.scheduler")

timeline_commands_total = meter.create_counter(
    name="timeline_commands_total",
    description="JSON 信封执行的调度命令数",
    unit="commands",
)

timeline_command_failures_total = meter.create_counter(
    name="timeline_command_failures_total",
    description="调度命令失败次数（按错误分类）",
    unit="commands",
)

timeline_entry_count_gauge = meter.create_gauge(
    name="timeline_entry_count",
    description="时间线当前条目数",
    unit="entries",
)


def _labels(func: str | None, timeline_id: str | None) -> dict[str, Any]:
    labels: dict[str, Any] = {}
    if func:
        labels["func"] = func
    if timeline_id:
        labels["timeline_id"] = timeline_id
    return labels


def add_command(func: str, *, timeline_id: str | None = None) -> None:
    timeline_commands_total.add(1, attributes=_labels(func, timeline_id))


def add_command_failure(
    func: str | None, *, category: str, timeline_id: str | None = None
) -> None:
    labels = _labels(func, timeline_id)
    labels["category"] = category
    timeline_command_failures_total.add(1, attributes=labels)


def set_entry_count(count: int, *, timeline_id: str | None = None) -> None:
    timeline_entry_count_gauge.set(count, attributes=_labels(None, timeline_id))
