from __future__ import annotations

import pytest

from src.infra.observability import timeline_metrics as metrics


class DummyGauge:
    def __init__(self) -> None:
        self.calls: list[tuple[str, int, dict]] = []

    def set(self, value: int, attributes: dict | None = None) -> None:
        self.calls.append(("set", value, attributes or {}))


class DummyCounter:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict]] = []

    def add(self, value: int, attributes: dict | None = None) -> None:
        self.calls.append(("add", attributes or {}))


def test_command_metric_helpers(monkeypatch: pytest.MonkeyPatch) -> None:
    commands = DummyCounter()
    failures = DummyCounter()
    entries = DummyGauge()

    monkeypatch.setattr(metrics, "timeline_commands_total", commands)
    monkeypatch.setattr(metrics, "timeline_command_failures_total", failures)
    monkeypatch.setattr(metrics, "timeline_entry_count_gauge", entries)

    metrics.add_command("scheduleAd", timeline_id="tl-1")
    metrics.add_command_failure("removeClip", category="NotFound", timeline_id="tl-1")
    metrics.set_entry_count(4, timeline_id="tl-1")

    assert commands.calls == [("add", {"func": "scheduleAd", "timeline_id": "tl-1"})]
    assert failures.calls == [
        ("add", {"func": "removeClip", "timeline_id": "tl-1", "category": "NotFound"})
    ]
    assert entries.calls == [("set", 4, {"timeline_id": "tl-1"})]


def test_labels_skip_missing_values(monkeypatch: pytest.MonkeyPatch) -> None:
    failures = DummyCounter()
    monkeypatch.setattr(metrics, "timeline_command_failures_total", failures)

    metrics.add_command_failure(None, category="InvalidOperation")

    assert failures.calls == [("add", {"category": "InvalidOperation"})]
