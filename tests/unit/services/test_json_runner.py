"""JSON 信封单元测试。"""

from __future__ import annotations

import json
from typing import Any

import pytest

from src.domain.services.ad_scheduler import AdScheduler
from src.services.envelope.json_runner import JsonCommandRunner


@pytest.fixture
def runner(scheduler: AdScheduler) -> JsonCommandRunner:
    return JsonCommandRunner(scheduler, timeline_id="tl-test", include_trace=False)


def _call(runner: JsonCommandRunner, func: str, **params: Any) -> dict[str, Any]:
    return json.loads(runner.run(json.dumps({"func": func, **params})))


def _seed_content(runner: JsonCommandRunner) -> dict[str, Any]:
    return _call(runner, "appendContent", clipURI="content.mp4", mediaBegin=0, mediaEnd=220)[
        "result"
    ]


class TestEnvelopeFormat:
    def test_flat_params(self, runner: JsonCommandRunner) -> None:
        result = _seed_content(runner)

        assert result["clipKind"] == "ProgramContent"
        assert result["linearDuration"] == 220.0
        assert result["isAdvertisement"] is False

    def test_nested_params(self, runner: JsonCommandRunner) -> None:
        response = json.loads(
            runner.run(
                json.dumps(
                    {"func": "appendContent", "params": {"mediaBegin": 0, "mediaEnd": 60}}
                )
            )
        )
        assert response["result"]["linearDuration"] == 60.0

    def test_numeric_strings_coerced(self, runner: JsonCommandRunner) -> None:
        response = _call(runner, "appendContent", mediaBegin="0", mediaEnd="45.5")
        assert response["result"]["mediaEnd"] == 45.5

    def test_total_duration(self, runner: JsonCommandRunner) -> None:
        _seed_content(runner)
        assert _call(runner, "totalDuration") == {"result": 220.0}

    def test_reset_returns_null(self, runner: JsonCommandRunner) -> None:
        _seed_content(runner)
        assert _call(runner, "resetTimeline") == {"result": None}
        assert _call(runner, "snapshot") == {"result": []}

    def test_operations_listed(self, runner: JsonCommandRunner) -> None:
        assert "scheduleAd" in runner.operations
        assert runner.operations == sorted(runner.operations)


class TestEnvelopeErrors:
    def test_malformed_json(self, runner: JsonCommandRunner) -> None:
        response = json.loads(runner.run("{not json"))
        assert response["error"]["category"] == "InvalidOperation"
        assert "not valid JSON" in response["error"]["message"]

    @pytest.mark.parametrize("payload", ['{"params": {}}', '{"func": 3}', "[1, 2]"])
    def test_missing_func(self, runner: JsonCommandRunner, payload: str) -> None:
        response = json.loads(runner.run(payload))
        assert response["error"]["category"] == "InvalidOperation"

    def test_unknown_func(self, runner: JsonCommandRunner) -> None:
        response = _call(runner, "rewind")
        assert response["error"] == {
            "category": "InvalidOperation",
            "message": "unknown operation: rewind",
        }

    def test_invalid_params(self, runner: JsonCommandRunner) -> None:
        response = _call(runner, "appendContent", mediaBegin="start")
        assert response["error"]["category"] == "InvalidOperation"
        assert "invalid params for appendContent" in response["error"]["message"]

    @pytest.mark.parametrize(
        "payload",
        [
            '{"func": "appendContent", "mediaBegin": 0, "mediaEnd": NaN}',
            '{"func": "appendContent", "mediaBegin": 0, "mediaEnd": Infinity}',
            '{"func": "scheduleAd", "rollType": "Mid", "midStartTime": -Infinity}',
            '{"func": "entryAtTime", "time": NaN}',
        ],
    )
    def test_non_finite_numbers_rejected(self, runner: JsonCommandRunner, payload: str) -> None:
        _seed_content(runner)

        response = json.loads(runner.run(payload))

        assert response["error"]["category"] == "InvalidOperation"
        assert response["error"]["message"].startswith("invalid params")
        assert _call(runner, "totalDuration") == {"result": 220.0}
        assert len(_call(runner, "snapshot")["result"]) == 1

    def test_not_found(self, runner: JsonCommandRunner) -> None:
        response = _call(runner, "removeClip", entryId=99)
        assert response["error"]["category"] == "NotFound"

    def test_out_of_range(self, runner: JsonCommandRunner) -> None:
        _seed_content(runner)
        response = _call(runner, "entryAtTime", time=500)
        assert response["error"]["category"] == "OutOfRange"

    def test_trace_included_when_enabled(self, scheduler: AdScheduler) -> None:
        verbose = JsonCommandRunner(scheduler, include_trace=True)

        response = json.loads(verbose.run(json.dumps({"func": "removeClip", "entryId": 5})))

        trace = response["error"]["trace"]
        assert isinstance(trace, list)
        assert any("EntryNotFoundError" in line for line in trace)

    def test_unexpected_exception_is_internal_error(
        self, runner: JsonCommandRunner, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def _boom() -> float:
            raise RuntimeError("boom")

        monkeypatch.setattr(runner._scheduler, "total_duration", _boom)

        response = _call(runner, "totalDuration")
        assert response["error"]["category"] == "InternalError"
        assert response["error"]["message"] == "boom"


class TestEnvelopeOperations:
    def test_schedule_and_navigate(self, runner: JsonCommandRunner) -> None:
        _seed_content(runner)
        ad = _call(
            runner,
            "scheduleAd",
            rollType="Mid",
            clipKind="Media",
            mediaEnd=30,
            linearDuration=30,
            midStartTime=100,
        )["result"]

        assert ad["linearStart"] == 100.0
        assert _call(runner, "entryAtTime", time=110)["result"]["id"] == ad["id"]

        after = _call(runner, "entryAfter", entryId=ad["id"])["result"]
        before = _call(runner, "entryBefore", entryId=ad["id"])["result"]
        assert after["linearStart"] == 130.0
        assert before["linearDuration"] == 100.0
        assert _call(runner, "entryBefore", entryId=before["id"]) == {"result": None}

    def test_seek_marker_set_once(self, runner: JsonCommandRunner) -> None:
        _seed_content(runner)

        marker = _call(runner, "setSeekMarker")["result"]
        assert marker["clipKind"] == "SeekToStart"
        assert _call(runner, "setSeekMarker") == {"result": None}

    def test_notify_played_is_idempotent(self, runner: JsonCommandRunner) -> None:
        _seed_content(runner)
        marker = _call(runner, "setSeekMarker")["result"]

        first = _call(runner, "notifyPlayed", entryId=marker["id"])
        second = _call(runner, "notifyPlayed", entryId=marker["id"])

        assert first["result"]["id"] == marker["id"]
        assert second == {"result": None}
        assert len(_call(runner, "snapshot")["result"]) == 1

    def test_remove_clip_returns_entry(self, runner: JsonCommandRunner) -> None:
        _seed_content(runner)
        post = _call(runner, "scheduleAd", rollType="Post", mediaEnd=15)["result"]

        removed = _call(runner, "removeClip", entryId=post["id"])["result"]
        assert removed["deleteAfterPlayed"] is False
        assert removed["mutationCount"] == 1
