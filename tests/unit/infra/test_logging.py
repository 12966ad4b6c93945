from __future__ import annotations

import json
import logging
from pathlib import Path

import structlog

from src.infra.observability.otel import configure_logging


def test_configure_logging_writes_json_files(tmp_path: Path) -> None:
    configure_logging(log_dir=str(tmp_path), log_level="DEBUG")

    logger = structlog.get_logger("tests.logging")
    with structlog.contextvars.bound_contextvars(timeline_id="tl-log"):
        logger.warning("timeline.test_event", entry_id=3)
    for handler in logging.getLogger().handlers:
        handler.flush()

    records = [
        json.loads(line)
        for line in (tmp_path / "error.log").read_text(encoding="utf-8").splitlines()
    ]
    event = next(r for r in records if r["event"] == "timeline.test_event")
    assert event["timeline_id"] == "tl-log"
    assert event["entry_id"] == 3
    assert (tmp_path / "app.log").exists()
