#!/usr/bin/env python
"""运行端到端 Demo：通过 API 构建一条带前贴片、中插和广告组的点播时间线。"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from httpx import ASGITransport, AsyncClient

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:  # pragma: no cover - 路径注入
    sys.path.insert(0, str(REPO_ROOT))

from src.api.main import app

COMMANDS: list[dict[str, Any]] = [
    {"func": "appendContent", "params": {"clipURI": "content/ep1.mp4", "mediaBegin": 0, "mediaEnd": 100}},
    {"func": "appendContent", "params": {"clipURI": "content/ep1.mp4", "mediaBegin": 100, "mediaEnd": 220}},
    {"func": "scheduleAd", "params": {"rollType": "Pre", "clipURI": "ads/pre.mp4", "clipKind": "Media", "mediaEnd": 15}},
    {
        "func": "scheduleAd",
        "params": {
            "rollType": "Mid",
            "clipURI": "ads/mid.mp4",
            "clipKind": "Media",
            "mediaEnd": 30,
            "linearDuration": 30,
            "midStartTime": 100,
        },
    },
    {"func": "scheduleAd", "params": {"rollType": "Post", "clipURI": "ads/post.mp4", "clipKind": "Media", "mediaEnd": 10}},
    {"func": "totalDuration"},
]


async def _run_command(client: AsyncClient, timeline_id: str, command: dict[str, Any]) -> Any:
    resp = await client.post(f"/api/v1/timelines/{timeline_id}/commands", json=command)
    resp.raise_for_status()
    body = resp.json()
    if "error" in body:
        raise RuntimeError(f"{command['func']} 失败：{body['error']['message']}")
    return body["result"]


async def run_demo() -> dict[str, Any]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://demo.local") as client:
        resp = await client.post("/api/v1/timelines", json={"timeline_id": "demo"})
        resp.raise_for_status()
        timeline_id = resp.json()["timeline_id"]

        for command in COMMANDS:
            result = await _run_command(client, timeline_id, command)
            print(f"{command['func']}: {json.dumps(result, ensure_ascii=False)}")

        resp = await client.get(f"/api/v1/timelines/{timeline_id}")
        resp.raise_for_status()
        return resp.json()


def main() -> None:
    timeline = asyncio.run(run_demo())
    print()
    print(f"时间线 {timeline['timeline_id']} 总时长 {timeline['total_duration']} 秒")
    for entry in timeline["entries"]:
        kind = "广告" if entry["isAdvertisement"] else "内容"
        print(
            f"  #{entry['id']:<3} {kind} {entry['clipKind']:<15} "
            f"[{entry['linearStart']:>7.2f}, +{entry['linearDuration']:.2f}) {entry['clipURI']}"
        )


if __name__ == "__main__":
    main()
