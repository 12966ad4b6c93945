#!/usr/bin/env python
"""显示当前时间线调度配置。"""

import sys
from pathlib import Path

# 添加项目根目录到 Python 路径
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.infra.config.settings import get_settings


def main() -> None:
    settings = get_settings()

    print("=" * 60)
    print("广告时间线配置")
    print("=" * 60)
    print()

    print("📋 调度:")
    print(f"  Environment: {settings.environment}")
    print(f"  Near-zero tolerance: {settings.near_zero_tolerance_s} s")
    print(f"  Min clip duration: {settings.min_clip_duration_s} s")
    print(f"  Max timelines: {settings.max_timelines}")
    print()

    print("📦 信封:")
    print(f"  Include trace: {'✅ 启用' if settings.envelope_include_trace else '❌ 禁用'}")
    print()

    print("📝 日志与追踪:")
    print(f"  Log dir: {settings.log_dir}")
    print(f"  Log level: {settings.log_level}")
    print(f"  OTEL: {'✅ ' + settings.otel_endpoint if settings.otel_enabled else '❌ 禁用'}")

    if settings.min_clip_duration_s <= 0:
        print()
        print("  ⚠️  最短片段时长 <= 0，极短内容片段不会被拒绝")

    print()
    print("=" * 60)


if __name__ == "__main__":
    main()
