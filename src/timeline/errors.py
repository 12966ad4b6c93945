"""时间线调度错误。"""

from __future__ import annotations


class SchedulerError(Exception):
    """时间线调度错误基类。

    所有错误都是同步、确定性的，不可重试。``category`` 用于在边界层
    （JSON 信封、HTTP）对外暴露错误分类。
    """

    category = "SchedulerError"


class EntryNotFoundError(SchedulerError):
    """按 id 查找条目失败。"""

    category = "NotFound"


class OutOfRangeError(SchedulerError):
    """时间点超出时间线范围。"""

    category = "OutOfRange"


class InvalidOperationError(SchedulerError):
    """违反时间线结构约束的操作。"""

    category = "InvalidOperation"
