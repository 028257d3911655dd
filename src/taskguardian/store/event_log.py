"""EventLog 内存实现

append-only、容量有限：超过容量时按 FIFO 丢弃最旧的事件。
读取接口返回副本，调用方无法修改历史。
"""

from collections import deque

from ..config import EVENT_LOG_CAPACITY
from ..models.event import GuardianEvent


class EventLog:
    """有界事件日志"""

    def __init__(self, capacity: int = EVENT_LOG_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("Event log capacity must be at least 1")
        self._events: deque[GuardianEvent] = deque(maxlen=capacity)
        self._last_seq = 0

    @property
    def capacity(self) -> int:
        return self._events.maxlen or 0

    def next_seq(self) -> int:
        """分配下一个事件序号"""
        self._last_seq += 1
        return self._last_seq

    def append_event(self, event: GuardianEvent) -> None:
        """追加事件（append-only）"""
        self._events.append(event)

    def get_all_events(self) -> list[GuardianEvent]:
        """按追加顺序返回保留的全部事件（深拷贝）"""
        return [event.model_copy(deep=True) for event in self._events]

    def get_events_for_task(self, task_id: str) -> list[GuardianEvent]:
        """查询指定任务仍被保留的事件"""
        return [
            event.model_copy(deep=True)
            for event in self._events
            if event.task_id == task_id
        ]

    def __len__(self) -> int:
        return len(self._events)
