"""事件通知 -- EventDispatcher + 内置 sink

EventDispatcher 以 fire-and-forget 方式把事件交给每个 sink：
投递在后台 asyncio.Task 中进行，sink 的异常只记录日志，
不会回滚或阻塞产生事件的 guardian 调用。
"""

import asyncio
from collections import defaultdict
from collections.abc import Iterable

import structlog

from .models.event import GuardianEvent
from .store.protocols import EventSink

log = structlog.get_logger()

# 订阅全部任务事件时使用的键
ALL_TASKS = "*"


class EventDispatcher:
    """把事件分发给已注册的 sink"""

    def __init__(self, sinks: Iterable[EventSink] = ()) -> None:
        self._sinks: list[EventSink] = list(sinks)
        self._pending: set[asyncio.Task] = set()

    @property
    def sinks(self) -> list[EventSink]:
        return list(self._sinks)

    def add_sink(self, sink: EventSink) -> None:
        self._sinks.append(sink)

    def dispatch(self, event: GuardianEvent) -> None:
        """为每个 sink 创建后台投递任务（需在事件循环内调用）"""
        loop = asyncio.get_running_loop()
        for sink in self._sinks:
            task = loop.create_task(self._deliver(sink, event))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """等待所有未完成的投递"""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    @staticmethod
    async def _deliver(sink: EventSink, event: GuardianEvent) -> None:
        try:
            await sink.publish(event)
        except Exception as e:
            # sink 失败不影响 guardian
            log.warning(
                "event_sink_failed",
                sink=type(sink).__name__,
                event_id=event.event_id,
                task_id=event.task_id,
                error_type=type(e).__name__,
                error=str(e),
            )


class LogEventSink:
    """控制台通知 -- 把事件写入结构化日志"""

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None) -> None:
        self._log = logger or structlog.get_logger("taskguardian.events")

    async def publish(self, event: GuardianEvent) -> None:
        await self._log.ainfo(
            "guardian_event",
            kind=event.kind.value,
            task_id=event.task_id,
            seq=event.seq,
            actor=event.actor.value,
            payload=event.payload,
        )


class EventHub:
    """内存中事件广播器 -- 基于 asyncio.Queue 的发布/订阅

    每个订阅者持有一个 asyncio.Queue；队列满时该订阅者被移除。
    """

    def __init__(self, queue_maxsize: int = 100) -> None:
        # task_id（或 ALL_TASKS）-> set of asyncio.Queue
        self._subscribers: dict[str, set[asyncio.Queue]] = defaultdict(set)
        self._queue_maxsize = queue_maxsize

    def subscribe(self, task_id: str = ALL_TASKS) -> asyncio.Queue:
        """订阅指定任务（默认全部任务）的事件流

        Args:
            task_id: 要订阅的任务 ID，ALL_TASKS 表示全部

        Returns:
            asyncio.Queue 实例，新事件会被推送到此队列
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_maxsize)
        self._subscribers[task_id].add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue, task_id: str = ALL_TASKS) -> None:
        """取消订阅"""
        self._subscribers[task_id].discard(queue)
        if not self._subscribers[task_id]:
            del self._subscribers[task_id]

    def subscriber_count(self, task_id: str = ALL_TASKS) -> int:
        return len(self._subscribers.get(task_id, ()))

    async def publish(self, event: GuardianEvent) -> None:
        """向任务订阅者和全局订阅者广播事件"""
        for key in (event.task_id, ALL_TASKS):
            dead_queues = []
            for queue in self._subscribers.get(key, set()):
                try:
                    queue.put_nowait(event)
                except asyncio.QueueFull:
                    dead_queues.append(queue)

            # 清理已满的队列
            for q in dead_queues:
                log.warning("event_hub_subscriber_dropped", task_id=key)
                self._subscribers[key].discard(q)
            if key in self._subscribers and not self._subscribers[key]:
                del self._subscribers[key]
