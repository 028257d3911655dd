"""Store / Sink Protocol 接口定义

使用 Python Protocol 实现结构化子类型（duck typing），
外部协作者（通知、归档）只需实现对应方法即可挂载。
"""

from typing import Protocol

from ..models.event import GuardianEvent


class EventSink(Protocol):
    """事件接收方接口

    publish 的异常不会回传给产生事件的调用方。
    """

    async def publish(self, event: GuardianEvent) -> None:
        """接收一条事件"""
        ...


class EventArchive(EventSink, Protocol):
    """事件归档接口 -- 持久化全部事件，供 projection 重建"""

    async def get_all_events(self) -> list[GuardianEvent]:
        """按发生顺序查询全部事件"""
        ...

    async def get_events_for_task(self, task_id: str) -> list[GuardianEvent]:
        """查询指定任务的全部事件"""
        ...
