"""Event Domain Model -- 事件与状态流转记录

事件一旦创建不可修改；事件日志 append-only。
event_id 使用 ULID 格式，seq 在同一个 guardian 内严格单调递增。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import ActorType, EventKind, TaskState


class TaskTransition(BaseModel):
    """一次已完成的状态流转快照，用于构建事件 payload"""

    model_config = ConfigDict(frozen=True)

    from_state: TaskState
    to_state: TaskState
    ts: datetime
    reason: str = ""
    actor: ActorType = ActorType.USER


class GuardianEvent(BaseModel):
    """事件数据模型

    每次 Task Store 变更恰好产生一条事件。
    """

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(description="唯一标识，ULID 格式")
    seq: int = Field(description="全局序号，严格单调递增")
    kind: EventKind = Field(description="事件类型")
    task_id: str = Field(description="关联的 Task ID")
    ts: datetime = Field(description="事件时间戳")
    actor: ActorType = Field(default=ActorType.SYSTEM, description="操作者")
    payload: dict[str, Any] = Field(default_factory=dict, description="结构化 payload")
