"""Event Payload 子类型

所有事件的结构化 payload 定义。
"""

from typing import Any

from pydantic import BaseModel, Field

from .enums import ActorType, TaskKind, TaskPriority, TaskState


class TaskCreatedPayload(BaseModel):
    """task_created 事件 payload"""

    description: str
    kind: TaskKind
    priority: TaskPriority
    estimated_effort: float | None = None
    depends_on: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class StateTransitionPayload(BaseModel):
    """状态流转事件 payload（task_updated / task_completed / task_failed）"""

    from_state: TaskState
    to_state: TaskState
    progress: int
    reason: str = Field(default="")
    actor: ActorType = Field(default=ActorType.USER)


class FilesTouchedPayload(BaseModel):
    """记录修改文件的 task_updated 事件 payload"""

    files_added: list[str] = Field(description="本次新增的文件（去重后）")
    files_touched_count: int = Field(description="累计文件数")


class EffortRecordedPayload(BaseModel):
    """记录实际工作量的 task_updated 事件 payload"""

    actual_effort: float = Field(description="实际工作量（分钟）")
