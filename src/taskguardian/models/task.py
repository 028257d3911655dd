"""Task Domain Model -- 任务记录、任务定义与任务目录

Task 只能通过 TaskGuardian 修改：
state/progress 仅经由合法流转更新，progress 永远等于状态对应的进度值。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import INITIAL_STATE, TaskKind, TaskPriority, TaskState


class TaskDefinition(BaseModel):
    """任务定义 -- 目录中的一项，由外部种子数据提供"""

    description: str = Field(description="任务描述")
    kind: TaskKind = Field(description="任务分类")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="优先级")
    estimated_effort: float | None = Field(
        default=None,
        ge=0,
        description="预估工作量（分钟）",
    )
    metadata: dict[str, Any] = Field(default_factory=dict, description="附加信息")


class TaskCatalog(BaseModel):
    """任务目录 -- 有序的任务定义列表 + 可选的依赖关系

    dependencies 以定义下标表示：{任务下标: [前置任务下标, ...]}
    """

    definitions: list[TaskDefinition] = Field(default_factory=list, description="任务定义")
    dependencies: dict[int, list[int]] = Field(
        default_factory=dict,
        description="依赖关系（下标 -> 前置任务下标列表）",
    )


class Task(BaseModel):
    """Task 数据模型

    files_touched 只增不减；actual_effort 只能通过显式调用记录。
    """

    task_id: str = Field(description="唯一标识，ULID 格式")
    description: str = Field(description="任务描述")
    kind: TaskKind = Field(description="任务分类")
    state: TaskState = Field(default=INITIAL_STATE, description="当前状态")
    progress: int = Field(default=0, ge=0, le=100, description="进度（由状态决定）")
    files_touched: list[str] = Field(default_factory=list, description="已修改的文件")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="优先级")
    estimated_effort: float | None = Field(default=None, description="预估工作量（分钟）")
    actual_effort: float | None = Field(default=None, description="实际工作量（分钟）")
    metadata: dict[str, Any] = Field(default_factory=dict, description="附加信息")


class ProgressSummary(BaseModel):
    """整体进度 -- completed 统计 VERIFIED 状态的任务数"""

    completed: int
    total: int
    percentage: int
