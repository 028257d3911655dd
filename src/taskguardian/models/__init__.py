"""TaskGuardian Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import (
    INITIAL_STATE,
    PROGRESS_BY_STATE,
    SATISFIED_STATES,
    VALID_TRANSITIONS,
    ActorType,
    EventKind,
    TaskKind,
    TaskPriority,
    TaskState,
    event_kind_for,
    progress_of,
    validate_transition,
)
from .event import GuardianEvent, TaskTransition
from .payloads import (
    EffortRecordedPayload,
    FilesTouchedPayload,
    StateTransitionPayload,
    TaskCreatedPayload,
)
from .task import ProgressSummary, Task, TaskCatalog, TaskDefinition

__all__ = [
    # 枚举
    "TaskState",
    "TaskKind",
    "TaskPriority",
    "EventKind",
    "ActorType",
    # 状态机
    "INITIAL_STATE",
    "VALID_TRANSITIONS",
    "PROGRESS_BY_STATE",
    "SATISFIED_STATES",
    "validate_transition",
    "progress_of",
    "event_kind_for",
    # Task
    "Task",
    "TaskDefinition",
    "TaskCatalog",
    "ProgressSummary",
    # Event
    "GuardianEvent",
    "TaskTransition",
    # Payloads
    "TaskCreatedPayload",
    "StateTransitionPayload",
    "FilesTouchedPayload",
    "EffortRecordedPayload",
]
