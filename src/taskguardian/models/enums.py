"""枚举定义 -- 任务状态机、任务分类、优先级、事件类型

包含 TaskState 状态机、VALID_TRANSITIONS 合法流转映射、
PROGRESS_BY_STATE 进度映射，以及 TaskKind / TaskPriority / EventKind / ActorType 枚举。
"""

from enum import StrEnum


class TaskState(StrEnum):
    """Task 状态机

    PENDING 是唯一初始状态；没有正式终态，
    VERIFIED 发现回归时可回到 NEEDS_REVIEW。
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    NEEDS_REVIEW = "needs_review"
    VERIFIED = "verified"


INITIAL_STATE: TaskState = TaskState.PENDING

# 合法状态流转（有向边），任何状态都不包含自身
VALID_TRANSITIONS: dict[TaskState, frozenset[TaskState]] = {
    TaskState.PENDING: frozenset({TaskState.IN_PROGRESS, TaskState.FAILED}),
    TaskState.IN_PROGRESS: frozenset(
        {TaskState.COMPLETED, TaskState.FAILED, TaskState.NEEDS_REVIEW}
    ),
    TaskState.COMPLETED: frozenset({TaskState.VERIFIED, TaskState.NEEDS_REVIEW}),
    TaskState.FAILED: frozenset({TaskState.PENDING, TaskState.IN_PROGRESS}),
    TaskState.NEEDS_REVIEW: frozenset(
        {TaskState.VERIFIED, TaskState.IN_PROGRESS, TaskState.FAILED}
    ),
    # 仅在发现问题时回到审查
    TaskState.VERIFIED: frozenset({TaskState.NEEDS_REVIEW}),
}

# 进度是状态的纯函数，每次流转重新计算
PROGRESS_BY_STATE: dict[TaskState, int] = {
    TaskState.PENDING: 0,
    TaskState.IN_PROGRESS: 25,
    TaskState.NEEDS_REVIEW: 75,
    TaskState.COMPLETED: 90,
    TaskState.VERIFIED: 100,
    TaskState.FAILED: 0,
}

# 前置任务处于这些状态时视为依赖已满足
SATISFIED_STATES: frozenset[TaskState] = frozenset(
    {TaskState.COMPLETED, TaskState.VERIFIED}
)


class TaskKind(StrEnum):
    """任务分类 -- 仅用于归类，不影响状态机"""

    COMPONENT_FIX = "component_fix"
    STATE_MANAGEMENT = "state_management"
    VALIDATION_FIX = "validation_fix"
    PERFORMANCE_OPT = "performance_opt"
    UX_IMPROVEMENT = "ux_improvement"
    CODE_REFACTOR = "code_refactor"
    TEST_IMPLEMENTATION = "test_implementation"
    SECURITY_FIX = "security_fix"


class TaskPriority(StrEnum):
    """任务优先级 -- 仅供展示，引擎不读取"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class EventKind(StrEnum):
    """事件类型"""

    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    TASK_COMPLETED = "task_completed"
    TASK_FAILED = "task_failed"
    # 预留类型（当前没有任何变更产生该事件）
    DEPENDENCY_RESOLVED = "dependency_resolved"


class ActorType(StrEnum):
    """操作者类型"""

    USER = "user"
    SYSTEM = "system"
    SCHEDULER = "scheduler"


def validate_transition(from_state: TaskState, to_state: TaskState) -> bool:
    """验证状态流转是否合法

    Args:
        from_state: 当前状态
        to_state: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_state, frozenset())
    return to_state in allowed


def progress_of(state: TaskState) -> int:
    """返回状态对应的进度值（0-100）"""
    return PROGRESS_BY_STATE[state]


def event_kind_for(to_state: TaskState) -> EventKind:
    """流转到目标状态时应产生的事件类型"""
    if to_state == TaskState.COMPLETED:
        return EventKind.TASK_COMPLETED
    if to_state == TaskState.FAILED:
        return EventKind.TASK_FAILED
    return EventKind.TASK_UPDATED
