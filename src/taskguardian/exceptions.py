"""TaskGuardian 异常体系

每个异常都携带足够的上下文（task_id、状态、未满足的依赖等），
调用方可以按属性编程处理，而不是解析错误字符串。
"""

from typing import Any

from .models.enums import TaskState


class GuardianError(Exception):
    """TaskGuardian 基础异常"""

    def __init__(
        self,
        message: str,
        code: str,
        task_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Args:
            message: 错误描述
            code: 机器可读的错误码
            task_id: 关联的 Task ID
            details: 结构化上下文
        """
        super().__init__(message)
        self.code = code
        self.task_id = task_id
        self.details = details or {}


class TaskNotFoundError(GuardianError):
    """引用了不存在的 task_id"""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} not found", "TASK_NOT_FOUND", task_id)


class InvalidTransitionError(GuardianError):
    """目标状态不在当前状态的合法流转集合中（包括自流转）"""

    def __init__(self, task_id: str, from_state: TaskState, to_state: TaskState) -> None:
        super().__init__(
            f"Invalid transition from {from_state} to {to_state} for task {task_id}",
            "INVALID_TRANSITION",
            task_id,
            {"from_state": from_state, "to_state": to_state},
        )
        self.from_state = from_state
        self.to_state = to_state


class DependencyNotMetError(GuardianError):
    """流转到 COMPLETED 时存在未满足的前置任务

    unmet_ids 包含全部未满足的前置任务，而不仅是第一个。
    """

    def __init__(self, task_id: str, unmet_ids: list[str]) -> None:
        super().__init__(
            f"Dependencies not met for task {task_id}: {', '.join(unmet_ids)}",
            "DEPENDENCY_NOT_MET",
            task_id,
            {"unmet_ids": list(unmet_ids)},
        )
        self.unmet_ids = list(unmet_ids)


class CatalogError(GuardianError):
    """任务目录结构不合法（下标越界、自依赖等）"""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, "INVALID_CATALOG", details=details)


class DependencyCycleError(CatalogError):
    """依赖关系存在环 -- 在建立依赖时拒绝"""

    def __init__(self, cycle: list[Any]) -> None:
        super().__init__(
            f"Dependency cycle detected: {' -> '.join(str(node) for node in cycle)}",
            {"cycle": list(cycle)},
        )
        self.code = "DEPENDENCY_CYCLE"
        self.cycle = list(cycle)
