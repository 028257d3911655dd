"""TaskStore 内存实现

task_id -> Task 的映射，是任务存在性与当前状态的唯一事实来源。
仅由 TaskGuardian 在持锁状态下修改；这里只提供存取操作。
"""

from ..exceptions import TaskNotFoundError
from ..models.enums import TaskKind, TaskState
from ..models.task import Task


class InMemoryTaskStore:
    """TaskStore 的内存实现，按创建顺序保存任务"""

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}

    def create_task(self, task: Task) -> None:
        """创建任务记录"""
        if task.task_id in self._tasks:
            raise ValueError(f"Task {task.task_id} already exists")
        self._tasks[task.task_id] = task

    def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        return self._tasks.get(task_id)

    def require_task(self, task_id: str) -> Task:
        """根据 task_id 查询任务，不存在时抛出 TaskNotFoundError"""
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def replace_task(self, task: Task) -> None:
        """用新快照替换已有任务"""
        if task.task_id not in self._tasks:
            raise TaskNotFoundError(task.task_id)
        self._tasks[task.task_id] = task

    def list_tasks(
        self,
        state: TaskState | None = None,
        kind: TaskKind | None = None,
    ) -> list[Task]:
        """查询任务列表，支持按状态/分类筛选，按创建顺序"""
        return [
            task
            for task in self._tasks.values()
            if (state is None or task.state == state)
            and (kind is None or task.kind == kind)
        ]

    def state_of(self, task_id: str) -> TaskState | None:
        """当前状态，任务不存在时返回 None"""
        task = self._tasks.get(task_id)
        return task.state if task is not None else None

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)
