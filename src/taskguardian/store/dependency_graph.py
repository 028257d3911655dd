"""DependencyGraph -- 任务依赖关系

有向边：依赖方 -> 前置任务。
依赖关系在任务创建时一次性建立，运行期不再修改；
建立前通过 find_cycle 拒绝有环的依赖图。
"""

from collections.abc import Callable, Hashable, Iterable, Iterator, Mapping
from typing import TypeVar

from ..models.enums import SATISFIED_STATES, TaskState

K = TypeVar("K", bound=Hashable)


def find_cycle(edges: Mapping[K, Iterable[K]]) -> list[K] | None:
    """在依赖图中查找一个环

    Args:
        edges: 节点 -> 前置节点列表

    Returns:
        环上的节点序列（首尾相同），无环时返回 None
    """
    # 0 = 未访问，1 = 访问中，2 = 已完成
    marks: dict[K, int] = {}

    # 显式栈迭代，依赖链深度不受递归上限限制
    for root in list(edges):
        if marks.get(root, 0) != 0:
            continue
        marks[root] = 1
        path: list[K] = [root]
        stack: list[Iterator[K]] = [iter(edges.get(root, ()))]

        while stack:
            prereq = next(stack[-1], None)
            if prereq is None:
                stack.pop()
                marks[path.pop()] = 2
                continue
            mark = marks.get(prereq, 0)
            if mark == 1:
                return path[path.index(prereq):] + [prereq]
            if mark == 0:
                marks[prereq] = 1
                path.append(prereq)
                stack.append(iter(edges.get(prereq, ())))
    return None


class DependencyGraph:
    """task_id -> 前置 task_id 集合"""

    def __init__(self) -> None:
        self._prerequisites: dict[str, tuple[str, ...]] = {}

    def wire(self, task_id: str, prerequisites: Iterable[str]) -> None:
        """为任务建立依赖（每个任务只能建立一次）"""
        if task_id in self._prerequisites:
            raise ValueError(f"Dependencies for task {task_id} are already wired")
        # 去重并保持顺序
        unique = tuple(dict.fromkeys(prerequisites))
        if unique:
            self._prerequisites[task_id] = unique

    def prerequisites_of(self, task_id: str) -> list[str]:
        """任务的前置任务列表"""
        return list(self._prerequisites.get(task_id, ()))

    def dependents_of(self, task_id: str) -> list[str]:
        """直接依赖该任务的任务列表"""
        return [
            dependent
            for dependent, prerequisites in self._prerequisites.items()
            if task_id in prerequisites
        ]

    def unmet(
        self,
        task_id: str,
        state_of: Callable[[str], TaskState | None],
    ) -> list[str]:
        """收集全部未满足的前置任务

        前置任务状态为 COMPLETED 或 VERIFIED 时视为满足；
        不存在的前置任务视为未满足。
        """
        return [
            prereq
            for prereq in self._prerequisites.get(task_id, ())
            if state_of(prereq) not in SATISFIED_STATES
        ]

    def as_mapping(self) -> dict[str, list[str]]:
        """依赖图快照"""
        return {task_id: list(prereqs) for task_id, prereqs in self._prerequisites.items()}
