"""TaskGuardian -- 任务生命周期编排器

组合 TaskStore、状态流转表、DependencyGraph、EventLog 与 RetryScheduler，
是 Task Store 的唯一修改者。

流转流程（在同一把锁内完成，临界区内没有 await，对其他协程是原子的）：
1. 校验目标状态是否在流转表中
2. 目标为 COMPLETED 时检查依赖，任何失败都发生在修改之前
3. 更新 state / progress / updated_at
4. 追加事件并（可选）投递给 sink
5. 进入 FAILED 且开启自动重试时安排重试
"""

import asyncio
from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

import structlog
from ulid import ULID

from .catalog import DEFAULT_CATALOG
from .config import GuardianConfig
from .exceptions import (
    CatalogError,
    DependencyCycleError,
    DependencyNotMetError,
    InvalidTransitionError,
)
from .models.enums import (
    INITIAL_STATE,
    SATISFIED_STATES,
    ActorType,
    EventKind,
    TaskKind,
    TaskState,
    event_kind_for,
    progress_of,
    validate_transition,
)
from .models.event import GuardianEvent, TaskTransition
from .models.payloads import (
    EffortRecordedPayload,
    FilesTouchedPayload,
    StateTransitionPayload,
    TaskCreatedPayload,
)
from .models.task import ProgressSummary, Task, TaskCatalog, TaskDefinition
from .notify import EventDispatcher
from .retry import RetryHandle, RetryScheduler, SleepFunc
from .store.dependency_graph import DependencyGraph, find_cycle
from .store.event_log import EventLog
from .store.protocols import EventSink
from .store.task_store import InMemoryTaskStore

log = structlog.get_logger()

AUTO_RETRY_REASON = "auto-retry after failure"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _validate_wiring(count: int, wiring: Mapping[int, Sequence[int]]) -> None:
    """校验目录依赖的结构：下标越界与环

    Raises:
        CatalogError: 下标越界
        DependencyCycleError: 依赖存在环（包括自依赖）
    """
    for index, prerequisites in wiring.items():
        if not isinstance(index, int) or not 0 <= index < count:
            raise CatalogError(
                f"Dependency index {index} is out of range (0..{count - 1})",
                {"index": index},
            )
        for prereq in prerequisites:
            if not isinstance(prereq, int) or not 0 <= prereq < count:
                raise CatalogError(
                    f"Prerequisite index {prereq} of task {index} is out of range "
                    f"(0..{count - 1})",
                    {"index": index, "prerequisite": prereq},
                )

    cycle = find_cycle(wiring)
    if cycle is not None:
        raise DependencyCycleError(cycle)


class TaskGuardian:
    """任务生命周期编排器"""

    def __init__(
        self,
        config: GuardianConfig | None = None,
        sinks: Iterable[EventSink] = (),
        *,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """
        Args:
            config: 配置，None 时使用默认值
            sinks: 事件接收方（通知、归档等）
            sleep: 重试延迟函数（测试中可替换）
        """
        self._config = config or GuardianConfig()
        self._tasks = InMemoryTaskStore()
        self._graph = DependencyGraph()
        self._events = EventLog(self._config.event_log_capacity)
        self._dispatcher = EventDispatcher(sinks)
        self._retries = RetryScheduler(
            self._config.retry,
            on_fire=self.retry_failed,
            sleep=sleep,
        )
        self._lock = asyncio.Lock()

    @property
    def config(self) -> GuardianConfig:
        return self._config

    def add_sink(self, sink: EventSink) -> None:
        """挂载新的事件接收方"""
        self._dispatcher.add_sink(sink)

    # ------------------------------------------------------------------
    # 任务创建
    # ------------------------------------------------------------------

    async def create_tasks(
        self,
        catalog: TaskCatalog | Sequence[TaskDefinition | Mapping[str, Any]],
        dependencies: Mapping[int, Sequence[int]] | None = None,
    ) -> list[str]:
        """按目录批量创建任务

        先校验全部任务定义和依赖结构，校验通过后才创建任务（要么全部创建，要么都不创建）。

        Args:
            catalog: TaskCatalog 或有序的任务定义列表（TaskDefinition 或等价的 dict）
            dependencies: 依赖关系（下标 -> 前置任务下标），覆盖 catalog 自带的依赖

        Returns:
            按创建顺序排列的 task_id 列表

        Raises:
            pydantic.ValidationError: 任务定义不合法
            CatalogError: 依赖下标越界
            DependencyCycleError: 依赖存在环
        """
        if isinstance(catalog, TaskCatalog):
            entries = list(catalog.definitions)
            wiring = dependencies if dependencies is not None else catalog.dependencies
        else:
            entries = list(catalog)
            wiring = dependencies or {}

        definitions = [TaskDefinition.model_validate(entry) for entry in entries]
        _validate_wiring(len(definitions), wiring)

        async with self._lock:
            now = _utcnow()
            task_ids = [str(ULID()) for _ in definitions]
            for index, prerequisites in wiring.items():
                self._graph.wire(
                    task_ids[index],
                    [task_ids[prereq] for prereq in prerequisites],
                )
            for task_id, definition in zip(task_ids, definitions):
                self._create_task_locked(task_id, definition, now)

        log.info("tasks_created", count=len(task_ids))
        return task_ids

    async def create_task(
        self,
        definition: TaskDefinition | Mapping[str, Any],
        depends_on: Sequence[str] = (),
    ) -> str:
        """创建单个任务，可依赖已存在的任务

        Raises:
            pydantic.ValidationError: 任务定义不合法
            TaskNotFoundError: 前置任务不存在
        """
        definition = TaskDefinition.model_validate(definition)
        async with self._lock:
            for prereq in depends_on:
                self._tasks.require_task(prereq)
            task_id = str(ULID())
            self._graph.wire(task_id, depends_on)
            self._create_task_locked(task_id, definition, _utcnow())
        return task_id

    async def seed_default_tasks(self) -> list[str]:
        """创建默认任务目录"""
        return await self.create_tasks(DEFAULT_CATALOG)

    def _create_task_locked(
        self,
        task_id: str,
        definition: TaskDefinition,
        now: datetime,
    ) -> Task:
        definition = definition.model_copy(deep=True)
        task = Task(
            task_id=task_id,
            description=definition.description,
            kind=definition.kind,
            state=INITIAL_STATE,
            progress=progress_of(INITIAL_STATE),
            created_at=now,
            updated_at=now,
            priority=definition.priority,
            estimated_effort=definition.estimated_effort,
            metadata=definition.metadata,
        )
        self._tasks.create_task(task)

        self._emit(
            EventKind.TASK_CREATED,
            task_id,
            TaskCreatedPayload(
                description=task.description,
                kind=task.kind,
                priority=task.priority,
                estimated_effort=task.estimated_effort,
                depends_on=self._graph.prerequisites_of(task_id),
                metadata=task.metadata,
            ).model_dump(mode="json"),
            actor=ActorType.SYSTEM,
            ts=now,
        )
        log.debug("task_created", task_id=task_id, kind=task.kind.value)
        return task

    # ------------------------------------------------------------------
    # 状态流转
    # ------------------------------------------------------------------

    async def transition(
        self,
        task_id: str,
        to_state: TaskState | str,
        reason: str = "",
        *,
        actor: ActorType = ActorType.USER,
    ) -> Task:
        """流转任务状态

        Args:
            task_id: 任务 ID
            to_state: 目标状态
            reason: 流转原因
            actor: 操作者

        Returns:
            流转后的任务快照

        Raises:
            TaskNotFoundError: 任务不存在
            InvalidTransitionError: 目标状态不可达
            DependencyNotMetError: 流转到 COMPLETED 时存在未满足的依赖
        """
        to_state = TaskState(to_state)
        async with self._lock:
            return self._transition_locked(task_id, to_state, reason, actor)

    async def retry_failed(self, task_id: str, attempt: int | None = None) -> bool:
        """把仍处于 FAILED 的任务流转回 PENDING

        在锁内重新检查当前状态：任务已被其他操作移出 FAILED 时直接跳过。

        Returns:
            True 如果执行了流转
        """
        async with self._lock:
            task = self._tasks.require_task(task_id)
            if task.state != TaskState.FAILED:
                log.info(
                    "retry_superseded",
                    task_id=task_id,
                    state=task.state.value,
                    attempt=attempt,
                )
                return False
            self._transition_locked(
                task_id,
                TaskState.PENDING,
                AUTO_RETRY_REASON,
                ActorType.SCHEDULER,
            )
            return True

    def _transition_locked(
        self,
        task_id: str,
        to_state: TaskState,
        reason: str,
        actor: ActorType,
    ) -> Task:
        task = self._tasks.require_task(task_id)
        from_state = task.state

        if not validate_transition(from_state, to_state):
            raise InvalidTransitionError(task_id, from_state, to_state)

        if to_state == TaskState.COMPLETED:
            self._check_dependencies_locked(task_id)

        now = _utcnow()
        record = TaskTransition(
            from_state=from_state,
            to_state=to_state,
            ts=now,
            reason=reason,
            actor=actor,
        )
        updated = task.model_copy(
            update={
                "state": to_state,
                "progress": progress_of(to_state),
                "updated_at": now,
            }
        )
        self._tasks.replace_task(updated)

        self._emit(
            event_kind_for(to_state),
            task_id,
            StateTransitionPayload(
                from_state=record.from_state,
                to_state=record.to_state,
                progress=updated.progress,
                reason=record.reason,
                actor=record.actor,
            ).model_dump(mode="json"),
            actor=actor,
            ts=now,
        )
        log.info(
            "task_transitioned",
            task_id=task_id,
            from_state=from_state.value,
            to_state=to_state.value,
            actor=actor.value,
            reason=reason,
        )

        self._after_transition(task_id, record)
        return updated.model_copy(deep=True)

    def _after_transition(self, task_id: str, record: TaskTransition) -> None:
        # 人工把任务移出 FAILED 后，待执行的自动重试失效
        if record.from_state == TaskState.FAILED and record.actor != ActorType.SCHEDULER:
            self._retries.cancel(task_id)

        if record.to_state in SATISFIED_STATES:
            self._retries.reset(task_id)

        if record.to_state == TaskState.FAILED and self._config.auto_retry_failed_tasks:
            self._retries.schedule(task_id)

        if record.to_state == TaskState.IN_PROGRESS:
            in_progress = len(self._tasks.list_tasks(state=TaskState.IN_PROGRESS))
            if in_progress > self._config.max_concurrent_tasks:
                log.warning(
                    "max_concurrent_tasks_exceeded",
                    in_progress=in_progress,
                    max_concurrent_tasks=self._config.max_concurrent_tasks,
                )

    # ------------------------------------------------------------------
    # 依赖
    # ------------------------------------------------------------------

    def check_dependencies(self, task_id: str) -> None:
        """检查任务的全部前置任务是否已满足

        Raises:
            TaskNotFoundError: 任务不存在
            DependencyNotMetError: 存在未满足的前置任务（列出全部）
        """
        self._tasks.require_task(task_id)
        self._check_dependencies_locked(task_id)

    def _check_dependencies_locked(self, task_id: str) -> None:
        unmet = self._graph.unmet(task_id, self._tasks.state_of)
        if unmet:
            log.info("dependencies_not_met", task_id=task_id, unmet_ids=unmet)
            raise DependencyNotMetError(task_id, unmet)

    def get_dependencies(self, task_id: str) -> list[str]:
        """任务的前置任务"""
        self._tasks.require_task(task_id)
        return self._graph.prerequisites_of(task_id)

    def get_dependents(self, task_id: str) -> list[str]:
        """直接依赖该任务的任务"""
        self._tasks.require_task(task_id)
        return self._graph.dependents_of(task_id)

    def get_unmet_dependencies(self, task_id: str) -> list[str]:
        """尚未满足的前置任务"""
        self._tasks.require_task(task_id)
        return self._graph.unmet(task_id, self._tasks.state_of)

    # ------------------------------------------------------------------
    # 非流转的记录操作
    # ------------------------------------------------------------------

    async def record_files_touched(self, task_id: str, files: str | Iterable[str]) -> Task:
        """记录任务修改过的文件（只增不减，去重）

        不经过流转校验，只更新 files_touched 与 updated_at。
        files 可以是单个路径。
        """
        if isinstance(files, str):
            files = [files]
        async with self._lock:
            task = self._tasks.require_task(task_id)
            known = set(task.files_touched)
            added = [path for path in dict.fromkeys(files) if path not in known]
            now = _utcnow()
            updated = task.model_copy(
                update={
                    "files_touched": [*task.files_touched, *added],
                    "updated_at": now,
                }
            )
            self._tasks.replace_task(updated)
            self._emit(
                EventKind.TASK_UPDATED,
                task_id,
                FilesTouchedPayload(
                    files_added=added,
                    files_touched_count=len(updated.files_touched),
                ).model_dump(mode="json"),
                actor=ActorType.USER,
                ts=now,
            )
            return updated.model_copy(deep=True)

    async def record_actual_effort(self, task_id: str, minutes: float) -> Task:
        """记录实际工作量（分钟）

        Raises:
            TaskNotFoundError: 任务不存在
            ValueError: minutes 为负数
        """
        async with self._lock:
            task = self._tasks.require_task(task_id)
            if minutes < 0:
                raise ValueError(f"Actual effort must be non-negative, got {minutes}")
            now = _utcnow()
            updated = task.model_copy(
                update={"actual_effort": float(minutes), "updated_at": now}
            )
            self._tasks.replace_task(updated)
            self._emit(
                EventKind.TASK_UPDATED,
                task_id,
                EffortRecordedPayload(actual_effort=minutes).model_dump(mode="json"),
                actor=ActorType.USER,
                ts=now,
            )
            return updated.model_copy(deep=True)

    # ------------------------------------------------------------------
    # 查询（只读，返回副本）
    # ------------------------------------------------------------------

    def get_task(self, task_id: str) -> Task:
        """查询任务详情

        Raises:
            TaskNotFoundError: 任务不存在
        """
        return self._tasks.require_task(task_id).model_copy(deep=True)

    def get_all_tasks(self) -> list[Task]:
        return [task.model_copy(deep=True) for task in self._tasks.list_tasks()]

    def get_tasks_by_state(self, state: TaskState | str) -> list[Task]:
        return [
            task.model_copy(deep=True)
            for task in self._tasks.list_tasks(state=TaskState(state))
        ]

    def get_tasks_by_kind(self, kind: TaskKind | str) -> list[Task]:
        return [
            task.model_copy(deep=True)
            for task in self._tasks.list_tasks(kind=TaskKind(kind))
        ]

    def get_progress(self) -> ProgressSummary:
        """整体进度：completed 统计 VERIFIED 的任务，百分比四舍五入"""
        total = len(self._tasks)
        completed = len(self._tasks.list_tasks(state=TaskState.VERIFIED))
        # 整数运算实现四舍五入（.5 向上）
        percentage = (completed * 200 + total) // (2 * total) if total else 0
        return ProgressSummary(completed=completed, total=total, percentage=percentage)

    def get_event_history(self) -> list[GuardianEvent]:
        """事件历史副本（最多保留 event_log_capacity 条）"""
        return self._events.get_all_events()

    def get_task_events(self, task_id: str) -> list[GuardianEvent]:
        """指定任务仍被保留的事件"""
        self._tasks.require_task(task_id)
        return self._events.get_events_for_task(task_id)

    def pending_retry(self, task_id: str) -> RetryHandle | None:
        """任务当前待执行的自动重试"""
        return self._retries.pending(task_id)

    # ------------------------------------------------------------------
    # 生命周期
    # ------------------------------------------------------------------

    async def drain(self) -> None:
        """等待所有未完成的事件投递"""
        await self._dispatcher.drain()

    async def shutdown(self) -> None:
        """取消全部待执行的重试并等待事件投递完成"""
        await self._retries.shutdown()
        await self.drain()
        log.info("guardian_shutdown", task_count=len(self._tasks))

    def _emit(
        self,
        kind: EventKind,
        task_id: str,
        payload: dict[str, Any],
        actor: ActorType,
        ts: datetime,
    ) -> GuardianEvent:
        event = GuardianEvent(
            event_id=str(ULID()),
            seq=self._events.next_seq(),
            kind=kind,
            task_id=task_id,
            ts=ts,
            actor=actor,
            payload=payload,
        )
        self._events.append_event(event)
        if self._config.notifications_enabled:
            self._dispatcher.dispatch(event)
        return event
