"""Projection 重建模块

从事件归档重放出任务快照，确保事件溯源的一致性。
支持单事件应用和全量重建两种模式。
"""

import time

import structlog

from .models.enums import EventKind, TaskKind, TaskPriority, TaskState, progress_of
from .models.event import GuardianEvent
from .models.task import Task
from .store.protocols import EventArchive

log = structlog.get_logger()


def apply_event(tasks: dict[str, Task], event: GuardianEvent) -> None:
    """将单个事件应用到 Task 状态（内存中操作）

    Args:
        tasks: task_id -> Task 的映射表（会被就地修改）
        event: 要应用的事件
    """
    task_id = event.task_id
    payload = event.payload

    if event.kind == EventKind.TASK_CREATED:
        # 从 payload 重建 Task
        tasks[task_id] = Task(
            task_id=task_id,
            description=payload.get("description", ""),
            kind=TaskKind(payload["kind"]),
            state=TaskState.PENDING,
            progress=progress_of(TaskState.PENDING),
            created_at=event.ts,
            updated_at=event.ts,
            priority=TaskPriority(payload.get("priority", TaskPriority.MEDIUM)),
            estimated_effort=payload.get("estimated_effort"),
            metadata=payload.get("metadata", {}),
        )
        return

    task = tasks.get(task_id)
    if task is None:
        log.warning("projection_orphan_event", task_id=task_id, event_id=event.event_id)
        return

    update: dict = {"updated_at": event.ts}
    if "to_state" in payload:
        new_state = TaskState(payload["to_state"])
        update["state"] = new_state
        update["progress"] = progress_of(new_state)
    if "files_added" in payload:
        update["files_touched"] = [*task.files_touched, *payload["files_added"]]
    if "actual_effort" in payload:
        update["actual_effort"] = payload["actual_effort"]

    tasks[task_id] = task.model_copy(update=update)


async def rebuild_from_archive(archive: EventArchive) -> dict[str, Task]:
    """从事件归档重建全部任务

    Args:
        archive: 事件归档

    Returns:
        task_id -> Task，按首次创建顺序
    """
    start_time = time.monotonic()

    events = await archive.get_all_events()
    await log.ainfo("projection_rebuild_started", event_count=len(events))

    tasks: dict[str, Task] = {}
    for event in events:
        apply_event(tasks, event)

    elapsed_ms = int((time.monotonic() - start_time) * 1000)
    await log.ainfo(
        "projection_rebuild_completed",
        event_count=len(events),
        task_count=len(tasks),
        elapsed_ms=elapsed_ms,
    )
    return tasks
