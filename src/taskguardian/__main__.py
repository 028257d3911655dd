"""CLI 入口模块 -- python -m taskguardian <command>

支持的命令：
  demo [db]     创建默认任务目录，并演示第一个任务的完整生命周期
  replay [db]   从事件归档重建任务并打印状态
"""

import asyncio
import sys

from .config import get_db_path, load_guardian_config
from .logging_config import setup_logging
from .models.enums import TaskState

_USAGE = """用法: python -m taskguardian <command> [db_path]
命令:
  demo     创建默认任务目录并演示任务流转
  replay   从事件归档重建任务并打印状态"""


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print(_USAGE)
        sys.exit(1)

    command = sys.argv[1]
    db_path = sys.argv[2] if len(sys.argv) > 2 else get_db_path()

    setup_logging()

    if command == "demo":
        asyncio.run(run_demo(db_path))
    elif command == "replay":
        asyncio.run(replay_archive(db_path))
    else:
        print(f"未知命令: {command}")
        print(_USAGE)
        sys.exit(1)


async def run_demo(db_path: str) -> None:
    """演示：创建默认目录，推进第一个任务到 VERIFIED"""
    from .runtime import create_runtime

    runtime = await create_runtime(load_guardian_config(), db_path)
    guardian = runtime.guardian
    try:
        task_ids = await guardian.seed_default_tasks()
        print(f"已创建 {len(task_ids)} 个任务")

        first = task_ids[0]
        await guardian.transition(first, TaskState.IN_PROGRESS, "start")
        await guardian.record_files_touched(
            first,
            ["src/components/CartSidebar.tsx", "src/components/organisms/CartSidebar.tsx"],
        )
        await guardian.record_actual_effort(first, 25)
        await guardian.transition(first, TaskState.COMPLETED, "duplicate removed")
        await guardian.transition(first, TaskState.VERIFIED, "review approved")

        progress = guardian.get_progress()
        print(f"整体进度: {progress.completed}/{progress.total} ({progress.percentage}%)")
        print(f"事件数: {len(guardian.get_event_history())}")
    finally:
        await runtime.close()


async def replay_archive(db_path: str) -> None:
    """从事件归档重建任务"""
    from .projection import rebuild_from_archive
    from .store.sqlite_archive import open_event_archive

    print(f"数据库路径: {db_path}")
    archive = await open_event_archive(db_path)
    try:
        tasks = await rebuild_from_archive(archive)
        print(f"重建完成，共 {len(tasks)} 个任务")
        for task in tasks.values():
            print(f"  {task.task_id}  {task.state.value:<13} {task.progress:>3}%  {task.description}")
    finally:
        await archive.close()


if __name__ == "__main__":
    main()
