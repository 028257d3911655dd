"""GuardianRuntime -- 组装 TaskGuardian 与外部协作者

核心引擎本身不做持久化；persistence_enabled 只在这里读取，
决定是否挂载 SQLite 事件归档。
"""

from pathlib import Path

import structlog

from .config import GuardianConfig, get_db_path
from .guardian import TaskGuardian
from .notify import EventHub, LogEventSink
from .store.sqlite_archive import SqliteEventArchive, open_event_archive

log = structlog.get_logger()


class GuardianRuntime:
    """TaskGuardian 实例组 -- guardian + 事件广播器 + 可选归档"""

    def __init__(
        self,
        guardian: TaskGuardian,
        hub: EventHub,
        archive: SqliteEventArchive | None = None,
    ) -> None:
        self.guardian = guardian
        self.hub = hub
        self.archive = archive

    async def close(self) -> None:
        """停止 guardian 并关闭归档连接"""
        await self.guardian.shutdown()
        if self.archive is not None:
            await self.archive.close()


async def create_runtime(
    config: GuardianConfig | None = None,
    db_path: str | Path | None = None,
) -> GuardianRuntime:
    """创建 GuardianRuntime

    Args:
        config: 配置，None 时使用默认值
        db_path: 归档数据库路径，None 时使用 get_db_path()

    Returns:
        GuardianRuntime 实例
    """
    config = config or GuardianConfig()
    hub = EventHub()
    guardian = TaskGuardian(config, sinks=[LogEventSink(), hub])

    archive: SqliteEventArchive | None = None
    if config.persistence_enabled:
        path = db_path if db_path is not None else get_db_path()
        archive = await open_event_archive(path)
        guardian.add_sink(archive)
        log.info("event_archive_attached", db_path=str(path))

    return GuardianRuntime(guardian, hub, archive)
