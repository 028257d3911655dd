"""TaskGuardian Store -- 任务、依赖、事件的存储实现

内存实现供 TaskGuardian 使用；SQLite 归档作为可选的外部协作者。
"""

from .dependency_graph import DependencyGraph, find_cycle
from .event_log import EventLog
from .protocols import EventArchive, EventSink
from .sqlite_archive import SqliteEventArchive, init_archive, open_event_archive
from .task_store import InMemoryTaskStore

__all__ = [
    "InMemoryTaskStore",
    "DependencyGraph",
    "find_cycle",
    "EventLog",
    "EventSink",
    "EventArchive",
    "SqliteEventArchive",
    "init_archive",
    "open_event_archive",
]
