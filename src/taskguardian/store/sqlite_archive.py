"""SqliteEventArchive -- 事件归档的 SQLite 实现

作为 EventSink 挂载到 TaskGuardian，事件表 append-only：只插入，不更新不删除。
内存事件日志只保留最近的事件，归档保留全部事件，供 projection 重建。
"""

import json
from datetime import datetime
from pathlib import Path

import aiosqlite

from ..models.enums import ActorType, EventKind
from ..models.event import GuardianEvent

# guardian_events 表 DDL
_EVENTS_DDL = """
CREATE TABLE IF NOT EXISTS guardian_events (
    event_id  TEXT PRIMARY KEY,
    seq       INTEGER NOT NULL,
    kind      TEXT NOT NULL,
    task_id   TEXT NOT NULL,
    ts        TEXT NOT NULL,
    actor     TEXT NOT NULL,
    payload   TEXT NOT NULL DEFAULT '{}'
);
"""

_EVENTS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_guardian_events_task ON guardian_events(task_id, ts);",
]


async def init_archive(conn: aiosqlite.Connection) -> None:
    """初始化归档数据库：设置 PRAGMA + 创建表 + 创建索引"""
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    await conn.execute(_EVENTS_DDL)
    for idx_sql in _EVENTS_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


class SqliteEventArchive:
    """EventArchive 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    @property
    def conn(self) -> aiosqlite.Connection:
        return self._conn

    async def publish(self, event: GuardianEvent) -> None:
        """追加事件并提交"""
        try:
            await self._conn.execute(
                """
                INSERT INTO guardian_events (event_id, seq, kind, task_id, ts, actor, payload)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event.event_id,
                    event.seq,
                    event.kind.value,
                    event.task_id,
                    event.ts.isoformat(),
                    event.actor.value,
                    json.dumps(event.payload, ensure_ascii=False, default=str),
                ),
            )
            await self._conn.commit()
        except Exception:
            await self._conn.rollback()
            raise

    async def get_all_events(self) -> list[GuardianEvent]:
        """按写入顺序查询所有事件（用于 Projection 重建）

        使用 rowid 而不是 ts 排序：墙钟时间可能回拨。
        """
        cursor = await self._conn.execute(
            "SELECT * FROM guardian_events ORDER BY rowid ASC"
        )
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    async def get_events_for_task(self, task_id: str) -> list[GuardianEvent]:
        """查询指定任务的所有事件"""
        cursor = await self._conn.execute(
            "SELECT * FROM guardian_events WHERE task_id = ? ORDER BY rowid ASC",
            (task_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    async def close(self) -> None:
        await self._conn.close()

    @staticmethod
    def _row_to_event(row: aiosqlite.Row) -> GuardianEvent:
        """将数据库行转换为 GuardianEvent 模型"""
        payload = json.loads(row[6]) if row[6] else {}
        return GuardianEvent(
            event_id=row[0],
            seq=row[1],
            kind=EventKind(row[2]),
            task_id=row[3],
            ts=datetime.fromisoformat(row[4]),
            actor=ActorType(row[5]),
            payload=payload,
        )


async def open_event_archive(db_path: str | Path) -> SqliteEventArchive:
    """打开（必要时创建）事件归档

    Args:
        db_path: SQLite 数据库文件路径

    Returns:
        SqliteEventArchive 实例
    """
    # 确保数据库目录存在
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(str(db_path))
    await init_archive(conn)
    return SqliteEventArchive(conn)
