"""TaskGuardian -- 进程内任务生命周期编排器

状态机 + 依赖检查 + 有界事件日志 + 自动重试。
"""

from .catalog import DEFAULT_CATALOG
from .config import GuardianConfig, RetryPolicy, load_guardian_config
from .exceptions import (
    CatalogError,
    DependencyCycleError,
    DependencyNotMetError,
    GuardianError,
    InvalidTransitionError,
    TaskNotFoundError,
)
from .guardian import AUTO_RETRY_REASON, TaskGuardian
from .models import (
    ActorType,
    EventKind,
    GuardianEvent,
    ProgressSummary,
    Task,
    TaskCatalog,
    TaskDefinition,
    TaskKind,
    TaskPriority,
    TaskState,
)
from .notify import EventDispatcher, EventHub, LogEventSink
from .retry import RetryHandle, RetryScheduler
from .runtime import GuardianRuntime, create_runtime

__all__ = [
    # 编排器
    "TaskGuardian",
    "AUTO_RETRY_REASON",
    "GuardianRuntime",
    "create_runtime",
    "DEFAULT_CATALOG",
    # 配置
    "GuardianConfig",
    "RetryPolicy",
    "load_guardian_config",
    # 模型
    "Task",
    "TaskDefinition",
    "TaskCatalog",
    "TaskState",
    "TaskKind",
    "TaskPriority",
    "EventKind",
    "ActorType",
    "GuardianEvent",
    "ProgressSummary",
    # 通知与重试
    "EventDispatcher",
    "EventHub",
    "LogEventSink",
    "RetryScheduler",
    "RetryHandle",
    # 异常
    "GuardianError",
    "TaskNotFoundError",
    "InvalidTransitionError",
    "DependencyNotMetError",
    "CatalogError",
    "DependencyCycleError",
]
