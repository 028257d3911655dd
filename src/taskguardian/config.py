"""配置模块 -- GuardianConfig / RetryPolicy + 环境变量加载

所有字段都有默认值；max_concurrent_tasks 与 persistence_enabled 仅作参考，
核心引擎不据此做强制限制。
"""

import os
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()

# 事件日志默认容量（超过后丢弃最旧的事件）
EVENT_LOG_CAPACITY: int = 1000

# 自动重试的默认延迟（秒）
DEFAULT_RETRY_DELAY_S: float = 5.0


class RetryPolicy(BaseModel):
    """自动重试策略 -- 有上限的指数退避"""

    base_delay_s: float = Field(
        default=DEFAULT_RETRY_DELAY_S,
        ge=0,
        description="首次重试延迟（秒）",
    )
    backoff_factor: float = Field(default=2.0, ge=1, description="退避倍数")
    max_delay_s: float = Field(default=60.0, ge=0, description="最大延迟（秒）")
    max_attempts: int = Field(
        default=3,
        ge=0,
        description="连续自动重试次数上限，0 表示不重试",
    )

    def delay_for(self, attempt: int) -> float:
        """第 attempt 次（从 1 开始）重试的延迟"""
        delay = self.base_delay_s * self.backoff_factor ** max(attempt - 1, 0)
        return min(delay, self.max_delay_s)


class GuardianConfig(BaseModel):
    """TaskGuardian 配置

    环境变量（见 load_guardian_config）:
        GUARDIAN_MAX_CONCURRENT_TASKS
        GUARDIAN_AUTO_RETRY
        GUARDIAN_NOTIFICATIONS
        GUARDIAN_PERSISTENCE
        GUARDIAN_EVENT_LOG_CAPACITY
        GUARDIAN_RETRY_DELAY_S
        GUARDIAN_RETRY_MAX_ATTEMPTS
    """

    max_concurrent_tasks: int = Field(
        default=5,
        ge=1,
        description="IN_PROGRESS 任务数参考上限（仅告警，不强制）",
    )
    auto_retry_failed_tasks: bool = Field(default=True, description="失败任务自动重试")
    notifications_enabled: bool = Field(default=True, description="事件是否推送给 sink")
    persistence_enabled: bool = Field(
        default=True,
        description="是否挂载事件归档（仅 create_runtime 读取）",
    )
    event_log_capacity: int = Field(
        default=EVENT_LOG_CAPACITY,
        ge=1,
        description="内存事件日志容量",
    )
    retry: RetryPolicy = Field(default_factory=RetryPolicy, description="重试策略")


_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _read_bool(env_var: str, kwargs: dict, key: str) -> None:
    val = os.environ.get(env_var)
    if val is None:
        return
    normalized = val.strip().lower()
    if normalized in _TRUE_VALUES:
        kwargs[key] = True
    elif normalized in _FALSE_VALUES:
        kwargs[key] = False
    else:
        log.warning("invalid_bool_config", env_var=env_var, value=val)


def _read_number(env_var: str, kwargs: dict, key: str, cast) -> None:
    val = os.environ.get(env_var)
    if val is None:
        return
    try:
        kwargs[key] = cast(val)
    except ValueError:
        log.warning("invalid_number_config", env_var=env_var, value=val)
        # 使用默认值，不阻塞启动


def load_guardian_config() -> GuardianConfig:
    """从环境变量加载 GuardianConfig

    环境变量映射:
        GUARDIAN_MAX_CONCURRENT_TASKS -> max_concurrent_tasks (默认 5)
        GUARDIAN_AUTO_RETRY -> auto_retry_failed_tasks (默认 true)
        GUARDIAN_NOTIFICATIONS -> notifications_enabled (默认 true)
        GUARDIAN_PERSISTENCE -> persistence_enabled (默认 true)
        GUARDIAN_EVENT_LOG_CAPACITY -> event_log_capacity (默认 1000)
        GUARDIAN_RETRY_DELAY_S -> retry.base_delay_s (默认 5.0)
        GUARDIAN_RETRY_MAX_ATTEMPTS -> retry.max_attempts (默认 3)

    Returns:
        GuardianConfig 实例
    """
    kwargs: dict = {}
    retry_kwargs: dict = {}

    _read_number("GUARDIAN_MAX_CONCURRENT_TASKS", kwargs, "max_concurrent_tasks", int)
    _read_bool("GUARDIAN_AUTO_RETRY", kwargs, "auto_retry_failed_tasks")
    _read_bool("GUARDIAN_NOTIFICATIONS", kwargs, "notifications_enabled")
    _read_bool("GUARDIAN_PERSISTENCE", kwargs, "persistence_enabled")
    _read_number("GUARDIAN_EVENT_LOG_CAPACITY", kwargs, "event_log_capacity", int)
    _read_number("GUARDIAN_RETRY_DELAY_S", retry_kwargs, "base_delay_s", float)
    _read_number("GUARDIAN_RETRY_MAX_ATTEMPTS", retry_kwargs, "max_attempts", int)

    if retry_kwargs:
        kwargs["retry"] = RetryPolicy(**retry_kwargs)

    return GuardianConfig(**kwargs)


def _get_base_dir() -> Path:
    """获取 data 基础目录"""
    return Path(os.environ.get("GUARDIAN_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取事件归档 SQLite 数据库路径"""
    return os.environ.get(
        "GUARDIAN_DB_PATH",
        str(_get_base_dir() / "sqlite" / "guardian.db"),
    )
