"""RetryScheduler -- 失败任务的延迟自动重试

每次重试返回一个可取消的 RetryHandle。
重试到期时回调 guardian 的 retry_failed，由 guardian 在锁内重新检查当前状态；
任务已离开 FAILED 时重试直接跳过，不会强行流转。
连续重试次数有上限，延迟按 RetryPolicy 指数退避。
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from .config import RetryPolicy
from .exceptions import GuardianError

log = structlog.get_logger()

# 重试到期时的回调：(task_id, attempt) -> 是否执行了流转
RetryCallback = Callable[[str, int], Awaitable[Any]]
SleepFunc = Callable[[float], Awaitable[Any]]


class RetryHandle:
    """一次已安排的重试"""

    def __init__(self, task_id: str, attempt: int, delay_s: float) -> None:
        self.task_id = task_id
        self.attempt = attempt
        self.delay_s = delay_s
        self._job: asyncio.Task | None = None

    def _bind(self, job: asyncio.Task) -> None:
        self._job = job

    @property
    def cancelled(self) -> bool:
        return self._job is not None and self._job.cancelled()

    @property
    def done(self) -> bool:
        return self._job is not None and self._job.done()

    def cancel(self) -> bool:
        """取消尚未执行的重试"""
        if self._job is None or self._job.done():
            return False
        return self._job.cancel()

    async def wait(self) -> None:
        """等待重试结束（执行完成或被取消）"""
        if self._job is not None:
            await asyncio.wait({self._job})


class RetryScheduler:
    """按 RetryPolicy 安排自动重试"""

    def __init__(
        self,
        policy: RetryPolicy,
        on_fire: RetryCallback,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """
        Args:
            policy: 重试策略
            on_fire: 重试到期时的回调
            sleep: 延迟函数（测试中可替换，避免真实等待）
        """
        self._policy = policy
        self._on_fire = on_fire
        self._sleep = sleep
        self._handles: dict[str, RetryHandle] = {}
        self._attempts: dict[str, int] = {}

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    def schedule(self, task_id: str) -> RetryHandle | None:
        """为任务安排下一次重试

        Returns:
            RetryHandle；已达到重试上限时返回 None
        """
        attempt = self._attempts.get(task_id, 0) + 1
        if attempt > self._policy.max_attempts:
            log.warning(
                "retry_exhausted",
                task_id=task_id,
                max_attempts=self._policy.max_attempts,
            )
            return None

        # 同一任务只保留一个待执行的重试
        self.cancel(task_id)

        delay_s = self._policy.delay_for(attempt)
        handle = RetryHandle(task_id, attempt, delay_s)
        job = asyncio.get_running_loop().create_task(self._run(handle))
        handle._bind(job)
        self._handles[task_id] = handle
        self._attempts[task_id] = attempt

        log.info(
            "retry_scheduled",
            task_id=task_id,
            attempt=attempt,
            delay_s=delay_s,
        )
        return handle

    def cancel(self, task_id: str) -> bool:
        """取消任务待执行的重试"""
        handle = self._handles.pop(task_id, None)
        if handle is None:
            return False
        cancelled = handle.cancel()
        if cancelled:
            log.info("retry_cancelled", task_id=task_id, attempt=handle.attempt)
        return cancelled

    def reset(self, task_id: str) -> None:
        """清零连续重试计数（任务成功后调用）"""
        self._attempts.pop(task_id, None)

    def pending(self, task_id: str) -> RetryHandle | None:
        """任务当前待执行的重试"""
        return self._handles.get(task_id)

    def attempts(self, task_id: str) -> int:
        """任务已安排的连续重试次数"""
        return self._attempts.get(task_id, 0)

    async def shutdown(self) -> None:
        """取消全部待执行的重试并等待其结束"""
        handles = list(self._handles.values())
        for task_id in list(self._handles):
            self.cancel(task_id)
        for handle in handles:
            await handle.wait()

    async def _run(self, handle: RetryHandle) -> None:
        await self._sleep(handle.delay_s)

        # 到期后不再可取消，避免回调内的流转取消自身
        if self._handles.get(handle.task_id) is handle:
            del self._handles[handle.task_id]

        try:
            await self._on_fire(handle.task_id, handle.attempt)
        except GuardianError as e:
            log.warning(
                "retry_failed",
                task_id=handle.task_id,
                attempt=handle.attempt,
                error_code=e.code,
            )
