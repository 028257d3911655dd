"""全局 pytest 配置 -- guardian fixture + 可手动放行的 sleep"""

import asyncio
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from taskguardian.config import GuardianConfig
from taskguardian.guardian import TaskGuardian
from taskguardian.models import TaskDefinition, TaskKind, TaskPriority


class ManualSleep:
    """替代 asyncio.sleep：记录请求的延迟，release() 之前一直挂起"""

    def __init__(self) -> None:
        self.delays: list[float] = []
        self._released = asyncio.Event()

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await self._released.wait()

    def release(self) -> None:
        self._released.set()


def make_definition(
    description: str = "test task",
    kind: TaskKind = TaskKind.COMPONENT_FIX,
    priority: TaskPriority = TaskPriority.MEDIUM,
    estimated_effort: float | None = 30,
) -> TaskDefinition:
    """构造测试用 TaskDefinition"""
    return TaskDefinition(
        description=description,
        kind=kind,
        priority=priority,
        estimated_effort=estimated_effort,
    )


@pytest.fixture
def manual_sleep() -> ManualSleep:
    return ManualSleep()


@pytest_asyncio.fixture
async def guardian(manual_sleep: ManualSleep) -> AsyncGenerator[TaskGuardian, None]:
    """关闭自动重试的 guardian"""
    g = TaskGuardian(
        GuardianConfig(auto_retry_failed_tasks=False),
        sleep=manual_sleep,
    )
    yield g
    await g.shutdown()


@pytest_asyncio.fixture
async def retry_guardian(manual_sleep: ManualSleep) -> AsyncGenerator[TaskGuardian, None]:
    """开启自动重试的 guardian（延迟由 manual_sleep 控制）"""
    g = TaskGuardian(GuardianConfig(), sleep=manual_sleep)
    yield g
    await g.shutdown()
