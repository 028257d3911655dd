"""自动重试测试

测试内容：
1. FAILED 后延迟重试回到 PENDING
2. 人工流转取消待执行的重试
3. 到期时重新检查状态
4. 重试次数上限与指数退避
5. RetryScheduler 本身的调度/取消
"""

from unittest.mock import AsyncMock

from conftest import ManualSleep, make_definition
from taskguardian.config import GuardianConfig, RetryPolicy
from taskguardian.guardian import AUTO_RETRY_REASON, TaskGuardian
from taskguardian.models import ActorType, EventKind, TaskState
from taskguardian.retry import RetryScheduler


class TestAutoRetry:
    """guardian 层面的自动重试"""

    async def test_retry_returns_task_to_pending(
        self,
        retry_guardian: TaskGuardian,
        manual_sleep: ManualSleep,
    ):
        (task_id,) = await retry_guardian.create_tasks([make_definition()])
        await retry_guardian.transition(task_id, TaskState.FAILED, "build broke")

        handle = retry_guardian.pending_retry(task_id)
        assert handle is not None
        assert handle.attempt == 1
        assert handle.delay_s == 5.0

        manual_sleep.release()
        await handle.wait()

        task = retry_guardian.get_task(task_id)
        assert task.state == TaskState.PENDING
        assert task.progress == 0
        assert manual_sleep.delays == [5.0]
        assert retry_guardian.pending_retry(task_id) is None

        event = retry_guardian.get_event_history()[-1]
        assert event.kind == EventKind.TASK_UPDATED
        assert event.actor == ActorType.SCHEDULER
        assert event.payload["reason"] == AUTO_RETRY_REASON
        assert event.payload["from_state"] == "failed"

    async def test_manual_transition_cancels_retry(
        self,
        retry_guardian: TaskGuardian,
        manual_sleep: ManualSleep,
    ):
        """人工把任务移出 FAILED 后，待执行的重试被取消"""
        (task_id,) = await retry_guardian.create_tasks([make_definition()])
        await retry_guardian.transition(task_id, TaskState.FAILED)
        handle = retry_guardian.pending_retry(task_id)

        await retry_guardian.transition(task_id, TaskState.IN_PROGRESS, "fixing by hand")
        manual_sleep.release()
        await handle.wait()

        assert handle.cancelled
        assert retry_guardian.pending_retry(task_id) is None
        assert retry_guardian.get_task(task_id).state == TaskState.IN_PROGRESS
        kinds = [e.kind for e in retry_guardian.get_task_events(task_id)]
        assert kinds == [
            EventKind.TASK_CREATED,
            EventKind.TASK_FAILED,
            EventKind.TASK_UPDATED,
        ]

    async def test_retry_failed_skips_non_failed_task(self, guardian: TaskGuardian):
        """到期时任务已不在 FAILED，不做任何流转"""
        (task_id,) = await guardian.create_tasks([make_definition()])
        await guardian.transition(task_id, TaskState.IN_PROGRESS)
        event_count = len(guardian.get_event_history())

        assert await guardian.retry_failed(task_id, attempt=1) is False
        assert guardian.get_task(task_id).state == TaskState.IN_PROGRESS
        assert len(guardian.get_event_history()) == event_count

    async def test_retry_failed_on_failed_task(self, guardian: TaskGuardian):
        (task_id,) = await guardian.create_tasks([make_definition()])
        await guardian.transition(task_id, TaskState.FAILED)

        assert await guardian.retry_failed(task_id) is True
        assert guardian.get_task(task_id).state == TaskState.PENDING

    async def test_disabled_auto_retry(self, guardian: TaskGuardian):
        (task_id,) = await guardian.create_tasks([make_definition()])
        await guardian.transition(task_id, TaskState.FAILED)
        assert guardian.pending_retry(task_id) is None

    async def test_attempts_capped_with_backoff(self, manual_sleep: ManualSleep):
        """连续失败达到上限后不再重试，延迟按指数退避"""
        guardian = TaskGuardian(
            GuardianConfig(retry=RetryPolicy(max_attempts=2)),
            sleep=manual_sleep,
        )
        manual_sleep.release()
        (task_id,) = await guardian.create_tasks([make_definition()])

        for _ in range(2):
            await guardian.transition(task_id, TaskState.FAILED)
            handle = guardian.pending_retry(task_id)
            assert handle is not None
            await handle.wait()
            assert guardian.get_task(task_id).state == TaskState.PENDING

        await guardian.transition(task_id, TaskState.FAILED)
        assert guardian.pending_retry(task_id) is None
        assert guardian.get_task(task_id).state == TaskState.FAILED
        assert manual_sleep.delays == [5.0, 10.0]
        await guardian.shutdown()

    async def test_success_resets_attempts(self, manual_sleep: ManualSleep):
        guardian = TaskGuardian(
            GuardianConfig(retry=RetryPolicy(max_attempts=1)),
            sleep=manual_sleep,
        )
        manual_sleep.release()
        (task_id,) = await guardian.create_tasks([make_definition()])

        await guardian.transition(task_id, TaskState.FAILED)
        await guardian.pending_retry(task_id).wait()
        await guardian.transition(task_id, TaskState.IN_PROGRESS)
        await guardian.transition(task_id, TaskState.COMPLETED)
        await guardian.transition(task_id, TaskState.NEEDS_REVIEW)
        await guardian.transition(task_id, TaskState.FAILED)

        handle = guardian.pending_retry(task_id)
        assert handle is not None
        assert handle.attempt == 1
        await guardian.shutdown()

    async def test_shutdown_cancels_pending(self, retry_guardian: TaskGuardian):
        (task_id,) = await retry_guardian.create_tasks([make_definition()])
        await retry_guardian.transition(task_id, TaskState.FAILED)
        handle = retry_guardian.pending_retry(task_id)

        await retry_guardian.shutdown()

        assert handle.cancelled
        assert retry_guardian.get_task(task_id).state == TaskState.FAILED


class TestRetryScheduler:
    """RetryScheduler 单元测试"""

    async def test_fires_callback(self, manual_sleep: ManualSleep):
        on_fire = AsyncMock(return_value=True)
        scheduler = RetryScheduler(RetryPolicy(), on_fire, sleep=manual_sleep)

        handle = scheduler.schedule("TSK001")
        manual_sleep.release()
        await handle.wait()

        on_fire.assert_awaited_once_with("TSK001", 1)
        assert handle.done
        assert not handle.cancelled
        assert scheduler.pending("TSK001") is None
        assert scheduler.attempts("TSK001") == 1

    async def test_zero_attempts_never_schedules(self, manual_sleep: ManualSleep):
        scheduler = RetryScheduler(RetryPolicy(max_attempts=0), AsyncMock(), sleep=manual_sleep)
        assert scheduler.schedule("TSK001") is None

    async def test_reschedule_replaces_pending(self, manual_sleep: ManualSleep):
        on_fire = AsyncMock()
        scheduler = RetryScheduler(RetryPolicy(), on_fire, sleep=manual_sleep)

        first = scheduler.schedule("TSK001")
        second = scheduler.schedule("TSK001")
        await first.wait()

        assert first.cancelled
        assert scheduler.pending("TSK001") is second
        assert second.attempt == 2
        assert second.delay_s == 10.0
        await scheduler.shutdown()
        on_fire.assert_not_awaited()

    async def test_cancel(self, manual_sleep: ManualSleep):
        scheduler = RetryScheduler(RetryPolicy(), AsyncMock(), sleep=manual_sleep)
        assert scheduler.cancel("missing") is False

        scheduler.schedule("TSK001")
        assert scheduler.cancel("TSK001") is True
        assert scheduler.pending("TSK001") is None

    async def test_reset(self, manual_sleep: ManualSleep):
        scheduler = RetryScheduler(RetryPolicy(), AsyncMock(), sleep=manual_sleep)
        scheduler.schedule("TSK001")
        scheduler.reset("TSK001")
        assert scheduler.attempts("TSK001") == 0
        await scheduler.shutdown()


class TestRetryPolicy:
    def test_delay_backoff(self):
        policy = RetryPolicy()
        assert policy.delay_for(1) == 5.0
        assert policy.delay_for(2) == 10.0
        assert policy.delay_for(3) == 20.0

    def test_delay_capped(self):
        policy = RetryPolicy(max_delay_s=15.0)
        assert policy.delay_for(10) == 15.0
