"""状态机流转单元测试

测试内容：
1. 流转表中的每条边都合法，其余组合（包括自流转）都非法
2. 进度映射固定
3. 目标状态对应的事件类型
"""

import itertools

import pytest
from taskguardian.models.enums import (
    PROGRESS_BY_STATE,
    VALID_TRANSITIONS,
    EventKind,
    TaskState,
    event_kind_for,
    progress_of,
    validate_transition,
)

ALLOWED_EDGES = [
    (TaskState.PENDING, TaskState.IN_PROGRESS),
    (TaskState.PENDING, TaskState.FAILED),
    (TaskState.IN_PROGRESS, TaskState.COMPLETED),
    (TaskState.IN_PROGRESS, TaskState.FAILED),
    (TaskState.IN_PROGRESS, TaskState.NEEDS_REVIEW),
    (TaskState.COMPLETED, TaskState.VERIFIED),
    (TaskState.COMPLETED, TaskState.NEEDS_REVIEW),
    (TaskState.FAILED, TaskState.PENDING),
    (TaskState.FAILED, TaskState.IN_PROGRESS),
    (TaskState.NEEDS_REVIEW, TaskState.VERIFIED),
    (TaskState.NEEDS_REVIEW, TaskState.IN_PROGRESS),
    (TaskState.NEEDS_REVIEW, TaskState.FAILED),
    (TaskState.VERIFIED, TaskState.NEEDS_REVIEW),
]


class TestTransitionTable:
    """流转表"""

    @pytest.mark.parametrize("from_state,to_state", ALLOWED_EDGES)
    def test_valid_transition(self, from_state: TaskState, to_state: TaskState):
        """流转表中的边应通过验证"""
        assert validate_transition(from_state, to_state) is True

    @pytest.mark.parametrize(
        "from_state,to_state",
        [
            pair
            for pair in itertools.product(TaskState, TaskState)
            if pair not in ALLOWED_EDGES
        ],
    )
    def test_invalid_transition(self, from_state: TaskState, to_state: TaskState):
        """不在流转表中的组合应被拒绝"""
        assert validate_transition(from_state, to_state) is False

    def test_every_state_has_outgoing_edges(self):
        """没有正式终态：每个状态都能继续流转"""
        for state in TaskState:
            assert VALID_TRANSITIONS[state], f"{state} 没有出边"

    def test_no_self_transitions(self):
        """任何状态都不能流转到自身"""
        for state in TaskState:
            assert state not in VALID_TRANSITIONS[state]

    def test_verified_can_reopen_for_review(self):
        """VERIFIED 发现回归时可回到 NEEDS_REVIEW"""
        assert VALID_TRANSITIONS[TaskState.VERIFIED] == {TaskState.NEEDS_REVIEW}


class TestProgressMapping:
    """进度映射"""

    @pytest.mark.parametrize(
        "state,expected",
        [
            (TaskState.PENDING, 0),
            (TaskState.IN_PROGRESS, 25),
            (TaskState.NEEDS_REVIEW, 75),
            (TaskState.COMPLETED, 90),
            (TaskState.VERIFIED, 100),
            (TaskState.FAILED, 0),
        ],
    )
    def test_progress_of(self, state: TaskState, expected: int):
        assert progress_of(state) == expected

    def test_mapping_covers_all_states(self):
        assert set(PROGRESS_BY_STATE) == set(TaskState)


class TestEventKindForState:
    def test_completed(self):
        assert event_kind_for(TaskState.COMPLETED) == EventKind.TASK_COMPLETED

    def test_failed(self):
        assert event_kind_for(TaskState.FAILED) == EventKind.TASK_FAILED

    @pytest.mark.parametrize(
        "state",
        [
            TaskState.PENDING,
            TaskState.IN_PROGRESS,
            TaskState.NEEDS_REVIEW,
            TaskState.VERIFIED,
        ],
    )
    def test_other_states_are_updates(self, state: TaskState):
        assert event_kind_for(state) == EventKind.TASK_UPDATED
