"""test/planner/test_trajectory.py - 动作序列校验测试"""
import math

import pytest

from push_planner.errors import BoxLostError, DiscontinuousPathError
from push_planner.geometry import Rect
from push_planner.models import MoveableBox, PushedBox, RobotAction, RobotPose
from push_planner.trajectory import verify_actions

W = 0.05


def _pose(x, y, theta=0.0):
    return RobotPose(x, y, theta, W)


@pytest.fixture
def push_sequence():
    """移动到接触位姿后推动 box 两次"""
    box0 = Rect(0.1, 0.1, W, W)
    box1 = Rect(0.3, 0.1, W, W)
    box2 = Rect(0.5, 0.1, W, W)
    contact = _pose(0.1, 0.125, math.pi / 2)
    return [
        RobotAction(_pose(0.5, 0.5), contact),
        RobotAction(contact, _pose(0.3, 0.125, math.pi / 2), PushedBox("b", box0, box1)),
        RobotAction(_pose(0.3, 0.125, math.pi / 2), _pose(0.5, 0.125, math.pi / 2),
                    PushedBox("b", box1, box2)),
    ]


class TestVerifyActions:
    """verify_actions 测试"""

    def test_valid_sequence(self, push_sequence):
        final = verify_actions(push_sequence, [MoveableBox("b", Rect(0.1, 0.1, W, W))],
                               start_pose=_pose(0.5, 0.5))
        assert final["b"] == Rect(0.5, 0.1, W, W)

    def test_accepts_dict_of_rects(self, push_sequence):
        final = verify_actions(push_sequence, {"b": Rect(0.1, 0.1, W, W)})
        assert final["b"] == Rect(0.5, 0.1, W, W)

    def test_empty_sequence(self):
        assert verify_actions([], {}) == {}

    def test_discontinuity(self, push_sequence):
        broken = [push_sequence[0], push_sequence[2]]
        with pytest.raises(DiscontinuousPathError):
            verify_actions(broken, {"b": Rect(0.1, 0.1, W, W)})

    def test_wrong_start_pose(self, push_sequence):
        with pytest.raises(DiscontinuousPathError):
            verify_actions(push_sequence, {"b": Rect(0.1, 0.1, W, W)},
                           start_pose=_pose(0.2, 0.2))

    def test_tolerance(self, push_sequence):
        shifted = list(push_sequence)
        shifted[1] = RobotAction(_pose(0.1 + 1e-9, 0.125, math.pi / 2),
                                 push_sequence[1].end, push_sequence[1].pushed_box)
        verify_actions(shifted, {"b": Rect(0.1, 0.1, W, W)}, tol=1e-6)

    def test_unknown_box(self, push_sequence):
        with pytest.raises(BoxLostError):
            verify_actions(push_sequence, {"other": Rect(0.1, 0.1, W, W)})

    def test_box_position_mismatch(self, push_sequence):
        with pytest.raises(BoxLostError):
            verify_actions(push_sequence, {"b": Rect(0.2, 0.1, W, W)})

    def test_errors_not_retryable(self):
        assert not BoxLostError.retryable
        assert not DiscontinuousPathError.retryable
