"""test/planner/conftest.py - 共享 fixtures"""
import math

import numpy as np
import pytest

from push_planner.geometry import Rect
from push_planner.models import GoalSpec, MoveableBox, PlannerConfig, Problem, RobotPose
from push_planner.workspace import Workspace


# ==================== 配置 ====================

@pytest.fixture
def fast_config():
    """节点预算缩小的配置，用于单元测试"""
    return PlannerConfig(max_nodes=800, robot_max_nodes=1500,
                         max_sample_attempts=50000, max_solve_attempts=5)


@pytest.fixture
def seeded_rng():
    return np.random.default_rng(42)


# ==================== 场景 ====================

@pytest.fixture
def empty_problem():
    """场景 1：空场景，box (0.1, 0.1) → (0.8, 0.8)，机器人宽 0.05"""
    return Problem(
        robot_start=RobotPose(0.5, 0.5, 0.0, 0.05),
        goal_boxes=[GoalSpec(MoveableBox.square("goal_0", 0.1, 0.1, 0.05),
                             Rect(0.8, 0.8, 0.05, 0.05))],
    )


@pytest.fixture
def wall_problem():
    """场景 2：竖直墙挡在直线路径上，上下都留有通道

    墙 x=0.45~0.55, y=0.3~0.7，box 从 (0.2, 0.475) 推到 (0.75, 0.475)。
    """
    return Problem(
        robot_start=RobotPose(0.1, 0.5, math.pi / 2, 0.05),
        goal_boxes=[GoalSpec(MoveableBox.square("goal_0", 0.2, 0.475, 0.05),
                             Rect(0.75, 0.475, 0.05, 0.05))],
        static_obstacles=[Rect(0.45, 0.3, 0.1, 0.4)],
    )


@pytest.fixture
def blocked_goal_problem():
    """场景 2b：目标位置与静态障碍物重叠"""
    return Problem(
        robot_start=RobotPose(0.5, 0.1, 0.0, 0.05),
        goal_boxes=[GoalSpec(MoveableBox.square("goal_0", 0.1, 0.1, 0.05),
                             Rect(0.8, 0.8, 0.05, 0.05))],
        static_obstacles=[Rect(0.75, 0.75, 0.2, 0.2)],
    )


@pytest.fixture
def movable_problem():
    """场景 3：可移动障碍物挡在水平直线路径上"""
    return Problem(
        robot_start=RobotPose(0.1, 0.3, 0.0, 0.05),
        goal_boxes=[GoalSpec(MoveableBox.square("goal_0", 0.1, 0.5, 0.05),
                             Rect(0.8, 0.5, 0.05, 0.05))],
        movable_obstacles=[MoveableBox.square("movable_0", 0.45, 0.5, 0.05)],
    )


@pytest.fixture
def swap_problem():
    """场景 4b：两个 box 互换位置，不存在合法顺序"""
    return Problem(
        robot_start=RobotPose(0.5, 0.2, 0.0, 0.05),
        goal_boxes=[
            GoalSpec(MoveableBox.square("a", 0.2, 0.5, 0.05), Rect(0.7, 0.5, 0.05, 0.05)),
            GoalSpec(MoveableBox.square("b", 0.7, 0.5, 0.05), Rect(0.2, 0.5, 0.05, 0.05)),
        ],
    )


@pytest.fixture
def workspace_basic():
    """一个静态障碍物 + 两个可移动障碍物 + 一个 goal box"""
    return Workspace(
        robot_width=0.05,
        static_obstacles=[Rect(0.4, 0.4, 0.2, 0.2)],
        movable_obstacles=[MoveableBox.square("movable_0", 0.1, 0.8, 0.05),
                           MoveableBox.square("movable_1", 0.8, 0.1, 0.05)],
        goal_boxes=[MoveableBox.square("goal_0", 0.1, 0.1, 0.05)],
    )
