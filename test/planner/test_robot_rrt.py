"""test/planner/test_robot_rrt.py - 机器人 RRT 测试"""
import math

import numpy as np
import pytest

from push_planner.errors import NoPathError
from push_planner.geometry import Rect
from push_planner.models import PlannerConfig, RobotPose
from push_planner.robot_rrt import RobotPlanner
from push_planner.states import RobotDomain


def _assert_leg(actions, start, goal, obstacles, config):
    domain = RobotDomain(obstacles, start.width, config.robot_substep)
    assert actions[0].start == start
    assert actions[-1].end == goal
    for prev, nxt in zip(actions, actions[1:]):
        assert prev.end == nxt.start
    for action in actions:
        assert action.pushed_box is None
        assert domain.sweep_is_free(action.start, action.end, obstacles)


class TestRobotPlanner:
    """RobotPlanner.plan_leg 测试"""

    def test_coincident_is_empty(self, fast_config, robot_pose):
        planner = RobotPlanner(fast_config, np.random.default_rng(0))
        assert planner.plan_leg(robot_pose, robot_pose, []) == []

    def test_direct_leg(self, fast_config, robot_pose):
        planner = RobotPlanner(fast_config, np.random.default_rng(0))
        goal = RobotPose(0.2, 0.7, math.pi / 2, 0.05)
        actions = planner.plan_leg(robot_pose, goal, [])
        assert len(actions) == 1
        _assert_leg(actions, robot_pose, goal, [], fast_config)

    def test_leg_around_wall(self, fast_config):
        wall = Rect(0.45, 0.0, 0.1, 0.8)
        start = RobotPose(0.2, 0.4, 0.0, 0.05)
        goal = RobotPose(0.8, 0.4, 0.0, 0.05)
        planner = RobotPlanner(fast_config, np.random.default_rng(3))
        actions = planner.plan_leg(start, goal, [wall])
        assert len(actions) > 1
        _assert_leg(actions, start, goal, [wall], fast_config)

    def test_pushed_box_is_an_obstacle(self, fast_config):
        box = Rect(0.45, 0.45, 0.1, 0.1)
        start = RobotPose(0.3, 0.5, 0.0, 0.05)
        goal = RobotPose(0.7, 0.5, 0.0, 0.05)
        planner = RobotPlanner(fast_config, np.random.default_rng(5))
        actions = planner.plan_leg(start, goal, [], pushed_box=box)
        _assert_leg(actions, start, goal, [box], fast_config)

    def test_goal_touching_box_is_reachable(self, fast_config, robot_pose):
        """推动接触位姿贴在 box 边上，可以到达"""
        box = Rect(0.7, 0.7, 0.05, 0.05)
        contact = RobotPose(0.7, 0.725, math.pi / 2, 0.05)
        planner = RobotPlanner(fast_config, np.random.default_rng(0))
        actions = planner.plan_leg(robot_pose, contact, [], pushed_box=box)
        _assert_leg(actions, robot_pose, contact, [box], fast_config)

    def test_invalid_goal_raises(self, fast_config, robot_pose, centre_block):
        planner = RobotPlanner(fast_config, np.random.default_rng(0))
        start = RobotPose(0.2, 0.2, 0.0, 0.05)
        with pytest.raises(NoPathError):
            planner.plan_leg(start, robot_pose, [centre_block])

    def test_invalid_start_raises(self, fast_config):
        planner = RobotPlanner(fast_config, np.random.default_rng(0))
        with pytest.raises(NoPathError):
            planner.plan_leg(RobotPose(0.99, 0.5, 0.0, 0.05),
                             RobotPose(0.5, 0.5, 0.0, 0.05), [])

    def test_unreachable_goal_raises(self):
        """目标被围住：节点预算用尽"""
        ring = [Rect(0.35, 0.35, 0.05, 0.3), Rect(0.6, 0.35, 0.05, 0.3),
                Rect(0.4, 0.35, 0.2, 0.05), Rect(0.4, 0.6, 0.2, 0.05)]
        config = PlannerConfig(robot_max_nodes=150)
        planner = RobotPlanner(config, np.random.default_rng(0))
        with pytest.raises(NoPathError):
            planner.plan_leg(RobotPose(0.1, 0.1, 0.0, 0.05),
                             RobotPose(0.5, 0.5, 0.0, 0.05), ring)
