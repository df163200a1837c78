"""
push_planner/robot_rrt.py - 机器人 RRT

在两次推动之间为线段机器人规划无碰撞的移动路径（一段 "leg"）。
每个新节点都尝试直接连接到目标位姿，连上即为解。
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

from .errors import InvalidStateError, NoPathError
from .geometry import Rect
from .models import PlannerConfig, RobotAction, RobotPose
from .rrt import RRT
from .states import RobotDomain

logger = logging.getLogger(__name__)


class RobotPlanner:
    """机器人路径规划器

    Args:
        config: 规划参数
        rng: 随机数生成器（与上层规划器共享）
        visualiser: 可视化器（可选）
    """

    def __init__(
        self,
        config: Optional[PlannerConfig] = None,
        rng: Optional[np.random.Generator] = None,
        visualiser=None,
    ) -> None:
        self.config = config or PlannerConfig()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.visualiser = visualiser
        self.n_legs = 0

    def plan_leg(
        self,
        start: RobotPose,
        goal: RobotPose,
        obstacles: Sequence[Rect],
        pushed_box: Optional[Rect] = None,
    ) -> List[RobotAction]:
        """规划从 start 到 goal 的机器人动作序列

        Args:
            start: 起始位姿
            goal: 目标位姿（通常为推动接触位姿）
            obstacles: 需要避开的障碍物
            pushed_box: 即将被推动的 box，作为障碍物参与碰撞检测（可贴边）

        Returns:
            动作序列，起止位姿重合时为空列表

        Raises:
            NoPathError: 起止位姿无效，或节点预算用尽
        """
        if start.is_close(goal):
            return []

        rects = list(obstacles)
        if pushed_box is not None:
            rects.append(pushed_box)

        domain = RobotDomain(rects, start.width, self.config.robot_substep)
        start_state = domain.make_state(start)
        goal_state = domain.make_state(goal)

        # ---- Step 1: 起止位姿校验 ----
        for label, state in (("起点", start_state), ("目标", goal_state)):
            try:
                domain.validate(state)
            except InvalidStateError as exc:
                raise NoPathError(f"机器人{label}位姿无效: {state}") from exc

        # ---- Step 2: 扩展直到能连上目标 ----
        def reached_goal(rrt: RRT, node_id: int) -> bool:
            try:
                last_id = rrt.connect(node_id, goal_state)
            except InvalidStateError:
                return False
            rrt.solution_id = last_id
            return True

        rrt = RRT(
            domain, start_state, reached_goal,
            config=self.config, rng=self.rng, visualiser=self.visualiser,
            max_nodes=self.config.robot_node_budget, name="robot_rrt",
        )
        self.n_legs += 1
        if not rrt.solve():
            raise NoPathError(
                f"机器人路径规划失败: {start_state} -> {goal_state}, "
                f"节点 {rrt.tree.n_nodes}")

        actions = rrt.solution_actions()
        logger.debug("机器人 leg: %d 段动作, 树节点 %d", len(actions), rrt.tree.n_nodes)
        return actions

