"""
push_planner/box_rrt.py - 分层 box 移动规划

两种 box RRT 共用同一个通用引擎，只是障碍物集合与解检查钩子不同：

- GoalBoxRRT: 把 goal box 从当前位置移动到目标位置。
  新节点能以 L 形连接到目标即为解；障碍物为静态障碍物。
- ObstacleRRT: 把挡路的可移动障碍物推开。
  新节点的占据区域不与任何需要回避的区域相交，且该候选路径可以被
  分层解析（递归清理其路上的障碍物并规划机器人动作）即为解；
  障碍物为静态障碍物 + goal box 当前位置 + 其他正在移动的障碍物。

BoxPathResolver 把 box 的几何路径分解为机器人动作：
1. 沿路径从叶到根收集挡路的可移动障碍物
2. 逐个嵌套求解 ObstacleRRT 把它们推开，并冻结为静态障碍物
3. 对每条边规划机器人 leg 到推动接触位姿，再追加推动动作

每个候选在独立的 workspace 事务中解析，失败时整体回滚。
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .errors import InvalidStateError, NoPathError
from .geometry import Rect
from .models import (
    BoxAction,
    GoalPlan,
    GoalSpec,
    MoveableBox,
    PlannerConfig,
    PushedBox,
    RobotAction,
    RobotPose,
)
from .robot_rrt import RobotPlanner
from .rrt import RRT
from .states import BoxDomain, RobotDomain
from .workspace import Workspace

logger = logging.getLogger(__name__)


# ============================================================
# GoalBoxRRT
# ============================================================

def make_goal_box_rrt(
    spec: GoalSpec,
    obstacles: Sequence[Rect],
    config: Optional[PlannerConfig] = None,
    rng: Optional[np.random.Generator] = None,
    visualiser=None,
) -> RRT:
    """构建 goal box RRT

    Args:
        spec: goal box 及其目标
        obstacles: 静态障碍物
        config: 规划参数
        rng: 随机数生成器
        visualiser: 可视化器（可选）
    """
    domain = BoxDomain(spec.box, obstacles)
    goal_state = domain.make_state(spec.goal.x, spec.goal.y)

    def reached_goal(rrt: RRT, node_id: int) -> bool:
        try:
            last_id = rrt.connect(node_id, goal_state)
        except InvalidStateError:
            return False
        rrt.solution_id = last_id
        return True

    config = config or PlannerConfig()
    return RRT(
        domain, domain.make_state(spec.box.rect.x, spec.box.rect.y), reached_goal,
        config=config, rng=rng, visualiser=visualiser,
        max_nodes=config.max_nodes, name=f"goal_box_rrt[{spec.name}]",
    )


def solve_goal_box(
    spec: GoalSpec,
    workspace: Workspace,
    config: Optional[PlannerConfig] = None,
    rng: Optional[np.random.Generator] = None,
    visualiser=None,
) -> GoalPlan:
    """求解一个 goal box 的几何路径

    Raises:
        NoPathError: 节点预算用尽
    """
    rrt = make_goal_box_rrt(spec, workspace.static_obstacles, config, rng, visualiser)
    if not rrt.solve():
        raise NoPathError(
            f"goal box '{spec.name}' 无解: 节点 {rrt.tree.n_nodes}, 采样 {rrt.n_samples}")

    plan = GoalPlan(spec, rrt.solution_actions())
    logger.info("goal box '%s': %d 段移动, 树节点 %d",
                spec.name, len(plan.actions), rrt.tree.n_nodes)
    return plan


# ============================================================
# 分层路径解析 / ObstacleRRT
# ============================================================

class BoxPathResolver:
    """把 box 几何路径分解为机器人动作，必要时递归清理障碍物

    Args:
        workspace: 工作空间（会被修改：障碍物冻结）
        config: 规划参数
        rng: 随机数生成器
        robot_planner: 机器人规划器（默认按 config / rng 新建）
        visualiser: 可视化器（可选）

    Example:
        >>> resolver = BoxPathResolver(ws, config, rng)
        >>> robot_actions, pose = resolver.resolve('goal_0', plan.actions, start_pose,
        ...                                        avoid=plan.movement_boxes)
    """

    def __init__(
        self,
        workspace: Workspace,
        config: Optional[PlannerConfig] = None,
        rng: Optional[np.random.Generator] = None,
        robot_planner: Optional[RobotPlanner] = None,
        visualiser=None,
    ) -> None:
        self.workspace = workspace
        self.config = config or PlannerConfig()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.robot_planner = robot_planner or RobotPlanner(self.config, self.rng)
        self.visualiser = visualiser
        self.n_cleared = 0

    # ── 路径解析 ──

    def blocking_obstacles(self, box_name: str, movement_boxes: Sequence[Rect]) -> List[str]:
        """从叶到根收集与移动区域相交的可移动障碍物名称（按发现顺序去重）"""
        names: List[str] = []
        movable = [b for b in self.workspace.movable_obstacles if b.name != box_name]
        for mb in reversed(movement_boxes):
            for box in movable:
                if box.name not in names and box.rect.intersects(mb):
                    names.append(box.name)
        return names

    def resolve(
        self,
        box_name: str,
        actions: Sequence[BoxAction],
        robot_pose: RobotPose,
        avoid: Sequence[Rect] = (),
        depth: int = 0,
    ) -> Tuple[List[RobotAction], RobotPose]:
        """把 box 的移动序列分解为机器人动作

        Args:
            box_name: 被移动的 box
            actions: box 移动序列（根到叶）
            robot_pose: 机器人当前位姿
            avoid: 上层累计的需回避区域
            depth: 当前递归深度（goal box 为 0）

        Returns:
            (机器人动作序列, 机器人结束位姿)

        Raises:
            NoPathError: 障碍物无法清理或机器人无法到达推动位姿
        """
        movement_boxes = [a.movement_box for a in actions]
        robot_actions: List[RobotAction] = []
        pose = robot_pose

        # ---- Step 1: 清理路上的可移动障碍物 ----
        blocking = self.blocking_obstacles(box_name, movement_boxes)
        if blocking:
            logger.debug("%s'%s' 路径上的障碍物: %s", "  " * depth, box_name, blocking)
        nested_avoid = list(avoid) + movement_boxes
        for name in blocking:
            # 嵌套求解可能已顺带处理
            if name not in {b.name for b in self.workspace.movable_obstacles}:
                continue
            cleared, pose = self.clear_obstacle(name, pose, nested_avoid, depth + 1)
            robot_actions.extend(cleared)

        # ---- Step 2: 逐边推动 ----
        for action in actions:
            legs, pose = self.push(box_name, action, pose)
            robot_actions.extend(legs)

        return robot_actions, pose

    def push(
        self,
        box_name: str,
        action: BoxAction,
        robot_pose: RobotPose,
    ) -> Tuple[List[RobotAction], RobotPose]:
        """机器人移动到接触位姿并执行一次直线推动

        机器人可能比 box 宽，推动时伸出 box 扫过区域的部分同样要做碰撞检测。

        Raises:
            NoPathError: 推动过程中机器人碰撞，或无法到达接触位姿
        """
        width = self.workspace.robot_width
        contact = action.pushing_pose(width)
        end_pose = action.final_pose(width)
        obstacles = self.workspace.all_obstacles(exclude=box_name)

        domain = RobotDomain(obstacles, width, self.config.robot_substep)
        if not domain.sweep_is_free(contact, end_pose, obstacles):
            raise NoPathError(
                f"推动 '{box_name}' 时机器人碰撞: {contact.to_list()} -> {end_pose.to_list()}")

        legs = self.robot_planner.plan_leg(robot_pose, contact, obstacles,
                                           pushed_box=action.start)
        legs.append(RobotAction(contact, end_pose,
                                PushedBox(box_name, action.start, action.end)))
        return legs, end_pose

    # ── 障碍物清理 ──

    def clear_obstacle(
        self,
        name: str,
        robot_pose: RobotPose,
        avoid: Sequence[Rect],
        depth: int,
    ) -> Tuple[List[RobotAction], RobotPose]:
        """把可移动障碍物推到不与 avoid 相交的位置并冻结

        Args:
            name: 障碍物名称
            robot_pose: 机器人当前位姿
            avoid: 需回避区域（所有上层路径的移动区域）
            depth: 递归深度

        Returns:
            (机器人动作序列, 机器人结束位姿)

        Raises:
            NoPathError: 超过最大递归深度或节点预算用尽
        """
        if depth > self.config.max_recursion_depth:
            raise NoPathError(f"清理 '{name}' 超过最大递归深度 {self.config.max_recursion_depth}")

        box = self.workspace.mark_pending(name)
        rrt, outcome = self._make_obstacle_rrt(box, robot_pose, avoid, depth)
        if not rrt.solve():
            raise NoPathError(f"无法清理障碍物 '{name}': 节点 {rrt.tree.n_nodes}")

        self.n_cleared += 1
        robot_actions, end_pose = outcome
        rest = rrt.tree.state(rrt.solution_id).rect
        logger.info("%s清理障碍物 '%s' -> (%.4f, %.4f), %d 个机器人动作",
                    "  " * depth, name, rest.x, rest.y, len(robot_actions))
        return robot_actions, end_pose

    def _make_obstacle_rrt(
        self,
        box: MoveableBox,
        robot_pose: RobotPose,
        avoid: Sequence[Rect],
        depth: int,
    ) -> Tuple[RRT, list]:
        """构建 ObstacleRRT

        Returns:
            (rrt, outcome)，解检查钩子成功时向 outcome 写入
            (机器人动作序列, 机器人结束位姿)
        """
        ws = self.workspace
        obstacles = ws.static_obstacles + [
            b.rect for b in ws.goal_boxes + ws.pending_obstacles if b.name != box.name]
        domain = BoxDomain(box, obstacles)
        outcome: list = []

        def settled(rrt: RRT, node_id: int) -> bool:
            rect = rrt.tree.state(node_id).rect
            if any(rect.intersects(r) for r in avoid):
                return False

            actions = rrt.tree.actions_from_root(node_id)
            try:
                with ws.transaction():
                    result = self.resolve(box.name, actions, robot_pose, avoid, depth)
                    ws.freeze(box.name, rect)
            except NoPathError as exc:
                logger.debug("%s候选 (%.4f, %.4f) 被拒绝: %s",
                             "  " * depth, rect.x, rect.y, exc)
                return False

            outcome.extend(result)
            rrt.solution_id = node_id
            return True

        rrt = RRT(
            domain, domain.make_state(box.rect.x, box.rect.y), settled,
            config=self.config, rng=self.rng, visualiser=self.visualiser,
            max_nodes=self.config.obstacle_node_budget,
            name=f"obstacle_rrt[{box.name}]",
        )
        return rrt, outcome
