"""
push_planner/solver.py - 顶层推箱求解器

流程：
1. 校验所有 goal box 目标位置（越界或与静态障碍物相交直接失败）
2. 为每个 goal box 求解几何路径（GoalBoxRRT）
3. 计算互不干扰的执行顺序
4. 按顺序分层解析每条路径（清理障碍物 + 规划机器人动作）
5. 校验动作序列并提交工作空间

可重试错误（NoPathError）回滚工作空间后换随机数重试；
找不到执行顺序（NoValidOrderError）直接失败。
"""

import logging
import time
from typing import List, Optional, Sequence

import numpy as np

from .box_rrt import BoxPathResolver, solve_goal_box
from .errors import NoPathError, NoValidOrderError
from .models import GoalPlan, PlannerConfig, PlannerResult, Problem, RobotAction
from .robot_rrt import RobotPlanner
from .trajectory import verify_actions
from .workspace import Workspace

logger = logging.getLogger(__name__)


# ============================================================
# 执行顺序
# ============================================================

def can_precede(first: GoalPlan, second: GoalPlan) -> bool:
    """first 能否在 second 之前执行

    - first 的路径不能穿过 second 的起始位置（second 尚未移动）
    - second 的路径不能穿过 first 的目标位置（first 已就位）
    """
    return not first.crosses(second.start) and not second.crosses(first.goal)


def order_is_valid(plans: Sequence[GoalPlan]) -> bool:
    """检查给定顺序中任意一对都满足先后约束"""
    return all(can_precede(plans[i], plans[j])
               for i in range(len(plans)) for j in range(i + 1, len(plans)))


def compute_execution_order(plans: Sequence[GoalPlan]) -> List[GoalPlan]:
    """回溯搜索执行顺序

    每层选择一个 box 作为最后执行者（要求其余 box 都能在它之前执行），
    再递归排序剩余部分。约束是两两的，因此搜索是穷尽的。
    最坏 O(N!)，适用于个位数的 goal box。

    Raises:
        NoValidOrderError: 不存在合法顺序
    """
    order = _order(list(plans))
    if order is None:
        raise NoValidOrderError(
            f"不存在合法执行顺序: {[p.name for p in plans]}")
    return order


def _order(remaining: List[GoalPlan]) -> Optional[List[GoalPlan]]:
    if len(remaining) <= 1:
        return list(remaining)

    for k, last in enumerate(remaining):
        rest = remaining[:k] + remaining[k + 1:]
        if not all(can_precede(p, last) for p in rest):
            continue
        prefix = _order(rest)
        if prefix is not None:
            return prefix + [last]
    return None


# ============================================================
# GoalBoxSolver
# ============================================================

class GoalBoxSolver:
    """推箱求解器

    Args:
        problem: 规划问题
        config: 规划参数
        visualiser: 可视化器（可选）

    Example:
        >>> solver = GoalBoxSolver(Problem.from_json('scene.json'))
        >>> result = solver.solve(seed=42)
        >>> result.save_path('output/path.json')
    """

    def __init__(
        self,
        problem: Problem,
        config: Optional[PlannerConfig] = None,
        visualiser=None,
    ) -> None:
        self.problem = problem
        self.config = config or PlannerConfig()
        self.visualiser = visualiser
        self.workspace = Workspace.from_problem(problem)

    def validate_goals(self) -> None:
        """目标位置越界或与静态障碍物相交时抛 NoPathError"""
        statics = self.workspace.static_obstacles
        for spec in self.problem.goal_boxes:
            if not spec.goal.is_valid(statics):
                raise NoPathError(f"goal box '{spec.name}' 的目标位置无效: {spec.goal.to_list()}")

    def solve(self, seed: Optional[int] = None) -> PlannerResult:
        """求解

        Args:
            seed: 随机种子

        Returns:
            PlannerResult

        Raises:
            NoPathError: 目标无效，或所有尝试都失败
            NoValidOrderError: 不存在合法执行顺序
        """
        t0 = time.time()
        rng = np.random.default_rng(seed)

        # ---- Step 0: 目标校验 ----
        self.validate_goals()

        last_error: Optional[NoPathError] = None
        for attempt in range(1, self.config.max_solve_attempts + 1):
            self.workspace.save()
            try:
                result = self._attempt(rng)
            except NoPathError as exc:
                self.workspace.undo()
                last_error = exc
                logger.warning("第 %d/%d 次尝试失败: %s",
                               attempt, self.config.max_solve_attempts, exc)
                continue
            except NoValidOrderError:
                self.workspace.undo()
                raise
            self.workspace.commit()

            result.n_attempts = attempt
            result.computation_time = time.time() - t0
            result.compute_path_length()
            result.message = (
                f"成功: {len(result.actions)} 个动作, {result.n_pushes} 次推动, "
                f"尝试 {attempt} 次")
            logger.info("求解完成: 顺序 %s, %d 个动作, 路径长度 %.4f, 用时 %.2fs",
                        result.order, len(result.actions), result.path_length,
                        result.computation_time)
            return result

        raise NoPathError(
            f"{self.config.max_solve_attempts} 次尝试均失败: {last_error}")

    def _attempt(self, rng: np.random.Generator) -> PlannerResult:
        ws = self.workspace
        config = self.config

        # ---- Step 1: goal box 几何路径 ----
        plans = [solve_goal_box(spec, ws, config, rng, self.visualiser)
                 for spec in self.problem.goal_boxes]

        # ---- Step 2: 执行顺序 ----
        ordered = compute_execution_order(plans)
        logger.info("执行顺序: %s", [p.name for p in ordered])

        # ---- Step 3: 分层解析 ----
        robot_planner = RobotPlanner(config, rng, self.visualiser)
        resolver = BoxPathResolver(ws, config, rng, robot_planner, self.visualiser)
        avoid = [mb for p in plans for mb in p.movement_boxes]

        pose = self.problem.robot_start
        actions: List[RobotAction] = []
        for plan in ordered:
            legs, pose = resolver.resolve(plan.name, plan.actions, pose, avoid)
            actions.extend(legs)
            ws.move_goal_box(plan.name, plan.goal)

        # ---- Step 4: 输出校验 ----
        initial = [g.box for g in self.problem.goal_boxes] + list(self.problem.movable_obstacles)
        verify_actions(actions, initial, self.problem.robot_start,
                       tol=config.continuity_tolerance)

        return PlannerResult(
            success=True,
            actions=actions,
            order=[p.name for p in ordered],
            box_paths={p.name: list(p.actions) for p in plans},
        )
