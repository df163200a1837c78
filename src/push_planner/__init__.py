"""
push_planner - 分层 RRT 推箱规划

一个线段机器人在单位正方形工作空间内推动正方形 box，把每个 goal box
推到目标位置；路上挡路的可移动障碍物会被递归地推开。

核心思路：
1. 通用 RRT 引擎，由搜索域（box / 机器人）与解检查钩子参数化
2. GoalBoxRRT 求解 goal box 的几何路径（单轴直线段，L 形连接）
3. 计算 goal box 互不干扰的执行顺序
4. 沿路径收集挡路障碍物，嵌套 ObstacleRRT 把它们推开并冻结
5. 机器人 RRT 规划推动接触位姿之间的移动
6. 版本化工作空间：每个候选在独立事务中解析，失败整体回滚
"""

from .errors import (
    PlanningError,
    InvalidStateError,
    NoPathError,
    NoValidOrderError,
    BoxLostError,
    DiscontinuousPathError,
)
from .geometry import Rect, UNIT_SQUARE
from .models import (
    MoveableBox,
    RobotPose,
    BoxAction,
    RobotAction,
    PushedBox,
    GoalSpec,
    GoalPlan,
    Problem,
    PlannerConfig,
    PlannerResult,
)
from .tree import SearchTree, TreeNode
from .states import BoxState, RobotState, BoxDomain, RobotDomain
from .rrt import RRT
from .workspace import Workspace
from .robot_rrt import RobotPlanner
from .box_rrt import BoxPathResolver, make_goal_box_rrt, solve_goal_box
from .solver import GoalBoxSolver, compute_execution_order
from .trajectory import verify_actions

__all__ = [
    # 异常
    'PlanningError',
    'InvalidStateError',
    'NoPathError',
    'NoValidOrderError',
    'BoxLostError',
    'DiscontinuousPathError',
    # 几何
    'Rect',
    'UNIT_SQUARE',
    # 数据模型
    'MoveableBox',
    'RobotPose',
    'BoxAction',
    'RobotAction',
    'PushedBox',
    'GoalSpec',
    'GoalPlan',
    'Problem',
    'PlannerConfig',
    'PlannerResult',
    # 搜索
    'SearchTree',
    'TreeNode',
    'BoxState',
    'RobotState',
    'BoxDomain',
    'RobotDomain',
    'RRT',
    # 规划器
    'Workspace',
    'RobotPlanner',
    'BoxPathResolver',
    'make_goal_box_rrt',
    'solve_goal_box',
    'GoalBoxSolver',
    'compute_execution_order',
    'verify_actions',
]
