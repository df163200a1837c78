"""
push_planner/models.py - 规划器数据模型

定义推箱规划使用的核心数据结构：MoveableBox、RobotPose、BoxAction、
RobotAction、PushedBox、GoalSpec、GoalPlan、Problem、PlannerConfig、
PlannerResult。
"""

import json
import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .geometry import Rect, normalize_angle, shortest_angle_diff


@dataclass(frozen=True)
class MoveableBox:
    """可移动的正方形 box（goal box 或可移动障碍物）

    位置变化通过返回新值实现，名称是跨快照的唯一标识。

    Attributes:
        name: box 名称
        rect: 当前占据的矩形（w == h）
    """
    name: str
    rect: Rect

    def __post_init__(self) -> None:
        if abs(self.rect.w - self.rect.h) > 1e-12:
            raise ValueError(f"MoveableBox '{self.name}' 必须为正方形")

    @classmethod
    def square(cls, name: str, x: float, y: float, width: float) -> 'MoveableBox':
        return cls(name, Rect(x, y, width, width))

    @property
    def width(self) -> float:
        return self.rect.w

    def at(self, x: float, y: float) -> 'MoveableBox':
        """同名 box 放到新位置"""
        return MoveableBox(self.name, Rect(x, y, self.rect.w, self.rect.h))

    def moved(self, dx: float, dy: float) -> 'MoveableBox':
        return MoveableBox(self.name, self.rect.translated(dx, dy))


@dataclass(frozen=True)
class RobotPose:
    """线段机器人位姿

    Attributes:
        x, y: 线段中心
        theta: 朝向角，归一化到 [0, 2π)
        width: 线段长度
    """
    x: float
    y: float
    theta: float
    width: float

    def __post_init__(self) -> None:
        object.__setattr__(self, 'theta', normalize_angle(self.theta))

    @property
    def p1(self) -> Tuple[float, float]:
        """端点 1"""
        half = self.width / 2.0
        return (self.x - math.cos(self.theta) * half,
                self.y - math.sin(self.theta) * half)

    @property
    def p2(self) -> Tuple[float, float]:
        """端点 2"""
        half = self.width / 2.0
        return (self.x + math.cos(self.theta) * half,
                self.y + math.sin(self.theta) * half)

    def moved(self, dx: float, dy: float, dtheta: float = 0.0) -> 'RobotPose':
        return RobotPose(self.x + dx, self.y + dy, self.theta + dtheta, self.width)

    def is_close(self, other: 'RobotPose', tol: float = 1e-9) -> bool:
        return (abs(self.x - other.x) <= tol and abs(self.y - other.y) <= tol
                and abs(shortest_angle_diff(self.theta, other.theta)) <= tol)

    def to_list(self) -> List[float]:
        return [self.x, self.y, self.theta]


@dataclass(frozen=True)
class BoxAction:
    """box 的单轴直线移动

    Attributes:
        start: 起始占据矩形
        end: 终止占据矩形
    """
    start: Rect
    end: Rect

    @property
    def dx(self) -> float:
        return self.end.x - self.start.x

    @property
    def dy(self) -> float:
        return self.end.y - self.start.y

    @property
    def movement_box(self) -> Rect:
        """移动过程扫过的区域"""
        return self.start.union(self.end)

    def pushing_pose(self, robot_width: float) -> RobotPose:
        """开始推动前机器人应处的位姿：贴在 box 尾部边的中点"""
        cx, cy = self.start.center
        return RobotPose(
            cx - math.copysign(self.start.w / 2.0, self.dx) if self.dx != 0 else cx,
            cy - math.copysign(self.start.h / 2.0, self.dy) if self.dy != 0 else cy,
            0.0 if self.dx == 0 else math.pi / 2.0,
            robot_width,
        )

    def final_pose(self, robot_width: float) -> RobotPose:
        """推动结束后的机器人位姿"""
        return self.pushing_pose(robot_width).moved(self.dx, self.dy)


@dataclass(frozen=True)
class PushedBox:
    """机器人动作中被推动的 box"""
    name: str
    start: Rect
    end: Rect


@dataclass(frozen=True)
class RobotAction:
    """机器人从一个位姿到另一个位姿的动作

    Attributes:
        start: 起始位姿
        end: 终止位姿
        pushed_box: 被推动的 box（纯移动时为 None）
    """
    start: RobotPose
    end: RobotPose
    pushed_box: Optional[PushedBox] = None

    @property
    def dx(self) -> float:
        return self.end.x - self.start.x

    @property
    def dy(self) -> float:
        return self.end.y - self.start.y

    @property
    def dtheta(self) -> float:
        return shortest_angle_diff(self.start.theta, self.end.theta)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'start': self.start.to_list(),
            'end': self.end.to_list(),
            'width': self.start.width,
        }
        if self.pushed_box is not None:
            data['pushed_box'] = {
                'name': self.pushed_box.name,
                'start': self.pushed_box.start.to_list(),
                'end': self.pushed_box.end.to_list(),
            }
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RobotAction':
        width = float(data['width'])
        pushed = data.get('pushed_box')
        return cls(
            start=RobotPose(*data['start'], width=width),
            end=RobotPose(*data['end'], width=width),
            pushed_box=PushedBox(
                pushed['name'],
                Rect.from_list(pushed['start']),
                Rect.from_list(pushed['end']),
            ) if pushed else None,
        )


@dataclass(frozen=True)
class GoalSpec:
    """goal box 及其目标位置"""
    box: MoveableBox
    goal: Rect

    @property
    def name(self) -> str:
        return self.box.name


@dataclass
class GoalPlan:
    """一个 goal box 的几何解路径（尚未分解为机器人动作）

    Attributes:
        spec: goal box 及其目标
        actions: box 单轴移动序列
    """
    spec: GoalSpec
    actions: List[BoxAction] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def start(self) -> Rect:
        return self.spec.box.rect

    @property
    def goal(self) -> Rect:
        return self.spec.goal

    @property
    def movement_boxes(self) -> List[Rect]:
        return [a.movement_box for a in self.actions]

    def crosses(self, rect: Rect) -> bool:
        """路径扫过的区域是否与 rect 相交"""
        return any(mb.intersects(rect) for mb in self.movement_boxes)


@dataclass
class Problem:
    """规划问题（问题加载器的输出，纯几何值）

    Attributes:
        robot_start: 机器人初始位姿（含宽度）
        goal_boxes: goal box 起止位置
        movable_obstacles: 可移动障碍物
        static_obstacles: 静态障碍物
    """
    robot_start: RobotPose
    goal_boxes: List[GoalSpec] = field(default_factory=list)
    movable_obstacles: List[MoveableBox] = field(default_factory=list)
    static_obstacles: List[Rect] = field(default_factory=list)

    @property
    def robot_width(self) -> float:
        return self.robot_start.width

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Problem':
        """从字典创建

        Args:
            data: {
                'robot': {'width': w, 'x': x, 'y': y, 'theta': t},
                'goal_boxes': [{'name': ..., 'start': [x, y], 'goal': [x, y], 'width': w}],
                'movable_obstacles': [{'name': ..., 'x': x, 'y': y, 'width': w}],
                'static_obstacles': [[x, y, w, h], ...],
            }
            box 坐标均为左下角；省略 width 时取机器人宽度。
        """
        robot = data['robot']
        width = float(robot['width'])
        robot_start = RobotPose(float(robot['x']), float(robot['y']),
                                float(robot.get('theta', 0.0)), width)

        goals = []
        for i, item in enumerate(data.get('goal_boxes', [])):
            w = float(item.get('width', width))
            name = item.get('name') or f"goal_{i}"
            sx, sy = item['start']
            gx, gy = item['goal']
            goals.append(GoalSpec(MoveableBox.square(name, sx, sy, w),
                                  Rect(gx, gy, w, w)))

        movable = []
        for i, item in enumerate(data.get('movable_obstacles', [])):
            name = item.get('name') or f"movable_{i}"
            movable.append(MoveableBox.square(
                name, item['x'], item['y'], float(item.get('width', width))))

        static = [Rect.from_list(r) for r in data.get('static_obstacles', [])]
        return cls(robot_start, goals, movable, static)

    @classmethod
    def from_json(cls, filepath: str | Path) -> 'Problem':
        """从 JSON 文件加载"""
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls.from_dict(data)


@dataclass
class PlannerConfig:
    """推箱规划器参数配置

    Attributes:
        max_distance: RRT 单步最大扩展距离
        max_nodes: goal box RRT 的节点预算
        obstacle_max_nodes: 障碍物清理 RRT 的节点预算（None=同 max_nodes）
        robot_max_nodes: 机器人 RRT 的节点预算（None=同 max_nodes）
        max_sample_attempts: 单棵树累计采样次数上限，防止被困的树无限重采样
        robot_substep: 机器人连接碰撞检测的子步长度（端点位移的固定长度，不是比例）
        max_recursion_depth: 障碍物嵌套清理的最大递归深度
        max_solve_attempts: 顶层求解换随机数重试次数
        continuity_tolerance: 动作序列连续性检查容差
        verbose: 是否输出详细日志
    """
    max_distance: float = 0.2
    max_nodes: int = 3000
    obstacle_max_nodes: Optional[int] = None
    robot_max_nodes: Optional[int] = None
    max_sample_attempts: int = 200000
    robot_substep: float = 0.001
    max_recursion_depth: int = 3
    max_solve_attempts: int = 10
    continuity_tolerance: float = 1e-6
    verbose: bool = False

    @property
    def obstacle_node_budget(self) -> int:
        return self.obstacle_max_nodes or self.max_nodes

    @property
    def robot_node_budget(self) -> int:
        return self.robot_max_nodes or self.max_nodes

    # ── JSON 序列化 ──

    def to_dict(self) -> Dict[str, Any]:
        """转为字典"""
        from dataclasses import fields as dc_fields
        return {f.name: getattr(self, f.name) for f in dc_fields(self)}

    def to_json(self, filepath: str | Path) -> str:
        """保存到 JSON 文件

        Returns:
            保存的文件路径字符串
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        return str(filepath)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlannerConfig':
        """从字典创建（忽略未知字段，缺失字段用默认值）"""
        from dataclasses import fields as dc_fields
        valid_fields = {f.name for f in dc_fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered)

    @classmethod
    def from_json(cls, filepath: str | Path) -> 'PlannerConfig':
        """从 JSON 文件加载"""
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls.from_dict(data)

    def with_overrides(self, **kwargs: Any) -> 'PlannerConfig':
        return replace(self, **kwargs)


@dataclass
class PlannerResult:
    """推箱规划结果

    Attributes:
        success: 是否成功
        actions: 机器人动作序列（起点到最后一次推动）
        order: goal box 执行顺序（名称）
        box_paths: 各 goal box 的移动路径
        n_attempts: 顶层尝试次数
        computation_time: 总计算时间 (s)
        path_length: 机器人中心移动总距离
        message: 描述信息
        timestamp: 时间戳
    """
    success: bool = False
    actions: List[RobotAction] = field(default_factory=list)
    order: List[str] = field(default_factory=list)
    box_paths: Dict[str, List[BoxAction]] = field(default_factory=dict)
    n_attempts: int = 0
    computation_time: float = 0.0
    path_length: float = 0.0
    message: str = ""
    timestamp: str = field(
        default_factory=lambda: datetime.now().strftime('%Y%m%d_%H%M%S'))

    def compute_path_length(self) -> float:
        """计算机器人中心移动总距离"""
        self.path_length = float(sum(math.hypot(a.dx, a.dy) for a in self.actions))
        return self.path_length

    @property
    def n_pushes(self) -> int:
        return sum(1 for a in self.actions if a.pushed_box is not None)

    # ── 路径序列化 ─────────────────────────────────────────

    def save_path(self, filepath: str | Path) -> str:
        """将动作序列保存为 JSON 文件

        Returns:
            保存的文件路径字符串
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        data: Dict[str, Any] = {
            "success": self.success,
            "actions": [a.to_dict() for a in self.actions],
            "n_actions": len(self.actions),
            "order": list(self.order),
            "path_length": self.path_length,
            "n_attempts": self.n_attempts,
            "computation_time": self.computation_time,
            "message": self.message,
            "timestamp": self.timestamp,
        }
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        return str(filepath)

    @staticmethod
    def load_path(filepath: str | Path) -> Dict[str, Any]:
        """从 JSON 文件加载动作序列

        Returns:
            字典，其中 actions 已还原为 RobotAction 列表
        """
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
        data['actions'] = [RobotAction.from_dict(a) for a in data['actions']]
        return data
