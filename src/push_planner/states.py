"""
push_planner/states.py - 状态与搜索域

两类状态（标签联合）：
- BoxState: 一个正方形 box 的位置 + 障碍物快照
- RobotState: 线段机器人位姿 (x, y, θ) + 障碍物快照

每类状态对应一个搜索域（domain），为通用 RRT 引擎提供能力集：
    sample / distance / step_towards / validate / connect

状态不可变：障碍物快照为冻结 Rect 的 tuple，之后对 Workspace 的修改
（如冻结障碍物）不会回溯影响已建好的树节点。
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple, Union

import numpy as np

from .errors import InvalidStateError
from .geometry import (
    TWO_PI,
    Rect,
    points_in_unit_square,
    segments_hit_rect,
    shortest_angle_diff,
)
from .models import BoxAction, MoveableBox, RobotAction, RobotPose

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoxState:
    """box 状态

    Attributes:
        box: 被移动的 box
        obstacles: 需要避开的障碍物快照
    """
    box: MoveableBox
    obstacles: Tuple[Rect, ...] = ()

    @property
    def rect(self) -> Rect:
        return self.box.rect

    def __str__(self) -> str:
        return f"Box({self.rect.x:.4f}, {self.rect.y:.4f})"


@dataclass(frozen=True)
class RobotState:
    """机器人状态

    Attributes:
        pose: 机器人位姿
        obstacles: 需要避开的障碍物快照
    """
    pose: RobotPose
    obstacles: Tuple[Rect, ...] = ()

    def __str__(self) -> str:
        p = self.pose
        return f"Robot({p.x:.4f}, {p.y:.4f}, {p.theta:.4f})"


State = Union[BoxState, RobotState]
Action = Union[BoxAction, RobotAction]


# ============================================================
# Box 搜索域
# ============================================================

class BoxDomain:
    """box 运动搜索域

    box 只能沿单轴直线移动；连接任意两点最多需要两段（L 形）。

    Args:
        box: 被移动的 box（决定名称与尺寸）
        obstacles: 障碍物集合
    """

    def __init__(self, box: MoveableBox, obstacles: Sequence[Rect]) -> None:
        self.box = box
        self.obstacles: Tuple[Rect, ...] = tuple(obstacles)

    def make_state(self, x: float, y: float) -> BoxState:
        return BoxState(self.box.at(x, y), self.obstacles)

    def sample(self, rng: np.random.Generator) -> BoxState:
        """在工作空间内均匀采样（box 完全位于单位正方形内）"""
        w = self.box.width
        return self.make_state(float(rng.uniform(0.0, 1.0 - w)),
                               float(rng.uniform(0.0, 1.0 - w)))

    @staticmethod
    def distance(a: BoxState, b: BoxState) -> float:
        return math.hypot(b.rect.x - a.rect.x, b.rect.y - a.rect.y)

    def step_towards(self, current: BoxState, target: BoxState, delta: float) -> BoxState:
        """沿直线向 target 前进至多 delta"""
        dist = self.distance(current, target)
        if dist <= delta:
            return target
        t = delta / dist
        return BoxState(
            current.box.at(current.rect.x + t * (target.rect.x - current.rect.x),
                           current.rect.y + t * (target.rect.y - current.rect.y)),
            current.obstacles,
        )

    @staticmethod
    def validate(state: BoxState) -> None:
        """box 位于工作空间内且不与障碍物相交，否则抛 InvalidStateError"""
        if not state.rect.is_valid(state.obstacles):
            raise InvalidStateError(f"box 位置无效: {state}")

    def leg(self, src: BoxState, x: float, y: float) -> Tuple[BoxState, BoxAction]:
        """单轴直线移动到 (x, y)

        Raises:
            InvalidStateError: 非单轴移动，或扫过区域越界 / 与障碍物相交
        """
        dx = x - src.rect.x
        dy = y - src.rect.y
        if dx != 0 and dy != 0:
            raise InvalidStateError("box 只能沿单轴移动")

        new_state = BoxState(src.box.at(x, y), src.obstacles)
        action = BoxAction(src.rect, new_state.rect)
        if not action.movement_box.is_valid(src.obstacles):
            raise InvalidStateError("box 移动路径与障碍物相交")
        return new_state, action

    def connect(self, src: BoxState, dst: BoxState) -> List[Tuple[BoxState, BoxAction]]:
        """L 形连接

        先尝试拐角 (dst.x, src.y)，失败再尝试 (src.x, dst.y)。
        只返回被接受的路线，失败的拐角探测直接丢弃。

        Returns:
            [(状态, 动作), ...]，两点重合时为空列表

        Raises:
            InvalidStateError: 两条路线都不可行
        """
        sx, sy = src.rect.x, src.rect.y
        tx, ty = dst.rect.x, dst.rect.y

        if sx == tx and sy == ty:
            return []
        if sx == tx or sy == ty:
            return [self.leg(src, tx, ty)]

        for cx, cy in ((tx, sy), (sx, ty)):
            try:
                corner = self.leg(src, cx, cy)
                end = self.leg(corner[0], tx, ty)
            except InvalidStateError:
                continue
            return [corner, end]

        raise InvalidStateError("L 形连接失败")


# ============================================================
# 机器人搜索域
# ============================================================

def pose_distance(a: RobotPose, b: RobotPose) -> float:
    """位姿距离：平移 + 最短旋转下两个端点位移的最大值"""
    dx = b.x - a.x
    dy = b.y - a.y
    theta_b = a.theta + shortest_angle_diff(a.theta, b.theta)
    half = a.width / 2.0
    dc = half * (math.cos(theta_b) - math.cos(a.theta))
    ds = half * (math.sin(theta_b) - math.sin(a.theta))
    return max(math.hypot(dx + dc, dy + ds), math.hypot(dx - dc, dy - ds))


def interpolate_pose(a: RobotPose, b: RobotPose, t: float) -> RobotPose:
    """x, y 线性插值，θ 沿最短角路径插值"""
    return RobotPose(
        a.x + t * (b.x - a.x),
        a.y + t * (b.y - a.y),
        a.theta + t * shortest_angle_diff(a.theta, b.theta),
        a.width,
    )


class RobotDomain:
    """机器人运动搜索域

    Args:
        obstacles: 障碍物集合（贴边允许，穿入内部不允许）
        width: 机器人宽度
        substep: 连接时碰撞检测的子步长度（端点位移的固定长度）
    """

    def __init__(
        self,
        obstacles: Sequence[Rect],
        width: float,
        substep: float = 0.001,
    ) -> None:
        self.obstacles: Tuple[Rect, ...] = tuple(obstacles)
        self.width = width
        self.substep = substep

    def make_state(self, pose: RobotPose) -> RobotState:
        return RobotState(pose, self.obstacles)

    def sample(self, rng: np.random.Generator) -> RobotState:
        return self.make_state(RobotPose(
            float(rng.uniform(0.0, 1.0)),
            float(rng.uniform(0.0, 1.0)),
            float(rng.uniform(0.0, TWO_PI)),
            self.width,
        ))

    @staticmethod
    def distance(a: RobotState, b: RobotState) -> float:
        return pose_distance(a.pose, b.pose)

    def step_towards(self, current: RobotState, target: RobotState, delta: float) -> RobotState:
        """向 target 前进，端点位移至多 delta

        旋转弦长关于插值比例是凹的，按比例缩放的结果可能略超 delta，
        因此迭代收缩比例直到满足约束。
        """
        dist = self.distance(current, target)
        if dist <= delta:
            return target

        t = delta / dist
        pose = interpolate_pose(current.pose, target.pose, t)
        for _ in range(60):
            d = pose_distance(current.pose, pose)
            if d <= delta:
                break
            t *= min(0.99, delta / d)
            pose = interpolate_pose(current.pose, target.pose, t)
        return RobotState(pose, current.obstacles)

    @staticmethod
    def validate(state: RobotState) -> None:
        """端点在工作空间内且线段不穿入任何障碍物"""
        pose = state.pose
        p1 = np.array([pose.p1])
        p2 = np.array([pose.p2])
        if not points_in_unit_square(np.vstack([p1, p2])):
            raise InvalidStateError(f"机器人越界: {state}")
        for obs in state.obstacles:
            if segments_hit_rect(p1, p2, obs)[0]:
                raise InvalidStateError(f"机器人与障碍物碰撞: {state}")

    def n_substeps(self, a: RobotPose, b: RobotPose) -> int:
        """子步数：每个子步的端点位移不超过 substep

        substep 是固定长度而非总位移的比例，长运动会被切得更密。
        两个端点的移动弦是精确检测的，子步只影响中间位姿的采样密度。
        """
        return max(1, int(math.ceil(pose_distance(a, b) / self.substep)))

    def sweep_is_free(self, a: RobotPose, b: RobotPose, obstacles: Sequence[Rect]) -> bool:
        """子步碰撞检测

        将运动按端点位移离散为 n_substeps 个子步。每个子步检查
        机器人线段本身以及两个端点的移动弦（旋转时覆盖扫过的扇形区域）。
        """
        n = self.n_substeps(a, b)

        ts = np.linspace(0.0, 1.0, n + 1)
        dtheta = shortest_angle_diff(a.theta, b.theta)
        xs = a.x + ts * (b.x - a.x)
        ys = a.y + ts * (b.y - a.y)
        thetas = a.theta + ts * dtheta
        half = a.width / 2.0
        offset = np.column_stack([np.cos(thetas) * half, np.sin(thetas) * half])
        centres = np.column_stack([xs, ys])
        p1 = centres - offset
        p2 = centres + offset

        if not (points_in_unit_square(p1) and points_in_unit_square(p2)):
            return False

        lo = np.minimum(p1.min(axis=0), p2.min(axis=0))
        hi = np.maximum(p1.max(axis=0), p2.max(axis=0))

        for obs in obstacles:
            # 包围盒粗筛
            if (hi[0] <= obs.x or lo[0] >= obs.x_max
                    or hi[1] <= obs.y or lo[1] >= obs.y_max):
                continue
            if segments_hit_rect(p1, p2, obs).any():
                return False
            if segments_hit_rect(p1[:-1], p1[1:], obs).any():
                return False
            if segments_hit_rect(p2[:-1], p2[1:], obs).any():
                return False
        return True

    def connect(self, src: RobotState, dst: RobotState) -> List[Tuple[RobotState, RobotAction]]:
        """单段连接，全有或全无

        Raises:
            InvalidStateError: 任一子步碰撞或越界
        """
        if src.pose.is_close(dst.pose, tol=0.0):
            return []
        if not self.sweep_is_free(src.pose, dst.pose, src.obstacles):
            raise InvalidStateError("机器人运动路径碰撞")
        new_state = RobotState(dst.pose, src.obstacles)
        return [(new_state, RobotAction(src.pose, dst.pose))]


Domain = Union[BoxDomain, RobotDomain]
