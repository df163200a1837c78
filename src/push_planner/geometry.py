"""
push_planner/geometry.py - 二维几何基元

工作空间为单位正方形 [0, 1] x [0, 1]。本模块提供：
- Rect: 轴对齐矩形（左下角 + 宽高），不可变值类型
- 矩形并集 / 相交 / 包含检测
- 角度归一化与最短角差
- 向量化的线段-矩形相交检测（用于机器人子步碰撞检测）

相交语义：
    矩形相交为**严格相交**，仅共享边界不算相交；线段检测同样只在
    线段穿入矩形内部时判为碰撞，允许贴边接触。
"""

import math
from dataclasses import dataclass
from typing import Iterable, Tuple

import numpy as np

TWO_PI = 2.0 * math.pi

# 浮点比较容差
EPS = 1e-9


@dataclass(frozen=True)
class Rect:
    """轴对齐矩形

    Attributes:
        x: 左下角 x
        y: 左下角 y
        w: 宽度 (> 0)
        h: 高度 (> 0)
    """
    x: float
    y: float
    w: float
    h: float

    def __post_init__(self) -> None:
        if self.w <= 0 or self.h <= 0:
            raise ValueError(f"矩形宽高必须为正: w={self.w}, h={self.h}")

    @property
    def x_max(self) -> float:
        return self.x + self.w

    @property
    def y_max(self) -> float:
        return self.y + self.h

    @property
    def center(self) -> Tuple[float, float]:
        """矩形中心点"""
        return (self.x + self.w / 2.0, self.y + self.h / 2.0)

    def intersects(self, other: 'Rect') -> bool:
        """严格相交检测（共享边界不算相交）"""
        return (self.x < other.x_max and other.x < self.x_max
                and self.y < other.y_max and other.y < self.y_max)

    def union(self, other: 'Rect') -> 'Rect':
        """包含两个矩形的最小包围矩形"""
        x = min(self.x, other.x)
        y = min(self.y, other.y)
        return Rect(x, y,
                    max(self.x_max, other.x_max) - x,
                    max(self.y_max, other.y_max) - y)

    def contains(self, other: 'Rect') -> bool:
        """other 是否完全位于本矩形内（含边界）"""
        return (other.x >= self.x - EPS and other.y >= self.y - EPS
                and other.x_max <= self.x_max + EPS
                and other.y_max <= self.y_max + EPS)

    def translated(self, dx: float, dy: float) -> 'Rect':
        return Rect(self.x + dx, self.y + dy, self.w, self.h)

    def is_valid(self, obstacles: Iterable['Rect']) -> bool:
        """位于工作空间内且不与任何障碍物相交"""
        if not UNIT_SQUARE.contains(self):
            return False
        return not any(self.intersects(obs) for obs in obstacles)

    def to_list(self) -> list:
        return [self.x, self.y, self.w, self.h]

    @classmethod
    def from_list(cls, values) -> 'Rect':
        x, y, w, h = values
        return cls(float(x), float(y), float(w), float(h))


UNIT_SQUARE = Rect(0.0, 0.0, 1.0, 1.0)


# ── 角度工具 ──

def normalize_angle(theta: float) -> float:
    """归一化到 [0, 2π)"""
    r = math.fmod(theta, TWO_PI)
    if r < 0:
        r += TWO_PI
    if r >= TWO_PI:
        r = 0.0
    return r


def shortest_angle_diff(theta_from: float, theta_to: float) -> float:
    """从 theta_from 转到 theta_to 的最短有向角差，范围 (-π, π]"""
    d = normalize_angle(theta_to - theta_from)
    if d > math.pi:
        d -= TWO_PI
    return d


# ── 线段 / 矩形 ──

def segments_hit_rect(
    p0: np.ndarray,
    p1: np.ndarray,
    rect: Rect,
) -> np.ndarray:
    """批量检测线段是否穿入矩形内部（Liang-Barsky 裁剪）

    矩形先向内收缩 EPS，使贴边接触不被判为碰撞。

    Args:
        p0: 线段起点 (N, 2)
        p1: 线段终点 (N, 2)
        rect: 矩形

    Returns:
        (N,) bool 数组，True 表示该线段穿入矩形内部
    """
    p0 = np.atleast_2d(np.asarray(p0, dtype=np.float64))
    p1 = np.atleast_2d(np.asarray(p1, dtype=np.float64))

    x_min = rect.x + EPS
    x_max = rect.x_max - EPS
    y_min = rect.y + EPS
    y_max = rect.y_max - EPS
    if x_min >= x_max or y_min >= y_max:
        return np.zeros(p0.shape[0], dtype=bool)

    d = p1 - p0
    ps = (-d[:, 0], d[:, 0], -d[:, 1], d[:, 1])
    qs = (p0[:, 0] - x_min, x_max - p0[:, 0],
          p0[:, 1] - y_min, y_max - p0[:, 1])

    t0 = np.zeros(p0.shape[0])
    t1 = np.ones(p0.shape[0])
    hit = np.ones(p0.shape[0], dtype=bool)

    with np.errstate(divide='ignore', invalid='ignore'):
        for p, q in zip(ps, qs):
            parallel = p == 0.0
            # 平行且在该边界外侧 → 不相交
            hit &= ~(parallel & (q < 0.0))
            t = np.where(parallel, 0.0, q / np.where(parallel, 1.0, p))
            entering = (~parallel) & (p < 0.0)
            leaving = (~parallel) & (p > 0.0)
            t0 = np.where(entering, np.maximum(t0, t), t0)
            t1 = np.where(leaving, np.minimum(t1, t), t1)

    return hit & (t0 <= t1)


def points_in_unit_square(points: np.ndarray) -> bool:
    """所有点是否都在单位正方形内（含边界）"""
    points = np.asarray(points, dtype=np.float64)
    return bool(np.all(points >= -EPS) and np.all(points <= 1.0 + EPS))
