"""
push_planner/workspace.py - 版本化工作空间

管理单位正方形内的场景：静态障碍物、可移动障碍物、正在被移动的障碍物、
goal box，以及一个深拷贝版本栈，用于嵌套求解失败时的事务性回滚。

版本栈语义：
- save():   复制栈顶版本并压栈
- undo():   丢弃栈顶版本（根版本始终保留）
- commit(): 用栈顶版本覆盖其前一个版本，并丢弃栈顶

Workspace 显式传递给各规划器，不存在全局单例。
"""

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from .geometry import Rect
from .models import MoveableBox, Problem

logger = logging.getLogger(__name__)


@dataclass
class SceneVersion:
    """工作空间的一个版本

    Attributes:
        static_obstacles: 静态障碍物（含已冻结的可移动障碍物）
        movable_obstacles: 尚未处理的可移动障碍物
        pending_obstacles: 已标记为需要移动、正在求解中的障碍物
        goal_boxes: goal box 当前位置
    """
    static_obstacles: List[Rect] = field(default_factory=list)
    movable_obstacles: List[MoveableBox] = field(default_factory=list)
    pending_obstacles: List[MoveableBox] = field(default_factory=list)
    goal_boxes: List[MoveableBox] = field(default_factory=list)

    def clone(self) -> 'SceneVersion':
        """深拷贝（元素为不可变值，复制列表即可隔离修改）"""
        return SceneVersion(
            static_obstacles=list(self.static_obstacles),
            movable_obstacles=list(self.movable_obstacles),
            pending_obstacles=list(self.pending_obstacles),
            goal_boxes=list(self.goal_boxes),
        )


class Workspace:
    """版本化工作空间

    Args:
        robot_width: 机器人宽度
        static_obstacles: 静态障碍物
        movable_obstacles: 可移动障碍物
        goal_boxes: goal box 初始位置

    Example:
        >>> ws = Workspace(0.05, static_obstacles=[Rect(0.4, 0.4, 0.2, 0.2)])
        >>> with ws.transaction():
        ...     ws.freeze('movable_0', Rect(0.1, 0.8, 0.05, 0.05))
    """

    def __init__(
        self,
        robot_width: float,
        static_obstacles: Optional[List[Rect]] = None,
        movable_obstacles: Optional[List[MoveableBox]] = None,
        goal_boxes: Optional[List[MoveableBox]] = None,
    ) -> None:
        self.robot_width = robot_width
        root = SceneVersion(
            static_obstacles=list(static_obstacles or []),
            movable_obstacles=list(movable_obstacles or []),
            goal_boxes=list(goal_boxes or []),
        )
        self._versions: List[SceneVersion] = [root]

    @classmethod
    def from_problem(cls, problem: Problem) -> 'Workspace':
        return cls(
            robot_width=problem.robot_width,
            static_obstacles=list(problem.static_obstacles),
            movable_obstacles=list(problem.movable_obstacles),
            goal_boxes=[g.box for g in problem.goal_boxes],
        )

    # ── 版本栈 ──

    @property
    def current(self) -> SceneVersion:
        return self._versions[-1]

    @property
    def n_versions(self) -> int:
        return len(self._versions)

    def save(self) -> None:
        """压入当前版本的副本"""
        self._versions.append(self.current.clone())
        logger.debug("Workspace.save -> 版本数 %d", self.n_versions)

    def undo(self) -> None:
        """丢弃栈顶版本，根版本不可丢弃"""
        if len(self._versions) > 1:
            self._versions.pop()
            logger.debug("Workspace.undo -> 版本数 %d", self.n_versions)
        else:
            logger.warning("Workspace.undo: 已是根版本，忽略")

    def commit(self) -> None:
        """将栈顶版本合并到前一个版本并丢弃栈顶"""
        if len(self._versions) > 1:
            top = self._versions.pop()
            self._versions[-1] = top
            logger.debug("Workspace.commit -> 版本数 %d", self.n_versions)

    @contextmanager
    def transaction(self) -> Iterator['Workspace']:
        """事务：正常退出时 commit，抛出异常时 undo 并继续抛出"""
        self.save()
        depth = self.n_versions
        try:
            yield self
        except BaseException:
            self._rollback_to(depth - 1)
            raise
        else:
            if self.n_versions != depth:
                raise RuntimeError(
                    f"事务内版本栈不平衡: 期望 {depth}，实际 {self.n_versions}")
            self.commit()

    def _rollback_to(self, n_versions: int) -> None:
        while len(self._versions) > max(n_versions, 1):
            self._versions.pop()

    def snapshot(self) -> SceneVersion:
        """当前版本的独立副本（用于比较 / 调试）"""
        return self.current.clone()

    # ── 查询 ──

    @property
    def static_obstacles(self) -> List[Rect]:
        return list(self.current.static_obstacles)

    @property
    def movable_obstacles(self) -> List[MoveableBox]:
        return list(self.current.movable_obstacles)

    @property
    def pending_obstacles(self) -> List[MoveableBox]:
        return list(self.current.pending_obstacles)

    @property
    def goal_boxes(self) -> List[MoveableBox]:
        return list(self.current.goal_boxes)

    def get_box(self, name: str) -> Optional[MoveableBox]:
        """按名称查找 goal box / 可移动障碍物 / 正在移动的障碍物"""
        v = self.current
        for box in v.goal_boxes + v.movable_obstacles + v.pending_obstacles:
            if box.name == name:
                return box
        return None

    def all_obstacles(self, exclude: Optional[str] = None) -> List[Rect]:
        """机器人需要避开的全部矩形

        Args:
            exclude: 排除的 box 名称（通常是正在推动的 box）
        """
        v = self.current
        rects = list(v.static_obstacles)
        for box in v.movable_obstacles + v.pending_obstacles + v.goal_boxes:
            if box.name != exclude:
                rects.append(box.rect)
        return rects

    # ── 修改 ──

    def add_static_obstacle(self, rect: Rect) -> None:
        self.current.static_obstacles.append(rect)

    def mark_pending(self, name: str) -> MoveableBox:
        """把可移动障碍物标记为正在移动

        Raises:
            KeyError: 不存在该可移动障碍物
        """
        v = self.current
        for i, box in enumerate(v.movable_obstacles):
            if box.name == name:
                v.movable_obstacles.pop(i)
                v.pending_obstacles.append(box)
                return box
        raise KeyError(f"可移动障碍物 '{name}' 不存在")

    def freeze(self, name: str, rect: Rect) -> None:
        """障碍物移动完成：移出可移动列表，在新位置成为静态障碍物"""
        v = self.current
        v.pending_obstacles = [b for b in v.pending_obstacles if b.name != name]
        v.movable_obstacles = [b for b in v.movable_obstacles if b.name != name]
        v.static_obstacles.append(rect)
        logger.debug("冻结障碍物 '%s' 于 (%.4f, %.4f)", name, rect.x, rect.y)

    def move_goal_box(self, name: str, rect: Rect) -> None:
        """更新 goal box 位置

        Raises:
            KeyError: 不存在该 goal box
        """
        v = self.current
        for i, box in enumerate(v.goal_boxes):
            if box.name == name:
                v.goal_boxes[i] = MoveableBox(name, rect)
                return
        raise KeyError(f"goal box '{name}' 不存在")

    # ── 序列化 ──

    def to_dict(self) -> Dict[str, Any]:
        v = self.current

        def _boxes(boxes: List[MoveableBox]) -> List[Dict[str, Any]]:
            return [{'name': b.name, 'rect': b.rect.to_list()} for b in boxes]

        return {
            'robot_width': self.robot_width,
            'static_obstacles': [r.to_list() for r in v.static_obstacles],
            'movable_obstacles': _boxes(v.movable_obstacles),
            'pending_obstacles': _boxes(v.pending_obstacles),
            'goal_boxes': _boxes(v.goal_boxes),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Workspace':
        def _boxes(items: List[Dict[str, Any]]) -> List[MoveableBox]:
            return [MoveableBox(it['name'], Rect.from_list(it['rect'])) for it in items]

        ws = cls(
            robot_width=float(data['robot_width']),
            static_obstacles=[Rect.from_list(r) for r in data.get('static_obstacles', [])],
            movable_obstacles=_boxes(data.get('movable_obstacles', [])),
            goal_boxes=_boxes(data.get('goal_boxes', [])),
        )
        ws.current.pending_obstacles = _boxes(data.get('pending_obstacles', []))
        return ws

    def to_json(self, filepath: str) -> None:
        """保存当前版本到 JSON 文件"""
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)

    @classmethod
    def from_json(cls, filepath: str) -> 'Workspace':
        with open(filepath, 'r', encoding='utf-8') as f:
            return cls.from_dict(json.load(f))

    def __repr__(self) -> str:
        v = self.current
        return (f"Workspace(static={len(v.static_obstacles)}, "
                f"movable={len(v.movable_obstacles)}, "
                f"pending={len(v.pending_obstacles)}, "
                f"goal_boxes={len(v.goal_boxes)}, versions={self.n_versions})")
