"""
push_planner/visualizer.py - 搜索过程可视化

RRT 引擎只调用两个无返回值的钩子：
- paint_tree(tree):                每次未成功的扩展后
- paint_solution(tree, node_id):   找到解时

TreePlotter 在 matplotlib Axes 上绘制树的边（box 树画左下角，
机器人树画线段中心），可选地逐帧保存为图片。规划结果与是否挂载
可视化器无关。

另提供 plot_scene / plot_actions 绘制场景与最终动作序列。
"""

import logging
from pathlib import Path
from typing import Any, List, Optional, Protocol, Sequence, Tuple

import matplotlib.pyplot as plt
from matplotlib.patches import Rectangle

from .geometry import Rect
from .models import RobotAction
from .states import BoxState, RobotState
from .tree import SearchTree
from .workspace import Workspace

logger = logging.getLogger(__name__)


class Visualiser(Protocol):
    """可视化器接口"""

    def paint_tree(self, tree: SearchTree) -> None:
        ...

    def paint_solution(self, tree: SearchTree, node_id: int) -> None:
        ...


def _state_point(state: Any) -> Tuple[float, float]:
    if isinstance(state, BoxState):
        return state.rect.x, state.rect.y
    if isinstance(state, RobotState):
        return state.pose.x, state.pose.y
    raise TypeError(f"未知状态类型: {type(state).__name__}")


def _draw_rects(ax: Any, rects: Sequence[Rect], **kwargs: Any) -> None:
    for r in rects:
        ax.add_patch(Rectangle((r.x, r.y), r.w, r.h, **kwargs))


def _setup_axes(ax: Any, title: str = "") -> None:
    ax.set_xlim(0.0, 1.0)
    ax.set_ylim(0.0, 1.0)
    ax.set_aspect('equal')
    if title:
        ax.set_title(title)


class TreePlotter:
    """把 RRT 树绘制到 matplotlib Axes

    Args:
        ax: matplotlib Axes（None 时自动创建）
        save_dir: 帧图片保存目录（None 则不保存）
        every: 每隔多少次 paint_tree 真正重绘一次

    Example:
        >>> plotter = TreePlotter(save_dir='output/frames', every=50)
        >>> GoalBoxSolver(problem, visualiser=plotter).solve(seed=0)
    """

    def __init__(
        self,
        ax: Optional[Any] = None,
        save_dir: Optional[str] = None,
        every: int = 1,
    ) -> None:
        if ax is None:
            _, ax = plt.subplots(figsize=(6, 6))
        self.ax = ax
        self.save_dir = Path(save_dir) if save_dir else None
        self.every = max(1, every)
        self.n_calls = 0
        self.n_frames = 0

    def paint_tree(self, tree: SearchTree) -> None:
        self.n_calls += 1
        if self.n_calls % self.every:
            return
        self._draw(tree)
        self._save_frame()

    def paint_solution(self, tree: SearchTree, node_id: int) -> None:
        self._draw(tree)
        path = [_state_point(s) for s in tree.states_from_root(node_id)]
        xs, ys = zip(*path)
        self.ax.plot(xs, ys, '-', color='tab:red', linewidth=2.0)
        self._save_frame()

    def _draw(self, tree: SearchTree) -> None:
        ax = self.ax
        ax.clear()
        _setup_axes(ax, f"nodes: {tree.n_nodes}")

        root = tree.state(tree.root_id)
        _draw_rects(ax, getattr(root, 'obstacles', ()),
                    facecolor='lightgray', edgecolor='black', linewidth=0.5)
        for parent, child in tree.edges():
            (x0, y0), (x1, y1) = _state_point(parent), _state_point(child)
            ax.plot([x0, x1], [y0, y1], '-', color='tab:blue', linewidth=0.5)

    def _save_frame(self) -> None:
        if self.save_dir is None:
            return
        self.save_dir.mkdir(parents=True, exist_ok=True)
        path = self.save_dir / f"frame_{self.n_frames:05d}.png"
        self.ax.figure.savefig(path, dpi=80)
        self.n_frames += 1
        logger.debug("保存帧 %s", path)


def plot_scene(workspace: Workspace, ax: Optional[Any] = None, title: str = "") -> Any:
    """绘制工作空间当前版本

    Returns:
        matplotlib figure
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(6, 6))
    else:
        fig = ax.figure
    _setup_axes(ax, title)

    _draw_rects(ax, workspace.static_obstacles, facecolor='dimgray', edgecolor='black')
    _draw_rects(ax, [b.rect for b in workspace.movable_obstacles],
                facecolor='tab:orange', edgecolor='black', alpha=0.7)
    _draw_rects(ax, [b.rect for b in workspace.goal_boxes],
                facecolor='tab:green', edgecolor='black', alpha=0.7)
    return fig


def plot_actions(actions: List[RobotAction], ax: Any, stride: int = 1) -> None:
    """叠加绘制机器人动作（推动动作用红色）"""
    for i, action in enumerate(actions):
        if i % stride:
            continue
        color = 'tab:red' if action.pushed_box is not None else 'tab:blue'
        for pose in (action.start, action.end):
            (x1, y1), (x2, y2) = pose.p1, pose.p2
            ax.plot([x1, x2], [y1, y2], '-', color=color, linewidth=1.0)
        ax.plot([action.start.x, action.end.x], [action.start.y, action.end.y],
                ':', color=color, linewidth=0.8)
