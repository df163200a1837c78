"""
push_planner/trajectory.py - 机器人动作序列校验

输出给轨迹写出端之前，检查动作序列满足以下约定：
- 相邻动作首尾位姿连续（容差内）
- 每个推动动作引用的 box 可以按名称找到，且其被跟踪的位置
  与动作的起始占据矩形一致
"""

import logging
from typing import Dict, Iterable, List, Optional, Union

from .errors import BoxLostError, DiscontinuousPathError
from .geometry import Rect
from .models import MoveableBox, RobotAction, RobotPose

logger = logging.getLogger(__name__)


def _rect_close(a: Rect, b: Rect, tol: float) -> bool:
    return (abs(a.x - b.x) <= tol and abs(a.y - b.y) <= tol
            and abs(a.w - b.w) <= tol and abs(a.h - b.h) <= tol)


def verify_actions(
    actions: List[RobotAction],
    boxes: Union[Dict[str, Rect], Iterable[MoveableBox]],
    start_pose: Optional[RobotPose] = None,
    tol: float = 1e-6,
) -> Dict[str, Rect]:
    """校验动作序列

    Args:
        actions: 机器人动作序列
        boxes: box 初始位置（名称 -> 矩形，或 MoveableBox 列表）
        start_pose: 机器人初始位姿（给定时检查第一个动作的起点）
        tol: 连续性容差

    Returns:
        执行完所有动作后各 box 的位置

    Raises:
        DiscontinuousPathError: 相邻动作不连续
        BoxLostError: 推动引用的 box 不存在或位置不一致
    """
    if isinstance(boxes, dict):
        positions = dict(boxes)
    else:
        positions = {b.name: b.rect for b in boxes}

    previous = start_pose
    for i, action in enumerate(actions):
        if previous is not None and not previous.is_close(action.start, tol):
            raise DiscontinuousPathError(
                f"动作 {i} 不连续: 上一位姿 {previous.to_list()}, "
                f"起始位姿 {action.start.to_list()}")
        previous = action.end

        pushed = action.pushed_box
        if pushed is None:
            continue
        tracked = positions.get(pushed.name)
        if tracked is None:
            raise BoxLostError(f"动作 {i} 推动的 box '{pushed.name}' 不存在")
        if not _rect_close(tracked, pushed.start, tol):
            raise BoxLostError(
                f"动作 {i} 推动的 box '{pushed.name}' 位置不一致: "
                f"跟踪位置 {tracked.to_list()}, 动作起点 {pushed.start.to_list()}")
        positions[pushed.name] = pushed.end

    logger.debug("动作序列校验通过: %d 个动作", len(actions))
    return positions
