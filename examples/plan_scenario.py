#!/usr/bin/env python
"""
examples/plan_scenario.py - 推箱规划演示

加载一个场景（内置名称或 JSON 文件），运行 GoalBoxSolver，
打印参数与结果，并保存动作序列与场景图片。

输出：
  - 终端日志
  - examples/output/<scenario>_<timestamp>/  目录下的 path.json / scene.png

运行：
    python examples/plan_scenario.py
    python examples/plan_scenario.py --scenario movable --seed 3
    python examples/plan_scenario.py --problem examples/scenes/two_boxes.json
"""

from __future__ import annotations

import argparse
import logging
import math
import sys
import time
from datetime import datetime
from pathlib import Path

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

# ── 项目导入 ──────────────────────────────────────────────
from push_planner import (
    GoalBoxSolver,
    GoalSpec,
    MoveableBox,
    NoPathError,
    NoValidOrderError,
    PlannerConfig,
    PlannerResult,
    Problem,
    Rect,
    RobotPose,
)
from push_planner.visualizer import plot_actions, plot_scene

# ── 日志配置 ──────────────────────────────────────────────
LOG_FMT = "[%(asctime)s] %(levelname)-7s %(name)s: %(message)s"
logging.basicConfig(level=logging.INFO, format=LOG_FMT, datefmt="%H:%M:%S")
logger = logging.getLogger("plan_scenario")


# =====================================================================
# 1. 内置场景
# =====================================================================

def builtin_problem(name: str) -> Problem:
    """内置演示场景"""
    w = 0.05
    robot = RobotPose(0.5, 0.5, 0.0, w)
    if name == "empty":
        return Problem(robot, [GoalSpec(MoveableBox.square("goal_0", 0.1, 0.1, w),
                                        Rect(0.8, 0.8, w, w))])
    if name == "wall":
        return Problem(
            RobotPose(0.1, 0.5, math.pi / 2, w),
            [GoalSpec(MoveableBox.square("goal_0", 0.2, 0.475, w), Rect(0.75, 0.475, w, w))],
            static_obstacles=[Rect(0.45, 0.3, 0.1, 0.4)],
        )
    if name == "movable":
        return Problem(
            RobotPose(0.1, 0.3, 0.0, w),
            [GoalSpec(MoveableBox.square("goal_0", 0.1, 0.5, w), Rect(0.8, 0.5, w, w))],
            movable_obstacles=[MoveableBox.square("movable_0", 0.45, 0.5, w)],
        )
    if name == "crossing":
        return Problem(
            RobotPose(0.5, 0.9, 0.0, w),
            [GoalSpec(MoveableBox.square("a", 0.1, 0.3, w), Rect(0.8, 0.3, w, w)),
             GoalSpec(MoveableBox.square("b", 0.5, 0.3, w), Rect(0.5, 0.7, w, w))],
        )
    raise ValueError(f"未知场景: {name}")


# =====================================================================
# 2. 日志辅助
# =====================================================================

def log_problem(problem: Problem) -> None:
    lines = [
        "-" * 60,
        "  场景",
        "-" * 60,
        f"  机器人        : ({problem.robot_start.x:.3f}, {problem.robot_start.y:.3f}, "
        f"{problem.robot_start.theta:.3f}), 宽 {problem.robot_width}",
    ]
    for spec in problem.goal_boxes:
        lines.append(f"  goal box {spec.name:<6}: ({spec.box.rect.x:.3f}, {spec.box.rect.y:.3f})"
                     f" -> ({spec.goal.x:.3f}, {spec.goal.y:.3f})")
    for box in problem.movable_obstacles:
        lines.append(f"  可移动 {box.name:<8}: ({box.rect.x:.3f}, {box.rect.y:.3f})")
    for rect in problem.static_obstacles:
        lines.append(f"  静态障碍物    : {rect.to_list()}")
    lines.append("-" * 60)
    logger.info("\n%s", "\n".join(lines))


def log_planner_config(config: PlannerConfig) -> None:
    lines = ["-" * 60, "  规划器参数", "-" * 60]
    for k, v in config.to_dict().items():
        lines.append(f"  {k:<22}: {v}")
    lines.append("-" * 60)
    logger.info("\n%s", "\n".join(lines))


def log_planner_result(result: PlannerResult) -> None:
    lines = [
        "=" * 60,
        "  规划结果",
        "=" * 60,
        f"  状态        : {'✓ 成功' if result.success else '✗ 失败'}",
        f"  消息        : {result.message}",
        f"  计算时间    : {result.computation_time:.3f} s",
        f"  执行顺序    : {result.order}",
        f"  动作数      : {len(result.actions)} (推动 {result.n_pushes})",
        f"  路径长度    : {result.path_length:.4f}",
        "=" * 60,
    ]
    logger.info("\n%s", "\n".join(lines))


# =====================================================================
# 3. 主流程
# =====================================================================

def main() -> int:
    parser = argparse.ArgumentParser(description="分层 RRT 推箱规划演示")
    parser.add_argument("--scenario", type=str, default="empty",
                        choices=["empty", "wall", "movable", "crossing"],
                        help="内置场景名 (默认: empty)")
    parser.add_argument("--problem", type=str, default=None,
                        help="场景 JSON 文件（优先于 --scenario）")
    parser.add_argument("--config", type=str, default=None,
                        help="PlannerConfig JSON 文件")
    parser.add_argument("--seed", type=int, default=None,
                        help="随机种子 (默认: 随机)")
    parser.add_argument("--no-viz", action="store_true",
                        help="跳过可视化")
    args = parser.parse_args()

    rng_seed = args.seed if args.seed is not None else int(time.time()) % 100000
    problem = Problem.from_json(args.problem) if args.problem else builtin_problem(args.scenario)
    config = PlannerConfig.from_json(args.config) if args.config else PlannerConfig()
    name = Path(args.problem).stem if args.problem else args.scenario

    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    output_dir = Path(__file__).resolve().parent / "output" / f"{name}_{ts}"
    output_dir.mkdir(parents=True, exist_ok=True)

    logger.info("随机种子: %d", rng_seed)
    log_problem(problem)
    log_planner_config(config)

    solver = GoalBoxSolver(problem, config)
    try:
        result = solver.solve(seed=rng_seed)
    except (NoPathError, NoValidOrderError) as exc:
        logger.error("规划失败: %s", exc)
        return 1

    log_planner_result(result)
    p = result.save_path(output_dir / "path.json")
    logger.info("  ✓ 动作序列保存到 %s", p)

    if not args.no_viz:
        fig = plot_scene(solver.workspace, title=f"{name} (seed={rng_seed})")
        plot_actions(result.actions, fig.axes[0])
        p = output_dir / "scene.png"
        fig.savefig(p, dpi=150, bbox_inches="tight")
        plt.close(fig)
        logger.info("  ✓ 场景图保存到 %s", p)

    return 0


if __name__ == "__main__":
    sys.exit(main())
