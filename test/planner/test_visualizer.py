"""test/planner/test_visualizer.py - 可视化测试（Agg 后端）"""
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pytest  # noqa: E402

from push_planner.box_rrt import make_goal_box_rrt  # noqa: E402
from push_planner.geometry import Rect  # noqa: E402
from push_planner.models import GoalSpec, MoveableBox, PlannerConfig  # noqa: E402
from push_planner.solver import GoalBoxSolver  # noqa: E402
from push_planner.visualizer import TreePlotter, plot_actions, plot_scene  # noqa: E402


@pytest.fixture(autouse=True)
def _close_figures():
    yield
    plt.close('all')


def _wall_rrt(visualiser):
    spec = GoalSpec(MoveableBox.square("goal_0", 0.1, 0.45, 0.05), Rect(0.8, 0.45, 0.05, 0.05))
    return make_goal_box_rrt(spec, [Rect(0.4, 0.3, 0.1, 0.4)], PlannerConfig(),
                             np.random.default_rng(1), visualiser=visualiser)


class TestTreePlotter:
    """TreePlotter 测试"""

    def test_paints_tree_and_solution(self):
        plotter = TreePlotter(every=5)
        rrt = _wall_rrt(plotter)
        assert rrt.solve()
        assert plotter.n_calls >= 1
        # 解路径画成一条折线
        assert len(plotter.ax.lines) >= 1

    def test_saves_frames(self, tmp_path):
        plotter = TreePlotter(save_dir=str(tmp_path / "frames"), every=1000)
        rrt = _wall_rrt(plotter)
        rrt.solve()
        frames = sorted((tmp_path / "frames").glob("frame_*.png"))
        assert len(frames) == plotter.n_frames
        assert plotter.n_frames >= 1

    def test_same_result_with_and_without_visualiser(self):
        with_vis = _wall_rrt(TreePlotter(every=50))
        without = _wall_rrt(None)
        with_vis.solve()
        without.solve()
        assert with_vis.solution_actions() == without.solution_actions()


class TestScenePlots:
    """场景 / 动作绘制测试"""

    def test_plot_scene_and_actions(self, empty_problem):
        config = PlannerConfig(max_nodes=800, robot_max_nodes=1500)
        solver = GoalBoxSolver(empty_problem, config)
        result = solver.solve(seed=0)
        fig = plot_scene(solver.workspace, title="scene")
        plot_actions(result.actions, fig.axes[0])
        assert len(fig.axes[0].patches) == 1
        assert len(fig.axes[0].lines) == 3 * len(result.actions)
