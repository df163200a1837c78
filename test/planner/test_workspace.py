"""test/planner/test_workspace.py - 版本化工作空间测试"""
import pytest

from push_planner.geometry import Rect
from push_planner.workspace import Workspace


class TestVersionStack:
    """save / undo / commit 测试"""

    def test_save_undo_restores_state(self, workspace_basic):
        ws = workspace_basic
        before = ws.snapshot()
        ws.save()
        ws.mark_pending("movable_0")
        ws.freeze("movable_0", Rect(0.2, 0.8, 0.05, 0.05))
        ws.move_goal_box("goal_0", Rect(0.3, 0.1, 0.05, 0.05))
        assert ws.snapshot() != before
        ws.undo()
        assert ws.snapshot() == before
        assert ws.n_versions == 1

    def test_undo_on_root_is_noop(self, workspace_basic):
        before = workspace_basic.snapshot()
        workspace_basic.undo()
        assert workspace_basic.n_versions == 1
        assert workspace_basic.snapshot() == before

    def test_commit_merges_into_predecessor(self, workspace_basic):
        ws = workspace_basic
        ws.save()
        ws.add_static_obstacle(Rect(0.0, 0.5, 0.1, 0.1))
        ws.commit()
        assert ws.n_versions == 1
        assert Rect(0.0, 0.5, 0.1, 0.1) in ws.static_obstacles

    def test_nested_save_undo(self, workspace_basic):
        ws = workspace_basic
        ws.save()
        ws.add_static_obstacle(Rect(0.0, 0.5, 0.1, 0.1))
        middle = ws.snapshot()
        ws.save()
        ws.add_static_obstacle(Rect(0.0, 0.7, 0.1, 0.1))
        ws.undo()
        assert ws.snapshot() == middle
        ws.undo()
        assert len(ws.static_obstacles) == 1

    def test_saved_versions_are_independent(self, workspace_basic):
        ws = workspace_basic
        ws.save()
        ws.mark_pending("movable_1")
        assert len(ws._versions[0].movable_obstacles) == 2
        assert len(ws._versions[0].pending_obstacles) == 0


class TestTransaction:
    """transaction 上下文管理器测试"""

    def test_commit_on_success(self, workspace_basic):
        ws = workspace_basic
        with ws.transaction():
            ws.mark_pending("movable_0")
            ws.freeze("movable_0", Rect(0.3, 0.8, 0.05, 0.05))
        assert ws.n_versions == 1
        assert [b.name for b in ws.movable_obstacles] == ["movable_1"]
        assert Rect(0.3, 0.8, 0.05, 0.05) in ws.static_obstacles

    def test_rollback_on_error(self, workspace_basic):
        ws = workspace_basic
        before = ws.snapshot()
        with pytest.raises(RuntimeError):
            with ws.transaction():
                ws.mark_pending("movable_0")
                raise RuntimeError("boom")
        assert ws.snapshot() == before
        assert ws.n_versions == 1

    def test_nested_transactions(self, workspace_basic):
        ws = workspace_basic
        with ws.transaction():
            ws.mark_pending("movable_0")
            with pytest.raises(KeyError):
                with ws.transaction():
                    ws.mark_pending("movable_1")
                    ws.mark_pending("does_not_exist")
            assert [b.name for b in ws.movable_obstacles] == ["movable_1"]
        assert [b.name for b in ws.pending_obstacles] == ["movable_0"]


class TestQueries:
    """查询与修改测试"""

    def test_all_obstacles(self, workspace_basic):
        rects = workspace_basic.all_obstacles()
        assert len(rects) == 4

    def test_all_obstacles_exclude(self, workspace_basic):
        rects = workspace_basic.all_obstacles(exclude="goal_0")
        assert len(rects) == 3
        assert Rect(0.1, 0.1, 0.05, 0.05) not in rects

    def test_pending_still_blocks_robot(self, workspace_basic):
        ws = workspace_basic
        ws.mark_pending("movable_0")
        assert Rect(0.1, 0.8, 0.05, 0.05) in ws.all_obstacles()
        assert ws.get_box("movable_0") is not None

    def test_freeze_makes_static(self, workspace_basic):
        ws = workspace_basic
        ws.mark_pending("movable_0")
        ws.freeze("movable_0", Rect(0.2, 0.9, 0.05, 0.05))
        assert ws.get_box("movable_0") is None
        assert Rect(0.2, 0.9, 0.05, 0.05) in ws.static_obstacles
        assert Rect(0.1, 0.8, 0.05, 0.05) not in ws.all_obstacles()

    def test_mark_pending_unknown_raises(self, workspace_basic):
        with pytest.raises(KeyError):
            workspace_basic.mark_pending("goal_0")

    def test_move_goal_box(self, workspace_basic):
        ws = workspace_basic
        ws.move_goal_box("goal_0", Rect(0.8, 0.8, 0.05, 0.05))
        assert ws.get_box("goal_0").rect == Rect(0.8, 0.8, 0.05, 0.05)
        with pytest.raises(KeyError):
            ws.move_goal_box("movable_0", Rect(0.8, 0.8, 0.05, 0.05))


class TestSerialization:
    """序列化测试"""

    def test_json_roundtrip(self, workspace_basic, tmp_path):
        ws = workspace_basic
        ws.mark_pending("movable_0")
        path = str(tmp_path / "ws.json")
        ws.to_json(path)
        loaded = Workspace.from_json(path)
        assert loaded.snapshot() == ws.snapshot()
        assert loaded.robot_width == pytest.approx(0.05)

    def test_from_problem(self, movable_problem):
        ws = Workspace.from_problem(movable_problem)
        assert [b.name for b in ws.goal_boxes] == ["goal_0"]
        assert [b.name for b in ws.movable_obstacles] == ["movable_0"]
        assert ws.static_obstacles == []

    def test_repr(self, workspace_basic):
        assert "movable=2" in repr(workspace_basic)
