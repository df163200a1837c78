"""test/planner/test_tree.py - SearchTree 测试"""
import pytest

from push_planner.tree import SearchTree


def _line_distance(a, b):
    return abs(a - b)


class TestSearchTree:
    """arena 搜索树测试"""

    def test_root(self):
        tree = SearchTree(0.0)
        assert tree.n_nodes == 1
        assert tree.node(tree.root_id).is_root
        assert tree.actions_from_root(tree.root_id) == []

    def test_add_child_links_both_ways(self):
        tree = SearchTree(0.0)
        a = tree.add_child(tree.root_id, 1.0, "r->a")
        b = tree.add_child(a, 2.0, "a->b")
        assert tree.node(b).parent_id == a
        assert tree.node(a).children_ids == [b]
        assert tree.node(tree.root_id).children_ids == [a]

    def test_bad_parent_raises(self):
        tree = SearchTree(0.0)
        with pytest.raises(ValueError):
            tree.add_child(5, 1.0, None)

    def test_path_and_actions(self):
        tree = SearchTree(0.0)
        a = tree.add_child(0, 1.0, "x")
        tree.add_child(0, -1.0, "y")
        c = tree.add_child(a, 2.0, "z")
        assert tree.path_from_root(c) == [0, a, c]
        assert tree.actions_from_root(c) == ["x", "z"]
        assert tree.states_from_root(c) == [0.0, 1.0, 2.0]

    def test_nearest(self):
        tree = SearchTree(0.0)
        tree.add_child(0, 1.0, None)
        far = tree.add_child(0, 5.0, None)
        assert tree.nearest(4.2, _line_distance) == far
        assert tree.nearest(-3.0, _line_distance) == 0

    def test_edges(self):
        tree = SearchTree("r")
        tree.add_child(0, "a", None)
        tree.add_child(0, "b", None)
        assert sorted(tree.edges()) == [("r", "a"), ("r", "b")]

    def test_render(self):
        tree = SearchTree("root")
        a = tree.add_child(0, "a", None)
        tree.add_child(a, "a1", None)
        tree.add_child(0, "b", None)
        lines = tree.render().splitlines()
        assert lines[0] == "root"
        assert lines[1] == "├── a"
        assert lines[2] == "│   └── a1"
        assert lines[3] == "└── b"

    def test_render_deep_tree(self):
        """深链不会触发递归上限"""
        tree = SearchTree(0)
        node = 0
        for i in range(1, 1500):
            node = tree.add_child(node, i, None)
        assert len(tree.render().splitlines()) == 1500
