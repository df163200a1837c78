"""
push_planner/tree.py - 搜索树

RRT 搜索树的节点以连续列表（arena）存储，节点间用整数 ID 互相引用：
- 父节点 ID 用于从任意节点回溯到根
- 子节点 ID 列表用于遍历与渲染
- 节点上的 action 描述从父节点到该节点的边
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

S = TypeVar('S')
A = TypeVar('A')


@dataclass
class TreeNode(Generic[S, A]):
    """搜索树节点

    Attributes:
        node_id: 节点 ID（即在 arena 中的下标）
        state: 节点状态
        action: 从父节点到本节点的动作（根节点为 None）
        parent_id: 父节点 ID（根节点为 None）
        children_ids: 子节点 ID 列表
    """
    node_id: int
    state: S
    action: Optional[A] = None
    parent_id: Optional[int] = None
    children_ids: List[int] = field(default_factory=list)

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


class SearchTree(Generic[S, A]):
    """arena 存储的搜索树

    Example:
        >>> tree = SearchTree(root_state)
        >>> nid = tree.add_child(tree.root_id, state, action)
        >>> actions = tree.actions_from_root(nid)
    """

    def __init__(self, root_state: S) -> None:
        self._nodes: List[TreeNode[S, A]] = [TreeNode(node_id=0, state=root_state)]

    @property
    def root_id(self) -> int:
        return 0

    @property
    def n_nodes(self) -> int:
        return len(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self):
        return iter(self._nodes)

    def node(self, node_id: int) -> TreeNode[S, A]:
        return self._nodes[node_id]

    def state(self, node_id: int) -> S:
        return self._nodes[node_id].state

    def add_child(self, parent_id: int, state: S, action: A) -> int:
        """向树中添加子节点

        Args:
            parent_id: 父节点 ID
            state: 新状态
            action: 父节点到新状态的动作

        Returns:
            新节点的 node_id
        """
        if not 0 <= parent_id < len(self._nodes):
            raise ValueError(f"父节点 {parent_id} 不在树中")

        node_id = len(self._nodes)
        self._nodes.append(TreeNode(node_id=node_id, state=state,
                                    action=action, parent_id=parent_id))
        self._nodes[parent_id].children_ids.append(node_id)
        return node_id

    def path_from_root(self, node_id: int) -> List[int]:
        """根节点到 node_id 的节点 ID 序列（含两端）"""
        path = []
        current: Optional[int] = node_id
        while current is not None:
            path.append(current)
            current = self._nodes[current].parent_id
        path.reverse()
        return path

    def actions_from_root(self, node_id: int) -> List[A]:
        """根节点到 node_id 沿途的动作序列"""
        return [self._nodes[i].action for i in self.path_from_root(node_id)[1:]]

    def states_from_root(self, node_id: int) -> List[S]:
        return [self._nodes[i].state for i in self.path_from_root(node_id)]

    def nearest(self, state: S, distance: Callable[[S, S], float]) -> int:
        """按给定距离度量找到离 state 最近的节点 ID"""
        best_id = 0
        best_dist = float('inf')
        for node in self._nodes:
            d = distance(node.state, state)
            if d < best_dist:
                best_dist = d
                best_id = node.node_id
        return best_id

    def edges(self) -> List[tuple]:
        """所有 (父状态, 子状态) 边"""
        return [(self._nodes[n.parent_id].state, n.state)
                for n in self._nodes if n.parent_id is not None]

    def render(self, fmt: Callable[[Any], str] = str) -> str:
        """以缩进树形式输出（调试用）"""
        lines: List[str] = []
        # (node_id, prefix, is_tail, is_root)，显式栈避免深树递归溢出
        stack = [(self.root_id, "", True, True)]
        while stack:
            node_id, prefix, is_tail, is_root = stack.pop()
            node = self._nodes[node_id]
            branch = "" if is_root else prefix + ("└── " if is_tail else "├── ")
            lines.append(branch + fmt(node.state))
            child_prefix = "" if is_root else prefix + ("    " if is_tail else "│   ")
            children = node.children_ids
            for k in range(len(children) - 1, -1, -1):
                stack.append((children[k], child_prefix, k == len(children) - 1, False))
        return "\n".join(lines)
