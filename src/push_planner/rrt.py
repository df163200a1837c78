"""
push_planner/rrt.py - 通用 RRT 引擎

引擎只写一次，通过搜索域（domain）与解检查钩子参数化：

    domain.sample(rng)                      随机状态
    domain.distance(a, b)                   距离度量
    domain.step_towards(a, b, delta)        有界步进
    domain.validate(state)                  状态校验（无效时抛 InvalidStateError）
    domain.connect(a, b)                    连接，返回被接受的 [(状态, 动作), ...]
    solution_check(rrt, node_id) -> bool    新节点是否构成解

单步扩展流程：
1. 随机采样候选状态
2. 找到距离最近的树节点
3. 校验候选状态，无效则重新采样
4. 从最近节点向候选状态步进至多 max_distance
5. 再次校验步进结果
6. 调用 domain.connect 连接，成功则把整条路线挂到树上
7. 对新节点调用解检查钩子
"""

import logging
from typing import Any, Callable, List, Optional

import numpy as np

from .errors import InvalidStateError
from .models import PlannerConfig
from .tree import SearchTree

logger = logging.getLogger(__name__)

SolutionCheck = Callable[['RRT', int], bool]


class RRT:
    """通用 RRT

    Args:
        domain: 搜索域
        initial_state: 根状态
        solution_check: 解检查钩子，返回 True 时应已设置 ``rrt.solution_id``
        config: 规划参数
        rng: 随机数生成器
        visualiser: 可视化器（可选，仅调用其无返回值的绘制钩子）
        max_nodes: 节点预算（默认 config.max_nodes）
        name: 日志中使用的名称

    Example:
        >>> rrt = RRT(domain, start_state, check, config, rng)
        >>> if rrt.solve():
        ...     actions = rrt.solution_actions()
    """

    def __init__(
        self,
        domain: Any,
        initial_state: Any,
        solution_check: SolutionCheck,
        config: Optional[PlannerConfig] = None,
        rng: Optional[np.random.Generator] = None,
        visualiser: Optional[Any] = None,
        max_nodes: Optional[int] = None,
        name: str = "rrt",
    ) -> None:
        self.domain = domain
        self.config = config or PlannerConfig()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.solution_check = solution_check
        self.visualiser = visualiser
        self.max_nodes = max_nodes or self.config.max_nodes
        self.name = name

        self.tree: SearchTree = SearchTree(initial_state)
        self.solution_id: Optional[int] = None
        self.n_samples = 0
        self.n_rejected = 0

    # ── 状态查询 ──

    @property
    def solved(self) -> bool:
        return self.solution_id is not None

    @property
    def sample_budget_exhausted(self) -> bool:
        return self.n_samples >= self.config.max_sample_attempts

    def visualiser_attached(self) -> bool:
        return self.visualiser is not None

    def solution_actions(self) -> List[Any]:
        """根节点到解节点的动作序列"""
        if self.solution_id is None:
            return []
        return self.tree.actions_from_root(self.solution_id)

    def solution_states(self) -> List[Any]:
        if self.solution_id is None:
            return []
        return self.tree.states_from_root(self.solution_id)

    # ── 树操作 ──

    def connect(self, node_id: int, state: Any) -> int:
        """把 state 连接到 node_id 并挂上整条路线

        Returns:
            路线末端节点 ID（两者重合时返回 node_id）

        Raises:
            InvalidStateError: 连接不可行
        """
        route = self.domain.connect(self.tree.state(node_id), state)
        current = node_id
        for new_state, action in route:
            current = self.tree.add_child(current, new_state, action)
        return current

    # ── 主循环 ──

    def expand(self) -> bool:
        """扩展一步

        无效状态在此捕获并触发重新采样（频繁且正常）。

        Returns:
            是否找到完整解
        """
        while not self.sample_budget_exhausted:
            self.n_samples += 1
            try:
                candidate = self.domain.sample(self.rng)
                nearest_id = self.tree.nearest(candidate, self.domain.distance)

                self.domain.validate(candidate)

                new_state = self.domain.step_towards(
                    self.tree.state(nearest_id), candidate, self.config.max_distance)
                self.domain.validate(new_state)

                new_id = self.connect(nearest_id, new_state)
            except InvalidStateError:
                self.n_rejected += 1
                continue

            if new_id == nearest_id:
                # 步进结果与已有节点重合，没有新节点
                continue
            return self.solution_check(self, new_id)

        return False

    def solve(self) -> bool:
        """扩展直到找到解或用尽节点预算

        Returns:
            是否找到解
        """
        if self.solution_check(self, self.tree.root_id):
            self._on_solved()
            return True

        iteration = 0
        while self.tree.n_nodes <= self.max_nodes and not self.sample_budget_exhausted:
            if self.expand():
                self._on_solved()
                return True
            if self.visualiser_attached():
                self.visualiser.paint_tree(self.tree)

            iteration += 1
            if iteration % 200 == 0 and self.config.verbose:
                logger.info("%s 迭代 %d: 节点 %d, 采样 %d（拒绝 %d）",
                            self.name, iteration, self.tree.n_nodes,
                            self.n_samples, self.n_rejected)

        logger.debug("%s: 预算用尽，节点 %d，采样 %d（拒绝 %d）",
                     self.name, self.tree.n_nodes, self.n_samples, self.n_rejected)
        return False

    def _on_solved(self) -> None:
        logger.debug("%s: 找到解，节点 %d，采样 %d",
                     self.name, self.tree.n_nodes, self.n_samples)
        if self.visualiser_attached():
            self.visualiser.paint_solution(self.tree, self.solution_id)
