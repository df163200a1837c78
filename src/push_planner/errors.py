"""
push_planner/errors.py - 规划异常

区分三类失败：
- InvalidStateError: 局部几何失败（采样 / 步进 / 连接），引擎内部捕获后重新采样
- NoPathError: 子问题用尽节点预算，可换随机数重试
- NoValidOrderError / BoxLostError / DiscontinuousPathError: 结构性失败，重试无意义
"""


class PlanningError(Exception):
    """规划异常基类

    Attributes:
        retryable: 换一组随机数重试是否有意义
    """
    retryable = False


class InvalidStateError(PlanningError):
    """状态或动作违反几何约束（越界 / 与障碍物相交 / 非单轴移动）"""
    retryable = True


class NoPathError(PlanningError):
    """在节点预算内未找到路径"""
    retryable = True


class NoValidOrderError(PlanningError):
    """不存在无冲突的 goal box 执行顺序"""


class BoxLostError(PlanningError):
    """动作序列引用的被推 box 无法解析"""


class DiscontinuousPathError(PlanningError):
    """相邻机器人动作的终止位姿与起始位姿不连续"""
