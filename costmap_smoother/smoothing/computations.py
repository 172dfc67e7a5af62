from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass
class CurvatureComputations:
    """
    曲率项在代价与梯度之间共享的中间量 (每个点重新构造)
    valid=False 时曲率约束项及其梯度均不生效
    """
    delta_xi: Optional[np.ndarray] = None     # p_i - p_{i-1}
    delta_xi_p: Optional[np.ndarray] = None   # p_{i+1} - p_i
    delta_xi_norm: float = 0.0
    delta_xi_p_norm: float = 0.0
    delta_phi_i: float = 0.0                  # 转角
    turning_rad: float = 0.0                  # 离散曲率估计
    ki_minus_kmax: float = 0.0
    valid: bool = True

    def is_valid(self):
        return self.valid


@dataclass
class CostComputations:
    """碰撞项与代价项共享的地图采样结果; None 表示尚未计算"""
    cost: Optional[float] = None
    gradient: Optional[np.ndarray] = None

    def has_cost(self):
        return self.cost is not None

    def has_gradient(self):
        return self.gradient is not None
