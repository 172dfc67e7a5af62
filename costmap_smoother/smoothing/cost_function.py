import math
import numpy as np

from ..config import SmootherConfig
from ..map_server import FREE_SPACE, INSCRIBED_INFLATED_OBSTACLE, MAX_NON_OBSTACLE, NO_INFORMATION
from .computations import CurvatureComputations, CostComputations
from .utils import EPSILON, normalized_orthogonal_complement, costmap_gradient, is_finite

TERM_NAMES = ("smoothness", "curvature", "curvature_change", "collision", "cost")


class FirstOrderFunction:
    """
    可微标量目标函数接口 (平铺参数向量)
    任何基于梯度的优化器只依赖这两个方法
    """

    def num_parameters(self) -> int:
        raise NotImplementedError

    def evaluate(self, parameters, want_gradient=True):
        """
        :return: (cost, gradient), 不需要梯度时 gradient 为 None
        """
        raise NotImplementedError


class UnconstrainedSmootherCostFunction(FirstOrderFunction):
    """
    路径平滑代价函数: 平滑性 + 最大曲率 + 曲率变化 + 碰撞 + 代价地图规避
    每一项都带解析梯度, 首尾两点固定不参与优化
    """

    def __init__(self, num_points, costmap, config=None):
        """
        :param num_points: 路径点数 N (参数个数为 2N)
        :param costmap: CostField 或任何提供 world_to_map / get_cost / size_x / size_y 的对象
        :param config: SmootherConfig, 默认使用内置权重
        """
        if num_points < 3:
            raise ValueError(f"num_points must be >= 3, got {num_points}")
        if costmap is None:
            raise ValueError("costmap is required")

        self.cfg = config if config is not None else SmootherConfig()
        for name, w in self.cfg.weights().items():
            if w < 0.0:
                raise ValueError(f"{name} must be non-negative, got {w}")

        self._num_params = 2 * int(num_points)
        self._costmap = costmap

        self._w_smooth = float(self.cfg.w_smooth)
        self._w_curve = float(self.cfg.w_curve)
        self._w_collision = float(self.cfg.w_collision)
        self._w_cost = float(self.cfg.w_cost)
        self._w_change = float(self.cfg.w_change)
        self._max_turning_radius = float(self.cfg.max_curvature)

        self._debug_logs_left = getattr(self.cfg, "debug_max_logs", 0)

    def num_parameters(self):
        return self._num_params

    def evaluate(self, parameters, want_gradient=True):
        cost, gradient, _ = self._sweep(parameters, want_gradient)
        return cost, gradient

    def term_costs(self, parameters):
        """各代价项在所有内部点上的累加值"""
        _, _, terms = self._sweep(parameters, False)
        return terms

    def _sweep(self, parameters, want_gradient):
        params = np.asarray(parameters, dtype=float)
        n = self._num_params // 2
        cost_raw = 0.0
        gradient = np.zeros(self._num_params) if want_gradient else None
        terms = dict.fromkeys(TERM_NAMES, 0.0)

        # 上一个点的曲率 (第一个内部点取 0)
        ki_m1 = 0.0

        for i in range(1, n - 1):
            x_index = 2 * i
            y_index = 2 * i + 1

            xi = params[x_index:x_index + 2]
            xi_p1 = params[x_index + 2:x_index + 4]
            xi_m1 = params[x_index - 2:x_index]

            # 1. 代价
            r_smooth = self.smoothing_residual(self._w_smooth, xi, xi_p1, xi_m1)
            r_curve, curvature_params = self.max_curvature_residual(self._w_curve, xi, xi_p1, xi_m1)
            r_change = self.turning_rate_change_residual(self._w_change, curvature_params.turning_rad, ki_m1)
            terms["smoothness"] += r_smooth
            terms["curvature"] += r_curve
            terms["curvature_change"] += r_change
            cost_raw += r_smooth + r_curve + r_change

            cell = self._costmap.world_to_map(xi[0], xi[1])
            cost_params = CostComputations()
            if cell is not None:
                mx, my = cell
                costmap_cost = self._costmap.get_cost(mx, my)
                cost_params.cost = self.collision_residual(self._w_collision, costmap_cost)
                r_collision = cost_params.cost if cost_params.has_cost() else 0.0
                r_cost = self.cost_residual(self._w_cost, costmap_cost, cost_params)
                terms["collision"] += r_collision
                terms["cost"] += r_cost
                cost_raw += r_collision + r_cost

            # 2. 梯度
            if want_gradient:
                grad = self.smoothing_jacobian(self._w_smooth, xi, xi_p1, xi_m1)
                grad = grad + self.max_curvature_jacobian(self._w_curve, curvature_params)
                grad = grad + self.turning_rate_change_jacobian(self._w_change, curvature_params.turning_rad, ki_m1)

                if cell is not None:
                    grad = grad + self.collision_jacobian(self._w_collision, mx, my, costmap_cost, cost_params)
                    grad = grad + self.cost_jacobian(self._w_cost, mx, my, costmap_cost, cost_params)

                gradient[x_index] = grad[0]
                gradient[y_index] = grad[1]

            ki_m1 = curvature_params.turning_rad

        terms = {k: float(v) for k, v in terms.items()}
        self._log_terms(cost_raw, terms)
        return float(cost_raw), gradient, terms

    # ================= 平滑项 =================

    def smoothing_residual(self, weight, pt, pt_p, pt_m):
        """w * |p_{i+1} - 2 p_i + p_{i-1}|^2"""
        return weight * (
            np.dot(pt_p, pt_p)
            - 4 * np.dot(pt_p, pt)
            + 2 * np.dot(pt_p, pt_m)
            + 4 * np.dot(pt, pt)
            - 4 * np.dot(pt, pt_m)
            + np.dot(pt_m, pt_m))

    def smoothing_jacobian(self, weight, pt, pt_p, pt_m):
        return weight * (-4 * pt_m + 8 * pt - 4 * pt_p)

    # ================= 最大曲率项 =================

    def max_curvature_residual(self, weight, pt, pt_p, pt_m):
        """
        单侧二次惩罚: 仅当 转角/前段长度 超过最大曲率时生效
        :return: (residual, CurvatureComputations)
        """
        params = CurvatureComputations()
        params.delta_xi = pt - pt_m
        params.delta_xi_p = pt_p - pt
        params.delta_xi_norm = math.hypot(params.delta_xi[0], params.delta_xi[1])
        params.delta_xi_p_norm = math.hypot(params.delta_xi_p[0], params.delta_xi_p[1])

        # 退化线段 / 非法数值
        if not is_finite(params.delta_xi_norm, params.delta_xi_p_norm) or \
                params.delta_xi_norm < EPSILON or params.delta_xi_p_norm < EPSILON:
            params.valid = False
            return 0.0, params

        delta_xi_by_xi_p = params.delta_xi_norm * params.delta_xi_p_norm
        projection = np.dot(params.delta_xi, params.delta_xi_p) / delta_xi_by_xi_p
        if not is_finite(projection):
            params.valid = False
            return 0.0, params

        # 浮点误差可能越过 [-1, 1], acos 会报 domain error
        if abs(1.0 - projection) < EPSILON:
            projection = 1.0
        elif abs(projection + 1.0) < EPSILON:
            projection = -1.0
        projection = min(max(projection, -1.0), 1.0)

        params.delta_phi_i = math.acos(projection)
        params.turning_rad = params.delta_phi_i / params.delta_xi_norm
        params.ki_minus_kmax = params.turning_rad - self._max_turning_radius

        if params.ki_minus_kmax <= EPSILON:
            # 未超限, 无需惩罚
            params.valid = False
            return 0.0, params

        return weight * params.ki_minus_kmax * params.ki_minus_kmax, params

    def max_curvature_jacobian(self, weight, curvature_params):
        if not curvature_params.is_valid():
            return np.zeros(2)

        a = curvature_params.delta_xi
        b = curvature_params.delta_xi_p
        a_norm = curvature_params.delta_xi_norm
        b_norm = curvature_params.delta_xi_p_norm
        delta_phi_i = curvature_params.delta_phi_i

        # d(projection)/d(p_i): p_i 同时出现在 delta_xi (+) 与 delta_xi_p (-) 中
        p1 = normalized_orthogonal_complement(b, a, b_norm, a_norm)
        p2 = normalized_orthogonal_complement(a, b, a_norm, b_norm)

        # d(acos(x))/dx = -1/sqrt(1 - x^2); 转角接近 pi 时方向不确定, 只保留长度项
        sin_phi = math.sin(delta_phi_i)
        if sin_phi > EPSILON:
            common_prefix = (-1.0 / sin_phi) / a_norm
        else:
            common_prefix = 0.0
        common_suffix = delta_phi_i / (a_norm * a_norm)

        u = 2 * curvature_params.ki_minus_kmax
        jacobian = u * (common_prefix * (p1 - p2) - common_suffix * (a / a_norm))
        return weight * jacobian

    # ================= 曲率变化项 =================

    def turning_rate_change_residual(self, weight, ki, ki_m1):
        return weight * (ki * ki + ki_m1 * ki_m1 - 2 * ki * ki_m1)

    def turning_rate_change_jacobian(self, weight, ki, ki_m1):
        # 近似: 曲率是标量, 这里把同一个导数同时加到 x 和 y 上, 并不是真正的链式求导结果
        j = 2 * weight * (ki - ki_m1)
        return np.array([j, j])

    # ================= 碰撞项 =================

    def collision_residual(self, weight, value):
        """
        代价 >= INSCRIBED 时生效, 返回惩罚值; 不生效返回 None
        """
        if value < INSCRIBED_INFLATED_OBSTACLE or value == NO_INFORMATION:
            return None
        return -1 * weight * (value * value - 2 * MAX_NON_OBSTACLE * value + MAX_NON_OBSTACLE * MAX_NON_OBSTACLE)

    def collision_jacobian(self, weight, mx, my, value, params):
        if value < INSCRIBED_INFLATED_OBSTACLE or value == NO_INFORMATION:
            return np.zeros(2)
        direction = self._field_gradient(mx, my, params)
        common_prefix = -2 * weight * (value - MAX_NON_OBSTACLE)
        return common_prefix * direction

    # ================= 代价地图规避项 =================

    def cost_residual(self, weight, value, params):
        """非 FREE / 非 UNKNOWN 格子生效; 若碰撞项已算出惩罚则直接复用"""
        if value == FREE_SPACE or value == NO_INFORMATION:
            return 0.0
        if params.has_cost():
            return params.cost
        return -1 * weight * (value * value - 2 * MAX_NON_OBSTACLE * value + MAX_NON_OBSTACLE * MAX_NON_OBSTACLE)

    def cost_jacobian(self, weight, mx, my, value, params):
        if value == FREE_SPACE or value == NO_INFORMATION:
            return np.zeros(2)
        direction = self._field_gradient(mx, my, params)
        common_prefix = -2 * weight * (value - MAX_NON_OBSTACLE)
        return common_prefix * direction

    def _field_gradient(self, mx, my, params):
        if not params.has_gradient():
            params.gradient = costmap_gradient(self._costmap, mx, my)
        return params.gradient

    def _log_terms(self, cost, terms):
        if not getattr(self.cfg, "debug", False):
            return
        if self._debug_logs_left <= 0:
            return
        msg = f"[CostFunction][debug] cost={cost:.6g}"
        for name in TERM_NAMES:
            msg += f", {name}={terms[name]:.6g}"
        print(msg)
        self._debug_logs_left -= 1
