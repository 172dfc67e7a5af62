from dataclasses import dataclass

import numpy as np
from scipy.optimize import minimize

from ..config import SmootherConfig
from .cost_function import UnconstrainedSmootherCostFunction


@dataclass
class SmootherResult:
    initial_cost: float = 0.0
    final_cost: float = 0.0
    iterations: int = 0
    evaluations: int = 0
    success: bool = False
    message: str = ""


class Smoother:
    def __init__(self, config=None, costmap=None):
        """
        :param config: SmootherConfig (权重与求解器参数)
        :param costmap: CostField, 碰撞与代价规避项使用
        """
        self.cfg = config if config is not None else SmootherConfig()
        self.costmap = costmap

    def _solver_options(self):
        options = {"maxiter": int(self.cfg.max_iterations)}
        if self.cfg.method == "L-BFGS-B":
            options["ftol"] = self.cfg.function_tolerance
            options["gtol"] = self.cfg.gradient_tolerance
        elif self.cfg.method in ("BFGS", "CG"):
            options["gtol"] = self.cfg.gradient_tolerance
        return options

    def smooth(self, path):
        """
        对粗糙路径做梯度优化平滑, 首尾两点保持不动
        :param path: [[x, y], ...] 或平铺的 [x0, y0, x1, y1, ...]
        :return: (优化后的 (N, 2) 数组, SmootherResult)
        """
        path = np.array(path, dtype=float)
        if path.ndim == 1:
            if path.size % 2 != 0:
                raise ValueError("flat path must have an even number of values")
            path = path.reshape(-1, 2)
        if path.ndim != 2 or path.shape[1] != 2:
            raise ValueError(f"path must have shape (N, 2), got {path.shape}")

        n = len(path)
        if n < 3:
            return path, SmootherResult(success=False, message="path too short to smooth")

        cost_function = UnconstrainedSmootherCostFunction(n, self.costmap, self.cfg)
        x0 = path.reshape(-1)
        initial_cost, _ = cost_function.evaluate(x0, False)

        # 起终点: 上下界相同即固定 (仅 L-BFGS-B 支持边界)
        bounds = None
        if self.cfg.method == "L-BFGS-B":
            bounds = [(None, None)] * len(x0)
            for k in (0, 1, len(x0) - 2, len(x0) - 1):
                bounds[k] = (x0[k], x0[k])

        res = minimize(
            cost_function.evaluate,
            x0,
            args=(True,),
            jac=True,
            method=self.cfg.method,
            bounds=bounds,
            options=self._solver_options(),
        )

        optimized = np.asarray(res.x, dtype=float).reshape(-1, 2)
        # 强制对齐起终点 (Anchor Start/End)
        optimized[0] = path[0]
        optimized[-1] = path[-1]

        final_cost, _ = cost_function.evaluate(optimized.reshape(-1), False)
        result = SmootherResult(
            initial_cost=initial_cost,
            final_cost=final_cost,
            iterations=int(getattr(res, "nit", 0)),
            evaluations=int(getattr(res, "nfev", 0)),
            success=bool(res.success),
            message=str(res.message),
        )

        if not result.success:
            print(f"[Smoother] Solver stopped early: {result.message}")
        print(f"[Smoother] {n} points, cost {initial_cost:.4g} -> {final_cost:.4g} "
              f"in {result.iterations} iterations")
        return optimized, result
