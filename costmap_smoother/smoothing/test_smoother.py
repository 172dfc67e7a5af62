import numpy as np
import pytest

from costmap_smoother.config import SmootherConfig
from costmap_smoother.map_server import CostField
from costmap_smoother.smoothing import Smoother, UnconstrainedSmootherCostFunction


def _free_field():
    return CostField(np.zeros((40, 40)), resolution=0.5, origin_x=-5.0, origin_y=-5.0)


def _config(method="L-BFGS-B"):
    cfg = SmootherConfig()
    cfg.w_smooth = 1.0
    cfg.w_curve = 0.0
    cfg.w_change = 0.0
    cfg.method = method
    cfg.max_iterations = 200
    return cfg


def _zigzag():
    return np.array([[x, float(x % 2)] for x in range(7)], dtype=float)


@pytest.mark.parametrize("method", ["L-BFGS-B", "BFGS"])
def test_smooth_reduces_cost_and_keeps_endpoints(method):
    cfg = _config(method)
    smoother = Smoother(cfg, _free_field())
    path = _zigzag()

    optimized, result = smoother.smooth(path)

    assert optimized.shape == path.shape
    np.testing.assert_array_equal(optimized[0], path[0])
    np.testing.assert_array_equal(optimized[-1], path[-1])
    assert result.final_cost < result.initial_cost

    cf = UnconstrainedSmootherCostFunction(len(path), _free_field(), cfg)
    assert cf.term_costs(optimized.reshape(-1))["smoothness"] < cf.term_costs(path.reshape(-1))["smoothness"]


def test_smooth_accepts_flat_path():
    smoother = Smoother(_config(), _free_field())
    optimized, _ = smoother.smooth(_zigzag().reshape(-1))
    assert optimized.shape == (7, 2)


def test_short_path_is_returned_unchanged():
    smoother = Smoother(_config(), _free_field())
    path = [[0.0, 0.0], [1.0, 1.0]]

    optimized, result = smoother.smooth(path)

    np.testing.assert_array_equal(optimized, path)
    assert not result.success


def test_bad_path_shape_raises():
    smoother = Smoother(_config(), _free_field())
    with pytest.raises(ValueError):
        smoother.smooth([0.0, 1.0, 2.0])
    with pytest.raises(ValueError):
        smoother.smooth(np.zeros((4, 3)))
