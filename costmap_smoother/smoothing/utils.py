import math
import numpy as np

EPSILON = 0.0001


def normalized_orthogonal_complement(a: np.ndarray, b: np.ndarray, a_norm: float, b_norm: float) -> np.ndarray:
    """
    a 相对 b 的正交分量, 再除以 |a|·|b|
    (a - b (a·b) / |b|^2) / (|a| |b|)
    """
    return (a - b * (np.dot(a, b) / np.dot(b, b))) / (a_norm * b_norm)


def is_finite(*values) -> bool:
    for v in values:
        if math.isnan(v) or math.isinf(v):
            return False
    return True


def costmap_gradient(costmap, mx: int, my: int) -> np.ndarray:
    """
    代价地图在 (mx, my) 处的单位梯度方向
    五点差分 (四阶泰勒近似), 越界邻居按 0 处理
    :return: [gx, gy], 梯度过小时返回零向量
    """
    def sample(x, y):
        if 0 <= x < costmap.size_x and 0 <= y < costmap.size_y:
            return float(costmap.get_cost(x, y))
        return 0.0

    right_one, right_two = sample(mx + 1, my), sample(mx + 2, my)
    left_one, left_two = sample(mx - 1, my), sample(mx - 2, my)
    up_one, up_two = sample(mx, my + 1), sample(mx, my + 2)
    down_one, down_two = sample(mx, my - 1), sample(mx, my - 2)

    grad = np.array([
        (8.0 * right_one - right_two - 8.0 * left_one + left_two) / 12.0,
        (8.0 * up_one - up_two - 8.0 * down_one + down_two) / 12.0,
    ])

    # 归一化为单位向量
    grad_mag = math.hypot(grad[0], grad[1])
    if grad_mag > EPSILON:
        return grad / grad_mag
    return np.zeros(2)
