import math
import numpy as np
from scipy.ndimage import distance_transform_edt

# 代价地图取值约定 (与 Nav2 costmap_2d 一致)
FREE_SPACE = 0
MAX_NON_OBSTACLE = 252
INSCRIBED_INFLATED_OBSTACLE = 253
LETHAL_OBSTACLE = 254
NO_INFORMATION = 255

# 常用别名
FREE = FREE_SPACE
INSCRIBED = INSCRIBED_INFLATED_OBSTACLE
UNKNOWN = NO_INFORMATION


class CostField:
    def __init__(self, costs, resolution=0.5, origin_x=0.0, origin_y=0.0):
        """
        初始化代价地图 (只读)
        :param costs: 二维代价矩阵, 索引为 costs[my, mx], 取值 0~255
        :param resolution: 栅格分辨率 (米/格)
        :param origin_x: 地图左下角世界坐标 x
        :param origin_y: 地图左下角世界坐标 y
        """
        costs = np.asarray(costs)
        if costs.ndim != 2:
            raise ValueError("costs must be a 2D array")
        if resolution <= 0.0:
            raise ValueError("resolution must be positive")

        self.costs = costs.astype(np.uint8)
        self.costs.setflags(write=False)
        self.resolution = float(resolution)
        self.origin_x = float(origin_x)
        self.origin_y = float(origin_y)

        # 栅格尺寸: 行 = y, 列 = x
        self.size_y, self.size_x = self.costs.shape

    @classmethod
    def from_occupancy(cls, grid, resolution=0.5, origin=(0.0, 0.0),
                       inscribed_radius=0.5, inflation_radius=2.0,
                       cost_scaling_factor=3.0, unknown_mask=None):
        """
        由 0/1 占用栅格生成膨胀代价地图
        :param grid: 占用栅格, 1=障碍, 0=空闲, 索引 grid[my, mx]
        :param inscribed_radius: 机器人内切半径 (米)
        :param inflation_radius: 膨胀半径 (米)
        :param cost_scaling_factor: 指数衰减系数
        :param unknown_mask: 可选, True 的格子标记为 NO_INFORMATION
        """
        grid = np.asarray(grid, dtype=float)

        # 1. 欧几里得距离场 (到最近障碍物的距离, 单位: 米)
        # distance_transform_edt 计算的是到“零值背景”的距离, 所以输入 1-grid
        dist = distance_transform_edt(1.0 - grid) * resolution

        # 2. 按距离分段赋值
        costs = np.zeros(grid.shape, dtype=np.uint8)
        decay = (INSCRIBED_INFLATED_OBSTACLE - 1) * np.exp(
            -cost_scaling_factor * (dist - inscribed_radius))
        inflated = (dist > inscribed_radius) & (dist <= inflation_radius)
        costs[inflated] = np.clip(decay[inflated], FREE_SPACE, MAX_NON_OBSTACLE).astype(np.uint8)
        costs[dist <= inscribed_radius] = INSCRIBED_INFLATED_OBSTACLE
        costs[grid >= 1.0] = LETHAL_OBSTACLE

        # 3. 未知区域
        if unknown_mask is not None:
            costs[np.asarray(unknown_mask, dtype=bool)] = NO_INFORMATION

        field = cls(costs, resolution, origin[0], origin[1])
        n_obs = int(np.count_nonzero(grid >= 1.0))
        print(f"[CostField] Costmap generated: {field.size_x}x{field.size_y} grids "
              f"@ {resolution}m with {n_obs} lethal cells")
        return field

    def world_to_map(self, wx, wy):
        """世界坐标 (m) -> 栅格索引 (mx, my); 超出地图返回 None"""
        if not (math.isfinite(wx) and math.isfinite(wy)):
            return None
        if wx < self.origin_x or wy < self.origin_y:
            return None
        mx = int((wx - self.origin_x) / self.resolution)
        my = int((wy - self.origin_y) / self.resolution)
        if mx < self.size_x and my < self.size_y:
            return mx, my
        return None

    def map_to_world(self, mx, my):
        """栅格索引 (mx, my) -> 世界坐标 (格子中心)"""
        wx = self.origin_x + (mx + 0.5) * self.resolution
        wy = self.origin_y + (my + 0.5) * self.resolution
        return wx, wy

    def is_valid(self, mx, my):
        """检查索引是否在地图范围内"""
        return 0 <= mx < self.size_x and 0 <= my < self.size_y

    def get_cost(self, mx, my):
        return int(self.costs[my, mx])

    def cost_at_world(self, wx, wy):
        """世界坐标处的代价, 出界视为 NO_INFORMATION"""
        cell = self.world_to_map(wx, wy)
        if cell is None:
            return NO_INFORMATION
        return self.get_cost(*cell)

    @property
    def width(self):
        return self.size_x * self.resolution

    @property
    def height(self):
        return self.size_y * self.resolution

    def __repr__(self):
        return (f"CostField({self.size_x}x{self.size_y}, res={self.resolution}, "
                f"origin=({self.origin_x}, {self.origin_y}))")
