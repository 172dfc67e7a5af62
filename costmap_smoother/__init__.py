# costmap_smoother/__init__.py

# 1. 配置
from .config import SmootherConfig, load_config, apply_config, save_config, current_config

# 2. 代价地图
from .map_server import CostField

# 3. 代价函数与优化器封装
from .smoothing import UnconstrainedSmootherCostFunction, FirstOrderFunction, Smoother, SmootherResult
