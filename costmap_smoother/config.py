import os
import json
import yaml


class SmootherConfig:
    def __init__(self):
        # --- 代价权重 (Weights) ---
        self.w_smooth = 200000.0   # 平滑性 (二阶差分)
        self.w_curve = 2.0         # 最大曲率约束
        self.w_collision = 1.0     # 碰撞惩罚
        self.w_cost = 0.2          # 代价地图规避
        self.w_change = 1.0        # 曲率变化率

        # 最大曲率 (弧度 / 米), 超过才会产生惩罚
        self.max_curvature = 10.0

        # --- 求解器参数 (scipy.optimize.minimize) ---
        self.method = "L-BFGS-B"
        self.max_iterations = 100
        self.function_tolerance = 1e-7
        self.gradient_tolerance = 1e-10

        # Debug logging
        self.debug = False
        self.debug_max_logs = 10

    def weights(self):
        return {
            "w_smooth": self.w_smooth,
            "w_curve": self.w_curve,
            "w_collision": self.w_collision,
            "w_cost": self.w_cost,
            "w_change": self.w_change,
        }

    def to_dict(self):
        return dict(vars(self))

    def __repr__(self):
        items = ", ".join(f"{k}={v}" for k, v in self.to_dict().items())
        return f"SmootherConfig({items})"


def resolve_config_path() -> str:
    """配置文件路径: 环境变量优先, 其次当前目录下 config.yaml / config.json"""
    env_path = os.environ.get("SMOOTHER_CONFIG_PATH")
    if env_path:
        return env_path
    yaml_path = os.path.join(os.getcwd(), "config.yaml")
    json_path = os.path.join(os.getcwd(), "config.json")
    if os.path.exists(yaml_path):
        return yaml_path
    return json_path


def _is_yaml(path):
    return os.path.splitext(path)[1].lower() in (".yaml", ".yml")


def load_config(path):
    """
    读取配置文件 (YAML / JSON, 按扩展名区分)
    文件不存在时返回空字典
    """
    if not path or not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        if _is_yaml(path):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)
    return data or {}


def apply_config(data, cfg=None):
    """
    将配置字典写入 SmootherConfig
    支持 {"smoother": {...}} 或平铺结构; 未知键与类型错误的值会被跳过
    """
    if cfg is None:
        cfg = SmootherConfig()
    section = data.get("smoother", data) if isinstance(data, dict) else {}

    for k, v in (section or {}).items():
        if not hasattr(cfg, k):
            print(f"[Config] Unknown key ignored: {k}")
            continue
        current = getattr(cfg, k)
        try:
            if isinstance(current, bool):
                if isinstance(v, str):
                    v = v.strip().lower() in ("1", "true", "yes", "on")
                else:
                    v = bool(v)
            elif isinstance(current, int):
                v = int(v)
            elif isinstance(current, float):
                v = float(v)
            else:
                v = str(v)
        except (TypeError, ValueError):
            print(f"[Config] Invalid value for {k}: {v!r}")
            continue
        setattr(cfg, k, v)
    return cfg


def save_config(cfg, path):
    data = {"smoother": cfg.to_dict()}
    with open(path, "w", encoding="utf-8") as f:
        if _is_yaml(path):
            yaml.safe_dump(data, f, sort_keys=False)
        else:
            json.dump(data, f, indent=2)
    return path


def current_config():
    """按 resolve_config_path() 加载并返回配置对象"""
    return apply_config(load_config(resolve_config_path()))
