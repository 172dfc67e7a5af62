from .cost_function import FirstOrderFunction, UnconstrainedSmootherCostFunction
from .smoother import Smoother, SmootherResult
