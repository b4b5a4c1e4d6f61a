# tyche/aad/__init__.py
# Reverse-mode automatic differentiation over scalar computation graphs

from .core import (
    Graph,
    use_graph,
    Node,
    ParameterNode,
    RandomVariable,
    GradientTape,
    backward,
    gradients,
    gradient_step,
    finite_difference,
    grad,
    grads,
    grads_list,
    value,
    get_graph_stats,
    print_graph_summary,
)
from . import ops
from .ops import (
    add, subtract, multiply, divide, neg, pow, add_n,
    exp, log, sqrt, log1p, sigmoid, softplus, logit,
    norm_cdf, erf, log_gamma, log_beta,
)

__all__ = [
    # Core
    'Graph',
    'use_graph',
    'Node',
    'ParameterNode',
    'RandomVariable',
    # Engine
    'GradientTape',
    'backward',
    'gradients',
    'gradient_step',
    'finite_difference',
    'grad',
    'grads',
    'grads_list',
    'value',
    'get_graph_stats',
    'print_graph_summary',
    # Operators
    'ops',
    'add', 'subtract', 'multiply', 'divide', 'neg', 'pow', 'add_n',
    'exp', 'log', 'sqrt', 'log1p', 'sigmoid', 'softplus', 'logit',
    'norm_cdf', 'erf', 'log_gamma', 'log_beta',
]
