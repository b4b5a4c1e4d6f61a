# tyche/aad/ops/__init__.py

from .arithmetic import add, subtract, multiply, divide, neg, pow, add_n
from .transcendental import exp, log, sqrt, log1p, sigmoid, softplus, logit
from .special import norm_cdf, erf, log_gamma, log_beta

__all__ = [
    "add", "subtract", "multiply", "divide", "neg", "pow", "add_n",
    "exp", "log", "sqrt", "log1p", "sigmoid", "softplus", "logit",
    "norm_cdf", "erf", "log_gamma", "log_beta",
]
