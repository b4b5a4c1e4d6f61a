# tyche/aad/ops/transcendental.py
import numpy as np
from scipy import special as sp

from .arithmetic import _unary


def exp(x):
    # reuses the cached output: d/dx e^x = e^x
    return _unary(x, np.exp, lambda a, o: o, "exp")


def log(x):
    return _unary(x, np.log, lambda a, o: 1.0 / a, "log")


def sqrt(x):
    return _unary(x, np.sqrt, lambda a, o: 0.5 / o, "sqrt")


def log1p(x):
    return _unary(x, np.log1p, lambda a, o: 1.0 / (1.0 + a), "log1p")


def sigmoid(x):
    """Logistic 1 / (1 + e^-x); derivative s(1 - s)."""
    return _unary(x, sp.expit, lambda a, o: o * (1.0 - o), "sigmoid")


def softplus(x):
    """log(1 + e^x) without overflow; derivative is the sigmoid."""
    return _unary(x, lambda a: np.logaddexp(0.0, a), lambda a, o: sp.expit(a), "softplus")


def logit(p):
    """log(p / (1 - p)); derivative 1 / (p(1 - p))."""
    return _unary(p, sp.logit, lambda a, o: 1.0 / (a * (1.0 - a)), "logit")
