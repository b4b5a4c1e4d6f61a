# tyche/aad/ops/special.py
import numpy as np

from ...numerics import special as nsp
from .arithmetic import _binary, _unary

SQRT_TWO_PI = np.sqrt(2.0 * np.pi)


def norm_pdf(x):
    return np.exp(-0.5 * x * x) / SQRT_TWO_PI


def norm_cdf(x):
    """Standard normal CDF N(x); local partial dN/dx = phi(x)."""
    return _unary(x, nsp.normal_cdf, lambda a, o: norm_pdf(a), "norm_cdf")


def erf(x):
    """
    Error function: erf(x) = (2/√π) ∫₀ˣ e^(-t²) dt

    Derivative: d/dx erf(x) = (2/√π) * e^(-x²)
    """
    return _unary(x, nsp.erf, lambda a, o: (2.0 / np.sqrt(np.pi)) * np.exp(-a * a), "erf")


def log_gamma(x):
    """log Γ(x); derivative ψ(x)."""
    return _unary(x, nsp.log_gamma, lambda a, o: nsp.digamma(a), "log_gamma")


def _dlog_beta(a, b, out):
    return nsp.digamma(a) - nsp.digamma(a + b)


def log_beta(a, b):
    """
    log B(a, b) with analytic partials:
      ∂/∂a = ψ(a) - ψ(a + b)
      ∂/∂b = ψ(b) - ψ(a + b)
    """
    return _binary(a, b, nsp.log_beta, _dlog_beta, lambda x, y, o: _dlog_beta(y, x, o), "log_beta")
