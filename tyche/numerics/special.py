# tyche/numerics/special.py
"""
Special functions used across the runtime.

All functions are pure and accept floats (most also accept numpy arrays).
Out-of-domain arguments return -inf / NaN instead of raising, so that model
code evaluated outside its support degrades to an "infeasible" value.
"""

import math
import numpy as np
from typing import Iterable, Union
from scipy import special as sp

Number = Union[float, np.ndarray]

LOG_TWO_PI = math.log(2.0 * math.pi)
SQRT_TWO = math.sqrt(2.0)


# ----------------------------- gamma family ----------------------------- #
def log_gamma(x: Number) -> Number:
    """log|Γ(x)|."""
    return sp.gammaln(x)


def log_beta(a: Number, b: Number) -> Number:
    """log B(a, b) = logΓ(a) + logΓ(b) - logΓ(a+b); -inf unless a, b > 0."""
    if np.ndim(a) == 0 and np.ndim(b) == 0:
        if a <= 0 or b <= 0:
            return -math.inf
        return float(sp.betaln(a, b))
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    out = sp.betaln(a, b)
    return np.where((a > 0) & (b > 0), out, -np.inf)


def digamma(x: Number) -> Number:
    """ψ(x) = d/dx logΓ(x); NaN for x <= 0."""
    if np.ndim(x) == 0:
        return float(sp.digamma(x)) if x > 0 else math.nan
    x = np.asarray(x, dtype=np.float64)
    return np.where(x > 0, sp.digamma(np.where(x > 0, x, 1.0)), np.nan)


def trigamma(x: Number) -> Number:
    """ψ'(x); NaN for x <= 0."""
    if np.ndim(x) == 0:
        return float(sp.polygamma(1, x)) if x > 0 else math.nan
    x = np.asarray(x, dtype=np.float64)
    return np.where(x > 0, sp.polygamma(1, np.where(x > 0, x, 1.0)), np.nan)


def log_factorial(n: float) -> float:
    """log(n!); exact summation for small n, logΓ(n+1) otherwise."""
    if n < 0:
        return -math.inf
    if n <= 1:
        return 0.0
    if n < 20 and float(n).is_integer():
        return float(sum(math.log(i) for i in range(2, int(n) + 1)))
    return float(sp.gammaln(n + 1.0))


def log_binomial(n: float, k: float) -> float:
    """log C(n, k); -inf outside 0 <= k <= n."""
    if k > n or k < 0 or n < 0:
        return -math.inf
    if k == 0 or k == n:
        return 0.0
    k = min(k, n - k)  # symmetry
    return float(sp.gammaln(n + 1.0) - sp.gammaln(k + 1.0) - sp.gammaln(n - k + 1.0))


# ----------------------------- error function ----------------------------- #
def erf(x: Number) -> Number:
    return sp.erf(x)


def erfc(x: Number) -> Number:
    return sp.erfc(x)


def erf_inv(y: Number) -> Number:
    """Inverse error function on (-1, 1); ±inf at ±1, NaN outside."""
    return sp.erfinv(y)


def normal_cdf(x: Number, mean: float = 0.0, sd: float = 1.0) -> Number:
    return sp.ndtr((np.asarray(x) - mean) / sd) if np.ndim(x) else float(sp.ndtr((x - mean) / sd))


def normal_quantile(p: Number, mean: float = 0.0, sd: float = 1.0) -> Number:
    """Inverse of normal_cdf; ±inf at p in {0, 1}, NaN outside [0, 1]."""
    q = sp.ndtri(p)
    return mean + sd * q if np.ndim(p) else float(mean + sd * q)


def normal_log_pdf(x: Number, mean: Number = 0.0, sd: Number = 1.0) -> Number:
    z = (x - mean) / sd
    return -0.5 * (LOG_TWO_PI + z * z) - np.log(sd)


# ----------------------------- log-space helpers ----------------------------- #
def log_sum_exp(values: Iterable[float]) -> float:
    """
    Numerically stable log(Σ exp(v)).

    Empty input gives -inf. A non-finite maximum (all -inf, or a +inf / NaN
    entry) is passed through unchanged instead of producing inf - inf.
    """
    arr = np.asarray(list(values) if not isinstance(values, np.ndarray) else values,
                     dtype=np.float64)
    if arr.size == 0:
        return -math.inf
    m = np.max(arr)
    if not np.isfinite(m):
        return float(m)
    return float(m + np.log(np.sum(np.exp(arr - m))))


def logit(p: Number) -> Number:
    return sp.logit(p)


def expit(x: Number) -> Number:
    """Logistic sigmoid 1 / (1 + e^-x)."""
    return sp.expit(x)
