# tyche/numerics/__init__.py
# Numerical primitives and the seeded random stream.

from .special import (
    log_gamma,
    log_beta,
    digamma,
    trigamma,
    log_factorial,
    log_binomial,
    erf,
    erfc,
    erf_inv,
    normal_cdf,
    normal_quantile,
    normal_log_pdf,
    log_sum_exp,
    logit,
    expit,
    LOG_TWO_PI,
)
from .random import RNG, as_rng

__all__ = [
    "log_gamma", "log_beta", "digamma", "trigamma",
    "log_factorial", "log_binomial",
    "erf", "erfc", "erf_inv",
    "normal_cdf", "normal_quantile", "normal_log_pdf",
    "log_sum_exp", "logit", "expit", "LOG_TWO_PI",
    "RNG", "as_rng",
]
