# tyche/distributions/discrete.py
import math

from ..aad import RandomVariable, ops
from ..exceptions import ConfigurationError
from .base import Distribution


class Binomial(Distribution):
    """Number of successes in `n` trials; `n` is fixed, `p` may be a handle."""

    kind = "binomial"
    closed = (True, True)

    def __init__(self, n, p=0.5, graph=None):
        super().__init__(graph, n=n, p=p)

    def _validate(self):
        n = self.params["n"]
        if isinstance(n, RandomVariable) or n < 0 or float(n) != math.floor(n):
            raise ConfigurationError("binomial: n must be a non-negative integer", {"n": n})
        self.params["n"] = int(n)
        p = self.params["p"]
        if not isinstance(p, RandomVariable) and not 0.0 <= p <= 1.0:
            raise ConfigurationError("binomial: p must be between 0 and 1", {"p": p})

    @property
    def support(self):
        return (0.0, float(self.params["n"]))

    def in_support(self, x: float) -> bool:
        return super().in_support(x) and float(x).is_integer()

    def _log_prob(self, k):
        n, p = self.params["n"], self.params["p"]
        if not isinstance(p, RandomVariable) and p in (0.0, 1.0):
            # degenerate: all mass on k = n * p
            return 0.0 if float(k) == n * p else -math.inf
        log_choose = (ops.log_gamma(n + 1.0) - ops.log_gamma(k + 1.0)
                      - ops.log_gamma(n - k + 1.0))
        return log_choose + k * ops.log(p) + (n - k) * ops.log(1.0 - p)

    def _mean(self):
        return self.params["n"] * self.params["p"]

    def _variance(self):
        n, p = self.params["n"], self.params["p"]
        return n * p * (1.0 - p)

    def _draw(self, rng):
        return rng.binomial(self.params["n"], self._value("p"))
