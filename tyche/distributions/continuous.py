# tyche/distributions/continuous.py
import math

from ..aad import ops
from .base import Distribution

HALF_LOG_TWO_PI = 0.5 * math.log(2.0 * math.pi)


class Normal(Distribution):
    kind = "normal"

    def __init__(self, mu=0.0, sigma=1.0, graph=None):
        super().__init__(graph, mu=mu, sigma=sigma)

    def _validate(self):
        self._require_finite("mu")
        self._require_positive("sigma")

    def _log_prob(self, x):
        mu, sigma = self.params["mu"], self.params["sigma"]
        z = (x - mu) / sigma
        return -HALF_LOG_TWO_PI - ops.log(sigma) - 0.5 * z * z

    def _mean(self):
        return self.params["mu"]

    def _variance(self):
        return self.params["sigma"] ** 2

    def _draw(self, rng):
        return rng.normal_distribution(self._value("mu"), self._value("sigma"))


class LogNormal(Distribution):
    """exp(N(mu, sigma²)); mu and sigma are on the log scale."""

    kind = "lognormal"
    support = (0.0, math.inf)

    def __init__(self, mu=0.0, sigma=1.0, graph=None):
        super().__init__(graph, mu=mu, sigma=sigma)

    def _validate(self):
        self._require_finite("mu")
        self._require_positive("sigma")

    def _log_prob(self, x):
        mu, sigma = self.params["mu"], self.params["sigma"]
        log_x = ops.log(x)
        z = (log_x - mu) / sigma
        return -HALF_LOG_TWO_PI - ops.log(sigma) - 0.5 * z * z - log_x

    def _mean(self):
        mu, sigma = self.params["mu"], self.params["sigma"]
        return ops.exp(mu + 0.5 * sigma * sigma)

    def _variance(self):
        mu, sigma = self.params["mu"], self.params["sigma"]
        s2 = sigma * sigma
        return (ops.exp(s2) - 1.0) * ops.exp(2.0 * mu + s2)

    def _draw(self, rng):
        return math.exp(rng.normal_distribution(self._value("mu"), self._value("sigma")))


class Beta(Distribution):
    kind = "beta"
    support = (0.0, 1.0)

    def __init__(self, alpha=1.0, beta=1.0, graph=None):
        super().__init__(graph, alpha=alpha, beta=beta)

    def _validate(self):
        self._require_positive("alpha", "beta")

    def _log_prob(self, x):
        a, b = self.params["alpha"], self.params["beta"]
        return (a - 1.0) * ops.log(x) + (b - 1.0) * ops.log(1.0 - x) - ops.log_beta(a, b)

    def _mean(self):
        a, b = self.params["alpha"], self.params["beta"]
        return a / (a + b)

    def _variance(self):
        a, b = self.params["alpha"], self.params["beta"]
        s = a + b
        return a * b / (s * s * (s + 1.0))

    def _draw(self, rng):
        return rng.beta(self._value("alpha"), self._value("beta"))


class Gamma(Distribution):
    """Shape / rate parameterization."""

    kind = "gamma"
    support = (0.0, math.inf)

    def __init__(self, shape=1.0, rate=1.0, graph=None):
        super().__init__(graph, shape=shape, rate=rate)

    def _validate(self):
        self._require_positive("shape", "rate")

    def _log_prob(self, x):
        k, rate = self.params["shape"], self.params["rate"]
        return k * ops.log(rate) - ops.log_gamma(k) + (k - 1.0) * ops.log(x) - rate * x

    def _mean(self):
        return self.params["shape"] / self.params["rate"]

    def _variance(self):
        rate = self.params["rate"]
        return self.params["shape"] / (rate * rate)

    def _draw(self, rng):
        return rng.gamma(self._value("shape"), 1.0 / self._value("rate"))


class Exponential(Distribution):
    kind = "exponential"
    closed = (True, False)
    support = (0.0, math.inf)

    def __init__(self, rate=1.0, graph=None):
        super().__init__(graph, rate=rate)

    def _validate(self):
        self._require_positive("rate")

    def _log_prob(self, x):
        rate = self.params["rate"]
        return ops.log(rate) - rate * x

    def _mean(self):
        return 1.0 / self.params["rate"]

    def _variance(self):
        rate = self.params["rate"]
        return 1.0 / (rate * rate)

    def _draw(self, rng):
        return rng.exponential(self._value("rate"))


class HalfNormal(Distribution):
    kind = "halfnormal"
    closed = (True, False)
    support = (0.0, math.inf)

    def __init__(self, sigma=1.0, graph=None):
        super().__init__(graph, sigma=sigma)

    def _validate(self):
        self._require_positive("sigma")

    def _log_prob(self, x):
        sigma = self.params["sigma"]
        z = x / sigma
        return math.log(2.0) - HALF_LOG_TWO_PI - ops.log(sigma) - 0.5 * z * z

    def _mean(self):
        return self.params["sigma"] * math.sqrt(2.0 / math.pi)

    def _variance(self):
        sigma = self.params["sigma"]
        return sigma * sigma * (1.0 - 2.0 / math.pi)

    def _draw(self, rng):
        return abs(rng.normal()) * self._value("sigma")
