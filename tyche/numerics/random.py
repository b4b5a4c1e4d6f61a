# tyche/numerics/random.py
"""
Seeded random number generation for statistical applications.

Every continuous draw is derived from the single `uniform()` primitive via a
standard transform, so a fixed seed reproduces an entire analysis:

    normal       : Box-Muller (second variate cached)
    exponential  : inverse CDF
    gamma        : Marsaglia & Tsang (2000), boosted by U^(1/a) for a < 1
    beta         : Johnk's method for a, b < 1, gamma ratio otherwise
    binomial     : Bernoulli counting / clipped normal approximation
    poisson      : Knuth multiplication / normal approximation
"""

from __future__ import annotations

import math
import numpy as np
from typing import List, Optional, Sequence, TypeVar

from ..exceptions import ConfigurationError

T = TypeVar("T")


class RNG:
    """
    Deterministic random stream backed by numpy's Mersenne Twister.

    Parameters
    ----------
    seed : int | numpy.random.SeedSequence | None
        None draws fresh OS entropy (non-reproducible).
    """

    def __init__(self, seed=None):
        self.set_seed(seed)

    def set_seed(self, seed=None):
        """Reset the stream; also clears the cached Box-Muller variate."""
        if isinstance(seed, np.random.SeedSequence):
            self._seed_seq = seed
        else:
            self._seed_seq = np.random.SeedSequence(seed)
        self._gen = np.random.Generator(np.random.MT19937(self._seed_seq))
        self._normal_cache: Optional[float] = None

    def spawn(self, n: int) -> List["RNG"]:
        """
        Return `n` independent child streams.

        Children are derived from this stream's seed sequence, so parallel
        chains never share mutable generator state.
        """
        return [RNG(child) for child in self._seed_seq.spawn(n)]

    # ---------------- primitives ---------------- #
    def uniform(self) -> float:
        """Uniform draw in [0, 1)."""
        return float(self._gen.random())

    def integer(self, low: int, high: int) -> int:
        """Uniform integer in [low, high] (inclusive)."""
        return int(self._gen.integers(low, high, endpoint=True))

    # ---------------- continuous draws ---------------- #
    def normal(self) -> float:
        """Standard normal via Box-Muller; every second call is served from cache."""
        if self._normal_cache is not None:
            z = self._normal_cache
            self._normal_cache = None
            return z

        u1 = self.uniform()
        while u1 <= 0.0:
            u1 = self.uniform()  # log(0) guard; [0,1) can hit exactly 0
        u2 = self.uniform()

        r = math.sqrt(-2.0 * math.log(u1))
        theta = 2.0 * math.pi * u2
        self._normal_cache = r * math.sin(theta)
        return r * math.cos(theta)

    def normal_distribution(self, mean: float, sd: float) -> float:
        return mean + sd * self.normal()

    def exponential(self, rate: float = 1.0) -> float:
        if rate <= 0:
            raise ConfigurationError("Exponential rate must be positive", {"rate": rate})
        return -math.log1p(-self.uniform()) / rate

    def gamma(self, shape: float, scale: float = 1.0) -> float:
        """Gamma(shape, scale) via Marsaglia & Tsang."""
        if shape <= 0 or scale <= 0:
            raise ConfigurationError("Gamma parameters must be positive",
                                     {"shape": shape, "scale": scale})

        if shape < 1.0:
            # Boost: G(a) = G(a+1) * U^(1/a)
            u = self.uniform()
            while u <= 0.0:
                u = self.uniform()
            return self.gamma(shape + 1.0, scale) * u ** (1.0 / shape)

        d = shape - 1.0 / 3.0
        c = 1.0 / math.sqrt(9.0 * d)
        while True:
            x = self.normal()
            v = 1.0 + c * x
            while v <= 0.0:
                x = self.normal()
                v = 1.0 + c * x
            v = v * v * v
            u = self.uniform()

            if u < 1.0 - 0.0331 * x ** 4:
                return d * v * scale
            if u > 0.0 and math.log(u) < 0.5 * x * x + d * (1.0 - v + math.log(v)):
                return d * v * scale

    def beta(self, a: float, b: float) -> float:
        if a <= 0 or b <= 0:
            raise ConfigurationError("Beta parameters must be positive", {"alpha": a, "beta": b})

        if a < 1.0 and b < 1.0:
            return self._beta_johnk(a, b)

        x = self.gamma(a)
        y = self.gamma(b)
        return x / (x + y)

    def _beta_johnk(self, a: float, b: float) -> float:
        """
        Johnk's rejection method, carried out in log space so that small
        shapes do not underflow U^(1/a).
        """
        while True:
            u = self.uniform()
            v = self.uniform()
            if u <= 0.0 or v <= 0.0:
                continue
            log_x = math.log(u) / a
            log_y = math.log(v) / b
            log_sum = np.logaddexp(log_x, log_y)
            if log_sum <= 0.0:
                return math.exp(log_x - log_sum)

    # ---------------- discrete draws ---------------- #
    def binomial(self, n: int, p: float) -> int:
        if n < 0 or n != math.floor(n):
            raise ConfigurationError("n must be a non-negative integer", {"n": n})
        if p < 0.0 or p > 1.0:
            raise ConfigurationError("p must be between 0 and 1", {"p": p})
        n = int(n)

        if n == 0 or p == 0.0:
            return 0
        if p == 1.0:
            return n

        if n >= 30:
            mean = n * p
            sd = math.sqrt(n * p * (1.0 - p))
            if mean > 10 and sd > 3:
                # normal approximation, redrawn until inside [0, n]
                while True:
                    k = int(round(self.normal_distribution(mean, sd)))
                    if 0 <= k <= n:
                        return k

        return sum(1 for _ in range(n) if self.uniform() < p)

    def poisson(self, lam: float) -> int:
        if lam <= 0:
            raise ConfigurationError("Poisson rate must be positive", {"lambda": lam})

        if lam < 30:
            limit = math.exp(-lam)
            k = 0
            prod = 1.0
            while True:
                k += 1
                prod *= self.uniform()
                if prod <= limit:
                    return k - 1

        return max(0, int(round(self.normal_distribution(lam, math.sqrt(lam)))))

    def discrete(self, probabilities: Sequence[float]) -> int:
        """Index drawn proportionally to (unnormalized) `probabilities`."""
        total = float(sum(probabilities))
        u = self.uniform() * total
        cum = 0.0
        for i, p in enumerate(probabilities):
            cum += p
            if u < cum:
                return i
        return len(probabilities) - 1

    def shuffle(self, items: Sequence[T]) -> List[T]:
        """Fisher-Yates on a copy."""
        out = list(items)
        for i in range(len(out) - 1, 0, -1):
            j = self.integer(0, i)
            out[i], out[j] = out[j], out[i]
        return out

    def choice(self, items: Sequence[T], k: int) -> List[T]:
        """k items without replacement."""
        if k > len(items):
            raise ConfigurationError("Cannot sample more items than available",
                                     {"k": k, "available": len(items)})
        order = self.shuffle(range(len(items)))
        return [items[i] for i in order[:k]]

    def __repr__(self):
        return f"RNG(entropy={self._seed_seq.entropy!r}, spawn_key={self._seed_seq.spawn_key!r})"


def as_rng(rng=None) -> RNG:
    """Coerce an int seed / None / RNG into an RNG instance."""
    if isinstance(rng, RNG):
        return rng
    return RNG(rng)
