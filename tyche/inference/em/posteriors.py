# tyche/inference/em/posteriors.py
from __future__ import annotations

import math
import numpy as np
from dataclasses import dataclass
from scipy import stats
from scipy.special import logsumexp
from typing import List, Sequence, Tuple

from ...exceptions import ConfigurationError
from ...numerics import as_rng, digamma, log_gamma, normal_log_pdf
from ..base import Posterior
from ..conjugate import NormalInverseGammaPosterior


@dataclass
class MixtureComponent:
    """One fitted component; `mean` / `variance` are on the modelling scale."""
    weight: float
    mean: float
    variance: float

    @property
    def sd(self) -> float:
        return math.sqrt(self.variance)


class NormalMixturePosterior(Posterior):
    """Point-estimate mixture Σ w_k N(mean_k, variance_k)."""

    def __init__(self, components: Sequence[MixtureComponent]):
        self.components: List[MixtureComponent] = list(components)

    @property
    def weights(self) -> np.ndarray:
        return np.array([c.weight for c in self.components])

    @property
    def means(self) -> np.ndarray:
        return np.array([c.mean for c in self.components])

    @property
    def variances(self) -> np.ndarray:
        return np.array([c.variance for c in self.components])

    def mean(self) -> float:
        return float(np.dot(self.weights, self.means))

    def variance(self) -> float:
        # E[Var[X|Z]] + Var[E[X|Z]]
        m = self.mean()
        return float(np.dot(self.weights, self.variances + (self.means - m) ** 2))

    def _component_log_pdf(self, x: np.ndarray) -> np.ndarray:
        return normal_log_pdf(x[:, None], self.means[None, :], np.sqrt(self.variances)[None, :])

    def log_pdf(self, x):
        arr = np.atleast_1d(np.asarray(x, dtype=float))
        with np.errstate(divide="ignore", invalid="ignore"):
            out = logsumexp(np.log(self.weights)[None, :] + self._component_log_pdf(arr), axis=1)
        return float(out[0]) if np.ndim(x) == 0 else out

    def _draw_component(self, k: int, rng) -> float:
        c = self.components[k]
        return rng.normal_distribution(c.mean, c.sd)

    def sample(self, n: int = 1, rng=None) -> np.ndarray:
        rng = as_rng(rng)
        weights = self.weights
        return np.array([self._draw_component(rng.discrete(weights), rng) for _ in range(n)])

    def __repr__(self):
        parts = ", ".join(f"{c.weight:.3f}*N({c.mean:.3f}, {c.sd:.3f}^2)" for c in self.components)
        return f"{type(self).__name__}({parts})"


class LogNormalMixturePosterior(NormalMixturePosterior):
    """
    Σ w_k LogNormal(mu_k, sigma_k²); component `mean` / `variance` are the
    log-scale mu and sigma².
    """

    def component_means(self) -> np.ndarray:
        """Mean of each component on the data scale."""
        return np.exp(self.means + 0.5 * self.variances)

    def mean(self) -> float:
        return float(np.dot(self.weights, self.component_means()))

    def variance(self) -> float:
        mu, s2 = self.means, self.variances
        second_moments = np.exp(2.0 * mu + 2.0 * s2)
        m = self.mean()
        return float(np.dot(self.weights, second_moments) - m * m)

    def log_pdf(self, x):
        arr = np.atleast_1d(np.asarray(x, dtype=float))
        out = np.full(arr.shape, -np.inf)
        pos = arr > 0
        if np.any(pos):
            log_x = np.log(arr[pos])
            out[pos] = super().log_pdf(log_x) - log_x
        return float(out[0]) if np.ndim(x) == 0 else out

    def _draw_component(self, k: int, rng) -> float:
        return math.exp(super()._draw_component(k, rng))

    def __repr__(self):
        parts = ", ".join(f"{c.weight:.3f}*LogN({c.mean:.3f}, {c.sd:.3f}^2)" for c in self.components)
        return f"{type(self).__name__}({parts})"


class DirichletPosterior:
    """Dirichlet(alpha) belief over mixture weights."""

    def __init__(self, alpha):
        self.alpha = np.asarray(alpha, dtype=float)
        if self.alpha.ndim != 1 or not np.all(self.alpha > 0):
            raise ConfigurationError("Dirichlet concentrations must be positive",
                                     {"alpha": self.alpha.tolist()})

    def mean(self) -> np.ndarray:
        return self.alpha / self.alpha.sum()

    def variance(self) -> np.ndarray:
        a0 = self.alpha.sum()
        m = self.alpha / a0
        return m * (1.0 - m) / (a0 + 1.0)

    def expected_log_weights(self) -> np.ndarray:
        """E[log pi_k] = psi(alpha_k) - psi(Σ alpha)."""
        return digamma(self.alpha) - digamma(self.alpha.sum())

    def kl_divergence(self, prior: "DirichletPosterior") -> float:
        a, a0 = self.alpha, prior.alpha
        return float(log_gamma(a.sum()) - np.sum(log_gamma(a))
                     - log_gamma(a0.sum()) + np.sum(log_gamma(a0))
                     + np.dot(a - a0, self.expected_log_weights()))

    def marginal_interval(self, k: int, level: float = 0.95) -> Tuple[float, float]:
        """Credible interval of pi_k, marginally Beta(alpha_k, Σ alpha - alpha_k)."""
        if not 0.0 < level < 1.0:
            raise ConfigurationError("level must be in (0, 1)", {"level": level})
        marginal = stats.beta(self.alpha[k], self.alpha.sum() - self.alpha[k])
        tail = (1.0 - level) / 2.0
        return float(marginal.ppf(tail)), float(marginal.ppf(1.0 - tail))

    def sample(self, rng=None) -> np.ndarray:
        rng = as_rng(rng)
        g = np.array([rng.gamma(a) for a in self.alpha])
        return g / g.sum()

    def __repr__(self):
        return f"DirichletPosterior(alpha={np.round(self.alpha, 3).tolist()})"


class VariationalNormalMixturePosterior(NormalMixturePosterior):
    """
    Mixture fitted by variational Bayes: Dirichlet weights and a
    Normal-Inverse-Gamma factor per component.

    Components carry the expected weight, the posterior mean of mu and of
    sigma². `log_pdf`, `mean`, `variance` and `sample` are the posterior
    predictive (Student-t components, weight uncertainty in `sample`).
    """

    def __init__(self, weight_posterior: DirichletPosterior,
                 component_posteriors: Sequence[NormalInverseGammaPosterior]):
        self.weight_posterior = weight_posterior
        self.component_posteriors = list(component_posteriors)
        components = [MixtureComponent(float(w), q.mu0, q.expected_sigma2())
                      for w, q in zip(weight_posterior.mean(), self.component_posteriors)]
        super().__init__(components)

    def weight_interval(self, k: int, level: float = 0.95) -> Tuple[float, float]:
        return self.weight_posterior.marginal_interval(k, level)

    def variance(self) -> float:
        m = self.mean()
        second = np.array([q.variance() + q.mu0 ** 2 for q in self.component_posteriors])
        return float(np.dot(self.weights, second) - m * m)

    def _component_log_pdf(self, x: np.ndarray) -> np.ndarray:
        return np.column_stack([q.log_pdf(x) for q in self.component_posteriors])

    def _draw_component(self, k: int, rng) -> float:
        return float(self.component_posteriors[k].sample(1, rng)[0])

    def sample(self, n: int = 1, rng=None) -> np.ndarray:
        rng = as_rng(rng)
        out = np.empty(n)
        for i in range(n):
            k = rng.discrete(self.weight_posterior.sample(rng))
            out[i] = self._draw_component(k, rng)
        return out


class VariationalLogNormalMixturePosterior(LogNormalMixturePosterior, VariationalNormalMixturePosterior):
    """
    Variational-Bayes LogNormal mixture. `log_pdf` and `sample` are the
    predictive on the data scale; `mean` / `variance` are the LogNormal
    moments at the posterior mean parameters.
    """
