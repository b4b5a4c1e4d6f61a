# tyche/inference/conjugate.py
from __future__ import annotations

import math
import time
import numpy as np
from scipy import stats
from typing import Mapping, Optional, Tuple

from ..exceptions import ConfigurationError
from ..numerics import LOG_TWO_PI, as_rng, digamma, log_beta, log_gamma
from .base import DataInput, FitOptions, InferenceEngine, InferenceResult, Posterior


class BetaPosterior(Posterior):
    """Beta(alpha, beta) posterior over a conversion rate."""

    def __init__(self, alpha: float, beta: float):
        if alpha <= 0 or beta <= 0:
            raise ConfigurationError("Beta parameters must be positive",
                                     {"alpha": alpha, "beta": beta})
        self.alpha = float(alpha)
        self.beta = float(beta)
        self._dist = stats.beta(self.alpha, self.beta)

    def mean(self) -> float:
        return self.alpha / (self.alpha + self.beta)

    def variance(self) -> float:
        s = self.alpha + self.beta
        return self.alpha * self.beta / (s * s * (s + 1.0))

    def sample(self, n: int = 1, rng=None) -> np.ndarray:
        rng = as_rng(rng)
        return np.array([rng.beta(self.alpha, self.beta) for _ in range(n)])

    def log_pdf(self, x):
        return self._dist.logpdf(x)

    def credible_interval(self, level: float = 0.95, rng=None, n: int = 0) -> Tuple[float, float]:
        """Exact equal-tailed interval from the Beta quantile function."""
        if not 0.0 < level < 1.0:
            raise ConfigurationError("level must be in (0, 1)", {"level": level})
        alpha = (1.0 - level) / 2.0
        return float(self._dist.ppf(alpha)), float(self._dist.ppf(1.0 - alpha))

    def __repr__(self):
        return f"BetaPosterior(alpha={self.alpha:g}, beta={self.beta:g})"


class BetaBinomialVI(InferenceEngine):
    """
    Exact conjugate update Beta(a, b) + Binomial(k | n) -> Beta(a + k, b + n - k).

    Accepts {'successes': k, 'trials': n} or a sequence of 0/1 outcomes. The
    prior comes from config keys 'prior_alpha' / 'prior_beta' (default 1, 1).
    The reported ELBO is the exact log evidence up to the binomial
    coefficient: log B(a', b') - log B(a, b).
    """

    model_type = "beta-binomial"

    def fit(self, data_input: DataInput, options: Optional[FitOptions] = None) -> InferenceResult:
        opts = self._resolve(options)
        started = time.perf_counter()

        successes, trials = self._counts(data_input.data)
        prior_a = float(data_input.config.get("prior_alpha", 1.0))
        prior_b = float(data_input.config.get("prior_beta", 1.0))
        if prior_a <= 0 or prior_b <= 0:
            raise ConfigurationError("Prior parameters must be positive",
                                     {"prior_alpha": prior_a, "prior_beta": prior_b})

        post_a = prior_a + successes
        post_b = prior_b + trials - successes
        elbo = log_beta(post_a, post_b) - log_beta(prior_a, prior_b)

        if opts.verbose:
            print(f"Beta-Binomial update: {successes}/{trials} "
                  f"-> Beta({post_a:g}, {post_b:g})")
        self._progress(opts, "conjugate update", 1, elbo)
        diagnostics = self._diagnostics(opts, True, 1, [elbo], started)
        return InferenceResult(BetaPosterior(post_a, post_b), diagnostics)

    @staticmethod
    def _counts(data) -> Tuple[float, float]:
        if isinstance(data, Mapping):
            try:
                successes = float(data["successes"])
                trials = float(data["trials"])
            except KeyError as e:
                raise ConfigurationError("Summary data needs 'successes' and 'trials'",
                                         {"missing": e.args[0]}) from None
        else:
            outcomes = np.asarray(list(data), dtype=float)
            if outcomes.size == 0:
                raise ConfigurationError("Data cannot be empty")
            if not np.all((outcomes == 0) | (outcomes == 1)):
                raise ConfigurationError("Binary data must contain only 0 and 1")
            successes, trials = float(outcomes.sum()), float(outcomes.size)

        if trials <= 0 or successes < 0 or successes > trials:
            raise ConfigurationError("Need 0 <= successes <= trials and trials > 0",
                                     {"successes": successes, "trials": trials})
        return successes, trials


MIN_BETA = 1e-10


def _interval(dist, level: float) -> Tuple[float, float]:
    if not 0.0 < level < 1.0:
        raise ConfigurationError("level must be in (0, 1)", {"level": level})
    alpha = (1.0 - level) / 2.0
    return float(dist.ppf(alpha)), float(dist.ppf(1.0 - alpha))


class NormalInverseGammaPosterior(Posterior):
    """
    Normal-Inverse-Gamma belief over a Normal's (mu, sigma²):

        sigma² ~ InvGamma(alpha, beta)
        mu | sigma² ~ N(mu0, sigma² / kappa)

    `mean`, `variance`, `log_pdf` and `sample` describe the posterior
    predictive of a new observation, a Student-t with 2 * alpha degrees of
    freedom. The same object serves as a prior (see `weighted_update`) and as
    a mixture component's variational factor (`expected_log_likelihood`,
    `kl_divergence`).
    """

    def __init__(self, mu0: float, kappa: float, alpha: float, beta: float):
        if not np.isfinite(mu0) or not (kappa > 0 and alpha > 0 and beta > 0):
            raise ConfigurationError("Normal-Inverse-Gamma needs finite mu0 and positive "
                                     "kappa, alpha, beta",
                                     {"mu0": mu0, "kappa": kappa, "alpha": alpha, "beta": beta})
        self.mu0 = float(mu0)
        self.kappa = float(kappa)
        self.alpha = float(alpha)
        self.beta = float(beta)

    @classmethod
    def weighted_update(cls, prior: "NormalInverseGammaPosterior", x,
                        weights=None) -> "NormalInverseGammaPosterior":
        """Conjugate update of `prior` with observations `x` counted with `weights` (default 1)."""
        x = np.asarray(x, dtype=float)
        w = np.ones_like(x) if weights is None else np.asarray(weights, dtype=float)
        n = float(w.sum())
        xbar = float(w @ x) / n if n > 0 else prior.mu0
        ss = float(w @ (x - xbar) ** 2)

        kappa = prior.kappa + n
        mu0 = (prior.kappa * prior.mu0 + n * xbar) / kappa
        alpha = prior.alpha + 0.5 * n
        beta = prior.beta + 0.5 * ss + 0.5 * prior.kappa * n * (xbar - prior.mu0) ** 2 / kappa
        return cls(mu0, kappa, alpha, max(beta, MIN_BETA))

    # ---------------- parameter moments ---------------- #
    def expected_sigma2(self) -> float:
        return self.beta / (self.alpha - 1.0) if self.alpha > 1.0 else math.inf

    def expected_precision(self) -> float:
        return self.alpha / self.beta

    def expected_log_precision(self) -> float:
        return float(digamma(self.alpha)) - math.log(self.beta)

    def mu_interval(self, level: float = 0.95) -> Tuple[float, float]:
        """Credible interval for mu (marginally a Student-t)."""
        scale = math.sqrt(self.beta / (self.alpha * self.kappa))
        return _interval(stats.t(2.0 * self.alpha, loc=self.mu0, scale=scale), level)

    # ---------------- variational pieces ---------------- #
    def expected_log_likelihood(self, x):
        """E_q[log N(x | mu, sigma²)]; E[tau (x - mu)²] = E[tau] (x - mu0)² + 1/kappa."""
        x = np.asarray(x, dtype=float)
        quad = self.expected_precision() * (x - self.mu0) ** 2 + 1.0 / self.kappa
        return -0.5 * LOG_TWO_PI + 0.5 * self.expected_log_precision() - 0.5 * quad

    def kl_divergence(self, prior: "NormalInverseGammaPosterior") -> float:
        """KL(self || prior): Gamma KL on the precision plus the expected KL of mu | sigma²."""
        a, b, a0, b0 = self.alpha, self.beta, prior.alpha, prior.beta
        kl_precision = ((a - a0) * float(digamma(a)) - float(log_gamma(a)) + float(log_gamma(a0))
                        + a0 * (math.log(b) - math.log(b0)) + a * (b0 - b) / b)
        ratio = prior.kappa / self.kappa
        kl_mu = 0.5 * (ratio + prior.kappa * (a / b) * (self.mu0 - prior.mu0) ** 2
                       - 1.0 - math.log(ratio))
        return kl_precision + kl_mu

    def log_evidence(self, prior: "NormalInverseGammaPosterior") -> float:
        """log p(x) of the data that turned `prior` into this posterior."""
        n = 2.0 * (self.alpha - prior.alpha)
        return (float(log_gamma(self.alpha)) - float(log_gamma(prior.alpha))
                + prior.alpha * math.log(prior.beta) - self.alpha * math.log(self.beta)
                + 0.5 * math.log(prior.kappa / self.kappa) - 0.5 * n * LOG_TWO_PI)

    # ---------------- posterior predictive ---------------- #
    def _predictive(self):
        scale = math.sqrt(self.beta * (self.kappa + 1.0) / (self.alpha * self.kappa))
        return stats.t(2.0 * self.alpha, loc=self.mu0, scale=scale)

    def mean(self) -> float:
        return self.mu0

    def variance(self) -> float:
        if self.alpha <= 1.0:
            return math.inf
        return self.beta * (self.kappa + 1.0) / (self.kappa * (self.alpha - 1.0))

    def log_pdf(self, x):
        return self._predictive().logpdf(x)

    def credible_interval(self, level: float = 0.95, rng=None, n: int = 0) -> Tuple[float, float]:
        return _interval(self._predictive(), level)

    def draw_parameters(self, rng) -> Tuple[float, float]:
        """One (mu, sigma) draw."""
        tau = rng.gamma(self.alpha, 1.0 / self.beta)
        mu = rng.normal_distribution(self.mu0, 1.0 / math.sqrt(self.kappa * tau))
        return mu, 1.0 / math.sqrt(tau)

    def sample(self, n: int = 1, rng=None) -> np.ndarray:
        rng = as_rng(rng)
        out = np.empty(n)
        for i in range(n):
            mu, sigma = self.draw_parameters(rng)
            out[i] = rng.normal_distribution(mu, sigma)
        return out

    def __repr__(self):
        return (f"NormalInverseGammaPosterior(mu0={self.mu0:g}, kappa={self.kappa:g}, "
                f"alpha={self.alpha:g}, beta={self.beta:g})")


class LogNormalPosterior(Posterior):
    """
    LogNormal observations with a Normal-Inverse-Gamma belief over the
    log-scale (mu, sigma²), held in `log_scale`.

    `log_pdf` and `sample` are the exact posterior predictive. The predictive
    mean is infinite under a Student-t log scale, so `mean` / `variance` are
    the LogNormal moments at the posterior mean of (mu, sigma²).
    """

    def __init__(self, log_scale: NormalInverseGammaPosterior):
        self.log_scale = log_scale

    @property
    def mu(self) -> float:
        return self.log_scale.mu0

    @property
    def sigma2(self) -> float:
        return self.log_scale.expected_sigma2()

    def mean(self) -> float:
        return math.exp(self.mu + 0.5 * self.sigma2)

    def variance(self) -> float:
        s2 = self.sigma2
        return math.expm1(s2) * math.exp(2.0 * self.mu + s2)

    def log_pdf(self, x):
        arr = np.atleast_1d(np.asarray(x, dtype=float))
        out = np.full(arr.shape, -np.inf)
        pos = arr > 0
        log_x = np.log(arr[pos])
        out[pos] = self.log_scale.log_pdf(log_x) - log_x
        return float(out[0]) if np.ndim(x) == 0 else out

    def credible_interval(self, level: float = 0.95, rng=None, n: int = 0) -> Tuple[float, float]:
        lo, hi = self.log_scale.credible_interval(level)
        return math.exp(lo), math.exp(hi)

    def sample(self, n: int = 1, rng=None) -> np.ndarray:
        return np.exp(self.log_scale.sample(n, rng))

    def __repr__(self):
        return f"LogNormalPosterior({self.log_scale!r})"


class GammaPosterior(Posterior):
    """Gamma(shape, rate) posterior over an Exponential rate."""

    def __init__(self, shape: float, rate: float):
        if shape <= 0 or rate <= 0:
            raise ConfigurationError("Gamma parameters must be positive",
                                     {"shape": shape, "rate": rate})
        self.shape = float(shape)
        self.rate = float(rate)
        self._dist = stats.gamma(self.shape, scale=1.0 / self.rate)

    def mean(self) -> float:
        return self.shape / self.rate

    def variance(self) -> float:
        return self.shape / (self.rate * self.rate)

    def sample(self, n: int = 1, rng=None) -> np.ndarray:
        rng = as_rng(rng)
        return np.array([rng.gamma(self.shape, 1.0 / self.rate) for _ in range(n)])

    def log_pdf(self, x):
        return self._dist.logpdf(x)

    def credible_interval(self, level: float = 0.95, rng=None, n: int = 0) -> Tuple[float, float]:
        return _interval(self._dist, level)

    def __repr__(self):
        return f"GammaPosterior(shape={self.shape:g}, rate={self.rate:g})"


class NormalConjugate(InferenceEngine):
    """
    Exact Normal-Inverse-Gamma update for Normal data with unknown mean and
    variance.

    Prior keys in the data config: 'prior_mu', 'prior_kappa', 'prior_alpha',
    'prior_beta'. Missing keys default to an empirical prior (sample mean,
    kappa 1, alpha 2, beta = 2 * sample variance). The reported ELBO is the
    exact log evidence.
    """

    model_type = "normal"

    def fit(self, data_input: DataInput, options: Optional[FitOptions] = None) -> InferenceResult:
        opts = self._resolve(options)
        started = time.perf_counter()

        values = self._values(data_input)
        x = self._transform(values)
        prior = self._prior(x, data_input.config)
        posterior = NormalInverseGammaPosterior.weighted_update(prior, x)
        elbo = posterior.log_evidence(prior) + self._jacobian(values)

        if opts.verbose:
            print(f"{type(self).__name__}: {len(x)} observations -> {posterior!r}")
        self._progress(opts, "conjugate update", 1, elbo)
        diagnostics = self._diagnostics(opts, True, 1, [elbo], started)
        return InferenceResult(self._posterior(posterior), diagnostics)

    @staticmethod
    def _prior(x: np.ndarray, config) -> NormalInverseGammaPosterior:
        return NormalInverseGammaPosterior(
            float(config.get("prior_mu", np.mean(x))),
            float(config.get("prior_kappa", 1.0)),
            float(config.get("prior_alpha", 2.0)),
            float(config.get("prior_beta", max(2.0 * float(np.var(x)), MIN_BETA))),
        )

    def _transform(self, values: np.ndarray) -> np.ndarray:
        return values

    def _jacobian(self, values: np.ndarray) -> float:
        return 0.0

    def _posterior(self, posterior: NormalInverseGammaPosterior):
        return posterior


class LogNormalConjugate(NormalConjugate):
    """Normal-Inverse-Gamma update on log(x); the log evidence is on the data scale."""

    model_type = "lognormal"

    def _transform(self, values):
        if np.any(values <= 0):
            raise ConfigurationError("LogNormal requires strictly positive data",
                                     {"non_positive": int(np.sum(values <= 0))})
        return np.log(values)

    def _jacobian(self, values):
        return -float(np.sum(np.log(values)))

    def _posterior(self, posterior):
        return LogNormalPosterior(posterior)


class GammaExponentialConjugate(InferenceEngine):
    """
    Gamma(a, b) prior on an Exponential rate: posterior Gamma(a + n, b + Σx).

    Prior keys 'prior_shape' / 'prior_rate' (default 1, 0.1). The reported
    ELBO is the exact log evidence.
    """

    model_type = "gamma-exponential"

    def fit(self, data_input: DataInput, options: Optional[FitOptions] = None) -> InferenceResult:
        opts = self._resolve(options)
        started = time.perf_counter()

        values = self._values(data_input)
        if np.any(values < 0):
            raise ConfigurationError("Exponential data must be non-negative",
                                     {"negative": int(np.sum(values < 0))})
        a0 = float(data_input.config.get("prior_shape", 1.0))
        b0 = float(data_input.config.get("prior_rate", 0.1))
        if a0 <= 0 or b0 <= 0:
            raise ConfigurationError("Prior parameters must be positive",
                                     {"prior_shape": a0, "prior_rate": b0})

        a = a0 + len(values)
        b = b0 + float(values.sum())
        elbo = (a0 * math.log(b0) - float(log_gamma(a0))
                + float(log_gamma(a)) - a * math.log(b))

        if opts.verbose:
            print(f"Gamma-Exponential update: n={len(values)}, sum={values.sum():g} "
                  f"-> Gamma({a:g}, {b:g})")
        self._progress(opts, "conjugate update", 1, elbo)
        diagnostics = self._diagnostics(opts, True, 1, [elbo], started)
        return InferenceResult(GammaPosterior(a, b), diagnostics)
