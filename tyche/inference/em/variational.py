# tyche/inference/em/variational.py
"""
Variational-Bayes EM for one-dimensional Gaussian mixtures.

Model
-----
    pi ~ Dirichlet(alpha0, ..., alpha0)
    (mu_k, sigma_k²) ~ NormalInverseGamma(prior_k)
    z_i ~ Categorical(pi),  x_i | z_i = k ~ N(mu_k, sigma_k²)

Mean-field family q(Z) q(pi) Π_k q(mu_k, sigma_k²). The monitored objective
is the full ELBO

    E_q[log p(X|Z, theta)] + E_q[log p(Z|pi)]
      - KL(q(pi) || p(pi)) - Σ_k KL(q(theta_k) || p(theta_k)) + H[q(Z)]

The E-step (responsibilities) and the M-step (conjugate Dirichlet and
Normal-Inverse-Gamma updates) are both exact coordinate maximizers of this
bound, so the recorded trace is non-decreasing.
"""

from __future__ import annotations

import time
import numpy as np
from scipy.special import logsumexp, xlogy
from typing import List, Optional, Tuple

from ...exceptions import ConfigurationError
from ...numerics import RNG
from ..base import DataInput, FitOptions, InferenceResult
from ..conjugate import NormalInverseGammaPosterior
from .lognormal_mixture import LogNormalMixtureEM
from .mixture_base import kmeans_plus_plus
from .normal_mixture import NormalMixtureEM
from .posteriors import (
    DirichletPosterior,
    VariationalLogNormalMixturePosterior,
    VariationalNormalMixturePosterior,
)

MIN_PRIOR_BETA = 0.1

Components = List[NormalInverseGammaPosterior]


class VariationalMixtureMixin:
    """
    VBEM loop shared by the Normal and LogNormal variants; the data scale
    hooks (`_prepare`, `_jacobian`, `order_by_mean`) come from the EM engine
    it is mixed into.

    Config keys: 'num_components' (default 2), 'weight_concentration'
    (symmetric Dirichlet alpha0, default 1), and optional 'prior_kappa',
    'prior_alpha', 'prior_beta' overriding the per-component priors.
    """

    posterior_class = VariationalNormalMixturePosterior

    def fit(self, data_input: DataInput, options: Optional[FitOptions] = None) -> InferenceResult:
        opts = self._resolve(options)
        started = time.perf_counter()

        values, x, K = self._prepare(data_input)
        config = data_input.config
        alpha0 = float(config.get("weight_concentration", 1.0))
        if not alpha0 > 0:
            raise ConfigurationError("weight_concentration must be positive",
                                     {"weight_concentration": alpha0})

        rng = RNG(opts.seed)
        resp, priors = self._initialize_priors(x, K, rng, config)
        weight_prior = DirichletPosterior(np.full(K, alpha0))
        jacobian = self._jacobian(values)

        if opts.verbose:
            print(f"\nFitting {K}-component {self.model_type} (variational Bayes)...")
            print(f"  Observations: {len(x)}")

        weights_q, comps_q = self._vb_m_step(x, resp, weight_prior, priors)
        history = [self._elbo(x, resp, weights_q, comps_q, weight_prior, priors) + jacobian]
        converged = False
        iterations = 0

        for it in range(1, opts.max_iterations + 1):
            resp = self._vb_e_step(x, weights_q, comps_q)
            weights_q, comps_q = self._vb_m_step(x, resp, weight_prior, priors)
            elbo = self._elbo(x, resp, weights_q, comps_q, weight_prior, priors) + jacobian

            self._check_step(elbo, history[-1])
            history.append(elbo)
            iterations = it
            self._progress(opts, "VBEM iteration", it, elbo)

            if abs(history[-1] - history[-2]) < opts.tolerance:
                converged = True
                break

        if self.order_by_mean:
            order = np.argsort([q.mu0 for q in comps_q], kind="stable")
            weights_q = DirichletPosterior(weights_q.alpha[order])
            comps_q = [comps_q[k] for k in order]
        posterior = self.posterior_class(weights_q, comps_q)
        return InferenceResult(posterior, self._diagnostics(opts, converged, iterations, history, started))

    # ---------------- initialization ---------------- #
    @staticmethod
    def _initialize_priors(x: np.ndarray, K: int, rng: RNG, config) -> Tuple[np.ndarray, Components]:
        """
        Hard assignment to k-means++ centers; each cluster's mean and spread
        set its component prior. Returns the one-hot responsibilities too.
        """
        centers = np.array(kmeans_plus_plus(x, K, rng))
        labels = np.argmin(np.abs(x[:, None] - centers[None, :]), axis=1)
        resp = np.zeros((len(x), K))
        resp[np.arange(len(x)), labels] = 1.0

        priors = []
        for k in range(K):
            cluster = x[labels == k]
            if len(cluster) == 0:
                cluster = centers[k:k + 1]
            spread = float(np.var(cluster)) if len(cluster) > 1 else 1.0
            priors.append(NormalInverseGammaPosterior(
                float(np.mean(cluster)),
                float(config.get("prior_kappa", 1.0)),
                float(config.get("prior_alpha", 2.0)),
                float(config.get("prior_beta", max(MIN_PRIOR_BETA, 2.0 * spread))),
            ))
        return resp, priors

    # ---------------- coordinate updates ---------------- #
    @staticmethod
    def _expected_log_joint(x: np.ndarray, weights_q: DirichletPosterior,
                            comps_q: Components) -> Tuple[np.ndarray, np.ndarray]:
        """(E[log pi_k], E[log N(x_i | theta_k)]) shaped (K,) and (n, K)."""
        log_lik = np.column_stack([q.expected_log_likelihood(x) for q in comps_q])
        return weights_q.expected_log_weights(), log_lik

    def _vb_e_step(self, x: np.ndarray, weights_q: DirichletPosterior,
                   comps_q: Components) -> np.ndarray:
        log_w, log_lik = self._expected_log_joint(x, weights_q, comps_q)
        log_rho = log_w[None, :] + log_lik
        return np.exp(log_rho - logsumexp(log_rho, axis=1, keepdims=True))

    @staticmethod
    def _vb_m_step(x: np.ndarray, resp: np.ndarray, weight_prior: DirichletPosterior,
                   priors: Components) -> Tuple[DirichletPosterior, Components]:
        weights_q = DirichletPosterior(weight_prior.alpha + resp.sum(axis=0))
        comps_q = [NormalInverseGammaPosterior.weighted_update(p, x, resp[:, k])
                   for k, p in enumerate(priors)]
        return weights_q, comps_q

    def _elbo(self, x: np.ndarray, resp: np.ndarray, weights_q: DirichletPosterior,
              comps_q: Components, weight_prior: DirichletPosterior, priors: Components) -> float:
        log_w, log_lik = self._expected_log_joint(x, weights_q, comps_q)
        expected = float(np.sum(resp * (log_lik + log_w[None, :])))
        kl = weights_q.kl_divergence(weight_prior)
        kl += sum(q.kl_divergence(p) for q, p in zip(comps_q, priors))
        entropy = -float(np.sum(xlogy(resp, resp)))
        return expected - kl + entropy


class NormalMixtureVBEM(VariationalMixtureMixin, NormalMixtureEM):
    """Variational-Bayes Normal mixture on the raw values."""

    model_type = "normal-mixture-vbem"


class LogNormalMixtureVBEM(VariationalMixtureMixin, LogNormalMixtureEM):
    """
    Variational-Bayes LogNormal mixture: the Normal VBEM on log(x), with the
    -Σ log x Jacobian added to the ELBO and components ordered by log-scale mean.
    """

    model_type = "lognormal-mixture-vbem"
    posterior_class = VariationalLogNormalMixturePosterior
