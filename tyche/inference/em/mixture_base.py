# tyche/inference/em/mixture_base.py
"""
Expectation-maximization for one-dimensional Gaussian mixtures.

The monitored objective is the observed-data log-likelihood, recorded after
every M-step. Two M-step strategies are available (FitOptions.use_fast_m_step):

    fast     : closed-form responsibility-weighted moments (exact maximizer
               of the EM lower bound).
    gradient : backtracking gradient ascent on the same bound, evaluated on
               an AD graph over the components' sufficient statistics. Every
               accepted step increases the bound, so the likelihood never
               decreases (generalized EM), but a finite number of steps can
               stop at a different point than the closed form.
"""

from __future__ import annotations

import math
import time
import numpy as np
from abc import abstractmethod
from scipy.special import logsumexp
from typing import List, Optional, Tuple

from ...aad import Graph, RandomVariable, add_n, gradients
from ...exceptions import ConfigurationError
from ...numerics import RNG, normal_log_pdf
from ..base import DataInput, FitOptions, InferenceEngine, InferenceResult
from .posteriors import MixtureComponent

MIN_VARIANCE = 1e-10
MIN_MASS = 1e-10

# (weights, means, variances), each shaped (K,)
MixtureParams = Tuple[np.ndarray, np.ndarray, np.ndarray]


class GradientMStep:
    """
    M-step by gradient ascent through the AD graph.

    The per-component bound (up to constants, divided by n)

        Q_k(mu, log_sigma) = -N_k log_sigma - (S2_k - 2 mu S1_k + mu² N_k) / (2 sigma²)

    is built once; N_k, S1_k, S2_k and the (mu_k, log_sigma_k) live in
    parameter slots that are rewritten each iteration.
    """

    MAX_HALVINGS = 40

    def __init__(self, num_components: int, learning_rate: float, steps: int):
        self.learning_rate = learning_rate
        self.steps = steps
        g = Graph(name="gradient-m-step")
        self.graph = g

        self.mu = [g.create_parameter(0.0, f"mu_{k}") for k in range(num_components)]
        self.log_sigma = [g.create_parameter(0.0, f"log_sigma_{k}") for k in range(num_components)]
        self.n_k = [g.create_parameter(1.0, f"N_{k}") for k in range(num_components)]
        self.s1 = [g.create_parameter(0.0, f"S1_{k}") for k in range(num_components)]
        self.s2 = [g.create_parameter(0.0, f"S2_{k}") for k in range(num_components)]
        self.theta = self.mu + self.log_sigma

        terms = []
        for k in range(num_components):
            mu = RandomVariable(self.mu[k])
            log_sigma = RandomVariable(self.log_sigma[k])
            n, s1, s2 = (RandomVariable(p) for p in (self.n_k[k], self.s1[k], self.s2[k]))
            inv_var = (log_sigma * -2.0).exp()
            sq = s2 - 2.0 * mu * s1 + mu * mu * n
            terms.append(-(n * log_sigma) - 0.5 * sq * inv_var)
        self.objective = add_n(terms)

    def __call__(self, x: np.ndarray, resp: np.ndarray, params: MixtureParams) -> MixtureParams:
        _, means, variances = params
        n = len(x)
        n_k = resp.sum(axis=0)

        g = self.graph
        g.set_parameter_values(n_k / n, slots=self.n_k)
        g.set_parameter_values(resp.T @ x / n, slots=self.s1)
        g.set_parameter_values(resp.T @ (x * x) / n, slots=self.s2)

        theta = np.concatenate([means, 0.5 * np.log(variances)])
        g.set_parameter_values(theta, slots=self.theta)
        q = self.objective.forward()

        step = self.learning_rate
        for _ in range(self.steps):
            grad = gradients(self.objective.node, self.theta)
            accepted = False
            for _ in range(self.MAX_HALVINGS):
                candidate = theta + step * grad
                g.set_parameter_values(candidate, slots=self.theta)
                q_new = self.objective.forward()
                if np.isfinite(q_new) and q_new >= q:
                    theta, q = candidate, q_new
                    accepted = True
                    break
                step *= 0.5
            if not accepted:
                break
            step *= 2.0

        K = len(means)
        new_means = theta[:K]
        new_vars = np.maximum(np.exp(2.0 * theta[K:]), MIN_VARIANCE)
        return n_k / n, new_means, new_vars


def fast_m_step(x: np.ndarray, resp: np.ndarray, params: MixtureParams) -> MixtureParams:
    """Closed form: weights = mean responsibility, weighted mean and variance."""
    _, old_means, old_vars = params
    n = len(x)
    n_k = resp.sum(axis=0)
    safe = np.maximum(n_k, MIN_MASS)

    means = resp.T @ x / safe
    variances = np.einsum("ik,ik->k", resp, (x[:, None] - means[None, :]) ** 2) / safe

    # an empty component keeps its parameters; its weight goes to ~0
    empty = n_k < MIN_MASS
    means = np.where(empty, old_means, means)
    variances = np.where(empty, old_vars, variances)
    return n_k / n, means, np.maximum(variances, MIN_VARIANCE)


class MixtureEMBase(InferenceEngine):
    """
    Shared EM loop. Subclasses map data onto the modelling scale
    (`_transform`), supply the Jacobian term of the reported log-likelihood
    and build the posterior.
    """

    # report components in increasing order of their modelling-scale mean
    order_by_mean = False

    def fit(self, data_input: DataInput, options: Optional[FitOptions] = None) -> InferenceResult:
        opts = self._resolve(options)
        started = time.perf_counter()

        values, x, K = self._prepare(data_input)
        rng = RNG(opts.seed)
        params = self._initialize(x, K, rng)
        if opts.use_fast_m_step:
            m_step = fast_m_step
        else:
            m_step = GradientMStep(K, opts.learning_rate, opts.gradient_steps)
        jacobian = self._jacobian(values)

        if opts.verbose:
            strategy = "fast" if opts.use_fast_m_step else "gradient"
            print(f"\nFitting {K}-component {self.model_type} ({strategy} M-step)...")
            print(f"  Observations: {len(x)}")

        resp, ll = self._e_step(x, params)
        history = [ll + jacobian]
        converged = False
        iterations = 0

        for it in range(1, opts.max_iterations + 1):
            params = m_step(x, resp, params)
            resp, ll = self._e_step(x, params)
            objective = ll + jacobian

            self._check_step(objective, history[-1])
            history.append(objective)
            iterations = it
            self._progress(opts, "EM iteration", it, objective)

            if abs(history[-1] - history[-2]) < opts.tolerance:
                converged = True
                break

        components = [MixtureComponent(float(w), float(m), float(v)) for w, m, v in zip(*params)]
        if self.order_by_mean:
            components = sorted(components, key=lambda c: c.mean)
        posterior = self._posterior(components)
        return InferenceResult(posterior, self._diagnostics(opts, converged, iterations, history, started))

    def _prepare(self, data_input: DataInput) -> Tuple[np.ndarray, np.ndarray, int]:
        """(raw values, values on the modelling scale, number of components)."""
        values = self._values(data_input)
        x = self._transform(values)
        K = int(data_input.config.get("num_components", 2))
        if K < 1:
            raise ConfigurationError("num_components must be >= 1", {"num_components": K})
        if K > len(x):
            raise ConfigurationError("More mixture components than observations",
                                     {"num_components": K, "observations": len(x)})
        return values, x, K

    # ---------------- EM steps ---------------- #
    @staticmethod
    def _e_step(x: np.ndarray, params: MixtureParams) -> Tuple[np.ndarray, float]:
        """Responsibilities (rows sum to 1) and the log-likelihood, via log-sum-exp."""
        weights, means, variances = params
        with np.errstate(divide="ignore"):
            log_w = np.log(weights)
        log_p = log_w[None, :] + normal_log_pdf(x[:, None], means[None, :], np.sqrt(variances)[None, :])
        log_norm = logsumexp(log_p, axis=1)

        K = len(weights)
        resp = np.full_like(log_p, 1.0 / K)
        ok = np.isfinite(log_norm)
        resp[ok] = np.exp(log_p[ok] - log_norm[ok, None])
        return resp, float(np.sum(log_norm))

    @staticmethod
    def _initialize(x: np.ndarray, K: int, rng: RNG) -> MixtureParams:
        """k-means++ centers, shared variance var(x)/K, equal weights."""
        centers = kmeans_plus_plus(x, K, rng)
        variance = max(float(np.var(x)) / K, MIN_VARIANCE)
        return np.full(K, 1.0 / K), np.array(centers), np.full(K, variance)

    # ---------------- subclass hooks ---------------- #
    def _transform(self, values: np.ndarray) -> np.ndarray:
        return values

    def _jacobian(self, values: np.ndarray) -> float:
        return 0.0

    @abstractmethod
    def _posterior(self, components: List[MixtureComponent]):
        ...


def kmeans_plus_plus(x: np.ndarray, K: int, rng: RNG) -> List[float]:
    """Seeded k-means++: each next center drawn proportionally to squared distance."""
    n = len(x)
    centers = [float(x[rng.integer(0, n - 1)])]
    for _ in range(1, K):
        d2 = np.min((x[:, None] - np.array(centers)[None, :]) ** 2, axis=1)
        total = float(d2.sum())
        if total == 0.0:
            centers.append(float(x[rng.integer(0, n - 1)]))
        else:
            centers.append(float(x[rng.discrete(d2)]))
    return centers
