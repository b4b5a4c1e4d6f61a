# tyche/samplers/metropolis.py
"""
Metropolis-Hastings sampling with per-chain step-size adaptation.

Usage:
    >>> model = FunctionModel(lambda th: -0.5 * th[0] ** 2, [0.0])
    >>> result = MetropolisSampler(MetropolisOptions(step_size=1.0)).sample(
    ...     model, num_samples=2000, num_chains=2, warmup=1000, rng=42)
    >>> result.acceptance_rate, result.r_hat
"""

from __future__ import annotations

import math
import numpy as np
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional, Tuple

from ..exceptions import ConfigurationError
from ..numerics import as_rng
from .diagnostics import acceptance_rate, effective_sample_size, r_hat
from .models import Model

PROPOSAL_TYPES = ("random_walk", "independent")


@dataclass
class MetropolisOptions:
    """Configuration for the Metropolis-Hastings sampler."""
    step_size: float = 0.1
    proposal_type: str = "random_walk"  # 'random_walk', 'independent'

    # Step-size adaptation (first half of warmup only)
    adapt_step_size: bool = True
    target_acceptance_rate: float = 0.44  # optimal for 1-D random-walk proposals
    adaptation_window: int = 50
    adaptation_tolerance: float = 0.05
    shrink_factor: float = 0.9
    grow_factor: float = 1.1

    # Logging
    verbose: bool = False


@dataclass
class MCMCResult:
    samples: np.ndarray            # (num_chains * num_samples, dim), chains concatenated
    chains: List[np.ndarray]       # per-chain (num_samples, dim)
    log_probabilities: np.ndarray  # aligned with `samples`
    acceptance_rate: float
    effective_sample_size: float
    r_hat: Optional[float]         # None for a single chain
    step_sizes: List[float]        # final (adapted) step size per chain
    parameter_names: List[str]
    num_errors: int = 0            # model exceptions treated as rejections

    def summary(self) -> Dict[str, Dict[str, float]]:
        """Posterior mean / sd / 2.5%, 50%, 97.5% quantiles per parameter."""
        out = {}
        for j, name in enumerate(self.parameter_names):
            col = self.samples[:, j]
            q_lo, q_med, q_hi = np.quantile(col, [0.025, 0.5, 0.975])
            out[name] = {
                "mean": float(np.mean(col)),
                "sd": float(np.std(col, ddof=1)) if len(col) > 1 else 0.0,
                "q2.5": float(q_lo),
                "median": float(q_med),
                "q97.5": float(q_hi),
            }
        return out


class MetropolisSampler:
    """
    Random-walk (or independence) Metropolis-Hastings over a `Model`.

    Each chain owns an RNG stream spawned from the caller's RNG and adapts its
    own step size. Proposals with NaN / -inf log-probability, and proposals on
    which the model raises, are rejected.
    """

    def __init__(self, options: Optional[MetropolisOptions] = None, **overrides):
        self.options = replace(options or MetropolisOptions(), **overrides)
        self._validate()

    def _validate(self):
        o = self.options
        if not o.step_size > 0:
            raise ConfigurationError("step_size must be positive", {"step_size": o.step_size})
        if o.proposal_type not in PROPOSAL_TYPES:
            raise ConfigurationError("Unknown proposal type",
                                     {"proposal_type": o.proposal_type, "known": PROPOSAL_TYPES})
        if not 0.0 < o.target_acceptance_rate < 1.0:
            raise ConfigurationError("target_acceptance_rate must be in (0, 1)",
                                     {"target_acceptance_rate": o.target_acceptance_rate})
        if o.adaptation_window < 1:
            raise ConfigurationError("adaptation_window must be >= 1",
                                     {"adaptation_window": o.adaptation_window})

    # ------------------------------------------------------------------ #
    def sample(self, model: Model, num_samples: int = 1000, num_chains: int = 1,
               warmup: int = 1000, rng=None,
               progress_callback: Optional[Callable[[Dict], None]] = None) -> MCMCResult:
        if num_samples < 1 or num_chains < 1 or warmup < 0:
            raise ConfigurationError("num_samples and num_chains must be >= 1, warmup >= 0",
                                     {"num_samples": num_samples, "num_chains": num_chains,
                                      "warmup": warmup})
        if model.dimension() < 1:
            raise ConfigurationError("Model has no parameters")

        chain_rngs = as_rng(rng).spawn(num_chains)
        chains, log_probs, step_sizes = [], [], []
        num_errors = 0

        for c, chain_rng in enumerate(chain_rngs):
            samples, lps, step, errors = self._sample_chain(
                model, num_samples + warmup, warmup, chain_rng, c, progress_callback)
            chains.append(samples[warmup:])
            log_probs.append(lps[warmup:])
            step_sizes.append(step)
            num_errors += errors

        all_samples = np.concatenate(chains, axis=0)
        result = MCMCResult(
            samples=all_samples,
            chains=chains,
            log_probabilities=np.concatenate(log_probs),
            acceptance_rate=acceptance_rate(chains),
            effective_sample_size=effective_sample_size(all_samples),
            r_hat=r_hat(chains) if num_chains > 1 else None,
            step_sizes=step_sizes,
            parameter_names=list(model.parameter_names()),
            num_errors=num_errors,
        )

        if self.options.verbose:
            print(f"\nMetropolis-Hastings complete:")
            print(f"  Chains: {num_chains} x {num_samples} samples (warmup {warmup})")
            print(f"  Acceptance rate: {result.acceptance_rate:.3f}")
            print(f"  ESS (min over dims): {result.effective_sample_size:.1f}")
            if result.r_hat is not None:
                print(f"  R-hat (max over dims): {result.r_hat:.4f}")
            print(f"  Step sizes: {', '.join(f'{s:.4g}' for s in step_sizes)}")
            if num_errors:
                print(f"  Model errors (rejected): {num_errors}")
        return result

    # ------------------------------------------------------------------ #
    def _sample_chain(self, model: Model, total: int, warmup: int, rng, chain_index: int,
                      progress_callback) -> Tuple[np.ndarray, np.ndarray, float, int]:
        o = self.options
        step = float(o.step_size)
        initial = np.asarray(model.initial_values(), dtype=float)
        dim = len(initial)

        samples = np.empty((total, dim))
        log_probs = np.empty(total)
        errors = 0

        current = initial.copy()
        current_lp, failed = _safe_log_prob(model, current)
        errors += failed

        window_accepts = 0
        for i in range(total):
            proposal, log_q_ratio = self._propose(current, initial, step, rng)
            proposal_lp, failed = _safe_log_prob(model, proposal)
            errors += failed

            if _accept(proposal_lp, current_lp, log_q_ratio, rng):
                current = proposal
                current_lp = proposal_lp
                window_accepts += 1

            samples[i] = current
            log_probs[i] = current_lp

            if (i + 1) % o.adaptation_window == 0:
                if o.adapt_step_size and i < warmup / 2:
                    rate = window_accepts / o.adaptation_window
                    if rate < o.target_acceptance_rate - o.adaptation_tolerance:
                        step *= o.shrink_factor
                    elif rate > o.target_acceptance_rate + o.adaptation_tolerance:
                        step *= o.grow_factor
                window_accepts = 0
                if progress_callback is not None:
                    progress_callback({
                        "stage": "warmup" if i < warmup else "sampling",
                        "chain": chain_index,
                        "iteration": i + 1,
                        "total_iterations": total,
                        "progress": (i + 1) / total,
                        "step_size": step,
                    })

        return samples, log_probs, step, errors

    def _propose(self, current: np.ndarray, initial: np.ndarray, step: float,
                 rng) -> Tuple[np.ndarray, float]:
        """
        Returns (proposal, log q(current | proposal) - log q(proposal | current)).
        The correction vanishes for the symmetric random walk.
        """
        z = np.array([rng.normal() for _ in range(len(current))])
        if self.options.proposal_type == "random_walk":
            return current + step * z, 0.0

        # independence sampler centered on the initial point
        proposal = initial + step * z
        log_q_current = -0.5 * np.sum((current - initial) ** 2) / (step * step)
        log_q_proposal = -0.5 * np.sum(z * z)
        return proposal, float(log_q_current - log_q_proposal)


def _safe_log_prob(model: Model, params: np.ndarray) -> Tuple[float, int]:
    """(log p, 1 if the model raised else 0); a raising model reads as -inf."""
    try:
        return float(model.log_prob(params)), 0
    except Exception:
        return -math.inf, 1


def _accept(proposal_lp: float, current_lp: float, log_q_ratio: float, rng) -> bool:
    if math.isnan(proposal_lp) or proposal_lp == -math.inf:
        return False
    if current_lp == -math.inf or math.isnan(current_lp):
        return True  # leaving an infeasible start
    log_alpha = min(0.0, proposal_lp - current_lp + log_q_ratio)
    u = rng.uniform()
    log_u = math.log(u) if u > 0.0 else -math.inf
    return log_u < log_alpha
