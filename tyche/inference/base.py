# tyche/inference/base.py
"""
Shared types for the EM / VI engines: options, input, diagnostics, results,
and the engine base class with its convergence bookkeeping.
"""

from __future__ import annotations

import math
import time
import warnings
import numpy as np
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from ..exceptions import ConfigurationError

# an ELBO drop larger than this is reported as a numerical problem
MONOTONICITY_SLACK = 1e-10


@dataclass
class FitOptions:
    """Configuration shared by all EM / VI engines."""
    max_iterations: int = 100
    tolerance: float = 1e-6  # on |ELBO_t - ELBO_{t-1}|

    # M-step strategy for mixtures: closed form (True) or gradient ascent on the graph
    use_fast_m_step: bool = True
    learning_rate: float = 0.05
    gradient_steps: int = 10  # gradient updates per M-step

    seed: Optional[int] = None
    verbose: bool = False
    progress_callback: Optional[Callable[[Dict[str, Any]], None]] = None


@dataclass
class DataInput:
    """
    Observations plus model configuration.

    `data` is a sequence of numbers, or a summary mapping such as
    {'successes': 7, 'trials': 10}. `config` may carry 'num_components',
    prior hyperparameters, ...
    """
    data: Union[Sequence[float], Mapping[str, float], np.ndarray]
    config: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Diagnostics:
    converged: bool
    iterations: int
    final_elbo: float
    elbo_history: List[float] = field(default_factory=list)
    runtime: float = 0.0  # seconds
    model_type: str = ""


@dataclass
class InferenceResult:
    posterior: Any
    diagnostics: Diagnostics


class Posterior(ABC):
    """Fitted posterior (or posterior predictive) returned by an engine."""

    @abstractmethod
    def mean(self) -> float:
        ...

    @abstractmethod
    def variance(self) -> float:
        ...

    @abstractmethod
    def sample(self, n: int = 1, rng=None) -> np.ndarray:
        ...

    @abstractmethod
    def log_pdf(self, x):
        ...

    def credible_interval(self, level: float = 0.95, rng=None, n: int = 10000):
        """Equal-tailed interval from `n` posterior draws."""
        if not 0.0 < level < 1.0:
            raise ConfigurationError("level must be in (0, 1)", {"level": level})
        draws = self.sample(n, rng)
        alpha = (1.0 - level) / 2.0
        lo, hi = np.quantile(draws, [alpha, 1.0 - alpha])
        return float(lo), float(hi)


class InferenceEngine(ABC):
    """Base class: `fit(data_input, options) -> InferenceResult`."""

    model_type: str = ""

    def __init__(self, options: Optional[FitOptions] = None):
        self.options = options or FitOptions()

    @abstractmethod
    def fit(self, data_input: DataInput, options: Optional[FitOptions] = None) -> InferenceResult:
        ...

    # ---------------- helpers for subclasses ---------------- #
    def _resolve(self, options: Optional[FitOptions]) -> FitOptions:
        opts = options or self.options
        if opts.max_iterations < 1:
            raise ConfigurationError("max_iterations must be >= 1",
                                     {"max_iterations": opts.max_iterations})
        if not opts.tolerance > 0:
            raise ConfigurationError("tolerance must be positive", {"tolerance": opts.tolerance})
        return opts

    @staticmethod
    def _values(data_input: DataInput) -> np.ndarray:
        """Observation vector; empty or non-finite input is a configuration error."""
        data = data_input.data
        if isinstance(data, Mapping):
            raise ConfigurationError("Expected a sequence of observations, got a summary mapping",
                                     {"keys": sorted(data)})
        values = np.asarray(list(data), dtype=float)
        if values.size == 0:
            raise ConfigurationError("Data cannot be empty")
        if not np.all(np.isfinite(values)):
            raise ConfigurationError("Data contains NaN or infinite values")
        return values

    @staticmethod
    def _check_step(current: float, previous: float) -> None:
        """Warn when the monitored objective went down."""
        if current < previous - MONOTONICITY_SLACK:
            warnings.warn(
                f"ELBO decreased by {previous - current:.3e}; possible numerical issues",
                RuntimeWarning,
                stacklevel=3,
            )

    def _progress(self, opts: FitOptions, stage: str, iteration: int, objective: float):
        if opts.progress_callback is not None:
            opts.progress_callback({
                "stage": stage,
                "iteration": iteration,
                "total_iterations": opts.max_iterations,
                "progress": iteration / opts.max_iterations,
                "elbo": objective,
            })
        if opts.verbose and (iteration % 10 == 0 or iteration == 1):
            print(f"  Iteration {iteration}: objective = {objective:.6e}")

    def _diagnostics(self, opts: FitOptions, converged: bool, iterations: int,
                     history: List[float], started: float) -> Diagnostics:
        final = history[-1] if history else -math.inf
        diag = Diagnostics(
            converged=converged,
            iterations=iterations,
            final_elbo=float(final),
            elbo_history=[float(h) for h in history],
            runtime=time.perf_counter() - started,
            model_type=self.model_type,
        )
        if opts.verbose:
            status = "converged" if converged else "max iterations reached"
            print(f"\n{type(self).__name__} complete:")
            print(f"  Status: {status}")
            print(f"  Iterations: {iterations}")
            print(f"  Final objective: {diag.final_elbo:.6e}")
            print(f"  Runtime: {diag.runtime:.3f}s")
        return diag
