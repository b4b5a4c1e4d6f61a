# tyche/optim/adam.py
"""
Adam optimizer (Kingma & Ba, 2014) with gradient-norm clipping.

Works on plain parameter vectors; `minimize_graph` runs it directly on the
parameter slots of an AD graph.
"""

from __future__ import annotations

import numpy as np
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from ..exceptions import ConfigurationError


@dataclass
class AdamOptions:
    learning_rate: float = 0.001
    beta1: float = 0.9      # first-moment decay
    beta2: float = 0.999    # second-moment decay
    epsilon: float = 1e-8
    max_iterations: int = 1000
    tolerance: float = 1e-6  # on the parameter change norm
    gradient_clip: float = 10.0


@dataclass
class AdamResult:
    params: np.ndarray
    value: float
    iterations: int
    converged: bool


class AdamOptimizer:
    def __init__(self, options: Optional[AdamOptions] = None):
        self.options = options or AdamOptions()
        if self.options.learning_rate <= 0:
            raise ConfigurationError("learning_rate must be positive",
                                     {"learning_rate": self.options.learning_rate})
        self.reset()

    def reset(self):
        self.m: Optional[np.ndarray] = None
        self.v: Optional[np.ndarray] = None
        self.t = 0

    def clip(self, gradient: np.ndarray) -> np.ndarray:
        norm = float(np.linalg.norm(gradient))
        if norm > self.options.gradient_clip:
            return gradient * (self.options.gradient_clip / norm)
        return gradient

    def direction(self, gradient: Sequence[float]) -> np.ndarray:
        """
        Advance the moment estimates with `gradient` and return the
        bias-corrected update (to be subtracted from the parameters).
        """
        o = self.options
        g = self.clip(np.asarray(gradient, dtype=float))
        if self.m is None:
            self.m = np.zeros_like(g)
            self.v = np.zeros_like(g)
        self.t += 1
        self.m = o.beta1 * self.m + (1.0 - o.beta1) * g
        self.v = o.beta2 * self.v + (1.0 - o.beta2) * g * g
        m_hat = self.m / (1.0 - o.beta1 ** self.t)
        v_hat = self.v / (1.0 - o.beta2 ** self.t)
        return o.learning_rate * m_hat / (np.sqrt(v_hat) + o.epsilon)

    def step(self, params: Sequence[float], gradient: Sequence[float]) -> np.ndarray:
        """One descent step: params - lr * m_hat / (sqrt(v_hat) + eps)."""
        return np.asarray(params, dtype=float) - self.direction(gradient)

    def minimize(self, objective: Callable[[np.ndarray], float],
                 gradient: Callable[[np.ndarray], np.ndarray],
                 x0: Sequence[float]) -> AdamResult:
        self.reset()
        x = np.asarray(x0, dtype=float)
        converged = False
        it = 0
        for it in range(1, self.options.max_iterations + 1):
            x_new = self.step(x, gradient(x))
            change = float(np.linalg.norm(x_new - x))
            x = x_new
            if change < self.options.tolerance:
                converged = True
                break
        return AdamResult(params=x, value=float(objective(x)), iterations=it, converged=converged)

    def minimize_graph(self, loss, parameters: Optional[Sequence] = None) -> AdamResult:
        """Minimize a graph node over its parameter slots (all slots by default)."""
        from ..aad import gradients

        root = getattr(loss, "node", loss)
        graph = root.graph
        slots = list(graph.parameters) if parameters is None else [getattr(p, "node", p) for p in parameters]

        def objective(x):
            graph.set_parameter_values(x, slots=slots)
            return root.forward()

        def grad(x):
            graph.set_parameter_values(x, slots=slots)
            return gradients(root, slots)

        result = self.minimize(objective, grad, [p.value for p in slots])
        graph.set_parameter_values(result.params, slots=slots)
        return result
