# tyche/samplers/models.py
from __future__ import annotations

import numpy as np
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence

from ..aad import gradients
from ..aad.core.node import ParameterNode


class Model(ABC):
    """Capability a sampler needs from a target density."""

    @abstractmethod
    def log_prob(self, params: np.ndarray) -> float:
        ...

    @abstractmethod
    def dimension(self) -> int:
        ...

    @abstractmethod
    def initial_values(self) -> np.ndarray:
        ...

    def parameter_names(self) -> List[str]:
        return [f"theta[{i}]" for i in range(self.dimension())]


class FunctionModel(Model):
    """Plain Python log-density `f(params) -> float`."""

    def __init__(self, log_prob: Callable[[np.ndarray], float], initial_values: Sequence[float],
                 names: Optional[Sequence[str]] = None):
        self._f = log_prob
        self._init = np.asarray(initial_values, dtype=float)
        self._names = list(names) if names is not None else None

    def log_prob(self, params):
        return float(self._f(np.asarray(params, dtype=float)))

    def dimension(self):
        return len(self._init)

    def initial_values(self):
        return self._init.copy()

    def parameter_names(self):
        return self._names or super().parameter_names()


class GraphModel(Model):
    """
    Log-density expressed as a graph node over parameter slots.

    Every evaluation writes the proposal into the slots and re-evaluates the
    same graph; no nodes are created per step. Slot values are left at the
    last evaluated point.

    Parameters
    ----------
    log_density : RandomVariable | Node
        Root of the log-density.
    parameters : sequence of parameter handles/nodes, optional
        Slots to sample (default: every parameter of the graph, in slot order).
    """

    def __init__(self, log_density, parameters: Optional[Sequence] = None):
        self.root = getattr(log_density, "node", log_density)
        self.graph = self.root.graph
        if parameters is None:
            self.slots: List[ParameterNode] = list(self.graph.parameters)
        else:
            self.slots = [getattr(p, "node", p) for p in parameters]
        self._init = np.array([p.value for p in self.slots], dtype=float)

    def log_prob(self, params):
        self.graph.set_parameter_values(params, slots=self.slots)
        return self.root.forward()

    def gradient(self, params) -> np.ndarray:
        self.graph.set_parameter_values(params, slots=self.slots)
        return gradients(self.root, self.slots)

    def dimension(self):
        return len(self.slots)

    def initial_values(self):
        return self._init.copy()

    def parameter_names(self):
        return [p.name for p in self.slots]
