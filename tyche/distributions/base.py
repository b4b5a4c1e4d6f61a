# tyche/distributions/base.py
from __future__ import annotations

import math
import numpy as np
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple, Union

from ..aad import RandomVariable, Graph
from ..aad.ops.arithmetic import _graph_of
from ..exceptions import ConfigurationError, GraphContractError
from ..numerics import as_rng

Param = Union[RandomVariable, float]


class Distribution(ABC):
    """
    Shared capability interface of the distribution variants.

    Parameters are plain numbers or handles. Results live in the graph of the
    handle parameters, the graph given at construction, or the graph of a
    handle `x`, in that order. When every operand is a plain number the
    density is evaluated eagerly and returned as a single constant on a
    private scratch graph, so repeated evaluation never grows a shared graph.

    Subclasses set `kind`, `support` and `closed` (whether each end of the
    support is attainable), and implement `_log_prob`, `_mean`, `_variance`
    and `_draw`.
    """

    kind: str = ""
    support: Tuple[float, float] = (-math.inf, math.inf)
    closed: Tuple[bool, bool] = (False, False)

    def __init__(self, graph: Optional[Graph] = None, **params: Param):
        self.params: Dict[str, Param] = params
        owner = _graph_of(*params.values())
        if graph is not None and owner is not None and owner is not graph:
            raise GraphContractError("Distribution parameters belong to a different graph",
                                     {"kind": self.kind})
        self.graph: Optional[Graph] = graph or owner
        self._validate()

    # ---------------- helpers ---------------- #
    def _value(self, name: str) -> float:
        p = self.params[name]
        return p.forward() if isinstance(p, RandomVariable) else float(p)

    def _graph_for(self, x=None) -> Optional[Graph]:
        if isinstance(x, RandomVariable):
            if self.graph is not None and x.graph is not self.graph:
                raise GraphContractError("Value belongs to a different graph", {"kind": self.kind})
            return x.graph
        return self.graph

    def _wrap(self, out, graph: Optional[Graph]) -> RandomVariable:
        if isinstance(out, RandomVariable):
            return out
        if graph is None:
            graph = Graph(name="scratch")
        return RandomVariable(graph.constant(float(out)))

    def _require_positive(self, *names: str):
        for name in names:
            p = self.params[name]
            if isinstance(p, RandomVariable):
                continue
            if not np.isfinite(p) or p <= 0:
                raise ConfigurationError(f"{self.kind}: {name} must be positive and finite",
                                         {name: p})

    def _require_finite(self, *names: str):
        for name in names:
            p = self.params[name]
            if not isinstance(p, RandomVariable) and not np.isfinite(p):
                raise ConfigurationError(f"{self.kind}: {name} must be finite", {name: p})

    def in_support(self, x: float) -> bool:
        lo, hi = self.support
        lo_ok = x >= lo if self.closed[0] else x > lo
        hi_ok = x <= hi if self.closed[1] else x < hi
        return lo_ok and hi_ok

    # ---------------- capability interface ---------------- #
    def log_prob(self, x) -> RandomVariable:
        """log density (mass) at `x`; a -inf constant outside the support."""
        graph = self._graph_for(x)
        if not self.in_support(float(x)):
            return self._wrap(-math.inf, graph)
        return self._wrap(self._log_prob(x), graph)

    def mean(self) -> RandomVariable:
        return self._wrap(self._mean(), self.graph)

    def variance(self) -> RandomVariable:
        return self._wrap(self._variance(), self.graph)

    def sample(self, rng=None, size: Optional[int] = None):
        """One draw (size=None) or an array of `size` draws at the current parameter values."""
        rng = as_rng(rng)
        if size is None:
            return self._draw(rng)
        return np.array([self._draw(rng) for _ in range(int(size))])

    def _validate(self):
        pass

    @abstractmethod
    def _log_prob(self, x):
        """log density at an in-support `x` (number or handle)."""

    @abstractmethod
    def _mean(self):
        pass

    @abstractmethod
    def _variance(self):
        pass

    @abstractmethod
    def _draw(self, rng) -> float:
        pass

    def __repr__(self):
        args = ", ".join(
            f"{k}={v.name or 'rv'}" if isinstance(v, RandomVariable) else f"{k}={v!r}"
            for k, v in self.params.items()
        )
        return f"{type(self).__name__}({args})"
