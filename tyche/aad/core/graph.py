# tyche/aad/core/graph.py
from __future__ import annotations

import numpy as np
from contextlib import contextmanager
from typing import Dict, Iterable, List, Optional, Sequence

from ...exceptions import GraphContractError
from .node import ConstantNode, Node, ParameterNode


class Graph:
    """
    Owner of every node created for one analysis session.

    Cached forward values are tagged with the graph's `epoch`; writing a
    parameter advances the epoch, which invalidates all caches at once.
    """

    _current: Optional["Graph"] = None

    def __init__(self, name: Optional[str] = None):
        self.name = name
        self.nodes: List[Node] = []
        self.parameters: List[ParameterNode] = []
        self._by_name: Dict[str, ParameterNode] = {}
        self.epoch = 0

    # ---------------- construction ---------------- #
    def _register(self, node: Node) -> Node:
        node.index = len(self.nodes)
        self.nodes.append(node)
        return node

    def create_node(self, op_tag: str, inputs: Sequence[Node], forward_fn, grad_fn,
                    name: Optional[str] = None) -> Node:
        for inp in inputs:
            if inp.graph is not self:
                raise GraphContractError(
                    "Input node belongs to a different graph",
                    {"op": op_tag, "input": repr(inp)},
                )
        return self._register(Node(self, op_tag, inputs, forward_fn, grad_fn, name=name))

    def create_parameter(self, value: float, name: Optional[str] = None) -> ParameterNode:
        """
        New parameter slot. A name already present in the graph returns the
        existing slot (with its value overwritten), so re-running model code
        against the same graph does not duplicate parameters.
        """
        if name is not None and name in self._by_name:
            param = self._by_name[name]
            param.set_value(value)
            return param
        param = ParameterNode(self, value, name=name)
        param.slot = len(self.parameters)
        if name is None:
            param.name = f"param_{param.slot}"
        self.parameters.append(param)
        self._by_name[param.name] = param
        self._register(param)
        return param

    def constant(self, value: float) -> ConstantNode:
        return self._register(ConstantNode(self, value))

    def parameter(self, name: str) -> ParameterNode:
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"No parameter named {name!r} in graph") from None

    # ---------------- parameter arena ---------------- #
    @property
    def parameter_names(self) -> List[str]:
        return [p.name for p in self.parameters]

    def parameter_values(self) -> np.ndarray:
        return np.array([p.value for p in self.parameters], dtype=float)

    def set_parameter_values(self, values: Iterable[float],
                             slots: Optional[Sequence[ParameterNode]] = None):
        """Write a whole vector into the slots (all parameters by default)."""
        targets = self.parameters if slots is None else list(slots)
        values = np.asarray(list(values), dtype=float)
        if values.shape != (len(targets),):
            raise GraphContractError(
                "Parameter vector length does not match slot count",
                {"expected": len(targets), "got": values.shape},
            )
        for p, v in zip(targets, values):
            p._stored = float(v)
        self.invalidate()

    def invalidate(self):
        self.epoch += 1

    def reset(self):
        """Drop every node and parameter (start a new session on this object)."""
        self.nodes.clear()
        self.parameters.clear()
        self._by_name.clear()
        self.invalidate()

    # ---------------- gradients ---------------- #
    def compute_gradients(self, loss: Node) -> Dict[str, float]:
        """{parameter name: d loss / d parameter} for every slot in the graph."""
        from .engine import backward
        loss = getattr(loss, "node", loss)
        tape = backward(loss)
        return {p.name: tape.get(p) for p in self.parameters}

    def gradient_step(self, loss: Node, learning_rate: float) -> Dict[str, float]:
        """One descent step on `loss` over all slots; returns the gradients used."""
        grads = self.compute_gradients(loss)
        for p in self.parameters:
            p._stored -= learning_rate * grads[p.name]
        self.invalidate()
        return grads

    # ---------------- default context (API edge only) ---------------- #
    @classmethod
    def current(cls) -> "Graph":
        if cls._current is None:
            cls._current = Graph(name="default")
        return cls._current

    @classmethod
    def set_current(cls, graph: Optional["Graph"]):
        cls._current = graph

    def __len__(self):
        return len(self.nodes)

    def __repr__(self):
        return f"Graph(name={self.name!r}, nodes={len(self.nodes)}, parameters={len(self.parameters)})"


@contextmanager
def use_graph(graph: Optional[Graph] = None):
    """
    Temporarily make `graph` (or a fresh one) the default graph:

        with use_graph() as g:
            x = RandomVariable.parameter(2.0, "x")
            y = (x * x).log()
    """
    prev = Graph._current
    g = graph if graph is not None else Graph()
    Graph.set_current(g)
    try:
        yield g
    finally:
        Graph.set_current(prev)
