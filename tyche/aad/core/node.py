# tyche/aad/core/node.py
from __future__ import annotations

import numpy as np
from typing import Any, Callable, List, Optional, Sequence

ForwardFn = Callable[[List[float]], float]
# grad_fn(upstream, input_values, out_value) -> one gradient per input
GradFn = Callable[[float, List[float], float], Sequence[float]]


class Node:
    """
    One scalar operation recorded in a Graph.

    Attributes
    ----------
    graph : Graph
        Owning graph. Nodes never move between graphs.
    op_tag : str
        Debug tag (e.g., "add", "log_beta").
    inputs : tuple[Node, ...]
        Ordered input nodes; shared sub-expressions appear once and are
        referenced by every consumer.
    forward_fn : callable
        Pure function of the inputs' current values.
    grad_fn : callable
        (upstream, input_values, out_value) -> gradients, one per input.
    index : int
        Position in `graph.nodes` (creation order, so inputs always precede
        their consumers).
    """

    def __init__(self, graph, op_tag: str, inputs: Sequence["Node"],
                 forward_fn: ForwardFn, grad_fn: Optional[GradFn],
                 name: Optional[str] = None):
        self.graph = graph
        self.op_tag = op_tag
        self.inputs = tuple(inputs)
        self.forward_fn = forward_fn
        self.grad_fn = grad_fn
        self.name = name
        self.index = -1
        self._value = np.nan
        self._epoch = -1

    # ---------------- forward ---------------- #
    @property
    def is_fresh(self) -> bool:
        return self._epoch == self.graph.epoch

    @property
    def cached_value(self) -> float:
        """Last computed forward value (may be stale; see `is_fresh`)."""
        return self._value

    def forward(self) -> float:
        """
        Evaluate this node, reusing every cached value from the current epoch.

        Stale ancestors are evaluated in topological order (iteratively, so
        long likelihood chains do not hit the recursion limit).
        """
        if self.is_fresh:
            return self._value
        epoch = self.graph.epoch
        for node in topological_order(self, skip=lambda n: n._epoch == epoch):
            node._evaluate()
            node._epoch = epoch
        return self._value

    def _evaluate(self):
        vals = [inp._value for inp in self.inputs]
        with np.errstate(all="ignore"):
            self._value = float(self.forward_fn(vals))

    def backward(self, seed: float = 1.0, tape=None):
        from .engine import backward
        return backward(self, seed=seed, tape=tape)

    def __repr__(self):
        label = f", name={self.name!r}" if self.name else ""
        return f"Node({self.op_tag!r}, index={self.index}{label})"


class ParameterNode(Node):
    """
    Leaf node holding a mutable scalar.

    Parameters live in an indexed arena owned by the graph (`slot`); gradient
    descent, samplers and optimizers all write into slots and re-evaluate the
    same graph instead of rebuilding it.
    """

    def __init__(self, graph, value: float, name: Optional[str] = None):
        super().__init__(graph, "parameter", (), self._read, None, name=name)
        self._stored = float(value)
        self.slot = -1

    def _read(self, _vals):
        return self._stored

    @property
    def value(self) -> float:
        return self._stored

    def set_value(self, value: float):
        """Write a new value; every cached forward value in the graph goes stale."""
        self._stored = float(value)
        self.graph.invalidate()

    def update_with_gradient(self, gradient: float, learning_rate: float):
        self.set_value(self._stored - learning_rate * gradient)

    def __repr__(self):
        return f"ParameterNode({self.name!r}, slot={self.slot}, value={self._stored!r})"


class ConstantNode(Node):
    """Leaf node with a fixed value."""

    def __init__(self, graph, value: float):
        v = float(value)
        super().__init__(graph, "const", (), lambda _vals: v, None)


def topological_order(root: Node, skip: Optional[Callable[[Node], bool]] = None) -> List[Node]:
    """
    Nodes reachable from `root` (inputs first, root last).

    Iterative DFS. Nodes for which `skip(node)` holds are neither returned nor
    descended into.
    """
    order: List[Node] = []
    visited = set()
    stack: List[Any] = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded:
            order.append(node)
            continue
        if id(node) in visited:
            continue
        visited.add(id(node))
        if skip is not None and skip(node):
            continue
        stack.append((node, True))
        for inp in reversed(node.inputs):
            if id(inp) not in visited:
                stack.append((inp, False))
    return order
