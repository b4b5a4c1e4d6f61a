# tyche/aad/core/var.py
from __future__ import annotations

from typing import Optional, Union

from .graph import Graph
from .node import Node


class RandomVariable:
    """
    Differentiable scalar handle over one graph node.

    Attributes
    ----------
    node : Node
        The wrapped node.
    graph : Graph
        The node's owning graph; results of operations land in the same graph.

    Arithmetic with plain numbers folds the number into the operation's node
    (no separate constant node is created).
    """

    __array_priority__ = 1000  # numpy scalars on the left defer to our __radd__ etc.

    def __init__(self, node: Node):
        if not isinstance(node, Node):
            raise TypeError(f"RandomVariable wraps a Node, got {type(node)}")
        self.node = node
        self.graph = node.graph

    # ---------------- factories (API edge: default graph if none given) ---------------- #
    @staticmethod
    def constant(value: float, graph: Optional[Graph] = None) -> "RandomVariable":
        g = graph if graph is not None else Graph.current()
        return RandomVariable(g.constant(value))

    @staticmethod
    def parameter(value: float, name: Optional[str] = None,
                  graph: Optional[Graph] = None) -> "RandomVariable":
        g = graph if graph is not None else Graph.current()
        return RandomVariable(g.create_parameter(value, name))

    # ---------------- evaluation ---------------- #
    def forward(self) -> float:
        return self.node.forward()

    @property
    def value(self) -> float:
        return self.node.forward()

    def __float__(self):
        return float(self.node.forward())

    def backward(self, seed: float = 1.0, tape=None):
        from .engine import backward
        return backward(self.node, seed=seed, tape=tape)

    @property
    def name(self) -> Optional[str]:
        return self.node.name

    def set_value(self, value: float):
        """Only valid for parameter handles."""
        if not hasattr(self.node, "set_value"):
            raise TypeError(f"{self.node.op_tag!r} node is not a parameter")
        self.node.set_value(value)

    def __repr__(self):
        v = self.node.cached_value if self.node.is_fresh else "?"
        return f"RandomVariable({self.node.op_tag}, value={v}, name={self.name!r})"

    # ---------------- operations ---------------- #
    def add(self, other):
        from ..ops.arithmetic import add
        return add(self, other)

    def subtract(self, other):
        from ..ops.arithmetic import subtract
        return subtract(self, other)

    def multiply(self, other):
        from ..ops.arithmetic import multiply
        return multiply(self, other)

    def divide(self, other):
        from ..ops.arithmetic import divide
        return divide(self, other)

    def pow(self, exponent):
        from ..ops.arithmetic import pow
        return pow(self, exponent)

    def neg(self):
        from ..ops.arithmetic import neg
        return neg(self)

    def log(self):
        from ..ops.transcendental import log
        return log(self)

    def exp(self):
        from ..ops.transcendental import exp
        return exp(self)

    def sqrt(self):
        from ..ops.transcendental import sqrt
        return sqrt(self)

    def sigmoid(self):
        from ..ops.transcendental import sigmoid
        return sigmoid(self)

    def softplus(self):
        from ..ops.transcendental import softplus
        return softplus(self)

    def log1p(self):
        from ..ops.transcendental import log1p
        return log1p(self)

    # Python operators
    def __add__(self, other):
        return self.add(other)

    def __sub__(self, other):
        return self.subtract(other)

    def __mul__(self, other):
        return self.multiply(other)

    def __truediv__(self, other):
        return self.divide(other)

    def __pow__(self, other):
        return self.pow(other)

    def __neg__(self):
        return self.neg()

    def __radd__(self, other):
        from ..ops.arithmetic import add
        return add(other, self)

    def __rsub__(self, other):
        from ..ops.arithmetic import subtract
        return subtract(other, self)

    def __rmul__(self, other):
        from ..ops.arithmetic import multiply
        return multiply(other, self)

    def __rtruediv__(self, other):
        from ..ops.arithmetic import divide
        return divide(other, self)

    def __rpow__(self, other):
        from ..ops.arithmetic import pow
        return pow(other, self)


Operand = Union[RandomVariable, float, int]
