# tyche/aad/ops/arithmetic.py
import numbers

import numpy as np

from ...exceptions import GraphContractError
from ..core.var import RandomVariable


def _number(x) -> float:
    if isinstance(x, (numbers.Real, np.number)):
        return float(x)
    raise TypeError(f"Expected RandomVariable or real number, got {type(x)}")


def _graph_of(*operands):
    """Owning graph of the handle operands (None if all are plain numbers)."""
    graph = None
    for x in operands:
        if isinstance(x, RandomVariable):
            if graph is None:
                graph = x.graph
            elif x.graph is not graph:
                raise GraphContractError("Operands belong to different graphs")
    return graph


def _fold(f, *args) -> float:
    """All operands are numbers: evaluate eagerly, no node is recorded."""
    with np.errstate(all="ignore"):
        return float(f(*[_number(a) for a in args]))


def _unary(x, f, df, tag):
    """
    Generic unary primitive:
      - forward : out = f(a)
      - gradient: ∂out/∂a = df(a, out)
    """
    if not isinstance(x, RandomVariable):
        return _fold(f, x)
    node = x.graph.create_node(
        tag, [x.node],
        lambda v: f(v[0]),
        lambda g, v, out: (g * df(v[0], out),),
    )
    return RandomVariable(node)


def _binary(x, y, f, dfdx, dfdy, tag):
    """
    Generic binary primitive producing exactly one node.

    dfdx / dfdy take (a, b, out). A plain-number operand is captured by the
    node's closures instead of becoming an input.
    """
    graph = _graph_of(x, y)
    if graph is None:
        return _fold(f, x, y)

    if isinstance(x, RandomVariable) and isinstance(y, RandomVariable):
        node = graph.create_node(
            tag, [x.node, y.node],
            lambda v: f(v[0], v[1]),
            lambda g, v, out: (g * dfdx(v[0], v[1], out), g * dfdy(v[0], v[1], out)),
        )
    elif isinstance(x, RandomVariable):
        b = _number(y)
        node = graph.create_node(
            tag, [x.node],
            lambda v: f(v[0], b),
            lambda g, v, out: (g * dfdx(v[0], b, out),),
        )
    else:
        a = _number(x)
        node = graph.create_node(
            tag, [y.node],
            lambda v: f(a, v[0]),
            lambda g, v, out: (g * dfdy(a, v[0], out),),
        )
    return RandomVariable(node)


def add(x, y):      return _binary(x, y, np.add,      lambda a, b, o: 1.0, lambda a, b, o: 1.0,    "add")
def subtract(x, y): return _binary(x, y, np.subtract, lambda a, b, o: 1.0, lambda a, b, o: -1.0,   "sub")
def multiply(x, y): return _binary(x, y, np.multiply, lambda a, b, o: b,   lambda a, b, o: a,      "mul")
def divide(x, y):   return _binary(x, y, np.divide,   lambda a, b, o: 1.0 / b, lambda a, b, o: -o / b, "div")


def neg(x):
    return _unary(x, np.negative, lambda a, o: -1.0, "neg")


def _dpow_dbase(a, b, out):
    if b == 0.0:
        return 0.0
    return b * np.power(a, b - 1.0)


def _dpow_dexp(a, b, out):
    # x^y * log(x); the exponent direction is undefined for x <= 0
    return out * np.log(a) if a > 0 else 0.0


def pow(x, y):
    """
    Power x ** y; `y` may be a number or a handle.

    Local partials:
      ∂out/∂x = y * x^(y-1)
      ∂out/∂y = x^y * log(x)   (taken as 0 for x <= 0)
    """
    return _binary(x, y, np.power, _dpow_dbase, _dpow_dexp, "pow")


def add_n(terms):
    """
    Sum of many operands as a single node (one input per handle).

    Keeps long log-likelihood sums flat instead of building a chain of
    binary adds.
    """
    terms = list(terms)
    handles = [t for t in terms if isinstance(t, RandomVariable)]
    offset = sum(_number(t) for t in terms if not isinstance(t, RandomVariable))
    graph = _graph_of(*handles)
    if graph is None:
        return _fold(lambda: offset)
    node = graph.create_node(
        "add_n", [h.node for h in handles],
        lambda v: offset + float(np.sum(v)),
        lambda g, v, out: [g] * len(v),
    )
    return RandomVariable(node)
