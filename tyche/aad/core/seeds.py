# tyche/aad/core/seeds.py

#-----------------------------------------------------------------------------
# We "plant" a seed (dy/dy = 1) at the scalar output and let gradients grow
# backwards through a private graph.
#-----------------------------------------------------------------------------
from __future__ import annotations
from typing import Any, Callable, Dict, Iterable, List

from .graph import Graph
from .var import RandomVariable
from .engine import backward


def value(x: Any) -> Any:
    """Forward value of a handle; plain numbers pass through unchanged."""
    return x.forward() if isinstance(x, RandomVariable) else x


def _as_output(y, graph: Graph) -> RandomVariable:
    return y if isinstance(y, RandomVariable) else RandomVariable(graph.constant(y))


def grad(f: Callable[[RandomVariable], RandomVariable], x0: float) -> float:
    """
    Derivative of a scalar function y = f(x) at x0.
    Builds f on a fresh graph and runs one reverse pass.
    """
    graph = Graph(name="grad")
    x = RandomVariable(graph.create_parameter(x0, "x"))
    y = _as_output(f(x), graph)
    return backward(y.node).get(x.node)


def grads(f: Callable[[Dict[str, RandomVariable]], RandomVariable],
          inputs: Dict[str, float]) -> Dict[str, float]:
    """
    Gradient of y = f(vars) w.r.t. all named inputs in ONE reverse pass.

    Example
    -------
    grads(lambda v: v["a"] * v["b"], {"a": 2.0, "b": 3.0}) -> {"a": 3.0, "b": 2.0}
    """
    graph = Graph(name="grads")
    xs = {k: RandomVariable(graph.create_parameter(v, k)) for k, v in inputs.items()}
    y = _as_output(f(xs), graph)
    tape = backward(y.node)
    return {k: tape.get(xs[k].node) for k in inputs.keys()}


def grads_list(f: Callable[[List[RandomVariable]], RandomVariable],
               x0_list: Iterable[float]) -> List[float]:
    """List form of grads(): grads_list(lambda xs: xs[0]*xs[0] + 3*xs[1], [2.0, 4.0]) -> [4.0, 3.0]"""
    graph = Graph(name="grads")
    xs = [RandomVariable(graph.create_parameter(v, f"x{i}")) for i, v in enumerate(x0_list)]
    y = _as_output(f(xs), graph)
    tape = backward(y.node)
    return [tape.get(x.node) for x in xs]
