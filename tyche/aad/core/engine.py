# tyche/aad/core/engine.py
from __future__ import annotations

import numpy as np
from typing import Dict, Iterable, List, Optional, Sequence

from ...exceptions import GraphContractError
from .node import Node, ParameterNode, topological_order


class GradientTape:
    """
    Gradient accumulation map keyed by node identity.

    A tape can be handed to several backward passes; contributions add up.
    """

    def __init__(self):
        self._grads: Dict[int, float] = {}
        self._nodes: Dict[int, Node] = {}

    def accumulate(self, node: Node, g: float):
        key = id(node)
        self._grads[key] = self._grads.get(key, 0.0) + g
        self._nodes[key] = node

    def get(self, node, default: float = 0.0) -> float:
        node = getattr(node, "node", node)
        return self._grads.get(id(node), default)

    def __contains__(self, node):
        return id(getattr(node, "node", node)) in self._grads

    def items(self):
        for key, g in self._grads.items():
            yield self._nodes[key], g

    def __len__(self):
        return len(self._grads)


def backward(root: Node, seed: float = 1.0, tape: Optional[GradientTape] = None) -> GradientTape:
    """
    One reverse sweep from `root`.

    Args:
        root: node to differentiate (a RandomVariable handle is accepted too).
        seed: d(root)/d(root), usually 1.0.
        tape: accumulate into an existing tape instead of a new one.

    Notes:
        - A stale or never-evaluated root is forwarded first.
        - Each reachable node's grad_fn is called exactly once, with the
          upstream gradient summed over all of its consumers.
    """
    root = getattr(root, "node", root)
    tape = GradientTape() if tape is None else tape
    root.forward()

    order = topological_order(root)
    upstream: Dict[int, float] = {id(root): float(seed)}
    tape.accumulate(root, float(seed))

    for node in reversed(order):
        g = upstream.get(id(node), 0.0)
        if not node.inputs or g == 0.0:
            continue  # leaf, or nothing to propagate
        vals = [inp.cached_value for inp in node.inputs]
        with np.errstate(all="ignore"):
            local = node.grad_fn(g, vals, node.cached_value)
        local = list(local)
        if len(local) != len(node.inputs):
            raise GraphContractError(
                "grad_fn returned the wrong number of gradients",
                {"op": node.op_tag, "inputs": len(node.inputs), "gradients": len(local)},
            )
        for inp, gi in zip(node.inputs, local):
            gi = float(gi)
            upstream[id(inp)] = upstream.get(id(inp), 0.0) + gi
            tape.accumulate(inp, gi)
    return tape


def gradients(root: Node, wrt: Sequence[Node]) -> np.ndarray:
    """Vector of d(root)/d(w) for each w in `wrt` (zero where unreachable)."""
    tape = backward(root)
    return np.array([tape.get(w) for w in wrt], dtype=float)


def gradient_step(root: Node, parameters: Iterable[ParameterNode], learning_rate: float) -> np.ndarray:
    """Descend `root` by one step over the given slots; returns the gradient used."""
    params = list(parameters)
    g = gradients(root, params)
    graph = getattr(root, "node", root).graph
    graph.set_parameter_values(
        [p.value - learning_rate * gi for p, gi in zip(params, g)], slots=params
    )
    return g


def finite_difference(root: Node, parameters: Sequence[ParameterNode], h: float = 1e-6) -> np.ndarray:
    """
    Centered bump-and-revalue estimate of d(root)/d(p), restoring every slot.
    Used to cross-check analytic gradient rules.
    """
    root = getattr(root, "node", root)
    out: List[float] = []
    for p in parameters:
        base = p.value
        p.set_value(base + h)
        up = root.forward()
        p.set_value(base - h)
        down = root.forward()
        p.set_value(base)
        out.append((up - down) / (2.0 * h))
    return np.array(out, dtype=float)
