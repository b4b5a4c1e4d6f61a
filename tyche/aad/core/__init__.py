# tyche/aad/core/__init__.py

"""
Core public API of the AD graph.

Exports:
    Graph, use_graph    : Node owner / default-graph context manager.
    Node, ParameterNode : Graph nodes; parameters are indexed slots.
    RandomVariable      : Differentiable scalar handle with operator overloading.
    GradientTape        : Gradient accumulation map filled by `backward`.
    backward            : One reverse sweep from a root node.
    gradients           : d(root)/d(w) for a list of nodes.
    gradient_step       : One descent step over a set of parameter slots.
    finite_difference   : Centered bump-and-revalue gradient estimate.
    grad, grads, value  : Convenience wrappers on private graphs.
"""

from .node import Node, ParameterNode, ConstantNode, topological_order
from .graph import Graph, use_graph
from .var import RandomVariable
from .engine import GradientTape, backward, gradients, gradient_step, finite_difference
from .seeds import grad, grads, grads_list, value
from .graph_utils import get_graph_stats, print_graph_summary

__all__ = [
    "Node", "ParameterNode", "ConstantNode", "topological_order",
    "Graph", "use_graph",
    "RandomVariable",
    "GradientTape", "backward", "gradients", "gradient_step", "finite_difference",
    "grad", "grads", "grads_list", "value",
    "get_graph_stats", "print_graph_summary",
]
