"""
Graph inspection helpers: node/edge counts, fan-in/fan-out and operator
breakdown of a Graph.
"""

import numpy as np
from typing import Dict, List
from collections import Counter


def _fan_outs(graph) -> List[int]:
    fan_outs = [0] * len(graph.nodes)
    for node in graph.nodes:
        for inp in node.inputs:
            if 0 <= inp.index < len(fan_outs):
                fan_outs[inp.index] += 1
    return fan_outs


def get_graph_stats(graph) -> Dict:
    """Statistics of a graph without printing anything."""
    if not graph.nodes:
        return {
            'nodes': 0,
            'edges': 0,
            'parameters': 0,
            'max_fan_in': 0,
            'avg_fan_in': 0.0,
            'max_fan_out': 0,
            'avg_fan_out': 0.0,
            'operations': {}
        }

    fan_ins = [len(node.inputs) for node in graph.nodes]
    fan_outs = _fan_outs(graph)
    op_counter = Counter(node.op_tag for node in graph.nodes)

    return {
        'nodes': len(graph.nodes),
        'edges': int(sum(fan_ins)),
        'parameters': len(graph.parameters),
        'max_fan_in': max(fan_ins),
        'avg_fan_in': float(np.mean(fan_ins)),
        'max_fan_out': max(fan_outs),
        'avg_fan_out': float(np.mean(fan_outs)),
        'operations': dict(op_counter)
    }


def print_graph_summary(graph, detailed: bool = False) -> Dict:
    """
    Print a summary of the graph and return the same statistics.

    Args:
        graph: Graph instance
        detailed: also list every node (only for graphs of <= 100 nodes)
    """
    if not graph.nodes:
        print("Empty computation graph")
        return get_graph_stats(graph)

    stats = get_graph_stats(graph)
    n_nodes = stats['nodes']

    print("\n" + "="*70)
    print("COMPUTATION GRAPH SUMMARY")
    print("="*70)
    print(f"Total nodes:        {n_nodes:,}")
    print(f"Total edges:        {stats['edges']:,}")
    print(f"Parameters:         {stats['parameters']:,}")
    print(f"Max fan-in:         {stats['max_fan_in']}")
    print(f"Avg fan-in:         {stats['avg_fan_in']:.2f}")
    print(f"Max fan-out:        {stats['max_fan_out']}")
    print(f"Avg fan-out:        {stats['avg_fan_out']:.2f}")
    print()
    print("Operation breakdown:")
    for op_type, count in Counter(stats['operations']).most_common(10):
        pct = 100.0 * count / n_nodes
        print(f"  {op_type:12s}: {count:6,} ({pct:5.1f}%)")

    if detailed and n_nodes <= 100:
        print()
        print("="*70)
        print("NODE LIST")
        print("="*70)
        for node in graph.nodes:
            inputs = ", ".join(f"Node{inp.index}" for inp in node.inputs)
            val = f"{node.cached_value:12.6g}" if node.is_fresh else f"{'(stale)':>12s}"
            if inputs:
                print(f"Node {node.index:3d}: {node.op_tag:12s} {val} <- [{inputs}]")
            else:
                label = node.name or "leaf"
                print(f"Node {node.index:3d}: {node.op_tag:12s} {val} [{label}]")

    print("="*70 + "\n")
    return stats
