import math

import numpy as np
import pytest

from tyche.aad import (
    Graph,
    GradientTape,
    RandomVariable,
    backward,
    get_graph_stats,
    grad,
    grads,
    grads_list,
    gradient_step,
    gradients,
    ops,
    print_graph_summary,
    use_graph,
    value,
)
from tyche.exceptions import GraphContractError


def test_forward_is_cached_until_a_parameter_changes():
    calls = []
    g = Graph()
    x = g.create_parameter(2.0, "x")
    sq = g.create_node(
        "sq", [x],
        lambda v: calls.append(1) or v[0] ** 2,
        lambda up, v, out: (2.0 * v[0] * up,),
    )

    assert sq.forward() == 4.0
    assert sq.forward() == 4.0
    assert len(calls) == 1

    x.set_value(3.0)
    assert not sq.is_fresh
    assert sq.forward() == 9.0
    assert len(calls) == 2


def test_set_parameter_values_invalidates_and_checks_length():
    g = Graph()
    a = RandomVariable.parameter(1.0, "a", graph=g)
    b = RandomVariable.parameter(2.0, "b", graph=g)
    y = a * b
    assert y.value == 2.0

    g.set_parameter_values([3.0, 4.0])
    assert not y.node.is_fresh
    assert y.value == 12.0
    np.testing.assert_allclose(g.parameter_values(), [3.0, 4.0])

    with pytest.raises(GraphContractError):
        g.set_parameter_values([1.0])


def test_parameter_names_and_reuse():
    g = Graph()
    p = g.create_parameter(1.0, "mu")
    q = g.create_parameter(5.0, "mu")
    assert p is q
    assert q.value == 5.0
    anon = g.create_parameter(0.0)
    assert anon.name == "param_1"
    assert g.parameter_names == ["mu", "param_1"]
    assert g.parameter("mu") is p
    with pytest.raises(KeyError):
        g.parameter("sigma")


def test_shared_subexpression_gradient():
    g = Graph()
    x = RandomVariable.parameter(3.0, "x", graph=g)
    s = x * x
    y = s + s * s

    tape = y.backward()
    assert y.value == 90.0
    # d/dx (x^2 + x^4) = 2x + 4x^3
    assert tape.get(x) == pytest.approx(2 * 3.0 + 4 * 27.0)


def test_backward_forces_forward_of_a_fresh_root():
    g = Graph()
    x = RandomVariable.parameter(0.5, "x", graph=g)
    y = ops.exp(x) * 2.0
    assert not y.node.is_fresh
    tape = backward(y)
    assert tape.get(x) == pytest.approx(2.0 * math.exp(0.5))


def test_backward_rejects_wrong_gradient_arity():
    g = Graph()
    x = g.create_parameter(1.0, "x")
    bad = g.create_node("bad", [x], lambda v: 2.0 * v[0], lambda up, v, out: (up, up))
    with pytest.raises(GraphContractError):
        backward(bad)


def test_operands_from_different_graphs_are_rejected():
    g1, g2 = Graph(), Graph()
    a = RandomVariable.parameter(1.0, graph=g1)
    b = RandomVariable.parameter(1.0, graph=g2)
    with pytest.raises(GraphContractError):
        a + b
    with pytest.raises(GraphContractError):
        g2.create_node("add", [a.node], lambda v: v[0], lambda up, v, out: (up,))


def test_deep_chain_has_no_recursion_limit():
    g = Graph()
    x = RandomVariable.parameter(0.0, "x", graph=g)
    y = x
    for _ in range(5000):
        y = y + 1.0
    assert y.value == 5000.0
    assert backward(y).get(x) == pytest.approx(1.0)


def test_domain_errors_become_non_finite_values():
    g = Graph()
    x = RandomVariable.parameter(-1.0, "x", graph=g)
    assert math.isnan(ops.log(x).value)
    zero = RandomVariable.parameter(0.0, "z", graph=g)
    assert (1.0 / zero).value == math.inf


def test_plain_numbers_fold_without_nodes():
    before = len(Graph.current())
    assert ops.log(1.0) == 0.0
    assert isinstance(ops.add(1, 2), float)
    assert ops.add_n([1.0, 2.0, 3.5]) == 6.5
    assert len(Graph.current()) == before


def test_number_operand_creates_one_node():
    g = Graph()
    x = RandomVariable.parameter(2.0, "x", graph=g)
    n = len(g)
    y = 3.0 * x
    assert len(g) == n + 1
    assert y.value == 6.0


def test_use_graph_restores_previous_default():
    outer = Graph.current()
    with use_graph() as g:
        assert Graph.current() is g
        x = RandomVariable.parameter(1.5, "x")
        assert x.graph is g
    assert Graph.current() is outer


def test_compute_gradients_and_gradient_step():
    g = Graph()
    x = RandomVariable.parameter(0.0, "x", graph=g)
    unused = RandomVariable.parameter(7.0, "unused", graph=g)
    loss = (x - 3.0) ** 2

    grads_ = g.compute_gradients(loss)
    assert grads_ == {"x": pytest.approx(-6.0), "unused": 0.0}

    g.gradient_step(loss, 0.1)
    assert x.node.value == pytest.approx(0.6)
    assert unused.node.value == 7.0
    assert loss.value == pytest.approx(2.4 ** 2)


def test_engine_gradient_step_on_chosen_slots():
    g = Graph()
    a = RandomVariable.parameter(1.0, "a", graph=g)
    b = RandomVariable.parameter(1.0, "b", graph=g)
    loss = a * a + b * b
    gr = gradient_step(loss, [a.node], 0.25)
    np.testing.assert_allclose(gr, [2.0])
    assert a.node.value == pytest.approx(0.5)
    assert b.node.value == 1.0
    np.testing.assert_allclose(gradients(loss, [a, b]), [1.0, 2.0])


def test_tape_accumulates_across_passes():
    g = Graph()
    x = RandomVariable.parameter(2.0, "x", graph=g)
    y = x * x
    tape = GradientTape()
    backward(y, tape=tape)
    backward(y, tape=tape)
    assert tape.get(x) == pytest.approx(8.0)
    assert x.node in tape
    assert len(tape) == 2


def test_seed_helpers():
    assert grad(lambda x: x * x * x, 2.0) == pytest.approx(12.0)
    assert grad(lambda x: 5.0, 1.0) == 0.0
    assert grads(lambda v: v["a"] * v["b"], {"a": 2.0, "b": 3.0}) == {
        "a": pytest.approx(3.0), "b": pytest.approx(2.0)}
    assert grads_list(lambda xs: xs[0] * xs[0] + 3 * xs[1], [2.0, 4.0]) == [
        pytest.approx(4.0), pytest.approx(3.0)]
    assert value(4.0) == 4.0


def test_graph_stats(capsys):
    g = Graph(name="stats")
    x = RandomVariable.parameter(1.0, "x", graph=g)
    y = RandomVariable.parameter(2.0, "y", graph=g)
    z = x * y + x
    z.forward()

    stats = get_graph_stats(g)
    assert stats["nodes"] == 4
    assert stats["edges"] == 4
    assert stats["parameters"] == 2
    assert stats["max_fan_out"] == 2
    assert stats["operations"] == {"parameter": 2, "mul": 1, "add": 1}

    print_graph_summary(g, detailed=True)
    out = capsys.readouterr().out
    assert "COMPUTATION GRAPH SUMMARY" in out
    assert "NODE LIST" in out

    assert get_graph_stats(Graph())["nodes"] == 0


def test_reset_clears_the_session():
    g = Graph()
    x = RandomVariable.parameter(1.0, "x", graph=g)
    (x + 1.0).forward()
    g.reset()
    assert len(g) == 0
    assert g.parameter_names == []
