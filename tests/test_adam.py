import numpy as np
import pytest

from tyche.aad import Graph, RandomVariable
from tyche.exceptions import ConfigurationError
from tyche.optim import AdamOptimizer, AdamOptions


def test_minimize_quadratic():
    target = np.array([3.0, -1.0])
    opt = AdamOptimizer(AdamOptions(learning_rate=0.1, max_iterations=5000))
    result = opt.minimize(lambda x: float(np.sum((x - target) ** 2)),
                          lambda x: 2.0 * (x - target),
                          [0.0, 0.0])
    np.testing.assert_allclose(result.params, target, atol=1e-2)
    assert result.value < 1e-3
    assert result.iterations <= 5000


def test_first_step_has_learning_rate_magnitude():
    opt = AdamOptimizer(AdamOptions(learning_rate=0.05))
    # bias correction makes the first update lr * sign(g)
    np.testing.assert_allclose(opt.step([1.0, 1.0], [4.0, -0.001]), [0.95, 1.05], rtol=1e-4)


def test_gradient_clipping():
    opt = AdamOptimizer(AdamOptions(gradient_clip=10.0))
    clipped = opt.clip(np.array([30.0, 40.0]))
    assert np.linalg.norm(clipped) == pytest.approx(10.0)
    np.testing.assert_allclose(opt.clip(np.array([3.0, 4.0])), [3.0, 4.0])


def test_minimize_graph_writes_slots_back():
    g = Graph()
    x = RandomVariable.parameter(0.0, "x", graph=g)
    y = RandomVariable.parameter(0.0, "y", graph=g)
    loss = (x - 1.0) ** 2 + (y + 2.0) ** 2 + x * y * 0.5

    result = AdamOptimizer(AdamOptions(learning_rate=0.05, max_iterations=4000)).minimize_graph(loss)
    # stationary point of the quadratic
    expected = np.linalg.solve([[2.0, 0.5], [0.5, 2.0]], [2.0, -4.0])
    np.testing.assert_allclose(result.params, expected, atol=1e-2)
    np.testing.assert_allclose(g.parameter_values(), result.params)


def test_invalid_learning_rate():
    with pytest.raises(ConfigurationError):
        AdamOptimizer(AdamOptions(learning_rate=0.0))
