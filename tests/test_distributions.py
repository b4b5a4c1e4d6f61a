import math

import numpy as np
import pytest
from scipy import stats

from tyche.aad import Graph, RandomVariable, finite_difference, gradients
from tyche.distributions import (
    Beta,
    Distribution,
    Binomial,
    Exponential,
    Gamma,
    HalfNormal,
    LogNormal,
    Normal,
    make,
)
from tyche.exceptions import ConfigurationError, GraphContractError
from tyche.numerics import RNG


@pytest.mark.parametrize("dist,frozen,x", [
    (Normal(1.0, 2.0), stats.norm(1.0, 2.0), 0.3),
    (LogNormal(0.5, 0.8), stats.lognorm(s=0.8, scale=math.exp(0.5)), 1.7),
    (Beta(2.0, 5.0), stats.beta(2.0, 5.0), 0.25),
    (Gamma(3.0, 2.0), stats.gamma(3.0, scale=0.5), 1.2),
    (Exponential(1.5), stats.expon(scale=1.0 / 1.5), 0.9),
    (HalfNormal(2.0), stats.halfnorm(scale=2.0), 1.1),
], ids=["normal", "lognormal", "beta", "gamma", "exponential", "halfnormal"])
def test_log_density_matches_scipy(dist, frozen, x):
    assert dist.log_prob(x).value == pytest.approx(frozen.logpdf(x), rel=1e-10)
    assert dist.mean().value == pytest.approx(frozen.mean(), rel=1e-10)
    assert dist.variance().value == pytest.approx(frozen.var(), rel=1e-10)


def test_binomial_log_mass_matches_scipy():
    d = Binomial(12, 0.3)
    for k in (0, 4, 12):
        assert d.log_prob(k).value == pytest.approx(stats.binom(12, 0.3).logpmf(k), rel=1e-10)
    assert d.mean().value == pytest.approx(3.6)
    assert d.variance().value == pytest.approx(2.52)


def test_standard_normal_at_zero():
    assert Normal(0.0, 1.0).log_prob(0.0).value == pytest.approx(-0.5 * math.log(2 * math.pi))


def test_outside_support_is_minus_infinity():
    assert LogNormal().log_prob(-1.0).value == -math.inf
    assert Beta(2.0, 2.0).log_prob(1.5).value == -math.inf
    assert Gamma(2.0, 1.0).log_prob(-0.1).value == -math.inf
    assert Binomial(5, 0.5).log_prob(6).value == -math.inf
    assert Binomial(5, 0.5).log_prob(2.5).value == -math.inf
    # open ends of the support are excluded
    assert LogNormal(0.0, 1.0).log_prob(0.0).value == -math.inf
    assert Beta(1.0, 1.0).log_prob(0.0).value == -math.inf
    assert Beta(1.0, 1.0).log_prob(1.0).value == -math.inf
    assert Beta(2.0, 2.0).log_prob(1.0).value == -math.inf
    assert Gamma(2.0, 1.0).log_prob(0.0).value == -math.inf


def test_closed_support_ends_have_finite_density():
    assert Exponential(2.0).log_prob(0.0).value == pytest.approx(math.log(2.0))
    assert HalfNormal(1.0).log_prob(0.0).value == pytest.approx(stats.halfnorm.logpdf(0.0))
    assert Binomial(3, 0.5).log_prob(0).value == pytest.approx(3 * math.log(0.5))
    assert Binomial(3, 0.5).log_prob(3).value == pytest.approx(3 * math.log(0.5))
    assert Beta(1.0, 1.0).log_prob(0.5).value == pytest.approx(0.0)


def test_numeric_evaluation_leaves_default_graph_alone():
    before = len(Graph.current())
    d = Normal(0.0, 1.0)
    for x in np.linspace(-3.0, 3.0, 1000):
        lp = d.log_prob(float(x))
        assert len(lp.graph) == 1
    d.mean()
    d.variance()
    assert len(Graph.current()) == before


def test_numeric_distribution_joins_the_graph_of_its_value():
    g = Graph()
    x = RandomVariable.parameter(0.5, "x", graph=g)
    lp = Normal(0.0, 2.0).log_prob(x)
    assert lp.graph is g
    # d/dx = -x / sigma^2
    assert gradients(lp.node, [x.node])[0] == pytest.approx(-0.125)


def test_explicit_graph_holds_numeric_results():
    g = Graph()
    lp = Beta(2.0, 3.0, graph=g).log_prob(0.4)
    assert lp.graph is g
    assert lp.value == pytest.approx(stats.beta(2.0, 3.0).logpdf(0.4))
    assert Beta(2.0, 3.0, graph=g).log_prob(1.0).graph is g


def test_binomial_degenerate_probabilities():
    assert Binomial(4, 0.0).log_prob(0).value == 0.0
    assert Binomial(4, 0.0).log_prob(1).value == -math.inf
    assert Binomial(4, 1.0).log_prob(4).value == 0.0


@pytest.mark.parametrize("factory", [
    lambda: Normal(0.0, -1.0),
    lambda: Normal(math.nan, 1.0),
    lambda: LogNormal(0.0, 0.0),
    lambda: Beta(0.0, 1.0),
    lambda: Gamma(1.0, -2.0),
    lambda: Exponential(0.0),
    lambda: HalfNormal(-1.0),
    lambda: Binomial(2.5, 0.5),
    lambda: Binomial(-1, 0.5),
    lambda: Binomial(5, 1.5),
])
def test_invalid_parameters_raise(factory):
    with pytest.raises(ConfigurationError):
        factory()


def test_distribution_hooks_are_abstract():
    with pytest.raises(TypeError):
        Distribution()

    class Partial(Distribution):
        kind = "partial"

        def _log_prob(self, x):
            return 0.0

    with pytest.raises(TypeError):
        Partial()


def test_make_selects_variant_by_kind():
    d = make("normal", mu=1.0, sigma=2.0)
    assert isinstance(d, Normal)
    assert isinstance(make("Beta", alpha=2.0, beta=3.0), Beta)
    with pytest.raises(ConfigurationError):
        make("cauchy")


def test_log_prob_is_differentiable_in_handle_parameters():
    g = Graph()
    alpha = RandomVariable.parameter(2.5, "alpha", graph=g)
    beta = RandomVariable.parameter(1.5, "beta", graph=g)
    lp = Beta(alpha, beta).log_prob(0.3)
    assert lp.graph is g
    assert lp.value == pytest.approx(stats.beta(2.5, 1.5).logpdf(0.3))

    slots = [alpha.node, beta.node]
    np.testing.assert_allclose(gradients(lp.node, slots),
                               finite_difference(lp.node, slots), rtol=1e-5)


def test_normal_gradient_in_mean():
    g = Graph()
    mu = RandomVariable.parameter(0.5, "mu", graph=g)
    lp = Normal(mu, 2.0).log_prob(1.5)
    # d/dmu = (x - mu) / sigma^2
    assert gradients(lp.node, [mu.node])[0] == pytest.approx(0.25)


def test_parameters_from_another_graph_are_rejected():
    g1, g2 = Graph(), Graph()
    mu = RandomVariable.parameter(0.0, "mu", graph=g1)
    with pytest.raises(GraphContractError):
        Normal(mu, 1.0, graph=g2)
    x = RandomVariable.parameter(0.0, "x", graph=g2)
    with pytest.raises(GraphContractError):
        Normal(mu, 1.0).log_prob(x)


def test_sampling_moments():
    rng = RNG(21)
    draws = Gamma(2.0, 4.0).sample(rng, size=5000)
    assert draws.shape == (5000,)
    assert abs(draws.mean() - 0.5) < 0.02
    assert np.all(HalfNormal(1.0).sample(rng, size=500) >= 0.0)
    k = Binomial(10, 0.3).sample(rng, size=3000)
    assert abs(k.mean() - 3.0) < 0.15
    assert isinstance(Normal(0.0, 1.0).sample(rng), float)
