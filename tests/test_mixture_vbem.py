import warnings

import numpy as np
import pytest
from scipy import stats
from scipy.special import logsumexp

from tyche.exceptions import ConfigurationError
from tyche.inference import (
    DataInput,
    DirichletPosterior,
    FitOptions,
    LogNormalConjugate,
    LogNormalMixtureVBEM,
    NormalConjugate,
    NormalMixtureVBEM,
    VariationalInferenceEngine,
)
from tyche.numerics import RNG


def two_cluster_data(n=2000, seed=0):
    rng = np.random.default_rng(seed)
    z = rng.uniform(size=n) < 0.3
    return np.where(z, rng.normal(0.0, 1.0, size=n), rng.normal(5.0, 1.0, size=n))


def assert_non_decreasing(history):
    diffs = np.diff(history)
    assert np.all(diffs >= -1e-8), diffs.min()


def test_normal_vbem_recovers_components():
    data = two_cluster_data()
    with warnings.catch_warnings():
        warnings.simplefilter("error", RuntimeWarning)
        result = NormalMixtureVBEM(FitOptions(max_iterations=200, seed=1)).fit(
            DataInput(data, {"num_components": 2}))
    post = result.posterior

    order = np.argsort(post.means)
    np.testing.assert_allclose(post.means[order], [0.0, 5.0], atol=0.2)
    np.testing.assert_allclose(post.weights[order], [0.3, 0.7], atol=0.05)
    np.testing.assert_allclose(np.sqrt(post.variances[order]), [1.0, 1.0], atol=0.15)
    assert post.weights.sum() == pytest.approx(1.0)

    diag = result.diagnostics
    assert diag.converged
    assert diag.model_type == "normal-mixture-vbem"
    assert len(diag.elbo_history) == diag.iterations + 1
    assert_non_decreasing(diag.elbo_history)
    assert np.isfinite(diag.final_elbo)


def test_vbem_is_monotone_with_extra_components():
    data = two_cluster_data(n=500, seed=5)
    opts = FitOptions(max_iterations=60, seed=11, tolerance=1e-12)
    result = NormalMixtureVBEM(opts).fit(DataInput(data, {"num_components": 4}))
    assert_non_decreasing(result.diagnostics.elbo_history)
    assert result.posterior.weights.sum() == pytest.approx(1.0)


def test_single_component_elbo_is_the_log_evidence():
    # with one component q is the exact conjugate posterior, so the bound is tight
    data = np.random.default_rng(2).normal(1.0, 2.0, size=200)
    config = {"num_components": 1, "prior_beta": 3.0}
    vb = NormalMixtureVBEM(FitOptions(seed=0)).fit(DataInput(data, config))
    exact = NormalConjugate().fit(DataInput(data, {"prior_beta": 3.0}))
    assert vb.diagnostics.final_elbo == pytest.approx(exact.diagnostics.final_elbo, rel=1e-9)
    assert vb.posterior.means[0] == pytest.approx(exact.posterior.mu0)


def test_lognormal_single_component_elbo_matches_conjugate():
    data = np.random.default_rng(3).lognormal(0.5, 0.3, size=150)
    config = {"num_components": 1, "prior_beta": 1.0}
    vb = LogNormalMixtureVBEM(FitOptions(seed=0)).fit(DataInput(data, config))
    exact = LogNormalConjugate().fit(DataInput(data, {"prior_beta": 1.0}))
    assert vb.diagnostics.final_elbo == pytest.approx(exact.diagnostics.final_elbo, rel=1e-9)


def test_lognormal_vbem():
    rng = np.random.default_rng(2)
    n = 1000
    z = rng.uniform(size=n) < 0.4
    data = np.exp(np.where(z, rng.normal(0.0, 0.5, size=n), rng.normal(2.0, 0.5, size=n)))

    result = LogNormalMixtureVBEM(FitOptions(max_iterations=200, seed=3)).fit(DataInput(data))
    post = result.posterior

    assert list(post.means) == sorted(post.means)
    np.testing.assert_allclose(post.means, [0.0, 2.0], atol=0.15)
    np.testing.assert_allclose(post.weights, [0.4, 0.6], atol=0.06)
    assert_non_decreasing(result.diagnostics.elbo_history)
    assert result.diagnostics.model_type == "lognormal-mixture-vbem"
    assert post.log_pdf(-1.0) == -np.inf
    assert np.all(post.sample(200, rng=1) > 0)


def test_variational_posterior_predictive():
    data = two_cluster_data(n=3000, seed=8)
    post = NormalMixtureVBEM(FitOptions(seed=1)).fit(DataInput(data)).posterior

    assert post.mean() == pytest.approx(data.mean(), abs=0.05)
    assert post.variance() == pytest.approx(data.var(), rel=0.05)

    x = np.array([-1.0, 2.5, 6.0])
    expected = logsumexp(
        np.log(post.weights)[None, :]
        + np.column_stack([q.log_pdf(x) for q in post.component_posteriors]), axis=1)
    np.testing.assert_allclose(post.log_pdf(x), expected)

    draws = post.sample(4000, rng=RNG(3))
    assert abs(draws.mean() - post.mean()) < 0.15
    for k, w in enumerate(post.weights):
        lo, hi = post.weight_interval(k, 0.95)
        assert lo < w < hi


def test_same_seed_same_fit():
    data = two_cluster_data(n=300)
    a = NormalMixtureVBEM(FitOptions(seed=4)).fit(DataInput(data))
    b = NormalMixtureVBEM(FitOptions(seed=4)).fit(DataInput(data))
    assert a.diagnostics.elbo_history == b.diagnostics.elbo_history


def test_dirichlet_posterior():
    q = DirichletPosterior([2.0, 3.0, 5.0])
    np.testing.assert_allclose(q.mean(), [0.2, 0.3, 0.5])
    assert q.kl_divergence(q) == pytest.approx(0.0, abs=1e-12)
    assert q.kl_divergence(DirichletPosterior([1.0, 1.0, 1.0])) > 0.0

    draws = np.array([q.sample(RNG(i)) for i in range(4000)])
    np.testing.assert_allclose(np.log(draws).mean(axis=0), q.expected_log_weights(), atol=0.05)
    np.testing.assert_allclose(draws.var(axis=0), q.variance(), rtol=0.1)

    lo, hi = q.marginal_interval(2, 0.9)
    assert (lo, hi) == pytest.approx(tuple(stats.beta(5.0, 5.0).ppf([0.05, 0.95])))

    with pytest.raises(ConfigurationError):
        DirichletPosterior([1.0, 0.0])


@pytest.mark.parametrize("data,config", [
    ([], {}),
    ([1.0, 2.0], {"num_components": 3}),
    ([1.0, 2.0, 3.0], {"weight_concentration": 0.0}),
])
def test_invalid_inputs(data, config):
    with pytest.raises(ConfigurationError):
        NormalMixtureVBEM().fit(DataInput(data, config))


def test_dispatch_by_model_type():
    data = two_cluster_data(n=600, seed=1)
    result = VariationalInferenceEngine(FitOptions(seed=2)).fit(
        "normal-mixture-vbem", DataInput(data))
    np.testing.assert_allclose(np.sort(result.posterior.means), [0.0, 5.0], atol=0.3)
