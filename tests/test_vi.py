import math

import numpy as np
import pytest
from scipy import stats

from tyche.exceptions import ConfigurationError, TycheError
from tyche.inference import (
    ENGINES,
    BetaBinomialVI,
    DataInput,
    FitOptions,
    GammaExponentialConjugate,
    LogNormalConjugate,
    NormalConjugate,
    NormalInverseGammaPosterior,
    VariationalInferenceEngine,
    ZeroInflatedLogNormalVI,
    ZILNPriors,
)
from tyche.numerics import RNG


# ----------------------------- Beta-Binomial ----------------------------- #
def test_beta_binomial_conjugate_update():
    result = BetaBinomialVI().fit(DataInput({"successes": 7, "trials": 10}))
    post = result.posterior

    assert (post.alpha, post.beta) == (8.0, 4.0)
    assert post.mean() == pytest.approx(8.0 / 12.0)
    assert post.variance() == pytest.approx(32.0 / (144.0 * 13.0))

    diag = result.diagnostics
    assert diag.converged
    assert diag.iterations == 1
    # log B(8, 4) - log B(1, 1), with B(8, 4) = 1/1320
    assert diag.final_elbo == pytest.approx(-math.log(1320.0))
    assert diag.elbo_history == [diag.final_elbo]


def test_beta_binomial_binary_data_and_prior():
    outcomes = [1, 0, 1, 1, 0, 1, 1, 1, 0, 1]
    post = BetaBinomialVI().fit(DataInput(outcomes, {"prior_alpha": 2.0, "prior_beta": 3.0})).posterior
    assert (post.alpha, post.beta) == (9.0, 6.0)


def test_beta_posterior_interval_and_density():
    post = BetaBinomialVI().fit(DataInput({"successes": 30, "trials": 100})).posterior
    lo, hi = post.credible_interval(0.95)
    assert lo == pytest.approx(stats.beta(31, 71).ppf(0.025))
    assert hi == pytest.approx(stats.beta(31, 71).ppf(0.975))
    assert post.log_pdf(0.3) == pytest.approx(stats.beta(31, 71).logpdf(0.3))
    draws = post.sample(3000, rng=RNG(1))
    assert abs(draws.mean() - post.mean()) < 0.01


@pytest.mark.parametrize("data,config", [
    ({"successes": 11, "trials": 10}, {}),
    ({"successes": -1, "trials": 10}, {}),
    ({"successes": 0, "trials": 0}, {}),
    ({"trials": 10}, {}),
    ([], {}),
    ([0, 1, 2], {}),
    ({"successes": 1, "trials": 2}, {"prior_alpha": 0.0}),
])
def test_beta_binomial_invalid_input(data, config):
    with pytest.raises(ConfigurationError):
        BetaBinomialVI().fit(DataInput(data, config))


# ----------------------------- Normal / LogNormal / Gamma-Exponential ----------------------------- #
NIG_PRIOR = {"prior_mu": 0.0, "prior_kappa": 1.0, "prior_alpha": 2.0, "prior_beta": 2.0}


def test_normal_conjugate_update():
    data = np.random.default_rng(6).normal(3.0, 2.0, size=500)
    result = NormalConjugate().fit(DataInput(data, NIG_PRIOR))
    post = result.posterior

    n, xbar = len(data), data.mean()
    assert post.kappa == pytest.approx(1.0 + n)
    assert post.mu0 == pytest.approx(n * xbar / (n + 1.0))
    assert post.alpha == pytest.approx(2.0 + n / 2.0)
    expected_beta = 2.0 + 0.5 * n * data.var() + 0.5 * n * xbar ** 2 / (n + 1.0)
    assert post.beta == pytest.approx(expected_beta)

    lo, hi = post.mu_interval(0.95)
    assert lo < 3.0 < hi
    assert math.sqrt(post.expected_sigma2()) == pytest.approx(2.0, abs=0.2)
    assert post.mean() == post.mu0
    assert post.variance() > post.expected_sigma2()
    assert result.diagnostics.model_type == "normal"
    assert result.diagnostics.converged


def test_normal_log_evidence_is_sequential_predictive():
    prior = NormalInverseGammaPosterior(0.0, 1.0, 2.0, 2.0)
    one = NormalConjugate().fit(DataInput([1.3], NIG_PRIOR))
    assert one.diagnostics.final_elbo == pytest.approx(prior.log_pdf(1.3))

    after_first = NormalInverseGammaPosterior.weighted_update(prior, [1.3])
    two = NormalConjugate().fit(DataInput([1.3, -0.4], NIG_PRIOR))
    assert two.diagnostics.final_elbo == pytest.approx(prior.log_pdf(1.3) + after_first.log_pdf(-0.4))


def test_normal_inverse_gamma_expectations():
    q = NormalInverseGammaPosterior(1.0, 4.0, 6.0, 3.0)
    rng = np.random.default_rng(7)
    tau = rng.gamma(6.0, 1.0 / 3.0, size=400000)
    mu = rng.normal(1.0, 1.0 / np.sqrt(4.0 * tau))
    x = 2.5
    mc = np.mean(stats.norm.logpdf(x, mu, 1.0 / np.sqrt(tau)))
    assert q.expected_log_likelihood(x) == pytest.approx(mc, abs=0.01)

    assert q.kl_divergence(q) == pytest.approx(0.0, abs=1e-12)
    assert q.kl_divergence(NormalInverseGammaPosterior(0.0, 1.0, 2.0, 2.0)) > 0.0
    # zero weights leave the prior unchanged
    same = NormalInverseGammaPosterior.weighted_update(q, [5.0, 6.0], [0.0, 0.0])
    assert (same.mu0, same.kappa, same.alpha, same.beta) == (1.0, 4.0, 6.0, 3.0)


def test_normal_conjugate_default_prior_and_sampling():
    data = np.random.default_rng(8).normal(-1.0, 0.5, size=300)
    post = NormalConjugate().fit(DataInput(data)).posterior
    draws = post.sample(4000, rng=RNG(3))
    assert abs(draws.mean() - post.mean()) < 0.05
    lo, hi = post.credible_interval(0.9)
    assert lo < post.mean() < hi


def test_lognormal_conjugate():
    data = np.random.default_rng(9).lognormal(1.0, 0.4, size=400)
    result = LogNormalConjugate().fit(DataInput(data, NIG_PRIOR))
    post = result.posterior
    log_scale = NormalConjugate().fit(DataInput(np.log(data), NIG_PRIOR))

    assert post.mu == pytest.approx(log_scale.posterior.mu0)
    assert result.diagnostics.final_elbo == pytest.approx(
        log_scale.diagnostics.final_elbo - np.sum(np.log(data)))
    assert post.log_pdf(2.0) == pytest.approx(post.log_scale.log_pdf(math.log(2.0)) - math.log(2.0))
    assert post.log_pdf(0.0) == -np.inf
    assert post.mean() == pytest.approx(data.mean(), rel=0.05)
    assert np.all(post.sample(100, rng=1) > 0)
    lo, hi = post.credible_interval(0.95)
    assert 0 < lo < np.median(data) < hi

    with pytest.raises(ConfigurationError):
        LogNormalConjugate().fit(DataInput([1.0, 0.0]))


def test_gamma_exponential_update():
    result = GammaExponentialConjugate().fit(DataInput([0.5, 1.5, 2.0]))
    post = result.posterior
    assert (post.shape, post.rate) == (4.0, pytest.approx(4.1))
    assert post.mean() == pytest.approx(4.0 / 4.1)
    assert post.credible_interval(0.9) == pytest.approx(
        tuple(stats.gamma(4.0, scale=1.0 / 4.1).ppf([0.05, 0.95])))

    # evidence of one point: a0 b0^a0 / (b0 + x)^(a0 + 1)
    single = GammaExponentialConjugate().fit(DataInput([2.0]))
    assert single.diagnostics.final_elbo == pytest.approx(math.log(0.1 / 2.1 ** 2))


@pytest.mark.parametrize("data,config", [
    ([1.0, -0.5], {}),
    ([1.0, 2.0], {"prior_rate": 0.0}),
    ([], {}),
])
def test_gamma_exponential_invalid_input(data, config):
    with pytest.raises(ConfigurationError):
        GammaExponentialConjugate().fit(DataInput(data, config))


# ----------------------------- zero-inflated LogNormal ----------------------------- #
def ziln_data(n=2000, p_zero=0.3, mu=2.0, sigma=0.5, seed=3):
    rng = np.random.default_rng(seed)
    values = rng.lognormal(mean=mu, sigma=sigma, size=n)
    values[rng.uniform(size=n) < p_zero] = 0.0
    return values


def test_ziln_recovers_parameters():
    data = ziln_data()
    log_x = np.log(data[data > 0])
    result = ZeroInflatedLogNormalVI(FitOptions(max_iterations=500)).fit(DataInput(data))
    post = result.posterior

    assert post.zero_probability() == pytest.approx(np.mean(data == 0), abs=0.02)
    assert post.mu_mean == pytest.approx(log_x.mean(), abs=0.05)
    assert post.sigma == pytest.approx(log_x.std(), abs=0.05)
    assert 0 < post.mu_sd < 0.1
    assert 0 < post.logit_sd < 0.2

    lo, hi = post.zero_probability_interval(0.95)
    assert lo < post.zero_probability() < hi

    diag = result.diagnostics
    assert diag.model_type == "zero-inflated-lognormal"
    assert diag.iterations <= 500
    assert np.all(np.diff(diag.elbo_history) >= 0.0)
    assert np.isfinite(diag.final_elbo)


def test_ziln_posterior_predictive():
    data = ziln_data(n=1000, seed=4)
    post = ZeroInflatedLogNormalVI().fit(DataInput(data)).posterior

    draws = post.sample(5000, rng=RNG(2))
    assert np.all(draws >= 0)
    assert np.mean(draws == 0) == pytest.approx(post.zero_probability(), abs=0.03)
    assert post.log_pdf(0.0) == pytest.approx(math.log(post.zero_probability()))
    assert post.log_pdf(-1.0) == -np.inf
    assert post.mean() == pytest.approx(data.mean(), rel=0.1)
    assert post.variance() > 0


def test_ziln_data_without_zeros():
    data = np.random.default_rng(5).lognormal(1.0, 0.3, size=200)
    post = ZeroInflatedLogNormalVI().fit(DataInput(data)).posterior
    assert post.zero_probability() < 0.05
    assert post.mu_mean == pytest.approx(np.log(data).mean(), abs=0.05)


def test_ziln_all_zeros():
    result = ZeroInflatedLogNormalVI().fit(DataInput([0.0] * 50))
    assert result.posterior.zero_probability() > 0.9
    assert np.all(np.isfinite(result.diagnostics.elbo_history))


def test_ziln_invalid_input():
    with pytest.raises(ConfigurationError):
        ZeroInflatedLogNormalVI().fit(DataInput([1.0, -2.0, 0.0]))
    with pytest.raises(ConfigurationError):
        ZeroInflatedLogNormalVI().fit(DataInput([]))
    with pytest.raises(ConfigurationError):
        ZeroInflatedLogNormalVI(priors=ZILNPriors(logit_sd=0.0))


def test_ziln_priors_from_data_config():
    data = ziln_data()
    m_hat = float(np.mean(np.log(data[data > 0])))
    opts = FitOptions(max_iterations=500)
    engine = VariationalInferenceEngine(opts)

    default = engine.fit("zero-inflated-lognormal", DataInput(data)).posterior
    pulled = engine.fit("zero-inflated-lognormal", DataInput(
        data, {"prior_mu_mean": m_hat + 1.0, "prior_mu_sd": 0.05})).posterior
    assert pulled.mu_mean > default.mu_mean + 0.03
    assert pulled.mu_mean < m_hat + 1.0

    with pytest.raises(ConfigurationError):
        engine.fit("zero-inflated-lognormal", DataInput(data, {"prior_mu_sd": 0.0}))


# ----------------------------- dispatcher ----------------------------- #
def test_engine_registry():
    assert VariationalInferenceEngine.model_types() == sorted([
        "beta-binomial", "normal", "lognormal", "gamma-exponential",
        "normal-mixture", "lognormal-mixture", "normal-mixture-vbem", "lognormal-mixture-vbem",
        "zero-inflated-lognormal"])
    assert ENGINES["beta-binomial"] is BetaBinomialVI


def test_engine_dispatch():
    engine = VariationalInferenceEngine(FitOptions(seed=1))
    result = engine.fit("beta-binomial", DataInput({"successes": 3, "trials": 4}))
    assert result.posterior.mean() == pytest.approx(4.0 / 6.0)

    rng = np.random.default_rng(0)
    data = np.concatenate([rng.normal(-3.0, 1.0, 300), rng.normal(3.0, 1.0, 300)])
    mix = engine.fit("normal-mixture", DataInput(data, {"num_components": 2}))
    np.testing.assert_allclose(np.sort(mix.posterior.means), [-3.0, 3.0], atol=0.3)
    assert mix.diagnostics.model_type == "normal-mixture"


def test_unknown_model_type():
    with pytest.raises(ConfigurationError) as excinfo:
        VariationalInferenceEngine().fit("poisson-gamma", DataInput([1.0]))
    assert isinstance(excinfo.value, TycheError)
    assert "known" in str(excinfo.value)
