# tyche/__init__.py
# Probabilistic-programming runtime: AD graph, MCMC and EM/VI inference

from .exceptions import TycheError, ConfigurationError, GraphContractError
from .numerics import RNG
from .aad import Graph, use_graph, RandomVariable, backward
from .samplers import MetropolisSampler, MetropolisOptions, GraphModel, FunctionModel
from .inference import (
    FitOptions,
    DataInput,
    VariationalInferenceEngine,
    BetaBinomialVI,
    NormalMixtureEM,
    LogNormalMixtureEM,
    NormalMixtureVBEM,
    LogNormalMixtureVBEM,
    ZeroInflatedLogNormalVI,
)
from . import distributions

__version__ = "0.1.0"

__all__ = [
    'TycheError', 'ConfigurationError', 'GraphContractError',
    'RNG',
    'Graph', 'use_graph', 'RandomVariable', 'backward',
    'MetropolisSampler', 'MetropolisOptions', 'GraphModel', 'FunctionModel',
    'FitOptions', 'DataInput', 'VariationalInferenceEngine',
    'BetaBinomialVI', 'NormalMixtureEM', 'LogNormalMixtureEM',
    'NormalMixtureVBEM', 'LogNormalMixtureVBEM', 'ZeroInflatedLogNormalVI',
    'distributions',
]
