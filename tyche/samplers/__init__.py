# tyche/samplers/__init__.py

from .models import Model, FunctionModel, GraphModel
from .metropolis import MetropolisSampler, MetropolisOptions, MCMCResult
from .diagnostics import acceptance_rate, autocorrelation, effective_sample_size, r_hat

__all__ = [
    "Model", "FunctionModel", "GraphModel",
    "MetropolisSampler", "MetropolisOptions", "MCMCResult",
    "acceptance_rate", "autocorrelation", "effective_sample_size", "r_hat",
]
