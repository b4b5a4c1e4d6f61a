# tyche/inference/__init__.py

from .base import (
    FitOptions,
    DataInput,
    Diagnostics,
    InferenceResult,
    InferenceEngine,
    Posterior,
)
from .conjugate import (
    BetaBinomialVI,
    BetaPosterior,
    NormalConjugate,
    LogNormalConjugate,
    GammaExponentialConjugate,
    NormalInverseGammaPosterior,
    LogNormalPosterior,
    GammaPosterior,
)
from .em import (
    NormalMixtureEM,
    LogNormalMixtureEM,
    NormalMixtureVBEM,
    LogNormalMixtureVBEM,
    DirichletPosterior,
    VariationalNormalMixturePosterior,
    VariationalLogNormalMixturePosterior,
    MixtureComponent,
    NormalMixturePosterior,
    LogNormalMixturePosterior,
)
from .vi import ZeroInflatedLogNormalVI, ZILNPosterior, ZILNPriors
from .engine import VariationalInferenceEngine, ENGINES

__all__ = [
    "FitOptions", "DataInput", "Diagnostics", "InferenceResult", "InferenceEngine", "Posterior",
    "BetaBinomialVI", "BetaPosterior",
    "NormalConjugate", "LogNormalConjugate", "GammaExponentialConjugate",
    "NormalInverseGammaPosterior", "LogNormalPosterior", "GammaPosterior",
    "NormalMixtureEM", "LogNormalMixtureEM", "NormalMixtureVBEM", "LogNormalMixtureVBEM",
    "DirichletPosterior", "VariationalNormalMixturePosterior", "VariationalLogNormalMixturePosterior",
    "MixtureComponent", "NormalMixturePosterior", "LogNormalMixturePosterior",
    "ZeroInflatedLogNormalVI", "ZILNPosterior", "ZILNPriors",
    "VariationalInferenceEngine", "ENGINES",
]
