# tyche/inference/engine.py
from __future__ import annotations

from typing import Dict, Optional, Type

from ..exceptions import ConfigurationError
from .base import DataInput, FitOptions, InferenceEngine, InferenceResult
from .conjugate import BetaBinomialVI, GammaExponentialConjugate, LogNormalConjugate, NormalConjugate
from .em import LogNormalMixtureEM, LogNormalMixtureVBEM, NormalMixtureEM, NormalMixtureVBEM
from .vi import ZeroInflatedLogNormalVI

ENGINES: Dict[str, Type[InferenceEngine]] = {
    engine.model_type: engine
    for engine in (
        BetaBinomialVI, NormalConjugate, LogNormalConjugate, GammaExponentialConjugate,
        NormalMixtureEM, LogNormalMixtureEM, NormalMixtureVBEM, LogNormalMixtureVBEM,
        ZeroInflatedLogNormalVI,
    )
}


class VariationalInferenceEngine:
    """
    Single entry point selecting an engine by model type:

        >>> VariationalInferenceEngine().fit(
        ...     "beta-binomial", DataInput({"successes": 7, "trials": 10}))
    """

    def __init__(self, options: Optional[FitOptions] = None):
        self.options = options

    @staticmethod
    def model_types():
        return sorted(ENGINES)

    def fit(self, model_type: str, data_input: DataInput,
            options: Optional[FitOptions] = None) -> InferenceResult:
        try:
            engine_cls = ENGINES[model_type]
        except KeyError:
            raise ConfigurationError(f"Unknown model type {model_type!r}",
                                     {"known": self.model_types()}) from None
        return engine_cls(options or self.options).fit(data_input)
