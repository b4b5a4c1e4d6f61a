# tyche/inference/em/normal_mixture.py
from .mixture_base import MixtureEMBase
from .posteriors import NormalMixturePosterior


class NormalMixtureEM(MixtureEMBase):
    """K-component Normal mixture on the raw values (config 'num_components', default 2)."""

    model_type = "normal-mixture"

    def _posterior(self, components):
        return NormalMixturePosterior(components)
