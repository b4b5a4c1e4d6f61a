# tyche/inference/em/__init__.py
from .mixture_base import MixtureEMBase, GradientMStep, fast_m_step, kmeans_plus_plus
from .normal_mixture import NormalMixtureEM
from .lognormal_mixture import LogNormalMixtureEM
from .variational import VariationalMixtureMixin, NormalMixtureVBEM, LogNormalMixtureVBEM
from .posteriors import (
    MixtureComponent,
    NormalMixturePosterior,
    LogNormalMixturePosterior,
    DirichletPosterior,
    VariationalNormalMixturePosterior,
    VariationalLogNormalMixturePosterior,
)

__all__ = [
    "MixtureEMBase", "GradientMStep", "fast_m_step", "kmeans_plus_plus",
    "NormalMixtureEM", "LogNormalMixtureEM",
    "VariationalMixtureMixin", "NormalMixtureVBEM", "LogNormalMixtureVBEM",
    "MixtureComponent", "NormalMixturePosterior", "LogNormalMixturePosterior",
    "DirichletPosterior", "VariationalNormalMixturePosterior", "VariationalLogNormalMixturePosterior",
]
