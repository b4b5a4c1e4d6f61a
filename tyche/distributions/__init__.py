# tyche/distributions/__init__.py
"""
Closed set of distribution variants sharing one capability interface
(`log_prob`, `sample`, `mean`, `variance`). Use `make(kind, **params)` to
select a variant by tag.
"""

from ..exceptions import ConfigurationError
from .base import Distribution
from .continuous import Normal, LogNormal, Beta, Gamma, Exponential, HalfNormal
from .discrete import Binomial

VARIANTS = {
    cls.kind: cls
    for cls in (Normal, LogNormal, Beta, Gamma, Exponential, HalfNormal, Binomial)
}


def make(kind: str, **params) -> Distribution:
    try:
        cls = VARIANTS[kind.lower()]
    except KeyError:
        raise ConfigurationError(f"Unknown distribution kind {kind!r}",
                                 {"known": sorted(VARIANTS)}) from None
    return cls(**params)


__all__ = [
    "Distribution",
    "Normal", "LogNormal", "Beta", "Gamma", "Exponential", "HalfNormal", "Binomial",
    "VARIANTS", "make",
]
