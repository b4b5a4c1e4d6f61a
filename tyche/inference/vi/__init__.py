# tyche/inference/vi/__init__.py
from .ziln import ZeroInflatedLogNormalVI, ZILNPosterior, ZILNPriors

__all__ = ["ZeroInflatedLogNormalVI", "ZILNPosterior", "ZILNPriors"]
