# tyche/optim/__init__.py
from .adam import AdamOptimizer, AdamOptions, AdamResult

__all__ = ["AdamOptimizer", "AdamOptions", "AdamResult"]
