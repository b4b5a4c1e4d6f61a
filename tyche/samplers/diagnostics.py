# tyche/samplers/diagnostics.py
"""
Convergence diagnostics for Markov chains.

All functions take post-warmup draws shaped (n_samples, n_dims); multi-chain
functions take a list of such arrays of equal length.
"""

import numpy as np
from typing import Sequence

MAX_LAG = 100
AUTOCORR_CUTOFF = 0.05


def _as_2d(samples) -> np.ndarray:
    arr = np.asarray(samples, dtype=float)
    if arr.ndim == 1:
        arr = arr[:, None]
    return arr


def acceptance_rate(chains: Sequence[np.ndarray]) -> float:
    """
    Fraction of transitions in which the state changed (any coordinate).
    Transitions are counted within each chain, never across chain boundaries.
    """
    moves = 0
    transitions = 0
    for chain in chains:
        arr = _as_2d(chain)
        if len(arr) < 2:
            continue
        changed = np.any(arr[1:] != arr[:-1], axis=1)
        moves += int(changed.sum())
        transitions += len(arr) - 1
    return moves / transitions if transitions else 0.0


def autocorrelation(x: np.ndarray, lag: int) -> float:
    """Lag-k autocorrelation normalized by the (biased) variance of `x`."""
    x = np.asarray(x, dtype=float)
    n = len(x)
    centered = x - x.mean()
    var = np.mean(centered * centered)
    if var == 0.0 or lag >= n:
        return 0.0
    return float(np.dot(centered[:n - lag], centered[lag:]) / ((n - lag) * var))


def effective_sample_size(samples) -> float:
    """
    ESS = n / (1 + 2 Σ ρ_k), summed over lags until ρ_k drops below 0.05
    (or 100 lags); the minimum across dimensions is returned.

    A constant coordinate carries no autocorrelation information and is
    given ESS = n.
    """
    arr = _as_2d(samples)
    n = len(arr)
    if n < 2:
        return float(n)

    min_ess = float(n)
    for d in range(arr.shape[1]):
        x = arr[:, d]
        rho_sum = 0.0
        for lag in range(1, min(n - 1, MAX_LAG)):
            rho = autocorrelation(x, lag)
            if rho < AUTOCORR_CUTOFF:
                break
            rho_sum += rho
        min_ess = min(min_ess, n / (1.0 + 2.0 * rho_sum))
    return min_ess


def r_hat(chains: Sequence[np.ndarray]) -> float:
    """
    Gelman-Rubin potential scale reduction, maximum across dimensions.

        W    = mean of within-chain variances (ddof=1)
        B    = n * variance of chain means (ddof=1)
        R̂   = sqrt(((n-1)/n W + B/n) / W)
    """
    arrs = [_as_2d(c) for c in chains]
    m = len(arrs)
    if m < 2:
        raise ValueError("r_hat needs at least two chains")
    n = min(len(a) for a in arrs)
    if n < 2:
        return float("nan")
    stacked = np.stack([a[:n] for a in arrs])  # (m, n, d)

    chain_means = stacked.mean(axis=1)
    W = stacked.var(axis=1, ddof=1).mean(axis=0)
    B = n * chain_means.var(axis=0, ddof=1)
    var_plus = ((n - 1) * W + B) / n

    with np.errstate(divide="ignore", invalid="ignore"):
        rhat = np.sqrt(var_plus / W)
    # no spread anywhere: chains agree exactly
    rhat = np.where((W == 0) & (B == 0), 1.0, rhat)
    return float(np.max(rhat))
