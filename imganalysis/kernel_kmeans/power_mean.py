"""
Generalized power-mean quantities shared by seeding and refinement.

For exponent p < 0 the closed-form minimizer of the power-mean
soft-assignment objective is

    wₙₖ = exp(-log(K)/p + (p - 1)·log(dₙₖ) - ((p - 1)/p)·log(SNₙ)),
    SNₙ = Σₖ (dₙₖ)ᵖ

which tends to a one-hot assignment as p → -∞.

SNₙ itself overflows long before that (0.5 ** -1100 is already inf), so
only its logarithm is ever formed, via logsumexp over p·log(dₙₖ).
"""

import numpy as np
from scipy.special import logsumexp


def log_power_sum(
    distances: np.ndarray,
    power: float,
    log_powers: np.ndarray,
    out: np.ndarray
) -> np.ndarray:
    """
    Fill ``log_powers`` with p·log(dₙₖ) and ``out`` with log(SNₙ).

    A zero distance gives log(SNₙ) = +inf and an infinite one drops out
    of the sum.
    """
    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        np.log(distances, out=log_powers)
        log_powers *= power
        out[:] = logsumexp(log_powers, axis=1)
    return out


def power_mean_weights(
    distances: np.ndarray,
    log_sums: np.ndarray,
    power: float,
    out: np.ndarray,
    zero_degenerate: bool = False
) -> np.ndarray:
    """
    Compute the soft weights in log space.

    Args:
        distances: dₙₖ, shape (N, K)
        log_sums: log(SNₙ) from log_power_sum, shape (N,)
        power: Exponent p < 0
        out: Weight buffer (N, K), overwritten
        zero_degenerate: Set wₙₖ = 0 where dₙₖ is 0 or +inf instead of
                         letting log(0) / log(inf) turn the row into NaN

    Returns:
        out
    """
    n_clusters = distances.shape[1]
    arg1 = -np.log(n_clusters) / power
    arg2 = power - 1.0
    arg3 = arg2 / power

    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        np.log(distances, out=out)
        out *= arg2
        out += arg1
        out -= arg3 * log_sums[:, np.newaxis]
        np.exp(out, out=out)

    if zero_degenerate:
        out[(distances == 0.0) | np.isinf(distances)] = 0.0
    return out
