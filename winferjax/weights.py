# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Marginal weight utilities for the transport solvers."""

import jax.numpy as jnp
import numpy as np
from jaxtyping import Array, Float

from winferjax.errors import InfeasibleMarginalsError

MARGINAL_TOLERANCE = 1e-6
"""Allowed deviation of a marginal's total mass from one."""


def uniform_weights(n: int) -> Float[Array, ' n']:
    """Return the uniform marginal ``(1/n, ..., 1/n)``.

    Args:
        n: Number of support points.

    Returns:
        Weights that sum to one.
    """
    return jnp.full((n,), 1.0 / n)


def check_marginals(
    weights: Float[Array, ' n'],
    size: int,
    name: str = 'weights',
) -> np.ndarray:
    """Validate a marginal weight vector on the host.

    Args:
        weights: Candidate marginal.
        size: Expected number of entries.
        name: Label used in error messages.

    Returns:
        The weights as a float64 NumPy array.

    Raises:
        InfeasibleMarginalsError: If the vector has the wrong length,
            contains negative or non-finite entries, or does not sum
            to one within :data:`MARGINAL_TOLERANCE`.
    """
    w = np.asarray(weights, dtype=np.float64)
    if w.ndim != 1 or w.shape[0] != size:
        raise InfeasibleMarginalsError(
            f'{name} has shape {w.shape}, expected ({size},)'
        )
    if not np.all(np.isfinite(w)) or np.any(w < 0.0):
        raise InfeasibleMarginalsError(
            f'{name} must be finite and non-negative'
        )
    total = float(w.sum())
    if abs(total - 1.0) > MARGINAL_TOLERANCE:
        raise InfeasibleMarginalsError(
            f'{name} sums to {total:.8g}, expected 1'
        )
    return w


def is_uniform(weights: np.ndarray) -> bool:
    """Whether a validated marginal is uniform."""
    return bool(np.allclose(weights, 1.0 / weights.shape[0]))
