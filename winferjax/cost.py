# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
r"""Ground cost matrices between two point clouds.

Entry :math:`(i, j)` of the cost matrix is
:math:`\lVert x_i - y_j \rVert^{p_g}` where :math:`p_g` is the
``ground_p`` exponent.  Samples are arrays with one point per row; a
1-D array is read as points on the real line.
"""

from functools import partial

import jax
import jax.numpy as jnp
from jaxtyping import Array, Float

from winferjax.errors import ConfigurationError, DimensionError
from winferjax.types import CostMatrix, Sample


def as_sample(x) -> Sample:
    """Coerce an array to the ``(num_points, point_dim)`` layout."""
    x = jnp.asarray(x, dtype=jnp.result_type(float))
    if x.ndim == 1:
        return x[:, None]
    if x.ndim != 2:
        raise DimensionError(
            f'sample must be 1-D or 2-D, got shape {x.shape}'
        )
    return x


def check_same_dimension(x: Sample, y: Sample) -> None:
    """Raise :class:`DimensionError` if point dimensions differ."""
    if x.shape[1] != y.shape[1]:
        raise DimensionError(
            f'samples have point dimensions {x.shape[1]} and {y.shape[1]}'
        )


@partial(jax.jit, static_argnames=('norm_ord',))
def _pairwise_cost(
    x: Sample,
    y: Sample,
    ground_p: float,
    norm_ord: int | float,
) -> CostMatrix:
    diffs = x[:, None, :] - y[None, :, :]
    dist = jnp.linalg.norm(diffs, ord=norm_ord, axis=-1)
    return dist**ground_p


def cost_matrix(
    x: Float[Array, 'n d'],
    y: Float[Array, 'm d'],
    ground_p: float = 2.0,
    norm_ord: int | float = 2,
) -> CostMatrix:
    r"""Build the pairwise ground cost matrix.

    Args:
        x: First sample, shape ``(n, d)`` or ``(n,)``.
        y: Second sample, shape ``(m, d)`` or ``(m,)``.
        ground_p: Exponent :math:`p_g \geq 1` applied to the norm.
        norm_ord: Order of the vector norm (``2`` Euclidean,
            ``1`` Manhattan, ``jnp.inf`` max-norm).

    Returns:
        Cost matrix of shape ``(n, m)``.

    Raises:
        DimensionError: If the samples live in different dimensions.
        ConfigurationError: If ``ground_p < 1``.
    """
    if ground_p < 1:
        raise ConfigurationError(f'ground_p must be >= 1, got {ground_p}')
    x, y = as_sample(x), as_sample(y)
    check_same_dimension(x, y)
    exponent = jnp.asarray(ground_p, dtype=x.dtype)
    return _pairwise_cost(x, y, exponent, norm_ord)
