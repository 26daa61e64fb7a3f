# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
r"""Swap local search for the optimal assignment.

Starting from an initial matching :math:`\sigma`, each pass evaluates
the gain of exchanging the partners of every pair :math:`(i, j)`,

.. math::

    g_{ij} = C_{i\sigma_i} + C_{j\sigma_j}
           - C_{i\sigma_j} - C_{j\sigma_i},

and applies the best swap if :math:`g_{ij}` exceeds ``tolerance``.
The search stops at a local optimum or when the pass budget runs out.
The result is the cost of a valid matching, hence an upper bound on
the exact transport distance.  Started from the Hilbert matching it is
never worse than :func:`~winferjax.hilbert.hilbert_distance`.

The search is a single :func:`jax.lax.while_loop`.
"""

import logging
import warnings

import jax
import jax.numpy as jnp
from jax import lax
from jaxtyping import Array, Bool, Float, Int

from winferjax.containers import SwapResult
from winferjax.cost import as_sample, check_same_dimension, cost_matrix
from winferjax.errors import (
    ConfigurationError,
    NumericalInstabilityWarning,
    SizeMismatchError,
)
from winferjax.hilbert import hilbert_matching
from winferjax.types import CostMatrix, IntScalar, Scalar

logger = logging.getLogger(__name__)


def _swap_gains(
    cost: CostMatrix,
    matching: Int[Array, ' n'],
) -> Float[Array, 'n n']:
    """Cost decrease obtained by swapping the partners of i and j."""
    # c_perm[i, j] = cost[i, matching[j]]
    c_perm = cost[:, matching]
    matched = jnp.diagonal(c_perm)
    return matched[:, None] + matched[None, :] - c_perm - c_perm.T


@jax.jit
def _swap_search(
    cost: CostMatrix,
    matching: Int[Array, ' n'],
    tolerance: Scalar,
    max_passes: IntScalar,
) -> tuple[Int[Array, ' n'], Int[Array, ''], Bool[Array, '']]:
    """Apply best-improvement swaps until none beats ``tolerance``."""
    n = cost.shape[0]

    def _cond(state):
        _, npasses, improved = state
        return improved & (npasses < max_passes)

    def _body(state):
        sigma, npasses, _ = state
        gains = _swap_gains(cost, sigma)
        flat = jnp.argmax(gains)
        i, j = flat // n, flat % n
        improved = gains[i, j] > tolerance
        swapped = sigma.at[i].set(sigma[j]).at[j].set(sigma[i])
        sigma = jnp.where(improved, swapped, sigma)
        return sigma, npasses + improved.astype(npasses.dtype), improved

    init = (matching, jnp.asarray(0, dtype=jnp.int32), jnp.asarray(True))
    sigma, npasses, _ = lax.while_loop(_cond, _body, init)
    converged = jnp.max(_swap_gains(cost, sigma)) <= tolerance
    return sigma, npasses, converged


def swap_transport(
    cost: CostMatrix,
    p: float = 1.0,
    tolerance: float = 1e-5,
    max_passes: int | None = None,
    initial_matching: Int[Array, ' n'] | None = None,
) -> SwapResult:
    r"""Swap search on a square cost matrix with uniform marginals.

    Args:
        cost: Ground cost matrix, shape ``(n, n)``.
        p: Transport exponent.
        tolerance: Minimum cost decrease for a swap to be applied.
        max_passes: Cap on applied swaps; defaults to ``20 * n``.
        initial_matching: Starting permutation; identity when omitted.

    Returns:
        :class:`~winferjax.containers.SwapResult`.  When the cap is
        hit ``converged`` is False and a
        :class:`~winferjax.errors.NumericalInstabilityWarning` is
        emitted.
    """
    cost = jnp.asarray(cost)
    n, m = cost.shape
    if n != m:
        raise SizeMismatchError(
            f'swap search needs a square cost matrix, got {cost.shape}'
        )
    if tolerance < 0:
        raise ConfigurationError(f'tolerance must be >= 0, got {tolerance}')
    if p < 1:
        raise ConfigurationError(f'p must be >= 1, got {p}')
    max_passes = 20 * n if max_passes is None else max_passes
    if max_passes < 0:
        raise ConfigurationError(f'max_passes must be >= 0, got {max_passes}')
    if initial_matching is None:
        initial_matching = jnp.arange(n)

    sigma, npasses, converged = _swap_search(
        cost,
        jnp.asarray(initial_matching, dtype=jnp.int32),
        jnp.asarray(tolerance, dtype=cost.dtype),
        max_passes,
    )
    if not bool(converged):
        logger.debug('swap search stopped after %d passes', int(npasses))
        warnings.warn(
            f'swap search did not converge within {max_passes} passes',
            NumericalInstabilityWarning,
            stacklevel=2,
        )
    total = jnp.mean(cost[jnp.arange(n), sigma])
    return SwapResult(
        distance=float(total) ** (1.0 / p),
        matching=sigma,
        npasses=npasses,
        converged=converged,
    )


def swap_distance(
    x: Float[Array, 'n d'],
    y: Float[Array, 'n d'],
    p: float = 1.0,
    ground_p: float = 2.0,
    tolerance: float = 1e-5,
    max_passes: int | None = None,
    initial: str = 'hilbert',
) -> SwapResult:
    """Swap-search approximation of the transport distance.

    Args:
        x: First sample.
        y: Second sample of the same size.
        p: Transport exponent.
        ground_p: Exponent applied to the Euclidean ground distance.
        tolerance: Minimum cost decrease for a swap to be applied.
        max_passes: Cap on applied swaps; defaults to ``20 * n``.
        initial: ``'hilbert'`` to start from the Hilbert rank matching,
            ``'identity'`` to pair points in input order.

    Returns:
        :class:`~winferjax.containers.SwapResult`.

    Raises:
        SizeMismatchError: If the samples differ in size.
        ConfigurationError: If ``initial`` is unknown.
    """
    x, y = as_sample(x), as_sample(y)
    check_same_dimension(x, y)
    if x.shape[0] != y.shape[0]:
        raise SizeMismatchError(
            f'swap search needs equal sizes, got {x.shape[0]} '
            f'and {y.shape[0]}'
        )
    if initial == 'hilbert':
        start = hilbert_matching(x, y)
    elif initial == 'identity':
        start = jnp.arange(x.shape[0])
    else:
        raise ConfigurationError(f'unknown initial matching {initial!r}')
    cost = cost_matrix(x, y, ground_p=ground_p)
    return swap_transport(cost, p, tolerance, max_passes, start)
