# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
r"""Entropy-regularised optimal transport (Sinkhorn scaling).

With Gibbs kernel :math:`K = \exp(-C / \varepsilon)` the scaling
vectors are updated as

.. math::

    u \leftarrow w_1 / (K v), \qquad v \leftarrow w_2 / (K^\top u)

for a fixed number of rounds and the plan is
:math:`P = \mathrm{diag}(u) K \mathrm{diag}(v)`.  The updates are
carried out on :math:`\log u` and :math:`\log v` with
:func:`jax.scipy.special.logsumexp`, so small :math:`\varepsilon` does
not overflow the kernel.  The iteration count is fixed (no early exit)
which keeps the cost per call bounded and results reproducible.

The debiased value

.. math::

    \bar W_\varepsilon(x, y) = W_\varepsilon(x, y)
        - \tfrac12 W_\varepsilon(x, x) - \tfrac12 W_\varepsilon(y, y)

vanishes for identical samples and tends to the exact transport
distance as :math:`\varepsilon \to 0`.
"""

import logging
import math
import warnings
from functools import partial

import jax
import jax.numpy as jnp
from jax import lax
from jax.scipy.special import logsumexp
from jaxtyping import Array, Float

from winferjax.containers import SinkhornResult
from winferjax.cost import as_sample, check_same_dimension, cost_matrix
from winferjax.errors import ConfigurationError, NumericalInstabilityWarning
from winferjax.types import CostMatrix, Scalar
from winferjax.weights import check_marginals, uniform_weights

logger = logging.getLogger(__name__)

MASS_UNDERFLOW = 1e-8
"""Plan mass below this fraction of the target mass counts as lost."""


@partial(jax.jit, static_argnames=('niterations',))
def _log_sinkhorn(
    log_w1: Float[Array, ' n'],
    log_w2: Float[Array, ' m'],
    cost: CostMatrix,
    eps: Scalar,
    niterations: int,
) -> Float[Array, 'n m']:
    """Run the log-domain scaling loop and return the plan."""
    log_k = -cost / eps

    def _round(
        _: int,
        carry: tuple[Array, Array],
    ) -> tuple[Array, Array]:
        _, log_v = carry
        log_u = log_w1 - logsumexp(log_k + log_v[None, :], axis=1)
        log_v = log_w2 - logsumexp(log_k + log_u[:, None], axis=0)
        return log_u, log_v

    init = (jnp.zeros_like(log_w1), jnp.zeros_like(log_w2))
    log_u, log_v = lax.fori_loop(0, niterations, _round, init)
    return jnp.exp(log_u[:, None] + log_k + log_v[None, :])


def _check_arguments(eps: float, niterations: int, p: float) -> None:
    if not eps > 0:
        raise ConfigurationError(f'eps must be positive, got {eps}')
    if niterations < 1:
        raise ConfigurationError(
            f'niterations must be >= 1, got {niterations}'
        )
    if p < 1:
        raise ConfigurationError(f'p must be >= 1, got {p}')


def sinkhorn_plan(
    w1: Float[Array, ' n'],
    w2: Float[Array, ' m'],
    cost: CostMatrix,
    eps: float,
    niterations: int,
) -> Float[Array, 'n m']:
    r"""Compute the entropic transport plan.

    Args:
        w1: First marginal, non-negative and summing to one.
        w2: Second marginal, non-negative and summing to one.
        cost: Ground cost matrix, shape ``(n, m)``.
        eps: Regulariser :math:`\varepsilon > 0`.
        niterations: Exact number of scaling rounds.

    Returns:
        Plan of shape ``(n, m)``.  A
        :class:`~winferjax.errors.NumericalInstabilityWarning` is
        emitted if its mass underflowed.
    """
    _check_arguments(eps, niterations, 1.0)
    n, m = cost.shape
    a = check_marginals(w1, n, 'w1')
    b = check_marginals(w2, m, 'w2')
    cost = jnp.asarray(cost)
    log_w1 = jnp.log(jnp.asarray(a, dtype=cost.dtype))
    log_w2 = jnp.log(jnp.asarray(b, dtype=cost.dtype))
    plan = _log_sinkhorn(log_w1, log_w2, cost, eps, niterations)
    _check_mass(plan, eps)
    return plan


def sinkhorn_transport(
    w1: Float[Array, ' n'],
    w2: Float[Array, ' m'],
    cost: CostMatrix,
    p: float = 1.0,
    eps: float = 0.05,
    niterations: int = 100,
) -> tuple[float, Float[Array, 'n m']]:
    r"""Regularised transport distance for a given cost matrix.

    Args:
        w1: First marginal.
        w2: Second marginal.
        cost: Ground cost matrix.
        p: Transport exponent.
        eps: Regulariser :math:`\varepsilon > 0`.
        niterations: Exact number of scaling rounds.

    Returns:
        A tuple ``(raw, plan)`` with
        ``raw = (sum(plan * cost)) ** (1 / p)``.
    """
    _check_arguments(eps, niterations, p)
    plan = sinkhorn_plan(w1, w2, cost, eps, niterations)
    total = float(jnp.sum(plan * cost))
    return max(total, 0.0) ** (1.0 / p), plan


def sinkhorn_distance(
    x: Float[Array, 'n d'],
    y: Float[Array, 'm d'],
    p: float = 1.0,
    ground_p: float = 2.0,
    eps: float = 0.05,
    niterations: int = 100,
    w1: Float[Array, ' n'] | None = None,
    w2: Float[Array, ' m'] | None = None,
) -> SinkhornResult:
    """Raw and debiased Sinkhorn distances between two samples.

    The two self-distances are computed with the same ``eps`` and
    ``niterations`` as the cross distance.

    Args:
        x: First sample, shape ``(n, d)`` or ``(n,)``.
        y: Second sample, shape ``(m, d)`` or ``(m,)``.
        p: Transport exponent.
        ground_p: Exponent applied to the Euclidean ground distance.
        eps: Regulariser, must be positive.
        niterations: Exact number of scaling rounds, at least one.
        w1: Weights on ``x``; uniform when omitted.
        w2: Weights on ``y``; uniform when omitted.

    Returns:
        :class:`~winferjax.containers.SinkhornResult`.

    Raises:
        ConfigurationError: For non-positive ``eps``, mismatched
            dimensions or invalid marginals.
    """
    _check_arguments(eps, niterations, p)
    x, y = as_sample(x), as_sample(y)
    check_same_dimension(x, y)
    w1 = uniform_weights(x.shape[0]) if w1 is None else w1
    w2 = uniform_weights(y.shape[0]) if w2 is None else w2

    def _raw(s, t, ws, wt):
        cost = cost_matrix(s, t, ground_p=ground_p)
        return sinkhorn_transport(ws, wt, cost, p, eps, niterations)

    raw_xy, plan = _raw(x, y, w1, w2)
    raw_xx, _ = _raw(x, x, w1, w1)
    raw_yy, _ = _raw(y, y, w2, w2)
    corrected = raw_xy - 0.5 * raw_xx - 0.5 * raw_yy
    # Tiny negative values are round-off.
    if corrected < -1e-6 * max(raw_xy, 1.0):
        warnings.warn(
            f'debiased Sinkhorn distance is negative ({corrected:.3g}); '
            f'eps={eps} may be too small for niterations={niterations}',
            NumericalInstabilityWarning,
            stacklevel=2,
        )
    return SinkhornResult(raw=raw_xy, corrected=corrected, plan=plan)


def _check_mass(plan: Float[Array, 'n m'], eps: float) -> None:
    """Warn when the plan lost its mass to underflow."""
    total = float(jnp.sum(plan))
    if not math.isfinite(total) or total < MASS_UNDERFLOW:
        logger.debug('Sinkhorn plan mass %.3g at eps=%g', total, eps)
        warnings.warn(
            f'Sinkhorn plan mass underflowed to {total:.3g} at eps={eps}',
            NumericalInstabilityWarning,
            stacklevel=3,
        )
