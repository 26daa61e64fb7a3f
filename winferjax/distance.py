# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
r"""Distance capabilities consumed by the ABC-SMC sampler.

The sampler only needs a function ``distance(dataset) -> float`` that
compares a simulated dataset with observations fixed in advance.
:func:`make_distance` wraps any of the four transport engines into
such a function.  :func:`curve_matching_distance` composes a base
engine with :func:`augment_with_index`, which treats a time series
:math:`(y_1, \dots, y_T)` as the point cloud
:math:`\{(\lambda t, y_t)\}_{t=1}^T` so that both the values and their
timing are matched.
"""

import math
from collections.abc import Callable

import jax.numpy as jnp
from jaxtyping import Array, Float

from winferjax.cost import as_sample
from winferjax.errors import ConfigurationError
from winferjax.exact import exact_distance
from winferjax.hilbert import hilbert_distance
from winferjax.sinkhorn import sinkhorn_distance
from winferjax.swap import swap_distance

METHODS = ('exact', 'sinkhorn', 'hilbert', 'swap')


def _engine(method: str) -> Callable[..., float]:
    """Return ``(x, y, p, ground_p, **options) -> float`` for a method."""
    if method == 'exact':
        return exact_distance
    if method == 'hilbert':
        return hilbert_distance
    if method == 'swap':
        return lambda x, y, **kw: float(swap_distance(x, y, **kw).distance)
    if method == 'sinkhorn':
        return lambda x, y, **kw: max(
            float(sinkhorn_distance(x, y, **kw).corrected), 0.0
        )
    raise ConfigurationError(
        f'unknown distance method {method!r}; expected one of {METHODS}'
    )


def make_distance(
    observed: Float[Array, 'n d'],
    method: str = 'exact',
    p: float = 1.0,
    ground_p: float = 2.0,
    **engine_options,
) -> Callable[[Float[Array, 'm d']], float]:
    """Bind an engine to fixed observations.

    Args:
        observed: Observed sample, shape ``(n, d)`` or ``(n,)``.
        method: One of ``'exact'``, ``'sinkhorn'``, ``'hilbert'`` or
            ``'swap'``.
        p: Transport exponent.
        ground_p: Exponent applied to the Euclidean ground distance.
        **engine_options: Forwarded to the engine, e.g. ``eps`` and
            ``niterations`` for Sinkhorn or ``tolerance`` for swap.

    Returns:
        Function ``distance(dataset) -> float``.  The debiased
        Sinkhorn value is clipped at zero. A dataset with non-finite
        entries, or a non-finite engine output, scores ``inf`` so that
        such datasets are never accepted.
    """
    engine = _engine(method)
    obs = as_sample(observed)

    def distance(dataset: Float[Array, 'm d']) -> float:
        sample = as_sample(dataset)
        if not bool(jnp.all(jnp.isfinite(sample))):
            return math.inf
        value = engine(
            sample, obs, p=p, ground_p=ground_p, **engine_options
        )
        return value if math.isfinite(value) else math.inf

    return distance


def augment_with_index(
    sample: Float[Array, 'T d'],
    lambda_: float = 1.0,
) -> Float[Array, 'T d_plus_1']:
    r"""Prepend the scaled time index to each point of a series.

    Args:
        sample: Time series, shape ``(T, d)`` or ``(T,)``.
        lambda_: Weight :math:`\lambda > 0` of the time coordinate;
            larger values make the matching follow time order.

    Returns:
        Array of shape ``(T, d + 1)`` whose first column is
        :math:`\lambda t` for :math:`t = 1, \dots, T`.
    """
    if not lambda_ > 0:
        raise ConfigurationError(f'lambda_ must be positive, got {lambda_}')
    y = as_sample(sample)
    t = jnp.arange(1, y.shape[0] + 1, dtype=y.dtype)
    return jnp.concatenate([lambda_ * t[:, None], y], axis=1)


def curve_matching_distance(
    observed: Float[Array, 'T d'],
    lambda_: float = 1.0,
    method: str = 'exact',
    p: float = 1.0,
    ground_p: float = 2.0,
    **engine_options,
) -> Callable[[Float[Array, 'T d']], float]:
    """Distance between time series compared as augmented point clouds.

    Args:
        observed: Observed series.
        lambda_: Weight of the time coordinate.
        method: Base engine, see :func:`make_distance`.
        p: Transport exponent.
        ground_p: Exponent applied to the Euclidean ground distance.
        **engine_options: Forwarded to the base engine.

    Returns:
        Function ``distance(series) -> float``.
    """
    base = make_distance(
        augment_with_index(observed, lambda_),
        method=method,
        p=p,
        ground_p=ground_p,
        **engine_options,
    )

    def distance(series: Float[Array, 'T d']) -> float:
        return base(augment_with_index(series, lambda_))

    return distance
