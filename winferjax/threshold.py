# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
r"""Adaptive threshold selection for ABC-SMC.

A threshold policy maps the current particle distances and the
previous threshold :math:`\tau_{t-1}` to the next threshold
:math:`\tau_t < \tau_{t-1}`, or to ``None`` when no admissible value
exists (diversity collapse).

Admissibility is measured by diversity: the number of *distinct*
distance values among particles with :math:`d \leq \tau_t`, divided by
the population size, must be at least ``minimum_diversity``.  Because
survivors are resampled with replacement to the full population size,
this bounds the fraction of distinct particles that enter the next
rejuvenation step.
"""

import dataclasses
import math
from typing import Protocol

import numpy as np
from jaxtyping import Array, Float

from winferjax.errors import ConfigurationError


class ThresholdPolicy(Protocol):
    """Contract shared by all threshold policies."""

    def __call__(
        self,
        distances: Float[Array, ' nthetas'],
        previous: float,
        nthetas: int,
        minimum_diversity: float,
    ) -> float | None: ...


def diversity(
    distances: Float[Array, ' nthetas'],
    threshold: float,
    nthetas: int,
) -> float:
    """Fraction of distinct distances at or below ``threshold``."""
    d = np.asarray(distances, dtype=np.float64)
    return np.unique(d[d <= threshold]).size / nthetas


def most_aggressive_threshold(
    distances: Float[Array, ' nthetas'],
    nthetas: int,
    minimum_diversity: float,
) -> float | None:
    """Smallest threshold whose survivors meet ``minimum_diversity``.

    The diversity of a candidate threshold ``c`` only grows with ``c``,
    so the answer is the ``k``-th smallest distinct finite distance
    with ``k = ceil(minimum_diversity * nthetas)``.

    Returns:
        The threshold, or ``None`` if fewer than ``k`` distinct finite
        distances exist.
    """
    d = np.asarray(distances, dtype=np.float64)
    distinct = np.unique(d[np.isfinite(d)])
    # Guard against 0.5 * 50 evaluating to 25.000000000000004.
    k = max(1, math.ceil(minimum_diversity * nthetas - 1e-9))
    if distinct.size < k:
        return None
    return float(distinct[k - 1])


@dataclasses.dataclass(frozen=True)
class DiversityThresholdPolicy:
    """Shrink the threshold as far as the diversity floor allows.

    Picks the smallest threshold meeting ``minimum_diversity``; the
    run collapses when that value is not strictly below the previous
    threshold.
    """

    def __call__(self, distances, previous, nthetas, minimum_diversity):
        tau = most_aggressive_threshold(distances, nthetas, minimum_diversity)
        if tau is None or not tau < previous:
            return None
        return tau


@dataclasses.dataclass(frozen=True)
class QuantileThresholdPolicy:
    """Take a fixed quantile of the distances, subject to diversity.

    The ``q``-quantile is raised to the diversity floor when needed.
    If the result is not below the previous threshold the diversity
    floor itself is used, and the run collapses if that fails too.

    Attributes:
        q: Quantile level in ``(0, 1)``.
    """

    q: float = 0.5

    def __post_init__(self):
        if not 0.0 < self.q < 1.0:
            raise ConfigurationError(f'q must lie in (0, 1), got {self.q}')

    def __call__(self, distances, previous, nthetas, minimum_diversity):
        floor = most_aggressive_threshold(
            distances, nthetas, minimum_diversity
        )
        if floor is None:
            return None
        d = np.asarray(distances, dtype=np.float64)
        tau = max(float(np.quantile(d[np.isfinite(d)], self.q)), floor)
        if not tau < previous:
            tau = floor
        return tau if tau < previous else None
