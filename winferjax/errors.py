# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Exceptions, warnings and termination flags.

Configuration problems are fatal and raised before any simulation is
spent.  Numerical trouble is reported through
:class:`NumericalInstabilityWarning`, and sampler terminations are
reported through :class:`TerminationStatus` rather than raised.
"""

import enum


class ConfigurationError(ValueError):
    """Invalid inputs or options detected before computation starts."""


class DimensionError(ConfigurationError):
    """Two samples have points of different dimensionality."""


class InfeasibleMarginalsError(ConfigurationError):
    """Marginal weights are negative or do not sum to one."""


class SizeMismatchError(ConfigurationError):
    """An engine requiring equal sample sizes received unequal ones."""


class NumericalInstabilityWarning(RuntimeWarning):
    """Non-fatal loss of numerical accuracy (underflow, non-convergence)."""


class TerminationStatus(enum.Enum):
    """Reason an ABC-SMC run stopped."""

    MAX_STEP = 'max_step'
    MAX_SIMULATION = 'max_simulation'
    MAX_TIME = 'max_time'
    DIVERSITY_COLLAPSE = 'diversity_collapse'
    STUCK_COLLAPSE = 'stuck_collapse'

    @property
    def is_budget(self) -> bool:
        """Whether the run stopped because a budget ran out."""
        return self in (
            TerminationStatus.MAX_STEP,
            TerminationStatus.MAX_SIMULATION,
            TerminationStatus.MAX_TIME,
        )

    @property
    def is_collapse(self) -> bool:
        """Whether the population lost diversity (plain or stuck)."""
        return self in (
            TerminationStatus.DIVERSITY_COLLAPSE,
            TerminationStatus.STUCK_COLLAPSE,
        )
