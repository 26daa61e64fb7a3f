# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
r"""Diagnostic utilities for ABC-SMC posteriors.

Posterior summaries:

- :func:`posterior_mean`: parameter mean at a given step
- :func:`posterior_quantile`: parameter quantiles for credible
  intervals

Computational faithfulness:

- :func:`distance_diversity`: fraction of distinct distances per step
- :func:`unique_theta_fraction`: fraction of distinct particles per
  step
- :func:`cumulative_simulations`: simulation budget consumed so far
- :func:`threshold_decay`: ratio of successive thresholds

All functions are pure and read the
:class:`~winferjax.containers.ABCSMCPosterior` without modifying it.
Populations carry uniform weights, so summaries are plain averages.
"""

import jax.numpy as jnp
import numpy as np
from jaxtyping import Array, Float, Int

from winferjax.containers import ABCSMCPosterior


def posterior_mean(
    posterior: ABCSMCPosterior,
    step: int = -1,
) -> Float[Array, ' parameter_dim']:
    """Mean of the parameter population at one step.

    Args:
        posterior: ABC-SMC output.
        step: Step index; the last step by default.

    Returns:
        Parameter mean, shape ``(parameter_dim,)``.
    """
    return jnp.mean(posterior.thetas_history[step], axis=0)


def posterior_quantile(
    posterior: ABCSMCPosterior,
    q: Float[Array, ' num_quantiles'],
    step: int = -1,
) -> Float[Array, 'num_quantiles parameter_dim']:
    """Quantiles of the parameter population at one step.

    Args:
        posterior: ABC-SMC output.
        q: Quantile levels in [0, 1], e.g. ``jnp.array([0.025, 0.975])``
            for a 95% credible interval.
        step: Step index; the last step by default.

    Returns:
        Quantiles, shape ``(num_quantiles, parameter_dim)``.
    """
    return jnp.quantile(
        posterior.thetas_history[step], jnp.asarray(q), axis=0
    )


def distance_diversity(
    posterior: ABCSMCPosterior,
) -> Float[Array, ' nsteps']:
    r"""Fraction of distinct distance values at each step.

    This is the quantity the threshold policy keeps above
    ``minimum_diversity``: a value near 1 means the population still
    carries information, near 0 means it is dominated by copies.
    """
    return jnp.asarray(
        [
            np.unique(np.asarray(d)).size / np.asarray(d).size
            for d in posterior.distances_history
        ]
    )


def unique_theta_fraction(
    posterior: ABCSMCPosterior,
) -> Float[Array, ' nsteps']:
    """Fraction of distinct parameter vectors at each step."""
    return jnp.asarray(
        [
            np.unique(np.asarray(t), axis=0).shape[0] / t.shape[0]
            for t in posterior.thetas_history
        ]
    )


def cumulative_simulations(
    posterior: ABCSMCPosterior,
) -> Int[Array, ' nsteps']:
    """Model simulations consumed up to and including each step."""
    return jnp.cumsum(jnp.asarray(posterior.nsimulations_history))


def threshold_decay(
    posterior: ABCSMCPosterior,
) -> Float[Array, ' nsteps_minus_1']:
    r"""Ratios :math:`\tau_t / \tau_{t-1}` of successive thresholds.

    Values close to 1 mean the schedule has stalled; every value is
    below 1 for a completed run.
    """
    thresholds = jnp.asarray(posterior.threshold_history)
    return thresholds[1:] / thresholds[:-1]
