# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
r"""Threshold-constrained "r-hit" MCMC kernel.

One invocation moves a single particle :math:`(\theta, y, d)`.  Each
trial proposes :math:`\theta' \sim q(\cdot \mid \theta)` and accepts it
when both

.. math::

    u < \frac{\pi(\theta')\, q(\theta \mid \theta')}
             {\pi(\theta)\, q(\theta' \mid \theta)}
    \quad\text{and}\quad
    d(y', y_{\text{obs}}) \leq \tau,
    \qquad y' \sim p(\cdot \mid \theta'),

which leaves the ABC posterior restricted to
:math:`\{y : d(y, y_{\text{obs}}) \leq \tau\}` invariant.  Trials go
on until ``R`` acceptances ("hits") or ``maxtrials`` proposals.  The
Metropolis-Hastings coin is drawn before simulating, so rejected moves
cost no model simulation; the acceptance event is unchanged.

The simulator is an arbitrary Python callable, so the trial loop runs
on the host rather than under :func:`jax.jit`.
"""

import logging
import math
from collections.abc import Callable

import jax.numpy as jnp
import jax.random as jr
from jaxtyping import Array, Float

from winferjax.containers import ABCModel, KernelResult
from winferjax.errors import ConfigurationError
from winferjax.proposals import Proposal
from winferjax.types import PRNGKeyT

logger = logging.getLogger(__name__)


def _log_prior(model: ABCModel, theta: Float[Array, ' parameter_dim']):
    return float(jnp.reshape(model.dprior(theta[None, :]), (-1,))[0])


def rhit_kernel(
    key: PRNGKeyT,
    theta: Float[Array, ' parameter_dim'],
    dataset,
    distance: float,
    threshold: float,
    model: ABCModel,
    distance_fn: Callable,
    proposal: Proposal,
    R: int = 2,
    maxtrials: int = 100_000,
) -> KernelResult:
    r"""Rejuvenate one particle with the r-hit kernel.

    Args:
        key: JAX PRNG key for this particle's stream.
        theta: Current parameter vector.
        dataset: Dataset simulated at ``theta``.
        distance: Distance of ``dataset`` to the observations.
        threshold: Acceptance threshold :math:`\tau`.
        model: Model capabilities (``simulate`` and ``dprior`` are used).
        distance_fn: Function ``(dataset) -> float``.
        proposal: A fitted :class:`~winferjax.proposals.Proposal`.
        R: Number of hits required.
        maxtrials: Maximum number of proposals.

    Returns:
        :class:`~winferjax.containers.KernelResult`.  If ``maxtrials``
        runs out first the particle keeps its last accepted state
        (possibly the input) and ``stuck`` is True.
    """
    if R < 1 or maxtrials < 1:
        raise ConfigurationError('R and maxtrials must be positive')
    theta = jnp.atleast_1d(jnp.asarray(theta))
    log_prior = _log_prior(model, theta)
    nhits = ntrials = nsimulations = 0

    while nhits < R and ntrials < maxtrials:
        key, k_prop, k_coin, k_sim = jr.split(key, 4)
        ntrials += 1
        theta_new = jnp.atleast_1d(proposal.sample(k_prop, theta))
        log_prior_new = _log_prior(model, theta_new)
        if not log_prior_new > -math.inf:
            continue
        log_ratio = (
            log_prior_new
            - log_prior
            + float(proposal.log_density_ratio(theta, theta_new))
        )
        if not float(jnp.log(jr.uniform(k_coin))) < log_ratio:
            continue
        dataset_new = model.simulate(k_sim, theta_new)
        nsimulations += 1
        distance_new = float(distance_fn(dataset_new))
        if distance_new <= threshold:
            nhits += 1
            theta, dataset, distance = theta_new, dataset_new, distance_new
            log_prior = log_prior_new

    stuck = nhits < R
    if stuck:
        logger.debug(
            'r-hit kernel stuck: %d/%d hits after %d trials',
            nhits,
            R,
            ntrials,
        )
    return KernelResult(
        theta=theta,
        dataset=dataset,
        distance=distance,
        nhits=nhits,
        ntrials=ntrials,
        nsimulations=nsimulations,
        stuck=stuck,
    )
