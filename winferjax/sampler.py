# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
r"""Adaptive ABC Sequential Monte Carlo with r-hit rejuvenation.

The sampler targets the sequence of ABC posteriors

.. math::

    \pi_t(\theta, y) \propto \pi(\theta)\, p(y \mid \theta)\,
        \mathbb{1}\{d(y, y_{\text{obs}}) \leq \tau_t\}

with a shrinking threshold :math:`\tau_t`.  A run moves through three
states:

1. **Initialising**: draw ``nthetas`` parameters from the prior,
   simulate and score them, and set :math:`\tau_0` to an order
   statistic of the distances.
2. **Stepping**: at each step choose :math:`\tau_t` with the threshold
   policy, resample uniformly among the survivors
   :math:`d \leq \tau_t`, refit the proposal on the resampled
   population (a barrier), then apply the r-hit kernel ``nmoves`` times
   to each particle.
3. **Terminated**: a budget ran out or diversity collapsed.  The
   reason is recorded in the returned posterior; nothing is raised.

Particle-level work is handed to a ``map_fn`` with the signature of
the builtin :func:`map`.  Every particle receives its own PRNG key and
simulation counts are summed after the map, so sequential and threaded
execution consume identical random streams.  Budgets are checked only
between steps: a step that has started always completes.
"""

import logging
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import NamedTuple

import jax.numpy as jnp
import jax.random as jr
import numpy as np
from blackjax.smc.resampling import multinomial
from jaxtyping import Array, Float

from winferjax.config import SMCConfig
from winferjax.containers import ABCModel, ABCSMCPosterior
from winferjax.errors import ConfigurationError, TerminationStatus
from winferjax.kernel import rhit_kernel
from winferjax.types import PRNGKeyT

logger = logging.getLogger(__name__)

MapFn = Callable[..., list]


def sequential_map(fn: Callable, *iterables) -> list:
    """Apply ``fn`` element-wise in the calling thread."""
    return list(map(fn, *iterables))


def thread_map(max_workers: int | None = None) -> MapFn:
    """Build a ``map_fn`` running particles on a thread pool.

    Args:
        max_workers: Pool size; ``None`` lets
            :class:`~concurrent.futures.ThreadPoolExecutor` decide.

    Returns:
        A function with the signature of :func:`sequential_map`.
        Results keep the input order.
    """

    def _map(fn: Callable, *iterables) -> list:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(fn, *iterables))

    return _map


class _Population(NamedTuple):
    """Population and threshold after one step."""

    thetas: Float[Array, 'nthetas parameter_dim']
    datasets: list
    distances: np.ndarray
    threshold: float


def _as_thetas(thetas, nthetas: int) -> Float[Array, 'nthetas dim']:
    return jnp.reshape(jnp.asarray(thetas), (nthetas, -1))


def _initialize(
    key: PRNGKeyT,
    model: ABCModel,
    distance_fn: Callable,
    config: SMCConfig,
    map_fn: MapFn,
) -> tuple[_Population, int]:
    """Draw, simulate and score the prior population."""
    k_prior, k_sim = jr.split(key)
    n = config.nthetas
    thetas = _as_thetas(model.rprior(k_prior, n), n)

    def _score(k, theta):
        dataset = model.simulate(k, theta)
        return dataset, float(distance_fn(dataset))

    scored = map_fn(_score, list(jr.split(k_sim, n)), list(thetas))
    datasets = [s[0] for s in scored]
    distances = np.array([s[1] for s in scored], dtype=np.float64)
    threshold = float(
        np.quantile(distances, config.initial_quantile, method='higher')
    )
    return _Population(thetas, datasets, distances, threshold), n


def _step(
    key: PRNGKeyT,
    population: _Population,
    model: ABCModel,
    distance_fn: Callable,
    config: SMCConfig,
    map_fn: MapFn,
) -> tuple[_Population, int, float] | None:
    """Advance one SMC step; ``None`` signals diversity collapse."""
    n = config.nthetas
    threshold = config.threshold_policy(
        population.distances,
        population.threshold,
        n,
        config.minimum_diversity,
    )
    if threshold is None:
        return None
    threshold = float(threshold)

    k_resample, k_move = jr.split(key)
    survivors = np.flatnonzero(population.distances <= threshold)
    weights = jnp.full((survivors.size,), 1.0 / survivors.size)
    picks = np.asarray(multinomial(k_resample, weights, n))
    ancestors = survivors[picks]
    thetas = population.thetas[ancestors]
    datasets = [population.datasets[i] for i in ancestors]
    distances = population.distances[ancestors]

    # Barrier: every particle sees the same fitted proposal.
    proposal = config.proposal.fit(thetas)

    def _move(k, theta, dataset, distance):
        nsimulations = 0
        stuck = False
        for k_kernel in jr.split(k, config.nmoves):
            result = rhit_kernel(
                k_kernel,
                theta,
                dataset,
                distance,
                threshold,
                model,
                distance_fn,
                proposal,
                R=config.R,
                maxtrials=config.maxtrials,
            )
            theta, dataset, distance = (
                result.theta,
                result.dataset,
                result.distance,
            )
            nsimulations += result.nsimulations
            stuck = result.stuck
        return theta, dataset, distance, nsimulations, stuck

    moved = map_fn(
        _move,
        list(jr.split(k_move, n)),
        list(thetas),
        datasets,
        list(distances),
    )
    new_population = _Population(
        thetas=jnp.stack([m[0] for m in moved]),
        datasets=[m[1] for m in moved],
        distances=np.array([m[2] for m in moved], dtype=np.float64),
        threshold=threshold,
    )
    nsimulations = sum(m[3] for m in moved)
    stuck_fraction = float(np.mean([m[4] for m in moved]))
    return new_population, nsimulations, stuck_fraction


class _History:
    """Append-only record, frozen into an :class:`ABCSMCPosterior`."""

    def __init__(self, posterior: ABCSMCPosterior | None = None):
        if posterior is None:
            self.thetas, self.distances, self.thresholds = [], [], []
            self.nsimulations, self.stuck = [], []
        else:
            self.thetas = list(posterior.thetas_history)
            self.distances = list(posterior.distances_history)
            self.thresholds = list(posterior.threshold_history)
            self.nsimulations = list(posterior.nsimulations_history)
            self.stuck = list(posterior.stuck_history)

    def append(self, population: _Population, nsimulations, stuck):
        self.thetas.append(population.thetas)
        self.distances.append(jnp.asarray(population.distances))
        self.thresholds.append(population.threshold)
        self.nsimulations.append(int(nsimulations))
        self.stuck.append(float(stuck))

    def freeze(self, population, status, elapsed, config):
        return ABCSMCPosterior(
            thetas_history=tuple(self.thetas),
            distances_history=tuple(self.distances),
            threshold_history=tuple(self.thresholds),
            nsimulations_history=tuple(self.nsimulations),
            stuck_history=tuple(self.stuck),
            final_datasets=list(population.datasets),
            status=status,
            elapsed=elapsed,
            config=config,
        )


def _run_steps(
    key: PRNGKeyT,
    population: _Population,
    history: _History,
    model: ABCModel,
    distance_fn: Callable,
    config: SMCConfig,
    map_fn: MapFn,
    start: float,
    maxstep: int | None,
    maxtime: float | None,
    maxsimulation: int | None,
    nsimulations: int,
) -> tuple[_Population, TerminationStatus]:
    """Step until a budget runs out or diversity collapses."""
    nsteps = 0
    while True:
        if maxstep is not None and nsteps >= maxstep:
            return population, TerminationStatus.MAX_STEP
        if maxsimulation is not None and nsimulations >= maxsimulation:
            return population, TerminationStatus.MAX_SIMULATION
        if maxtime is not None and time.perf_counter() - start >= maxtime:
            return population, TerminationStatus.MAX_TIME

        key, step_key = jr.split(key)
        outcome = _step(
            step_key, population, model, distance_fn, config, map_fn
        )
        if outcome is None:
            logger.info(
                'diversity collapse at threshold %.6g', population.threshold
            )
            return population, TerminationStatus.DIVERSITY_COLLAPSE

        population, step_simulations, stuck_fraction = outcome
        nsteps += 1
        nsimulations += step_simulations
        history.append(population, step_simulations, stuck_fraction)
        logger.info(
            'step %d: threshold=%.6g simulations=%d stuck=%.3f',
            len(history.thresholds) - 1,
            population.threshold,
            step_simulations,
            stuck_fraction,
        )
        if (
            config.stuck_escalation
            and 1.0 - stuck_fraction < config.minimum_diversity
        ):
            logger.info(
                'stuck fraction %.3f exceeds 1 - minimum_diversity',
                stuck_fraction,
            )
            return population, TerminationStatus.STUCK_COLLAPSE


def abc_smc(
    key: PRNGKeyT,
    model: ABCModel,
    distance_fn: Callable,
    config: SMCConfig,
    map_fn: MapFn | None = None,
) -> ABCSMCPosterior:
    r"""Run adaptive ABC-SMC with r-hit rejuvenation.

    Args:
        key: JAX PRNG key.
        model: Prior sampler, prior log-density and simulator.
        distance_fn: Function ``(dataset) -> float`` comparing a
            simulated dataset with the observations, e.g. from
            :func:`~winferjax.distance.make_distance`.
        config: Validated :class:`~winferjax.config.SMCConfig`.
        map_fn: Particle-level map with the signature of :func:`map`;
            defaults to :func:`sequential_map`.

    Returns:
        :class:`~winferjax.containers.ABCSMCPosterior` with one entry
        per completed step (step 0 is the prior population) and the
        termination status.
    """
    map_fn = sequential_map if map_fn is None else map_fn
    start = time.perf_counter()
    key, init_key = jr.split(key)

    population, nsimulations = _initialize(
        init_key, model, distance_fn, config, map_fn
    )
    history = _History()
    history.append(population, nsimulations, 0.0)
    logger.info(
        'initialised %d particles: threshold=%.6g',
        config.nthetas,
        population.threshold,
    )

    population, status = _run_steps(
        key,
        population,
        history,
        model,
        distance_fn,
        config,
        map_fn,
        start,
        maxstep=config.maxstep,
        maxtime=config.maxtime,
        maxsimulation=config.maxsimulation,
        nsimulations=nsimulations,
    )
    logger.info('terminated: %s', status.value)
    return history.freeze(
        population, status, time.perf_counter() - start, config
    )


def continue_abc_smc(
    key: PRNGKeyT,
    posterior: ABCSMCPosterior,
    model: ABCModel,
    distance_fn: Callable,
    nsteps: int,
    maxtime: float | None = None,
    maxsimulation: int | None = None,
    map_fn: MapFn | None = None,
) -> ABCSMCPosterior:
    """Resume a terminated run for additional steps.

    Stepping restarts from the last stored population and threshold.
    The returned posterior extends every history of ``posterior``;
    nothing is repeated or dropped.

    Args:
        key: JAX PRNG key; use a key not consumed by the original run.
        posterior: Output of :func:`abc_smc` or of a previous
            continuation.
        model: The model used for ``posterior``.
        distance_fn: The distance used for ``posterior``.
        nsteps: Fresh step budget.
        maxtime: Fresh wall-clock budget in seconds.
        maxsimulation: Fresh simulation budget for this continuation.
        map_fn: Particle-level map; defaults to :func:`sequential_map`.

    Returns:
        A new :class:`~winferjax.containers.ABCSMCPosterior`.

    Raises:
        ConfigurationError: If ``nsteps`` is not a positive integer.
    """
    if not isinstance(nsteps, int) or nsteps < 1:
        raise ConfigurationError(
            f'nsteps must be a positive integer, got {nsteps!r}'
        )
    config: SMCConfig = posterior.config
    map_fn = sequential_map if map_fn is None else map_fn
    start = time.perf_counter()

    population = _Population(
        thetas=posterior.thetas_history[-1],
        datasets=list(posterior.final_datasets),
        distances=np.asarray(posterior.distances_history[-1], np.float64),
        threshold=posterior.threshold_history[-1],
    )
    history = _History(posterior)
    population, status = _run_steps(
        key,
        population,
        history,
        model,
        distance_fn,
        config,
        map_fn,
        start,
        maxstep=nsteps,
        maxtime=maxtime,
        maxsimulation=maxsimulation,
        nsimulations=0,
    )
    logger.info('continuation terminated: %s', status.value)
    elapsed = posterior.elapsed + time.perf_counter() - start
    return history.freeze(population, status, elapsed, config)
