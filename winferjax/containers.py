# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Containers for models, distance results and sampler output.

All containers are :class:`~typing.NamedTuple` subclasses so they are
registered as JAX PyTrees by default.
"""

from collections.abc import Callable
from typing import Any, NamedTuple

from jaxtyping import Array, Bool, Float, Int

from winferjax.errors import TerminationStatus
from winferjax.types import IntScalar, Scalar


class ABCModel(NamedTuple):
    r"""Simulator-only model consumed by the sampler.

    Attributes:
        rprior: Function ``(key, n) -> thetas`` drawing ``n`` parameter
            vectors of shape ``(n, parameter_dim)`` from the prior.
        dprior: Function ``(thetas) -> log_density`` evaluating the
            prior log-density of a ``(n, parameter_dim)`` batch.
        simulate: Function ``(key, theta) -> dataset`` drawing one
            synthetic dataset from :math:`p(y \mid \theta)`.
        parameter_dim: Dimension of :math:`\theta`.
    """

    rprior: Callable
    dprior: Callable
    simulate: Callable
    parameter_dim: int


class TransportResult(NamedTuple):
    r"""Output of the exact optimal transport solver.

    Attributes:
        distance: :math:`(\sum_{ij} P_{ij} C_{ij})^{1/p}`.
        plan: Optimal transport plan, shape ``(n, m)``.
        cost: Total transport cost :math:`\sum_{ij} P_{ij} C_{ij}`.
    """

    distance: Scalar
    plan: Float[Array, 'n m']
    cost: Scalar


class SinkhornResult(NamedTuple):
    r"""Output of the entropy-regularised transport solver.

    Attributes:
        raw: Regularised transport distance between the two samples.
        corrected: Debiased value
            :math:`W(x, y) - \tfrac12 W(x, x) - \tfrac12 W(y, y)`.
        plan: Scaled plan between the two samples, shape ``(n, m)``.
    """

    raw: Scalar
    corrected: Scalar
    plan: Float[Array, 'n m']


class SwapResult(NamedTuple):
    """Output of the swap local search.

    Attributes:
        distance: Transport distance under the final matching.
        matching: ``matching[i]`` is the index of ``y`` paired with
            ``x[i]``.
        npasses: Number of improving swaps applied.
        converged: False when the pass cap stopped the search.
    """

    distance: Scalar
    matching: Int[Array, ' n']
    npasses: IntScalar
    converged: Bool[Array, '']


class KernelResult(NamedTuple):
    """Output of one r-hit MCMC kernel invocation.

    Attributes:
        theta: Last accepted parameter vector.
        dataset: Dataset simulated at ``theta``.
        distance: Distance of ``dataset`` to the observations.
        nhits: Accepted moves.
        ntrials: Proposals made (bounded by ``maxtrials``).
        nsimulations: Model simulations consumed.
        stuck: True when ``maxtrials`` ran out before ``R`` hits.
    """

    theta: Float[Array, ' parameter_dim']
    dataset: Any
    distance: float
    nhits: int
    ntrials: int
    nsimulations: int
    stuck: bool


class ABCSMCPosterior(NamedTuple):
    r"""Full history of an ABC-SMC run.

    Entry ``t`` of each ``*_history`` tuple describes the population
    after step ``t``; step 0 is the prior population.

    Attributes:
        thetas_history: Parameter populations,
            each of shape ``(nthetas, parameter_dim)``.
        distances_history: Particle distances, each ``(nthetas,)``.
        threshold_history: Acceptance thresholds :math:`\tau_t`.
        nsimulations_history: Model simulations consumed at each step.
        stuck_history: Fraction of particles whose last move was stuck.
        final_datasets: Datasets simulated for the last population.
        status: Why the run stopped.
        elapsed: Wall-clock seconds spent, summed over continuations.
        config: The :class:`~winferjax.config.SMCConfig` used.
    """

    thetas_history: tuple[Float[Array, 'nthetas parameter_dim'], ...]
    distances_history: tuple[Float[Array, ' nthetas'], ...]
    threshold_history: tuple[float, ...]
    nsimulations_history: tuple[int, ...]
    stuck_history: tuple[float, ...]
    final_datasets: list
    status: TerminationStatus
    elapsed: float
    config: Any

    @property
    def nsteps(self) -> int:
        """Number of completed steps, including initialisation."""
        return len(self.threshold_history)

    @property
    def total_simulations(self) -> int:
        """Model simulations consumed over the whole run."""
        return sum(self.nsimulations_history)
