# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Validated configuration for the ABC-SMC sampler.

All options are checked once, when the configuration is built, so a
bad value fails before any model simulation is spent.
"""

import dataclasses

from winferjax.errors import ConfigurationError
from winferjax.proposals import Proposal, RandomWalkProposal
from winferjax.threshold import DiversityThresholdPolicy, ThresholdPolicy


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclasses.dataclass(frozen=True)
class SMCConfig:
    """Options of :func:`~winferjax.sampler.abc_smc`.

    Attributes:
        nthetas: Population size.
        nmoves: r-hit kernel applications per particle and step.
        proposal: Proposal strategy, refitted at every step.
        minimum_diversity: Required fraction of distinct particles,
            in ``(0, 1]``.
        R: Hits required by each r-hit kernel call.
        maxtrials: Proposal cap for each r-hit kernel call.
        maxtime: Wall-clock budget in seconds.
        maxsimulation: Model simulation budget.
        maxstep: Number of SMC steps after initialisation.
        initial_quantile: Quantile of the prior-population distances
            used as the first threshold.
        threshold_policy: Rule choosing each next threshold.
        stuck_escalation: Stop with
            :attr:`~winferjax.errors.TerminationStatus.STUCK_COLLAPSE`
            when the share of non-stuck particles falls below
            ``minimum_diversity``.
    """

    nthetas: int = 1024
    nmoves: int = 1
    proposal: Proposal = dataclasses.field(default_factory=RandomWalkProposal)
    minimum_diversity: float = 0.5
    R: int = 2
    maxtrials: int = 100_000
    maxtime: float | None = None
    maxsimulation: int | None = None
    maxstep: int | None = None
    initial_quantile: float = 1.0
    threshold_policy: ThresholdPolicy = dataclasses.field(
        default_factory=DiversityThresholdPolicy
    )
    stuck_escalation: bool = True

    def __post_init__(self):
        if not _is_int(self.nthetas) or self.nthetas < 2:
            raise ConfigurationError(
                f'nthetas must be an integer >= 2, got {self.nthetas!r}'
            )
        if not _is_int(self.nmoves) or self.nmoves < 1:
            raise ConfigurationError(
                f'nmoves must be a positive integer, got {self.nmoves!r}'
            )
        if not _is_int(self.R) or self.R < 1:
            raise ConfigurationError(
                f'R must be a positive integer, got {self.R!r}'
            )
        if not _is_int(self.maxtrials) or self.maxtrials < self.R:
            raise ConfigurationError(
                f'maxtrials must be an integer >= R, got {self.maxtrials!r}'
            )
        if not 0.0 < self.minimum_diversity <= 1.0:
            raise ConfigurationError(
                'minimum_diversity must lie in (0, 1], got '
                f'{self.minimum_diversity!r}'
            )
        if not 0.0 < self.initial_quantile <= 1.0:
            raise ConfigurationError(
                'initial_quantile must lie in (0, 1], got '
                f'{self.initial_quantile!r}'
            )
        if self.maxtime is not None and not self.maxtime > 0:
            raise ConfigurationError(
                f'maxtime must be positive, got {self.maxtime!r}'
            )
        for name in ('maxsimulation', 'maxstep'):
            value = getattr(self, name)
            if value is not None and (not _is_int(value) or value < 1):
                raise ConfigurationError(
                    f'{name} must be a positive integer, got {value!r}'
                )
        if (
            self.maxtime is None
            and self.maxsimulation is None
            and self.maxstep is None
        ):
            raise ConfigurationError(
                'one of maxtime, maxsimulation or maxstep must be set'
            )
        for method in ('fit', 'sample', 'log_density_ratio'):
            if not callable(getattr(self.proposal, method, None)):
                raise ConfigurationError(
                    f'proposal has no callable {method!r} method'
                )
        if not callable(self.threshold_policy):
            raise ConfigurationError('threshold_policy must be callable')

    def replace(self, **changes) -> 'SMCConfig':
        """Return a validated copy with some fields changed."""
        return dataclasses.replace(self, **changes)
