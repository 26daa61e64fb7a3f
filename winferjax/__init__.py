# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Likelihood-free inference with transport distances and ABC-SMC in JAX."""

from importlib.metadata import PackageNotFoundError as _PackageNotFoundError
from importlib.metadata import version as _version

from winferjax.config import SMCConfig
from winferjax.containers import (
    ABCModel,
    ABCSMCPosterior,
    KernelResult,
    SinkhornResult,
    SwapResult,
    TransportResult,
)
from winferjax.cost import cost_matrix
from winferjax.diagnostics import (
    cumulative_simulations,
    distance_diversity,
    posterior_mean,
    posterior_quantile,
    threshold_decay,
    unique_theta_fraction,
)
from winferjax.distance import (
    augment_with_index,
    curve_matching_distance,
    make_distance,
)
from winferjax.errors import (
    ConfigurationError,
    DimensionError,
    InfeasibleMarginalsError,
    NumericalInstabilityWarning,
    SizeMismatchError,
    TerminationStatus,
)
from winferjax.exact import exact_distance, exact_transport
from winferjax.hilbert import hilbert_distance, hilbert_index_order
from winferjax.kernel import rhit_kernel
from winferjax.proposals import (
    IndependentGaussianProposal,
    IndependentMixtureProposal,
    RandomWalkProposal,
)
from winferjax.sampler import (
    abc_smc,
    continue_abc_smc,
    sequential_map,
    thread_map,
)
from winferjax.sinkhorn import sinkhorn_distance, sinkhorn_transport
from winferjax.swap import swap_distance, swap_transport
from winferjax.threshold import (
    DiversityThresholdPolicy,
    QuantileThresholdPolicy,
)

try:
    __version__ = _version('winferjax')
except _PackageNotFoundError:
    __version__ = '0.0.0'

__all__ = [
    'ABCModel',
    'ABCSMCPosterior',
    'ConfigurationError',
    'DimensionError',
    'DiversityThresholdPolicy',
    'IndependentGaussianProposal',
    'IndependentMixtureProposal',
    'InfeasibleMarginalsError',
    'KernelResult',
    'NumericalInstabilityWarning',
    'QuantileThresholdPolicy',
    'RandomWalkProposal',
    'SMCConfig',
    'SinkhornResult',
    'SizeMismatchError',
    'SwapResult',
    'TerminationStatus',
    'TransportResult',
    '__version__',
    'abc_smc',
    'augment_with_index',
    'continue_abc_smc',
    'cost_matrix',
    'cumulative_simulations',
    'curve_matching_distance',
    'distance_diversity',
    'exact_distance',
    'exact_transport',
    'hilbert_distance',
    'hilbert_index_order',
    'make_distance',
    'posterior_mean',
    'posterior_quantile',
    'rhit_kernel',
    'sequential_map',
    'sinkhorn_distance',
    'sinkhorn_transport',
    'swap_distance',
    'swap_transport',
    'thread_map',
    'threshold_decay',
    'unique_theta_fraction',
]
