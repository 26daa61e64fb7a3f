# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Tests for the package-level API."""

from importlib.metadata import PackageNotFoundError
from unittest.mock import patch

from winferjax import __version__


def test_version_is_accessible():
    """Test that __version__ is a non-empty string."""
    assert isinstance(__version__, str)
    assert __version__ != ''


def test_public_api_exports_all_expected_names(package):
    """Test that __all__ contains exactly the expected public API."""
    expected = [
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
    assert sorted(package.__all__) == sorted(expected)


def test_all_names_resolve(package):
    """Every exported name is an attribute of the package."""
    for name in package.__all__:
        assert hasattr(package, name), name


def test_version_fallback_when_package_not_found():
    """Test that __version__ falls back to '0.0.0' when not installed."""
    import importlib

    import winferjax

    with patch(
        'importlib.metadata.version',
        side_effect=PackageNotFoundError,
    ):
        importlib.reload(winferjax)
        assert winferjax.__version__ == '0.0.0'

    # Restore the real version
    importlib.reload(winferjax)
