# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Tests for winferjax.swap."""

import jax.numpy as jnp
import jax.random as jr
import numpy as np
import pytest

from winferjax.cost import cost_matrix
from winferjax.errors import (
    ConfigurationError,
    NumericalInstabilityWarning,
    SizeMismatchError,
)
from winferjax.exact import exact_distance
from winferjax.hilbert import hilbert_distance
from winferjax.swap import swap_distance, swap_transport


class TestConcreteScenario:
    """A = (0, 10), B = (1, 9), p = ground_p = 1."""

    def test_from_hilbert(self):
        result = swap_distance(
            jnp.array([0.0, 10.0]), jnp.array([1.0, 9.0]), p=1, ground_p=1
        )
        assert result.distance == pytest.approx(1.0)
        assert bool(result.converged)

    def test_from_crossed_identity(self):
        """Starting from the crossed pairing one swap fixes it."""
        result = swap_distance(
            jnp.array([0.0, 10.0]),
            jnp.array([9.0, 1.0]),
            p=1,
            ground_p=1,
            initial='identity',
        )
        assert result.distance == pytest.approx(1.0)
        assert int(result.npasses) == 1
        np.testing.assert_array_equal(np.asarray(result.matching), [1, 0])


class TestSwapBounds:
    """Swap search sits between the exact and Hilbert distances."""

    @pytest.mark.parametrize('dim', [1, 2, 4])
    def test_between_exact_and_hilbert(self, key, dim):
        k1, k2 = jr.split(key)
        x, y = jr.normal(k1, (25, dim)), jr.normal(k2, (25, dim))
        swap = swap_distance(x, y).distance
        assert swap >= exact_distance(x, y) - 1e-9
        assert swap <= hilbert_distance(x, y) + 1e-9

    def test_identical_samples(self, key):
        x = jr.normal(key, (15, 2))
        result = swap_distance(x, x)
        assert result.distance == pytest.approx(0.0, abs=1e-12)
        assert bool(result.converged)

    def test_local_optimum_has_no_improving_swap(self, key):
        k1, k2 = jr.split(key)
        x, y = jr.normal(k1, (12, 2)), jr.normal(k2, (12, 2))
        result = swap_distance(
            x, y, tolerance=0.0, max_passes=1000, initial='identity'
        )
        cost = np.asarray(cost_matrix(x, y))
        sigma = np.asarray(result.matching)
        matched = cost[np.arange(12), sigma]
        gains = matched[:, None] + matched[None, :] - cost[:, sigma]
        gains -= cost[:, sigma].T
        assert gains.max() <= 1e-12


class TestSwapBudget:
    """Pass cap and argument checks."""

    def test_zero_passes_warns(self):
        with pytest.warns(NumericalInstabilityWarning, match='converge'):
            result = swap_distance(
                jnp.array([0.0, 10.0]),
                jnp.array([9.0, 1.0]),
                p=1,
                ground_p=1,
                max_passes=0,
                initial='identity',
            )
        assert not bool(result.converged)
        assert result.distance == pytest.approx(9.0)

    def test_non_square_cost(self):
        with pytest.raises(SizeMismatchError):
            swap_transport(jnp.ones((2, 3)))

    def test_size_mismatch(self):
        with pytest.raises(SizeMismatchError):
            swap_distance(jnp.zeros((3, 2)), jnp.zeros((4, 2)))

    def test_unknown_initial(self):
        with pytest.raises(ConfigurationError, match='initial'):
            swap_distance(jnp.zeros(3), jnp.ones(3), initial='random')

    def test_negative_tolerance(self):
        with pytest.raises(ConfigurationError):
            swap_transport(jnp.ones((2, 2)), tolerance=-1.0)
