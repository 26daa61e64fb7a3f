# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Tests for winferjax.threshold."""

import jax.numpy as jnp
import numpy as np
import pytest

from winferjax.errors import ConfigurationError
from winferjax.threshold import (
    DiversityThresholdPolicy,
    QuantileThresholdPolicy,
    diversity,
    most_aggressive_threshold,
)


class TestDiversity:
    """Fraction of distinct distances below a threshold."""

    def test_counts_distinct_values(self):
        distances = jnp.array([0.1, 0.1, 0.2, 0.3, 0.9])
        assert diversity(distances, 0.3, 5) == pytest.approx(3 / 5)

    def test_threshold_is_inclusive(self):
        assert diversity(jnp.array([0.5, 1.0]), 0.5, 2) == 0.5


class TestMostAggressiveThreshold:
    """Smallest threshold meeting the diversity floor."""

    def test_kth_smallest_distinct(self):
        distances = jnp.array([0.4, 0.1, 0.1, 0.3, 0.2, 0.9])
        assert most_aggressive_threshold(distances, 6, 0.5) == 0.3

    def test_fifty_percent_of_fifty(self):
        """k = 25 exactly, not 26 from round-off."""
        distances = jnp.arange(50.0)
        assert most_aggressive_threshold(distances, 50, 0.5) == 24.0

    def test_ignores_infinite_distances(self):
        distances = jnp.array([jnp.inf, 0.2, 0.1, jnp.inf])
        assert most_aggressive_threshold(distances, 4, 0.5) == 0.2

    def test_too_few_distinct_values(self):
        distances = jnp.array([0.1, 0.1, 0.1, 0.2])
        assert most_aggressive_threshold(distances, 4, 0.75) is None

    def test_result_meets_floor(self):
        rng = np.random.default_rng(0)
        distances = jnp.asarray(rng.exponential(size=100).round(2))
        tau = most_aggressive_threshold(distances, 100, 0.3)
        assert diversity(distances, tau, 100) >= 0.3


class TestDiversityThresholdPolicy:
    """Default policy: shrink as far as diversity allows."""

    def test_strictly_decreases(self):
        policy = DiversityThresholdPolicy()
        tau = policy(jnp.arange(10.0), 100.0, 10, 0.5)
        assert tau == 4.0

    def test_collapse_when_not_below_previous(self):
        policy = DiversityThresholdPolicy()
        assert policy(jnp.arange(10.0), 4.0, 10, 0.5) is None

    def test_collapse_without_enough_distinct(self):
        policy = DiversityThresholdPolicy()
        assert policy(jnp.zeros(10), 1.0, 10, 0.5) is None


class TestQuantileThresholdPolicy:
    """Quantile rule bounded below by the diversity floor."""

    def test_quantile_above_floor(self):
        policy = QuantileThresholdPolicy(q=0.8)
        tau = policy(jnp.arange(11.0), 100.0, 11, 0.1)
        assert tau == pytest.approx(8.0)

    def test_raised_to_floor(self):
        policy = QuantileThresholdPolicy(q=0.1)
        tau = policy(jnp.arange(10.0), 100.0, 10, 0.5)
        assert tau == 4.0

    def test_falls_back_to_floor(self):
        policy = QuantileThresholdPolicy(q=0.9)
        tau = policy(jnp.arange(10.0), 6.0, 10, 0.5)
        assert tau == 4.0

    def test_collapse(self):
        policy = QuantileThresholdPolicy()
        assert policy(jnp.arange(10.0), 3.0, 10, 0.5) is None

    @pytest.mark.parametrize('q', [0.0, 1.0, -0.5, 2.0])
    def test_invalid_q(self, q):
        with pytest.raises(ConfigurationError):
            QuantileThresholdPolicy(q=q)
