# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Tests for winferjax.distance."""

import math

import jax.numpy as jnp
import jax.random as jr
import numpy as np
import pytest

from winferjax.distance import (
    METHODS,
    augment_with_index,
    curve_matching_distance,
    make_distance,
)
from winferjax.errors import ConfigurationError


class TestMakeDistance:
    """Engines bound to fixed observations."""

    @pytest.mark.parametrize('method', METHODS)
    def test_concrete_scenario(self, method):
        distance = make_distance(
            jnp.array([1.0, 9.0]), method=method, p=1, ground_p=1,
            **({'eps': 0.01, 'niterations': 1000}
               if method == 'sinkhorn' else {}),
        )
        assert distance(jnp.array([0.0, 10.0])) == pytest.approx(
            1.0, abs=0.05
        )

    @pytest.mark.parametrize('method', METHODS)
    def test_returns_python_float(self, method, key):
        k1, k2 = jr.split(key)
        distance = make_distance(jr.normal(k1, (10, 2)), method=method)
        value = distance(jr.normal(k2, (10, 2)))
        assert isinstance(value, float)
        assert value >= 0.0

    def test_sinkhorn_clipped_at_zero(self, key):
        observed = jr.normal(key, (10, 2))
        distance = make_distance(observed, method='sinkhorn', eps=0.1)
        assert distance(observed) >= 0.0

    @pytest.mark.parametrize('method', METHODS)
    def test_non_finite_dataset_scores_inf(self, method):
        distance = make_distance(jnp.zeros((3, 1)), method=method)
        assert distance(jnp.array([0.0, jnp.nan, 1.0])) == math.inf

    def test_options_forwarded(self, key):
        k1, k2 = jr.split(key)
        x, y = jr.normal(k1, (8, 2)), jr.normal(k2, (8, 2))
        coarse = make_distance(x, method='sinkhorn', eps=5.0)(y)
        fine = make_distance(x, method='sinkhorn', eps=0.05)(y)
        assert coarse != fine

    def test_unknown_method(self):
        with pytest.raises(ConfigurationError, match='unknown'):
            make_distance(jnp.zeros(3), method='energy')


class TestAugmentWithIndex:
    """Time-index augmentation of series."""

    def test_prepends_scaled_index(self):
        series = jnp.array([5.0, 6.0, 7.0])
        augmented = augment_with_index(series, lambda_=2.0)
        np.testing.assert_allclose(
            np.asarray(augmented),
            [[2.0, 5.0], [4.0, 6.0], [6.0, 7.0]],
        )

    def test_multivariate_series(self, key):
        series = jr.normal(key, (7, 3))
        assert augment_with_index(series).shape == (7, 4)

    @pytest.mark.parametrize('lambda_', [0.0, -1.0])
    def test_non_positive_lambda(self, lambda_):
        with pytest.raises(ConfigurationError):
            augment_with_index(jnp.zeros(3), lambda_=lambda_)


class TestCurveMatchingDistance:
    """Distances between series compared with their timing."""

    def test_identical_series(self, key):
        series = jr.normal(key, (12,))
        distance = curve_matching_distance(series, lambda_=1.0)
        assert distance(series) == pytest.approx(0.0, abs=1e-9)

    def test_lambda_makes_order_matter(self):
        """A reversed series has the same values but the wrong timing."""
        series = jnp.arange(6.0)
        reversed_series = series[::-1]
        loose = curve_matching_distance(series, lambda_=1e-6)
        strict = curve_matching_distance(series, lambda_=10.0)
        assert loose(reversed_series) < 1e-4
        assert strict(reversed_series) > 1.0
