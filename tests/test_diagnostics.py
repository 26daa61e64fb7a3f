# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Tests for winferjax.diagnostics.

Uses a hand-built posterior so every summary has a known value.
"""

import jax.numpy as jnp
import numpy as np
import pytest

from winferjax.containers import ABCSMCPosterior
from winferjax.diagnostics import (
    cumulative_simulations,
    distance_diversity,
    posterior_mean,
    posterior_quantile,
    threshold_decay,
    unique_theta_fraction,
)
from winferjax.errors import TerminationStatus


@pytest.fixture
def posterior():
    """Two-step history of a four-particle population."""
    return ABCSMCPosterior(
        thetas_history=(
            jnp.array([[0.0, 1.0], [1.0, 2.0], [2.0, 3.0], [3.0, 4.0]]),
            jnp.array([[1.0, 2.0], [1.0, 2.0], [2.0, 3.0], [2.0, 5.0]]),
        ),
        distances_history=(
            jnp.array([0.4, 0.3, 0.2, 0.1]),
            jnp.array([0.1, 0.1, 0.05, 0.05]),
        ),
        threshold_history=(0.4, 0.1),
        nsimulations_history=(4, 10),
        stuck_history=(0.0, 0.25),
        final_datasets=[None] * 4,
        status=TerminationStatus.MAX_STEP,
        elapsed=1.0,
        config=None,
    )


class TestPosteriorSummaries:
    """Means and quantiles of parameter populations."""

    def test_mean_last_step(self, posterior):
        np.testing.assert_allclose(
            np.asarray(posterior_mean(posterior)), [1.5, 3.0]
        )

    def test_mean_first_step(self, posterior):
        np.testing.assert_allclose(
            np.asarray(posterior_mean(posterior, step=0)), [1.5, 2.5]
        )

    def test_quantile_shape(self, posterior):
        q = posterior_quantile(posterior, jnp.array([0.0, 0.5, 1.0]))
        assert q.shape == (3, 2)
        np.testing.assert_allclose(np.asarray(q[0]), [1.0, 2.0])
        np.testing.assert_allclose(np.asarray(q[-1]), [2.0, 5.0])


class TestFaithfulness:
    """Diversity and budget diagnostics."""

    def test_distance_diversity(self, posterior):
        np.testing.assert_allclose(
            np.asarray(distance_diversity(posterior)), [1.0, 0.5]
        )

    def test_unique_theta_fraction(self, posterior):
        np.testing.assert_allclose(
            np.asarray(unique_theta_fraction(posterior)), [1.0, 0.75]
        )

    def test_cumulative_simulations(self, posterior):
        np.testing.assert_array_equal(
            np.asarray(cumulative_simulations(posterior)), [4, 14]
        )
        assert int(cumulative_simulations(posterior)[-1]) == (
            posterior.total_simulations
        )

    def test_threshold_decay(self, posterior):
        decay = threshold_decay(posterior)
        assert decay.shape == (1,)
        assert float(decay[0]) == pytest.approx(0.25)
