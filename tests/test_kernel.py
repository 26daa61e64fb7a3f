# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Tests for winferjax.kernel."""

import dataclasses

import jax.numpy as jnp
import jax.random as jr
import pytest

from winferjax.distance import make_distance
from winferjax.errors import ConfigurationError
from winferjax.kernel import rhit_kernel
from winferjax.proposals import IndependentGaussianProposal


@dataclasses.dataclass(frozen=True)
class _FixedProposal:
    """Always proposes the same point."""

    point: float

    def fit(self, thetas):
        return self

    def sample(self, key, theta):
        return jnp.array([self.point])

    def log_density_ratio(self, theta, theta_new):
        return 0.0


@pytest.fixture
def start(uniform_location_model, observed):
    """Particle at theta = 0.3 with its simulated dataset."""
    theta = jnp.array([0.3])
    dataset = uniform_location_model.simulate(jr.PRNGKey(7), theta)
    distance = make_distance(observed)(dataset)
    return theta, dataset, distance


@pytest.fixture
def proposal():
    """Independent Gaussian around the true parameter."""
    population = 0.3 + 0.05 * jr.normal(jr.PRNGKey(3), (200, 1))
    return IndependentGaussianProposal().fit(population)


class TestRHitKernel:
    """Behaviour of a single kernel invocation."""

    def test_reaches_required_hits(
        self, key, uniform_location_model, observed, start, proposal
    ):
        theta, dataset, distance = start
        result = rhit_kernel(
            key,
            theta,
            dataset,
            distance,
            threshold=0.1,
            model=uniform_location_model,
            distance_fn=make_distance(observed),
            proposal=proposal,
            R=3,
            maxtrials=10_000,
        )
        assert not result.stuck
        assert result.nhits == 3
        assert result.distance <= 0.1
        assert 3 <= result.nsimulations <= result.ntrials

    def test_distance_matches_dataset(
        self, key, uniform_location_model, observed, start, proposal
    ):
        theta, dataset, distance = start
        distance_fn = make_distance(observed)
        result = rhit_kernel(
            key, theta, dataset, distance, 0.1, uniform_location_model,
            distance_fn, proposal,
        )
        assert result.distance == pytest.approx(
            distance_fn(result.dataset)
        )

    def test_impossible_threshold_is_stuck(
        self, key, uniform_location_model, observed, start, proposal
    ):
        theta, dataset, distance = start
        result = rhit_kernel(
            key, theta, dataset, distance, -1.0, uniform_location_model,
            make_distance(observed), proposal, R=2, maxtrials=25,
        )
        assert result.stuck
        assert result.nhits == 0
        assert result.ntrials == 25
        assert jnp.array_equal(result.theta, theta)
        assert result.distance == distance

    def test_outside_prior_costs_no_simulation(
        self, key, uniform_location_model, observed, start
    ):
        theta, dataset, distance = start
        result = rhit_kernel(
            key, theta, dataset, distance, 10.0, uniform_location_model,
            make_distance(observed), _FixedProposal(2.0), maxtrials=10,
        )
        assert result.stuck
        assert result.nsimulations == 0
        assert result.ntrials == 10

    def test_deterministic_for_fixed_key(
        self, key, uniform_location_model, observed, start, proposal
    ):
        theta, dataset, distance = start
        args = (
            theta, dataset, distance, 0.1, uniform_location_model,
            make_distance(observed), proposal,
        )
        first = rhit_kernel(key, *args)
        second = rhit_kernel(key, *args)
        assert jnp.array_equal(first.theta, second.theta)
        assert first.ntrials == second.ntrials

    @pytest.mark.parametrize('R, maxtrials', [(0, 10), (2, 0)])
    def test_invalid_budget(
        self, key, uniform_location_model, observed, start, proposal,
        R, maxtrials,
    ):
        theta, dataset, distance = start
        with pytest.raises(ConfigurationError):
            rhit_kernel(
                key, theta, dataset, distance, 0.1, uniform_location_model,
                make_distance(observed), proposal, R=R, maxtrials=maxtrials,
            )
