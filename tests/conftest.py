# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Shared test fixtures for winferjax."""

import jax
import jax.numpy as jnp
import jax.random as jr
import pytest

import winferjax
from winferjax.containers import ABCModel


@pytest.fixture
def package():
    """Return the top-level package module for introspection."""
    return winferjax


@pytest.fixture
def key():
    """Fixed JAX PRNG key for reproducibility."""
    return jr.PRNGKey(42)


@pytest.fixture
def uniform_location_model():
    """Location model with a uniform prior on [0, 1].

    Model:
        theta ~ U(0, 1)
        y_i   = theta + 0.01 * eps_i,  eps_i ~ N(0, 1),  i = 1..20
    """

    def rprior(key, n):
        return jr.uniform(key, (n, 1))

    def dprior(thetas):
        inside = (thetas >= 0.0) & (thetas <= 1.0)
        return jnp.sum(jnp.where(inside, 0.0, -jnp.inf), axis=-1)

    def simulate(key, theta):
        return theta[0] + 0.01 * jr.normal(key, (20, 1))

    return ABCModel(
        rprior=rprior, dprior=dprior, simulate=simulate, parameter_dim=1
    )


@pytest.fixture
def true_theta():
    """Parameter value that generated the observations."""
    return 0.3


@pytest.fixture
def observed(uniform_location_model, true_theta):
    """Twenty observations simulated at ``true_theta``."""
    return uniform_location_model.simulate(
        jr.PRNGKey(2026), jnp.array([true_theta])
    )


# Configure JAX to use 64-bit floats for higher precision in tests.
jax.config.update('jax_enable_x64', True)
