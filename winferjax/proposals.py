# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
r"""MCMC proposal strategies for the r-hit kernel.

Every proposal follows the same contract:

- ``fit(thetas)`` returns a *new* proposal tuned to a population of
  shape ``(n, parameter_dim)``; the original is left untouched.
- ``sample(key, theta)`` draws :math:`\theta' \sim q(\cdot \mid \theta)`.
- ``log_density_ratio(theta, theta_new)`` returns
  :math:`\log q(\theta \mid \theta') - \log q(\theta' \mid \theta)`,
  the proposal part of the Metropolis-Hastings ratio.

Fitting is the synchronisation barrier of each SMC step: it sees the
whole resampled population and must finish before rejuvenation starts.
"""

import dataclasses
from collections.abc import Callable
from typing import Protocol

import jax.numpy as jnp
import jax.random as jr
from jax.scipy.special import logsumexp
from jax.scipy.stats import multivariate_normal
from jaxtyping import Array, Float

from winferjax.types import PRNGKeyT, Scalar

JITTER = 1e-8
"""Diagonal added to fitted covariances to keep them positive definite."""


class Proposal(Protocol):
    """Contract shared by all proposal strategies."""

    def fit(
        self, thetas: Float[Array, 'n parameter_dim']
    ) -> 'Proposal': ...

    def sample(
        self, key: PRNGKeyT, theta: Float[Array, ' parameter_dim']
    ) -> Float[Array, ' parameter_dim']: ...

    def log_density_ratio(
        self,
        theta: Float[Array, ' parameter_dim'],
        theta_new: Float[Array, ' parameter_dim'],
    ) -> Scalar: ...


def empirical_covariance(
    thetas: Float[Array, 'n parameter_dim'],
) -> Float[Array, 'parameter_dim parameter_dim']:
    """Sample covariance of a population plus :data:`JITTER`."""
    thetas = jnp.atleast_2d(jnp.asarray(thetas))
    dim = thetas.shape[1]
    cov = jnp.atleast_2d(jnp.cov(thetas, rowvar=False))
    return cov + JITTER * jnp.eye(dim)


def _require_fitted(value, name: str):
    if value is None:
        raise ValueError(f'{name} must be fitted before use')
    return value


@dataclasses.dataclass(frozen=True)
class RandomWalkProposal:
    r"""Gaussian random walk with covariance ``scale * Cov(thetas)``.

    The walk is symmetric so :meth:`log_density_ratio` is zero.

    Attributes:
        scale: Multiplier applied to the population covariance.
        cov: Fitted covariance, ``None`` until :meth:`fit` is called.
    """

    scale: float = 1.0
    cov: Float[Array, 'parameter_dim parameter_dim'] | None = None

    def fit(self, thetas: Float[Array, 'n parameter_dim']):
        """Return a copy whose covariance is fitted to ``thetas``.

        Args:
            thetas: Population, shape ``(n, parameter_dim)``.

        Returns:
            A new :class:`RandomWalkProposal`.
        """
        return dataclasses.replace(
            self, cov=self.scale * empirical_covariance(thetas)
        )

    def sample(self, key, theta):
        """Draw a step centred on ``theta``.

        Args:
            key: JAX PRNG key.
            theta: Current parameter vector.

        Returns:
            Proposed parameter vector.
        """
        cov = _require_fitted(self.cov, 'RandomWalkProposal')
        theta = jnp.asarray(theta)
        return jr.multivariate_normal(key, theta, cov)

    def log_density_ratio(self, theta, theta_new):
        """Zero, since the walk is symmetric."""
        return 0.0


@dataclasses.dataclass(frozen=True)
class IndependentGaussianProposal:
    """Independent Gaussian fitted to the population.

    Attributes:
        inflation: Factor applied to the population covariance so the
            proposal has heavier coverage than the target.
        mean: Fitted mean, ``None`` until :meth:`fit` is called.
        cov: Fitted covariance, ``None`` until :meth:`fit` is called.
    """

    inflation: float = 1.0
    mean: Float[Array, ' parameter_dim'] | None = None
    cov: Float[Array, 'parameter_dim parameter_dim'] | None = None

    def fit(self, thetas: Float[Array, 'n parameter_dim']):
        """Return a copy with mean and covariance fitted to ``thetas``.

        Args:
            thetas: Population, shape ``(n, parameter_dim)``.

        Returns:
            A new :class:`IndependentGaussianProposal`.
        """
        thetas = jnp.atleast_2d(jnp.asarray(thetas))
        return dataclasses.replace(
            self,
            mean=jnp.mean(thetas, axis=0),
            cov=self.inflation * empirical_covariance(thetas),
        )

    def log_density(self, theta: Float[Array, ' parameter_dim']) -> Scalar:
        """Log-density of the fitted proposal at ``theta``."""
        mean = _require_fitted(self.mean, 'IndependentGaussianProposal')
        return multivariate_normal.logpdf(theta, mean, self.cov)

    def sample(self, key, theta):
        """Draw from the fitted Gaussian; ``theta`` is ignored.

        Args:
            key: JAX PRNG key.
            theta: Current parameter vector, unused.

        Returns:
            Proposed parameter vector.
        """
        mean = _require_fitted(self.mean, 'IndependentGaussianProposal')
        return jr.multivariate_normal(key, mean, self.cov)

    def log_density_ratio(self, theta, theta_new):
        r"""Return :math:`\log q(\theta) - \log q(\theta')`.

        Args:
            theta: Current parameter vector.
            theta_new: Proposed parameter vector.

        Returns:
            Scalar log ratio.
        """
        return self.log_density(theta) - self.log_density(theta_new)


@dataclasses.dataclass(frozen=True)
class IndependentMixtureProposal:
    """Independent Gaussian mixture built by an injected fitter.

    The mixture fitting algorithm is supplied by the caller: ``fit_fn``
    maps a population of shape ``(n, parameter_dim)`` to
    ``(weights, means, covariances)`` with shapes ``(k,)``,
    ``(k, parameter_dim)`` and ``(k, parameter_dim, parameter_dim)``.

    Attributes:
        fit_fn: Mixture fitter.
        weights: Fitted component weights.
        means: Fitted component means.
        covs: Fitted component covariances.
    """

    fit_fn: Callable
    weights: Float[Array, ' k'] | None = None
    means: Float[Array, 'k parameter_dim'] | None = None
    covs: Float[Array, 'k parameter_dim parameter_dim'] | None = None

    def fit(self, thetas: Float[Array, 'n parameter_dim']):
        """Return a copy holding the mixture ``fit_fn`` builds.

        Args:
            thetas: Population, shape ``(n, parameter_dim)``.

        Returns:
            A new :class:`IndependentMixtureProposal` with normalised
            weights and jittered covariances.
        """
        weights, means, covs = self.fit_fn(jnp.atleast_2d(thetas))
        weights = jnp.asarray(weights)
        means = jnp.atleast_2d(jnp.asarray(means))
        covs = jnp.asarray(covs).reshape(
            means.shape[0], means.shape[1], means.shape[1]
        )
        covs = covs + JITTER * jnp.eye(means.shape[1])[None]
        return dataclasses.replace(
            self,
            weights=weights / jnp.sum(weights),
            means=means,
            covs=covs,
        )

    def log_density(self, theta: Float[Array, ' parameter_dim']) -> Scalar:
        """Log-density of the fitted proposal at ``theta``."""
        weights = _require_fitted(self.weights, 'IndependentMixtureProposal')
        comps = jnp.stack(
            [
                multivariate_normal.logpdf(theta, m, c)
                for m, c in zip(self.means, self.covs)
            ]
        )
        return logsumexp(comps + jnp.log(weights))

    def sample(self, key, theta):
        """Pick a component by weight and draw from it.

        Args:
            key: JAX PRNG key.
            theta: Current parameter vector, unused.

        Returns:
            Proposed parameter vector.
        """
        weights = _require_fitted(self.weights, 'IndependentMixtureProposal')
        k_comp, k_draw = jr.split(key)
        comp = jr.categorical(k_comp, jnp.log(weights))
        return jr.multivariate_normal(
            k_draw, self.means[comp], self.covs[comp]
        )

    def log_density_ratio(self, theta, theta_new):
        r"""Return :math:`\log q(\theta) - \log q(\theta')`.

        Args:
            theta: Current parameter vector.
            theta_new: Proposed parameter vector.

        Returns:
            Scalar log ratio.
        """
        return self.log_density(theta) - self.log_density(theta_new)
