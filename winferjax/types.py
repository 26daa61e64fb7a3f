# Copyright 2026 Michael Ellis
# SPDX-License-Identifier: Apache-2.0
"""Type aliases for winferjax."""

from typing import Union

from jaxtyping import Array, Float, Int, PRNGKeyArray

PRNGKeyT = PRNGKeyArray
"""JAX PRNG key (handles both old and new JAX key formats)."""

Scalar = Union[float, Float[Array, ""]]
"""Python float or scalar JAX array with float dtype."""

IntScalar = Union[int, Int[Array, ""]]
"""Python int or scalar JAX array with int dtype."""

Sample = Float[Array, "num_points point_dim"]
"""Point cloud with one point per row."""

CostMatrix = Float[Array, "n m"]
"""Pairwise ground costs between two samples."""
