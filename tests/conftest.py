"""Pytest configuration for ndjax tests

Handles platform-specific JAX configuration:
- macOS: Forces CPU backend since Metal doesn't support float64

Uses pytest_configure hook to ensure JAX is configured before any test
imports ndjax.

Also provides shared fixtures:
- chain_struct: 3 vertices of dimension 2, edges 0 -> 1 and 1 -> 2
- fixed_blocks: Jacobian callbacks copying fixed random blocks
"""

import os
import sys

import numpy as np
import pytest


def pytest_configure(config):
    """
    Pytest hook that runs before test collection.

    Ensures JAX is configured BEFORE any test modules are imported.
    """
    if sys.platform == "darwin":
        os.environ["JAX_PLATFORMS"] = "cpu"

    # Import ndjax to auto-configure precision based on backend
    import ndjax  # noqa: F401


# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def chain_struct():
    """3 vertices (dimension 2 each), edges 0 -> 1 and 1 -> 2, edge dimension 1."""
    from ndjax import GraphStruct

    return GraphStruct.build(3, [(0, 1), (1, 2)], [2, 2, 2], [1, 1])


class FixedBlocks:
    """Jacobian callbacks that copy pre-drawn random blocks.

    Vertex blocks are indexed through the parameter object, so the same
    callbacks serve any graph: p = (vertex_blocks, edge_block_pairs).
    """

    def __init__(self, gs, rng):
        self.v_blocks = [rng.standard_normal((d, d)) for d in gs.v_dims]
        self.e_blocks = [
            (
                rng.standard_normal((gs.v_dims[dst], gs.v_dims[src])),
                rng.standard_normal((gs.v_dims[dst], gs.v_dims[dst])),
            )
            for src, dst in zip(gs.s_e, gs.d_e)
        ]

    @property
    def params(self):
        return (self.v_blocks, self.e_blocks)

    @staticmethod
    def vertex_jacobian(J, v, p, t):
        J[...] = p

    @staticmethod
    def edge_jacobian(J_s, J_d, v_s, v_d, p, t):
        J_s[...] = p[0]
        J_d[...] = p[1]


@pytest.fixture
def fixed_blocks():
    """Factory: FixedBlocks(gs, rng)."""
    return FixedBlocks


def dense_reference(gs, blocks):
    """Explicit dense Jacobian assembled from FixedBlocks, independent of ndjax."""
    n = sum(gs.v_dims)
    J = np.zeros((n, n))
    offs = np.concatenate([[0], np.cumsum(gs.v_dims)])
    for i, B in enumerate(blocks.v_blocks):
        J[offs[i] : offs[i + 1], offs[i] : offs[i + 1]] += B
    for (src, dst), (B_s, B_d) in zip(zip(gs.s_e, gs.d_e), blocks.e_blocks):
        J[offs[dst] : offs[dst + 1], offs[src] : offs[src + 1]] += B_s
        J[offs[dst] : offs[dst + 1], offs[dst] : offs[dst + 1]] += B_d
    return J
