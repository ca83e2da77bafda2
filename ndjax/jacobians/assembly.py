"""Explicit assembly of the network Jacobian and SciPy adapters.

The operator is matrix-free, but direct solvers and debugging need the
matrix itself. These helpers assemble the matrix the Jacobian storage
represents, block by block:

    J[v_i, v_i] += J_v[i]
    J[d_j, s_j] += J_s[j]      for every edge j = (s_j -> d_j)
    J[d_j, d_j] += J_d[j]

Blocks landing on the same position (self-loops, parallel edges) add up,
exactly as they do in the matrix-free product.
"""

import numpy as np
import scipy.sparse as sp
from scipy.sparse.linalg import LinearOperator

from ndjax.jacobians.storage import JacGraphData
from ndjax.network.structure import GraphStruct


def assemble_dense_jacobian(gs: GraphStruct, jgd: JacGraphData) -> np.ndarray:
    """Assemble the dense ``dim_v x dim_v`` Jacobian."""
    J = np.zeros((gs.dim_v, gs.dim_v), dtype=jgd.dtype)
    v_sl, s_sl, d_sl = gs.v_slices, gs.s_e_slices, gs.d_e_slices

    for i in range(gs.num_v):
        J[v_sl[i], v_sl[i]] += jgd.get_vertex_jacobian(i)

    for j in range(gs.num_e):
        J[d_sl[j], s_sl[j]] += jgd.get_src_edge_jacobian(j)
        J[d_sl[j], d_sl[j]] += jgd.get_dst_edge_jacobian(j)

    return J


def _block_coo(block: np.ndarray, row0: int, col0: int):
    rows, cols = np.indices(block.shape)
    return (rows.ravel() + row0, cols.ravel() + col0, block.ravel())


def assemble_sparse_jacobian(gs: GraphStruct, jgd: JacGraphData) -> sp.csr_matrix:
    """Assemble the Jacobian as a CSR matrix from COO triplets.

    Duplicate (row, col) entries are summed by the COO -> CSR conversion.
    """
    triplets = []
    for i in range(gs.num_v):
        off = gs.v_offs[i]
        triplets.append(_block_coo(jgd.get_vertex_jacobian(i), off, off))
    for j in range(gs.num_e):
        s_off, d_off = gs.s_e_offs[j], gs.d_e_offs[j]
        triplets.append(_block_coo(jgd.get_src_edge_jacobian(j), d_off, s_off))
        triplets.append(_block_coo(jgd.get_dst_edge_jacobian(j), d_off, d_off))

    if triplets:
        rows = np.concatenate([t[0] for t in triplets])
        cols = np.concatenate([t[1] for t in triplets])
        vals = np.concatenate([t[2] for t in triplets])
    else:
        rows = cols = np.zeros(0, dtype=np.intp)
        vals = np.zeros(0, dtype=jgd.dtype)

    n = gs.dim_v
    return sp.coo_matrix((vals, (rows, cols)), shape=(n, n)).tocsr()


def as_linear_operator(op) -> LinearOperator:
    """Wrap an NDJacVecOperator for SciPy iterative solvers (gmres, bicgstab, ...)."""

    def matvec(z):
        return op.jac_vec_prod(np.ravel(z))

    return LinearOperator(shape=op.shape, matvec=matvec, dtype=op.dtype)
