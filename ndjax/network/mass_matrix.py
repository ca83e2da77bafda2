"""Mass matrix assembly for network dynamics.

The mass matrix of the combined system is block diagonal: one block per
vertex (and, in the combined form, one per edge, placed after all vertex
blocks). Blocks that are the identity need not be supplied explicitly: pass
``I`` or ``None``. When every block is the identity no matrix is allocated
and the ``I`` constant is returned.
"""

import logging
import numbers
from typing import Any, Optional, Sequence

import numpy as np
import scipy.sparse as sp

from ndjax.errors import DimensionMismatchError
from ndjax.network.structure import GraphStruct

logger = logging.getLogger(__name__)


class UniformScaling:
    """The identity operator of unspecified size.

    ``I @ x`` returns ``x`` unchanged; ``I == M`` holds for ``I``, ``None``
    and any square array equal to the identity.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __matmul__(self, x):
        return x

    def __rmatmul__(self, x):
        return x

    def __eq__(self, other) -> bool:
        return is_identity(other)

    def __hash__(self) -> int:
        return hash(UniformScaling)

    def toarray(self, n: int, dtype=np.float64) -> np.ndarray:
        """Dense n x n identity."""
        return np.eye(n, dtype=dtype)

    def __repr__(self) -> str:
        return "I"


I = UniformScaling()


def is_identity(mm: Any) -> bool:
    """True if ``mm`` denotes an identity block."""
    if mm is None or isinstance(mm, UniformScaling):
        return True
    if isinstance(mm, numbers.Number):
        return mm == 1
    if sp.issparse(mm):
        mm = mm.toarray()
    arr = np.asarray(mm)
    if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
        return False
    return bool(np.array_equal(arr, np.eye(arr.shape[0])))


def _as_block(mm: Any, dim: int, kind: str, i: int) -> np.ndarray:
    """Dense dim x dim block for a supplied mass matrix entry."""
    if isinstance(mm, numbers.Number):
        return mm * np.eye(dim)
    if sp.issparse(mm):
        mm = mm.toarray()
    block = np.asarray(mm, dtype=np.float64)
    if block.ndim == 1 and len(block) == dim:
        # Vector of diagonal entries
        return np.diag(block)
    if block.shape != (dim, dim):
        raise DimensionMismatchError(
            f"Mass matrix of {kind} {i} has shape {block.shape}, expected ({dim}, {dim})"
        )
    return block


def _check_count(mms: Sequence[Any], n: int, kind: str) -> None:
    if len(mms) != n:
        raise DimensionMismatchError(f"Got {len(mms)} {kind} mass matrices for {n} {kind}s")


def construct_mass_matrix(
    mmv_array: Sequence[Any],
    gs: GraphStruct,
    mme_array: Optional[Sequence[Any]] = None,
):
    """Construct the mass matrix of the vertex (or vertex + edge) system.

    Args:
        mmv_array: One mass matrix per vertex (``I``/``None``, a scalar, a
            vector of diagonal entries, or a dim x dim array)
        gs: Index structures of the graph
        mme_array: One mass matrix per edge. If given, the combined
            ``dim_v + dim_e`` system is built with edge blocks after all
            vertex blocks.

    Returns:
        ``I`` if every block is the identity, otherwise a scipy CSR matrix

    Raises:
        DimensionMismatchError: wrong number of blocks, or a block of the
            wrong shape
    """
    _check_count(mmv_array, gs.num_v, "vertex")
    if mme_array is not None:
        _check_count(mme_array, gs.num_e, "edge")

    if all(is_identity(mm) for mm in mmv_array) and (
        mme_array is None or all(is_identity(mm) for mm in mme_array)
    ):
        return I

    dim_nd = gs.dim_v if mme_array is None else gs.dim_nd
    mass_matrix = sp.identity(dim_nd, dtype=np.float64, format="lil")

    for i, mm in enumerate(mmv_array):
        if not is_identity(mm):
            idx = gs.v_slices[i]
            mass_matrix[idx, idx] = _as_block(mm, gs.v_dims[i], "vertex", i)

    if mme_array is not None:
        for i, mm in enumerate(mme_array):
            if not is_identity(mm):
                r = gs.e_idx[i]
                idx = slice(r.start + gs.dim_v, r.stop + gs.dim_v)
                mass_matrix[idx, idx] = _as_block(mm, gs.e_dims[i], "edge", i)

    logger.debug(f"Mass matrix: {dim_nd}x{dim_nd}, {mass_matrix.nnz} non-zeros")
    return mass_matrix.tocsr()
