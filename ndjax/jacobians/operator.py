"""Matrix-free Jacobian-vector operator for network dynamics.

NDJacVecOperator represents the Jacobian of the vertex equations of a
network with respect to the vertex variables ``x``, at time ``t`` and
parameters ``p``. It never materializes the full matrix. Implicit solvers
use it in two steps:

1. ``update_coefficients(x, p, t)`` refreshes every vertex and edge Jacobian
   block through the user callbacks
       vertex_jacobian(J, v, p, t)
       edge_jacobian(J_s, J_d, v_s, v_d, p, t)
   which write into the supplied blocks in place.
2. ``jac_vec_prod(z)`` / ``jac_vec_prod_into(out, z)`` compute ``J @ z``:
   first every edge's contribution ``J_s @ z_s + J_d @ z_d`` is stored in its
   scratch vector, then every vertex computes ``J_v @ z_v`` plus the sum of
   the scratch vectors of its incoming edges.

The operator does not track whether ``x``, ``p`` or ``t`` changed since the
last refresh: products always use the last refreshed blocks.
"""

import logging
from typing import Any, List, Optional

import numpy as np
from jaxtyping import Float
from scipy.linalg.blas import get_blas_funcs

from ndjax.errors import DimensionMismatchError
from ndjax.jacobians.storage import JacGraphData
from ndjax.network.data import GraphData, prep_gd
from ndjax.network.params import check_callbacks, check_params, maybe_idx, p_e_idx, p_v_idx
from ndjax.network.structure import GraphStruct
from ndjax.parallel import ExecutionStrategy, resolve_strategy
from ndjax.profiling import profile_section

logger = logging.getLogger(__name__)

Vector = Float[np.ndarray, " n"]


def _muladd(A: np.ndarray, x: np.ndarray, y: np.ndarray) -> None:
    """In-place ``y += A @ x`` without a temporary for the product.

    Uses BLAS gemv with beta=1 on the transposed (Fortran-ordered) view of
    the C-ordered block. Falls back to ``y += A @ x`` for dtypes BLAS does
    not cover.
    """
    if y.size == 0 or x.size == 0:
        return
    if y.dtype.char not in "fdFD" or A.dtype != y.dtype:
        y += A @ x
        return
    gemv = get_blas_funcs("gemv", (A, y))
    res = gemv(1.0, A.T, x, beta=1.0, y=y, trans=1, overwrite_y=True)
    if res is not y:
        y[...] = res


class NDJacVecOperator:
    """Jacobian-vector product operator of a network.

    Args:
        x: Initial vertex state (length ``graph_structure.dim_v``)
        p: Parameter object (see ndjax.network.params)
        t: Initial time
        vertex_jacobians: One callback for all vertices, or one per vertex.
            Objects with a ``vertex_jacobian`` attribute are accepted too.
        edge_jacobians: One callback for all edges, or one per edge.
            Objects with an ``edge_jacobian`` attribute are accepted too.
        graph_structure: Index structures of the graph
        graph_data: Windows into the vertex/edge buffers
        jac_graph_data: Jacobian storage (allocated if None)
        executor: Strategy running the per-vertex and per-edge loops
        parallel: Shorthand for a default thread pool when no executor is given
    """

    def __init__(
        self,
        x: np.ndarray,
        p: Any,
        t: float,
        vertex_jacobians: Any,
        edge_jacobians: Any,
        graph_structure: GraphStruct,
        graph_data: GraphData,
        jac_graph_data: Optional[JacGraphData] = None,
        executor: Optional[ExecutionStrategy] = None,
        parallel: bool = False,
    ):
        gs = graph_structure
        check_callbacks(vertex_jacobians, gs.num_v, "vertex")
        check_callbacks(edge_jacobians, gs.num_e, "edge")

        self.x = x
        self.p = p
        self.t = t
        self.vertex_jacobians = vertex_jacobians
        self.edge_jacobians = edge_jacobians
        self.graph_structure = gs
        self.graph_data = graph_data
        self.jac_graph_data = jac_graph_data if jac_graph_data is not None else JacGraphData.build(gs)
        self.executor = resolve_strategy(executor, parallel)
        self.is_current = False
        # Edge scratch vectors for result dtypes other than the storage dtype
        self._scratch = {}

        logger.debug(
            f"NDJacVecOperator: {gs.num_v} vertices, {gs.num_e} edges, "
            f"dim {gs.dim_v}, {self.executor!r}"
        )

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def _vertex_jacobian(self, i: int):
        f = maybe_idx(self.vertex_jacobians, i)
        return getattr(f, "vertex_jacobian", f)

    def _edge_jacobian(self, i: int):
        f = maybe_idx(self.edge_jacobians, i)
        return getattr(f, "edge_jacobian", f)

    # ------------------------------------------------------------------
    # Coefficient refresh
    # ------------------------------------------------------------------

    def update_coefficients(self, x: np.ndarray, p: Any, t: float) -> None:
        """Refresh all Jacobian blocks at state ``x``, parameters ``p``, time ``t``.

        Raises:
            DimensionMismatchError: ``p`` or ``x`` does not fit the graph
        """
        gs = self.graph_structure
        check_params(p, gs.num_v, gs.num_e)

        with profile_section("update_coefficients"):
            gd = prep_gd(x, self.graph_data.e_array, self.graph_data, gs)
            self.graph_data = gd
            jgd = self.jac_graph_data

            def vertex_step(i: int) -> None:
                self._vertex_jacobian(i)(
                    jgd.get_vertex_jacobian(i),
                    gd.get_vertex(i),
                    p_v_idx(p, i),
                    t,
                )

            def edge_step(i: int) -> None:
                self._edge_jacobian(i)(
                    jgd.get_src_edge_jacobian(i),
                    jgd.get_dst_edge_jacobian(i),
                    gd.get_src_vertex(i),
                    gd.get_dst_vertex(i),
                    p_e_idx(p, i),
                    t,
                )

            self.executor.run(vertex_step, gs.num_v)
            self.executor.run(edge_step, gs.num_e)

        self.x = x
        self.p = p
        self.t = t
        self.is_current = True

    # ------------------------------------------------------------------
    # Jacobian-vector products
    # ------------------------------------------------------------------

    def _check_vector(self, z: np.ndarray, name: str) -> None:
        n = self.graph_structure.dim_v
        if z.ndim != 1 or len(z) != n:
            raise DimensionMismatchError(f"{name} has shape {z.shape}, expected ({n},)")

    def _edge_products(self, dtype: np.dtype) -> List[Vector]:
        """Per-edge scratch vectors able to hold results of ``dtype``.

        The storage's own vectors are used when the dtypes match; other
        dtypes (complex ``z`` against real blocks, float64 ``z`` against
        float32 blocks) get a separate set, allocated once per dtype.
        """
        jgd = self.jac_graph_data
        dtype = np.dtype(dtype)
        if dtype == jgd.dtype:
            return jgd.e_jac_product
        if dtype not in self._scratch:
            logger.debug(f"Allocating {dtype} edge scratch vectors")
            self._scratch[dtype] = [np.zeros(y.shape, dtype=dtype) for y in jgd.e_jac_product]
        return self._scratch[dtype]

    def jac_vec_prod(self, z: Vector) -> Vector:
        """Return ``J @ z`` in a newly allocated array."""
        gs = self.graph_structure
        jgd = self.jac_graph_data
        z = np.asarray(z)
        self._check_vector(z, "z")

        dtype = np.result_type(z.dtype, jgd.dtype)
        dx = np.zeros(gs.dim_v, dtype=dtype)
        e_prod = self._edge_products(dtype)
        v_sl, s_sl, d_sl = gs.v_slices, gs.s_e_slices, gs.d_e_slices

        def edge_step(i: int) -> None:
            e_prod[i][:] = (
                jgd.get_src_edge_jacobian(i) @ z[s_sl[i]]
                + jgd.get_dst_edge_jacobian(i) @ z[d_sl[i]]
            )

        def vertex_step(i: int) -> None:
            y = jgd.get_vertex_jacobian(i) @ z[v_sl[i]]
            for j in gs.d_v[i]:
                y += e_prod[j]
            dx[v_sl[i]] = y

        with profile_section("jac_vec_prod"):
            self.executor.run(edge_step, gs.num_e)
            # run() returns only after every edge product is stored
            self.executor.run(vertex_step, gs.num_v)
        return dx

    def jac_vec_prod_into(self, out: Vector, z: Vector) -> None:
        """Store ``J @ z`` into ``out`` without allocating intermediates.

        Raises:
            TypeError: ``out`` is not an ndarray, or cannot hold the result dtype
            DimensionMismatchError: ``out`` or ``z`` has the wrong length
        """
        gs = self.graph_structure
        jgd = self.jac_graph_data
        z = np.asarray(z)
        if not isinstance(out, np.ndarray):
            raise TypeError("out must be a numpy array")
        self._check_vector(z, "z")
        self._check_vector(out, "out")

        dtype = np.result_type(z.dtype, jgd.dtype)
        if not np.can_cast(dtype, out.dtype, casting="same_kind"):
            raise TypeError(f"Cannot store a {dtype} product in an out array of dtype {out.dtype}")
        e_prod = self._edge_products(dtype)
        v_sl, s_sl, d_sl = gs.v_slices, gs.s_e_slices, gs.d_e_slices

        def edge_step(i: int) -> None:
            y = e_prod[i]
            # y = J_s z_s, then y += J_d z_d in place
            np.matmul(jgd.get_src_edge_jacobian(i), z[s_sl[i]], out=y)
            _muladd(jgd.get_dst_edge_jacobian(i), z[d_sl[i]], y)

        def vertex_step(i: int) -> None:
            dx_i = out[v_sl[i]]
            np.matmul(jgd.get_vertex_jacobian(i), z[v_sl[i]], out=dx_i)
            for j in gs.d_v[i]:
                dx_i += e_prod[j]

        with profile_section("jac_vec_prod_into"):
            self.executor.run(edge_step, gs.num_e)
            self.executor.run(vertex_step, gs.num_v)

    def __matmul__(self, z: Vector) -> Vector:
        return self.jac_vec_prod(z)

    __mul__ = __matmul__

    # ------------------------------------------------------------------
    # Solver-facing evaluation
    # ------------------------------------------------------------------

    def evaluate(self, x: np.ndarray, p: Any, t: float) -> Vector:
        """Refresh the coefficients at ``(x, p, t)`` and return ``J @ x``."""
        self.update_coefficients(x, p, t)
        return self.jac_vec_prod(x)

    def evaluate_into(self, out: Vector, x: np.ndarray, p: Any, t: float) -> None:
        """Refresh the coefficients at ``(x, p, t)`` and store ``J @ x`` in ``out``."""
        self.update_coefficients(x, p, t)
        self.jac_vec_prod_into(out, x)

    def __call__(self, *args):
        # (x, p, t) -> evaluate, (out, x, p, t) -> evaluate_into
        if len(args) == 3:
            return self.evaluate(*args)
        if len(args) == 4:
            return self.evaluate_into(*args)
        raise TypeError(
            f"NDJacVecOperator takes (x, p, t) or (out, x, p, t), got {len(args)} arguments"
        )

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Shut down the execution strategy (worker threads it owns)."""
        self.executor.shutdown()

    def __enter__(self) -> "NDJacVecOperator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Size queries
    # ------------------------------------------------------------------

    @property
    def shape(self):
        n = len(self.x)
        return (n, n)

    def size(self, dim: Optional[int] = None):
        """``(n, n)`` where n is the length of the current state, or one of the two."""
        if dim is None:
            return self.shape
        return self.shape[dim]

    @property
    def dtype(self):
        return np.result_type(np.asarray(self.x).dtype, self.jac_graph_data.dtype)

    def __repr__(self) -> str:
        gs = self.graph_structure
        state = "current" if self.is_current else "stale"
        return f"NDJacVecOperator(num_v={gs.num_v}, num_e={gs.num_e}, shape={self.shape}, {state})"
