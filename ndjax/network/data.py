"""Zero-copy access to vertex and edge variables.

GraphData owns the two flat buffers (vertex variables and edge variables)
and a fixed set of windows into them, built once from a GraphStruct:

- ``v[i]``: the variables of vertex i
- ``e[j]``: the variables of edge j
- ``v_s_e[j]`` / ``v_d_e[j]``: the source / destination vertex of edge j
- ``e_s_v[i]`` / ``e_d_v[i]``: the edges that have vertex i as source / destination

A window stores the buffer it reads from plus ``(offset, len)``. It holds no
reference to the GraphData, and several windows alias the same memory (the
destination-vertex window of an edge and the vertex window of that vertex,
for instance). Correctness relies on the GraphStruct ranges being disjoint.
"""

import logging
from typing import List, Optional

import numpy as np

from ndjax.config import bounds_check_enabled
from ndjax.errors import DimensionMismatchError, IndexOutOfRangeError
from ndjax.network.structure import GraphStruct

logger = logging.getLogger(__name__)


class _Window:
    """A contiguous window ``buffer[offset:offset + len]``.

    Integer indices in ``[0, len)`` map to ``buffer[offset + idx]``. Indices
    outside that range are not checked unless ``bounds_check`` is set, in
    which case they raise IndexOutOfRangeError.
    """

    __slots__ = ("_buf", "idx_offset", "len", "bounds_check")

    def __init__(self, buf: np.ndarray, idx_offset: int, length: int, bounds_check: bool = False):
        self._buf = buf
        self.idx_offset = idx_offset
        self.len = length
        self.bounds_check = bounds_check

    def _check(self, idx: int) -> None:
        if not 0 <= idx < self.len:
            raise IndexOutOfRangeError(
                f"Index {idx} out of range for {type(self).__name__} of length {self.len}"
            )

    def __getitem__(self, idx):
        if isinstance(idx, slice):
            return self.as_array()[idx]
        if self.bounds_check:
            self._check(idx)
        return self._buf[idx + self.idx_offset]

    def __setitem__(self, idx, x) -> None:
        if isinstance(idx, slice):
            self.as_array()[idx] = x
            return
        if self.bounds_check:
            self._check(idx)
        self._buf[idx + self.idx_offset] = x

    def __len__(self) -> int:
        return self.len

    def __iter__(self):
        return iter(self.as_array())

    def __array__(self, dtype=None, copy=None):
        arr = self.as_array()
        if dtype is not None and dtype != arr.dtype:
            return arr.astype(dtype)
        if copy:
            return arr.copy()
        return arr

    def as_array(self) -> np.ndarray:
        """NumPy view of the window (shares memory with the buffer)."""
        return self._buf[self.idx_offset : self.idx_offset + self.len]

    @property
    def buffer(self) -> np.ndarray:
        """The flat buffer this window reads from."""
        return self._buf

    def __repr__(self) -> str:
        return f"{type(self).__name__}(offset={self.idx_offset}, len={self.len}, {self.as_array()})"


class VertexData(_Window):
    """Window onto the variables of one vertex."""

    __slots__ = ()


class EdgeData(_Window):
    """Window onto the variables of one edge."""

    __slots__ = ()


def _check_buffer(arr: np.ndarray, expected: int, kind: str) -> None:
    if not isinstance(arr, np.ndarray) or arr.ndim != 1:
        raise TypeError(f"{kind} buffer must be a one-dimensional numpy array")
    if len(arr) != expected:
        raise DimensionMismatchError(
            f"{kind} buffer has length {len(arr)}, graph structure needs {expected}"
        )


class GraphData:
    """Flat vertex and edge buffers plus the windows into them.

    Args:
        v_array: Vertex buffer, length ``gs.dim_v``
        e_array: Edge buffer, length ``gs.dim_e``
        gs: Index structures of the graph
        bounds_check: Check window indices (defaults to NDJAX_BOUNDS_CHECK)

    Raises:
        DimensionMismatchError: a buffer length does not match the structure
    """

    def __init__(
        self,
        v_array: np.ndarray,
        e_array: np.ndarray,
        gs: GraphStruct,
        bounds_check: Optional[bool] = None,
    ):
        _check_buffer(v_array, gs.dim_v, "Vertex")
        _check_buffer(e_array, gs.dim_e, "Edge")
        if bounds_check is None:
            bounds_check = bounds_check_enabled()

        self.v_array = v_array
        self.e_array = e_array
        self.bounds_check = bounds_check

        bc = bounds_check
        self.v: List[VertexData] = [
            VertexData(v_array, off, dim, bc) for off, dim in zip(gs.v_offs, gs.v_dims)
        ]
        self.e: List[EdgeData] = [
            EdgeData(e_array, off, dim, bc) for off, dim in zip(gs.e_offs, gs.e_dims)
        ]
        self.v_s_e: List[VertexData] = [
            VertexData(v_array, off, gs.v_dims[s], bc) for off, s in zip(gs.s_e_offs, gs.s_e)
        ]
        self.v_d_e: List[VertexData] = [
            VertexData(v_array, off, gs.v_dims[d], bc) for off, d in zip(gs.d_e_offs, gs.d_e)
        ]
        self.e_s_v: List[List[EdgeData]] = [
            [EdgeData(e_array, off, dim, bc) for off, dim in dat] for dat in gs.e_s_v_dat
        ]
        self.e_d_v: List[List[EdgeData]] = [
            [EdgeData(e_array, off, dim, bc) for off, dim in dat] for dat in gs.e_d_v_dat
        ]

    def get_vertex(self, i: int) -> VertexData:
        return self.v[i]

    def get_edge(self, i: int) -> EdgeData:
        return self.e[i]

    def get_src_vertex(self, i: int) -> VertexData:
        """Variables of the source vertex of edge i."""
        return self.v_s_e[i]

    def get_dst_vertex(self, i: int) -> VertexData:
        """Variables of the destination vertex of edge i."""
        return self.v_d_e[i]

    def get_out_edges(self, i: int) -> List[EdgeData]:
        """Variables of the edges that have vertex i as source."""
        return self.e_s_v[i]

    def get_in_edges(self, i: int) -> List[EdgeData]:
        """Variables of the edges that have vertex i as destination."""
        return self.e_d_v[i]


def prep_gd(v_array: np.ndarray, e_array: np.ndarray, gd: GraphData, gs: GraphStruct) -> GraphData:
    """Return a GraphData over the given buffers, reusing ``gd`` when possible.

    The windows are tied to buffer identity: if either buffer is a different
    object from the one ``gd`` was built on, a new GraphData is built.
    """
    if gd.v_array is v_array and gd.e_array is e_array:
        return gd
    logger.debug("Buffer identity changed, rebuilding GraphData windows")
    return GraphData(v_array, e_array, gs, bounds_check=gd.bounds_check)
