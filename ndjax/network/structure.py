"""Precomputed index structures for network dynamics.

We need rather complicated sets of indices into the arrays that hold the
vertex and the edge variables. Everything that can be derived from the
topology and the entity dimensions is computed once and stored in
GraphStruct, so that the hot loops never re-derive topology.

The assumption is that there are two arrays, one for the vertex variables
and one for the edge variables. The graph structure is encoded in the source
and destination relationships s_e and d_e, which hold the vertex that is the
source/destination of the indexed edge: ``e_j = (s_e[j], d_e[j])``.
"""

import logging
import numbers
from dataclasses import dataclass
from functools import cached_property
from typing import Any, Sequence, Tuple, Union

from ndjax.errors import DimensionMismatchError, TopologyError
from ndjax.network.partition import create_idxs_from_offsets, create_offsets

logger = logging.getLogger(__name__)

Dims = Union[int, Sequence[int]]


def _broadcast_dims(dims: Dims, n: int, kind: str) -> Tuple[int, ...]:
    """Expand a scalar dimension to every entity and check the count."""
    if isinstance(dims, numbers.Integral):
        dims = int(dims)
        return (dims,) * n
    dims = tuple(int(d) for d in dims)
    if len(dims) != n:
        raise DimensionMismatchError(f"Got {len(dims)} {kind} dimensions for {n} {kind}s")
    return dims


@dataclass(frozen=True)
class GraphStruct:
    """Offsets, ranges and incidence tables for a graph and its dimensions.

    Attributes:
        num_v, num_e: Number of vertices and edges
        v_dims, e_dims: Per-vertex / per-edge state dimension
        s_e, d_e: Source / destination vertex of each edge
        v_offs, e_offs: Offset of each vertex / edge window in its buffer
        v_idx, e_idx: Index range of each vertex / edge window
        s_e_offs, d_e_offs: Offset of the source / destination vertex of each edge
        s_e_idx, d_e_idx: Index range of the source / destination vertex of each edge
        e_s_v_dat: Per vertex, (offset, dim) of the edges it is the source of
        e_d_v_dat: Per vertex, (offset, dim) of the edges it is the destination of
        s_v, d_v: Per vertex, indices of the edges it is the source / destination of
    """

    num_v: int
    num_e: int
    v_dims: Tuple[int, ...]
    e_dims: Tuple[int, ...]
    s_e: Tuple[int, ...]
    d_e: Tuple[int, ...]
    v_offs: Tuple[int, ...]
    e_offs: Tuple[int, ...]
    v_idx: Tuple[range, ...]
    e_idx: Tuple[range, ...]
    s_e_offs: Tuple[int, ...]
    d_e_offs: Tuple[int, ...]
    s_e_idx: Tuple[range, ...]
    d_e_idx: Tuple[range, ...]
    e_s_v_dat: Tuple[Tuple[Tuple[int, int], ...], ...]
    e_d_v_dat: Tuple[Tuple[Tuple[int, int], ...], ...]
    s_v: Tuple[Tuple[int, ...], ...]
    d_v: Tuple[Tuple[int, ...], ...]

    @classmethod
    def build(
        cls,
        num_v: int,
        edges: Sequence[Tuple[int, int]],
        v_dims: Dims,
        e_dims: Dims,
    ) -> "GraphStruct":
        """Build the index structures for a graph.

        Args:
            num_v: Number of vertices
            edges: Ordered (source, destination) pairs, vertices in [0, num_v)
            v_dims: Per-vertex dimensions, or one int shared by all vertices
            e_dims: Per-edge dimensions, or one int shared by all edges

        Raises:
            DimensionMismatchError: dimension counts do not match the graph
            TopologyError: an edge endpoint is not a vertex of the graph
        """
        edges = [(int(s), int(d)) for s, d in edges]
        num_e = len(edges)
        v_dims = _broadcast_dims(v_dims, num_v, "vertex")
        e_dims = _broadcast_dims(e_dims, num_e, "edge")

        for i_e, (s, d) in enumerate(edges):
            if not (0 <= s < num_v and 0 <= d < num_v):
                raise TopologyError(
                    f"Edge {i_e} ({s} -> {d}) has an endpoint outside [0, {num_v})"
                )

        s_e = tuple(s for s, _ in edges)
        d_e = tuple(d for _, d in edges)

        v_offs = create_offsets(v_dims)
        e_offs = create_offsets(e_dims)

        v_idx = create_idxs_from_offsets(v_offs, v_dims)
        e_idx = create_idxs_from_offsets(e_offs, e_dims)

        s_e_offs = tuple(v_offs[s] for s in s_e)
        d_e_offs = tuple(v_offs[d] for d in d_e)

        s_e_idx = tuple(v_idx[s] for s in s_e)
        d_e_idx = tuple(v_idx[d] for d in d_e)

        # Single pass grouping of edges by endpoint; incident edges keep edge order
        s_v = [[] for _ in range(num_v)]
        d_v = [[] for _ in range(num_v)]
        for i_e, (s, d) in enumerate(edges):
            s_v[s].append(i_e)
            d_v[d].append(i_e)

        e_s_v_dat = tuple(tuple((e_offs[i_e], e_dims[i_e]) for i_e in es) for es in s_v)
        e_d_v_dat = tuple(tuple((e_offs[i_e], e_dims[i_e]) for i_e in es) for es in d_v)

        gs = cls(
            num_v=num_v,
            num_e=num_e,
            v_dims=v_dims,
            e_dims=e_dims,
            s_e=s_e,
            d_e=d_e,
            v_offs=tuple(v_offs),
            e_offs=tuple(e_offs),
            v_idx=tuple(v_idx),
            e_idx=tuple(e_idx),
            s_e_offs=s_e_offs,
            d_e_offs=d_e_offs,
            s_e_idx=s_e_idx,
            d_e_idx=d_e_idx,
            e_s_v_dat=e_s_v_dat,
            e_d_v_dat=e_d_v_dat,
            s_v=tuple(tuple(es) for es in s_v),
            d_v=tuple(tuple(es) for es in d_v),
        )
        logger.debug(
            f"GraphStruct: {num_v} vertices ({gs.dim_v} states), "
            f"{num_e} edges ({gs.dim_e} states)"
        )
        return gs

    @classmethod
    def from_graph(cls, g: Any, v_dims: Dims, e_dims: Dims) -> "GraphStruct":
        """Build from a graph object such as a ``networkx.DiGraph``.

        The graph must expose ``number_of_nodes()`` and ``edges()``, with
        nodes labelled 0..n-1. Edge order is the graph's iteration order.
        """
        return cls.build(g.number_of_nodes(), list(g.edges()), v_dims, e_dims)

    @property
    def dim_v(self) -> int:
        """Total number of vertex states."""
        return sum(self.v_dims)

    @property
    def dim_e(self) -> int:
        """Total number of edge states."""
        return sum(self.e_dims)

    @property
    def dim_nd(self) -> int:
        """Total number of states of the combined vertex + edge system."""
        return self.dim_v + self.dim_e

    @property
    def is_homogeneous(self) -> bool:
        """True if every vertex has the same dimension."""
        return len(set(self.v_dims)) <= 1

    # Slices for NumPy basic indexing (views, never copies)

    @cached_property
    def v_slices(self) -> Tuple[slice, ...]:
        return tuple(slice(r.start, r.stop) for r in self.v_idx)

    @cached_property
    def s_e_slices(self) -> Tuple[slice, ...]:
        return tuple(slice(r.start, r.stop) for r in self.s_e_idx)

    @cached_property
    def d_e_slices(self) -> Tuple[slice, ...]:
        return tuple(slice(r.start, r.stop) for r in self.d_e_idx)
