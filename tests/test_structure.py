"""Tests for GraphStruct construction."""

import networkx as nx
import numpy as np
import pytest

from ndjax import DimensionMismatchError, GraphStruct, TopologyError


class TestGraphStructBuild:
    """Offsets, ranges and endpoint tables."""

    def test_chain_tables(self, chain_struct):
        gs = chain_struct
        assert gs.num_v == 3
        assert gs.num_e == 2
        assert gs.s_e == (0, 1)
        assert gs.d_e == (1, 2)
        assert gs.v_offs == (0, 2, 4)
        assert gs.e_offs == (0, 1)
        assert gs.v_idx == (range(0, 2), range(2, 4), range(4, 6))
        assert gs.e_idx == (range(0, 1), range(1, 2))
        assert gs.dim_v == 6
        assert gs.dim_e == 2
        assert gs.dim_nd == 8

    def test_endpoint_tables_duplicate_vertex_tables(self, chain_struct):
        gs = chain_struct
        for j in range(gs.num_e):
            assert gs.s_e_offs[j] == gs.v_offs[gs.s_e[j]]
            assert gs.d_e_offs[j] == gs.v_offs[gs.d_e[j]]
            assert gs.s_e_idx[j] == gs.v_idx[gs.s_e[j]]
            assert gs.d_e_idx[j] == gs.v_idx[gs.d_e[j]]

    def test_incidence_lists(self, chain_struct):
        gs = chain_struct
        assert gs.s_v == ((0,), (1,), ())
        assert gs.d_v == ((), (0,), (1,))
        assert gs.e_s_v_dat == (((0, 1),), ((1, 1),), ())
        assert gs.e_d_v_dat == ((), ((0, 1),), ((1, 1),))

    def test_incidence_matches_naive_scan(self):
        """Grouping pass agrees with scanning all edges for every vertex."""
        rng = np.random.default_rng(7)
        num_v = 6
        edges = [tuple(int(k) for k in rng.integers(0, num_v, size=2)) for _ in range(15)]
        e_dims = [int(d) for d in rng.integers(1, 4, size=len(edges))]
        gs = GraphStruct.build(num_v, edges, 2, e_dims)

        for i in range(num_v):
            expected_src = [j for j, (s, _) in enumerate(edges) if s == i]
            expected_dst = [j for j, (_, d) in enumerate(edges) if d == i]
            assert list(gs.s_v[i]) == expected_src
            assert list(gs.d_v[i]) == expected_dst
            assert list(gs.e_s_v_dat[i]) == [(gs.e_offs[j], e_dims[j]) for j in expected_src]
            assert list(gs.e_d_v_dat[i]) == [(gs.e_offs[j], e_dims[j]) for j in expected_dst]

    def test_heterogeneous_dims(self):
        gs = GraphStruct.build(3, [(0, 2), (2, 1)], [1, 3, 2], [2, 4])
        assert gs.v_offs == (0, 1, 4)
        assert gs.e_offs == (0, 2)
        assert gs.dim_v == 6
        assert gs.dim_e == 6
        assert not gs.is_homogeneous

    def test_scalar_dims_broadcast(self):
        gs = GraphStruct.build(4, [(0, 1), (1, 2), (2, 3)], 3, 2)
        assert gs.v_dims == (3, 3, 3, 3)
        assert gs.e_dims == (2, 2, 2)
        assert gs.is_homogeneous

    def test_numpy_dims_accepted(self):
        gs = GraphStruct.build(2, [(0, 1)], np.array([2, 3]), np.int64(1))
        assert gs.v_dims == (2, 3)
        assert gs.e_dims == (1,)

    def test_no_edges(self):
        gs = GraphStruct.build(1, [], [2], [])
        assert gs.num_e == 0
        assert gs.s_v == ((),)
        assert gs.d_v == ((),)

    def test_slices_match_ranges(self, chain_struct):
        gs = chain_struct
        for sl, r in zip(gs.v_slices, gs.v_idx):
            assert (sl.start, sl.stop) == (r.start, r.stop)
        for sl, r in zip(gs.d_e_slices, gs.d_e_idx):
            assert (sl.start, sl.stop) == (r.start, r.stop)

    def test_immutable(self, chain_struct):
        with pytest.raises(AttributeError):
            chain_struct.num_v = 4


class TestGraphStructErrors:
    """Topology and dimension validation."""

    @pytest.mark.parametrize("edge", [(0, 3), (-1, 1), (5, 0)])
    def test_endpoint_out_of_range(self, edge):
        with pytest.raises(TopologyError):
            GraphStruct.build(3, [(0, 1), edge], 2, 1)

    def test_vertex_dim_count_mismatch(self):
        with pytest.raises(DimensionMismatchError):
            GraphStruct.build(3, [(0, 1)], [2, 2], [1])

    def test_edge_dim_count_mismatch(self):
        with pytest.raises(DimensionMismatchError):
            GraphStruct.build(3, [(0, 1)], 2, [1, 1])

    def test_topology_error_is_value_error(self):
        with pytest.raises(ValueError):
            GraphStruct.build(2, [(0, 2)], 1, 1)


class TestFromGraph:
    """Building from a networkx graph."""

    def test_digraph(self):
        g = nx.DiGraph()
        g.add_nodes_from(range(4))
        g.add_edges_from([(0, 1), (1, 2), (3, 2)])
        gs = GraphStruct.from_graph(g, 2, 1)

        assert gs.num_v == 4
        assert gs.num_e == 3
        assert set(zip(gs.s_e, gs.d_e)) == {(0, 1), (1, 2), (3, 2)}
        assert len(gs.d_v[2]) == 2

    def test_path_graph(self):
        g = nx.path_graph(5, create_using=nx.DiGraph)
        gs = GraphStruct.from_graph(g, [1, 2, 3, 2, 1], 1)
        assert gs.s_e == (0, 1, 2, 3)
        assert gs.d_e == (1, 2, 3, 4)
        assert gs.dim_v == 9
