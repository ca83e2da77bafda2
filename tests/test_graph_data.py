"""Tests for GraphData windows into the vertex and edge buffers."""

import numpy as np
import pytest

from ndjax import (
    DimensionMismatchError,
    EdgeData,
    GraphData,
    GraphStruct,
    IndexOutOfRangeError,
    VertexData,
    prep_gd,
)


@pytest.fixture
def star_struct():
    """Vertex 0 feeds vertices 1, 2; vertex 3 feeds vertex 0. Mixed dimensions."""
    return GraphStruct.build(4, [(0, 1), (0, 2), (3, 0)], [2, 1, 3, 2], [1, 2, 3])


@pytest.fixture
def star_data(star_struct):
    v_array = np.arange(star_struct.dim_v, dtype=np.float64)
    e_array = 100.0 + np.arange(star_struct.dim_e, dtype=np.float64)
    return GraphData(v_array, e_array, star_struct)


class TestConstruction:
    """Buffer validation at construction."""

    def test_lengths_match_structure(self, star_struct, star_data):
        assert len(star_data.v_array) == star_struct.dim_v
        assert len(star_data.e_array) == star_struct.dim_e

    def test_short_vertex_buffer(self, star_struct):
        with pytest.raises(DimensionMismatchError):
            GraphData(np.zeros(star_struct.dim_v - 1), np.zeros(star_struct.dim_e), star_struct)

    def test_long_edge_buffer(self, star_struct):
        with pytest.raises(DimensionMismatchError):
            GraphData(np.zeros(star_struct.dim_v), np.zeros(star_struct.dim_e + 1), star_struct)

    def test_non_array_buffer(self, star_struct):
        with pytest.raises(TypeError):
            GraphData([0.0] * star_struct.dim_v, np.zeros(star_struct.dim_e), star_struct)

    def test_view_counts(self, star_struct, star_data):
        assert len(star_data.v) == 4
        assert len(star_data.e) == 3
        assert len(star_data.v_s_e) == 3
        assert len(star_data.v_d_e) == 3
        assert [len(es) for es in star_data.e_s_v] == [2, 0, 0, 1]
        assert [len(es) for es in star_data.e_d_v] == [1, 1, 1, 0]


class TestWindows:
    """Indexed access through the windows."""

    def test_vertex_windows(self, star_struct, star_data):
        for i in range(star_struct.num_v):
            v = star_data.get_vertex(i)
            assert isinstance(v, VertexData)
            assert len(v) == star_struct.v_dims[i]
            assert [v[k] for k in range(len(v))] == list(star_struct.v_idx[i])

    def test_edge_windows(self, star_struct, star_data):
        for j in range(star_struct.num_e):
            e = star_data.get_edge(j)
            assert isinstance(e, EdgeData)
            assert len(e) == star_struct.e_dims[j]
            np.testing.assert_array_equal(
                np.asarray(e), 100.0 + np.array(list(star_struct.e_idx[j]))
            )

    def test_endpoint_windows(self, star_struct, star_data):
        for j in range(star_struct.num_e):
            src = star_data.get_src_vertex(j)
            dst = star_data.get_dst_vertex(j)
            np.testing.assert_array_equal(src.as_array(), star_data.v[star_struct.s_e[j]].as_array())
            np.testing.assert_array_equal(dst.as_array(), star_data.v[star_struct.d_e[j]].as_array())

    def test_incident_edge_windows(self, star_data):
        out_edges = star_data.get_out_edges(0)
        assert [len(e) for e in out_edges] == [1, 2]
        in_edges = star_data.get_in_edges(0)
        assert len(in_edges) == 1
        assert np.asarray(in_edges[0])[0] == star_data.e_array[3]

    def test_slice_returns_numpy_view(self, star_data):
        v = star_data.get_vertex(2)
        part = v[1:]
        assert isinstance(part, np.ndarray)
        part[:] = -1.0
        assert star_data.v_array[4] == -1.0
        assert star_data.v_array[5] == -1.0

    def test_as_array_shares_memory(self, star_data):
        arr = star_data.get_vertex(0).as_array()
        assert np.shares_memory(arr, star_data.v_array)
        assert np.shares_memory(np.asarray(star_data.get_edge(1)), star_data.e_array)

    def test_iteration(self, star_data):
        assert list(star_data.get_vertex(3)) == [6.0, 7.0]


class TestAliasing:
    """Read-after-write through the same and through aliasing windows."""

    def test_read_after_write_vertex(self, star_data):
        v = star_data.get_vertex(2)
        v[1] = 42.0
        assert v[1] == 42.0

    def test_read_after_write_edge(self, star_data):
        e = star_data.get_edge(2)
        e[2] = -3.5
        assert e[2] == -3.5
        assert star_data.e_array[5] == -3.5

    def test_write_through_vertex_visible_through_edge_endpoint(self, star_struct, star_data):
        # Edge 0 is 0 -> 1: its source window aliases vertex 0
        star_data.get_vertex(0)[1] = 9.25
        assert star_data.get_src_vertex(0)[1] == 9.25
        # and edge 2 (3 -> 0) sees vertex 0 as destination
        assert star_data.get_dst_vertex(2)[1] == 9.25

    def test_write_through_endpoint_visible_through_vertex(self, star_data):
        star_data.get_dst_vertex(1)[2] = 7.5
        assert star_data.get_vertex(2)[2] == 7.5

    def test_write_through_edge_visible_through_incidence(self, star_data):
        star_data.get_edge(1)[0] = -8.0
        assert star_data.get_out_edges(0)[1][0] == -8.0
        assert star_data.get_in_edges(2)[0][0] == -8.0

    def test_buffer_write_visible_through_window(self, star_data):
        star_data.v_array[:] = 0.5
        assert all(x == 0.5 for x in star_data.get_vertex(1))


class TestBoundsCheck:
    """Optional bounds checking."""

    def test_out_of_range_raises_when_enabled(self, star_struct):
        gd = GraphData(np.zeros(star_struct.dim_v), np.zeros(star_struct.dim_e), star_struct, bounds_check=True)
        v = gd.get_vertex(1)
        with pytest.raises(IndexOutOfRangeError):
            v[1]
        with pytest.raises(IndexOutOfRangeError):
            v[-1] = 1.0
        with pytest.raises(IndexError):
            gd.get_edge(0)[5]

    def test_in_range_allowed_when_enabled(self, star_struct):
        gd = GraphData(np.zeros(star_struct.dim_v), np.zeros(star_struct.dim_e), star_struct, bounds_check=True)
        gd.get_vertex(2)[2] = 1.0
        assert gd.get_vertex(2)[2] == 1.0

    def test_env_default(self, star_struct, monkeypatch):
        monkeypatch.setenv("NDJAX_BOUNDS_CHECK", "1")
        gd = GraphData(np.zeros(star_struct.dim_v), np.zeros(star_struct.dim_e), star_struct)
        assert gd.bounds_check
        with pytest.raises(IndexOutOfRangeError):
            gd.get_vertex(0)[2]

    def test_unchecked_by_default(self, star_struct, monkeypatch):
        monkeypatch.delenv("NDJAX_BOUNDS_CHECK", raising=False)
        gd = GraphData(np.zeros(star_struct.dim_v), np.zeros(star_struct.dim_e), star_struct)
        assert not gd.bounds_check
        # Index 2 of vertex 0 resolves to the first entry of vertex 1
        gd.v_array[2] = 4.0
        assert gd.get_vertex(0)[2] == 4.0


class TestPrepGd:
    """Reuse or rebuild of the windows depending on buffer identity."""

    def test_same_buffers_reused(self, star_struct, star_data):
        assert prep_gd(star_data.v_array, star_data.e_array, star_data, star_struct) is star_data

    def test_new_buffer_rebuilds(self, star_struct, star_data):
        x = np.ones(star_struct.dim_v)
        gd = prep_gd(x, star_data.e_array, star_data, star_struct)
        assert gd is not star_data
        assert gd.v_array is x
        assert gd.e_array is star_data.e_array
        gd.get_vertex(3)[0] = 5.0
        assert x[6] == 5.0

    def test_equal_but_distinct_buffer_rebuilds(self, star_struct, star_data):
        x = star_data.v_array.copy()
        assert prep_gd(x, star_data.e_array, star_data, star_struct) is not star_data

    def test_rebuild_keeps_bounds_check(self, star_struct):
        gd = GraphData(np.zeros(star_struct.dim_v), np.zeros(star_struct.dim_e), star_struct, bounds_check=True)
        new = prep_gd(np.zeros(star_struct.dim_v), gd.e_array, gd, star_struct)
        assert new.bounds_check
