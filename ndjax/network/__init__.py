"""Graph-aware indexing layer for ndjax

Index structures, zero-copy data windows, parameter indexing and mass
matrix assembly for dynamical systems on graphs.
"""

from ndjax.network.data import EdgeData, GraphData, VertexData, prep_gd
from ndjax.network.mass_matrix import I, UniformScaling, construct_mass_matrix, is_identity
from ndjax.network.params import check_params, maybe_idx, p_e_idx, p_v_idx
from ndjax.network.partition import create_idxs, create_idxs_from_offsets, create_offsets
from ndjax.network.structure import GraphStruct

__all__ = [
    # Partition builder
    "create_offsets",
    "create_idxs",
    "create_idxs_from_offsets",
    # Structure and data
    "GraphStruct",
    "GraphData",
    "VertexData",
    "EdgeData",
    "prep_gd",
    # Parameters
    "check_params",
    "p_v_idx",
    "p_e_idx",
    "maybe_idx",
    # Mass matrix
    "I",
    "UniformScaling",
    "is_identity",
    "construct_mass_matrix",
]
