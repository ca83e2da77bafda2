"""Storage for the Jacobian blocks of vertices and edges.

JacGraphData holds, for every vertex, the Jacobian of its own dynamics with
respect to its own variables, and for every edge the pair of Jacobians of
the edge contribution with respect to the source and the destination vertex.
A third array (``e_jac_product``) stores, per edge, the product of the edge
Jacobians with a vector before it is summed into the destination vertex.

The edge contribution enters the equations of the destination vertex, so for
an edge from s to d:

    src_edge_jacobian: v_dims[d] x v_dims[s]   (derivative w.r.t. the source)
    dst_edge_jacobian: v_dims[d] x v_dims[d]   (derivative w.r.t. the destination)
    e_jac_product:     v_dims[d]

Block shapes are chosen per edge, so vertices may have different dimensions.
All arrays are allocated once and refreshed in place.
"""

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np
from jaxtyping import Float

from ndjax.config import DEFAULT_DTYPE
from ndjax.network.structure import GraphStruct

Block = Float[np.ndarray, "rows cols"]
Vector = Float[np.ndarray, " n"]


@dataclass
class JacGraphData:
    """Jacobian blocks and scratch vectors of a network.

    Attributes:
        v_jac_array: Per vertex, its square Jacobian block
        e_jac_array: Per edge, the (source, destination) Jacobian blocks
        e_jac_product: Per edge, scratch for the edge Jacobian-vector product
    """

    v_jac_array: List[Block]
    e_jac_array: List[Tuple[Block, Block]]
    e_jac_product: List[Vector]

    @classmethod
    def build(cls, gs: GraphStruct, dtype=DEFAULT_DTYPE) -> "JacGraphData":
        """Allocate zeroed storage sized from the graph structure."""
        v_jac_array = [np.zeros((dim, dim), dtype=dtype) for dim in gs.v_dims]
        e_jac_array = []
        e_jac_product = []
        for s, d in zip(gs.s_e, gs.d_e):
            src_dim = gs.v_dims[s]
            dst_dim = gs.v_dims[d]
            e_jac_array.append(
                (
                    np.zeros((dst_dim, src_dim), dtype=dtype),
                    np.zeros((dst_dim, dst_dim), dtype=dtype),
                )
            )
            e_jac_product.append(np.zeros(dst_dim, dtype=dtype))
        return cls(v_jac_array, e_jac_array, e_jac_product)

    @property
    def dtype(self) -> np.dtype:
        if self.v_jac_array:
            return self.v_jac_array[0].dtype
        return np.dtype(DEFAULT_DTYPE)

    def get_vertex_jacobian(self, i: int) -> Block:
        return self.v_jac_array[i]

    def get_src_edge_jacobian(self, i: int) -> Block:
        return self.e_jac_array[i][0]

    def get_dst_edge_jacobian(self, i: int) -> Block:
        return self.e_jac_array[i][1]

    def get_edge_product(self, i: int) -> Vector:
        return self.e_jac_product[i]

    def copy(self) -> "JacGraphData":
        """Deep copy of all blocks (for snapshots in tests and debugging)."""
        return JacGraphData(
            [J.copy() for J in self.v_jac_array],
            [(J_s.copy(), J_d.copy()) for J_s, J_d in self.e_jac_array],
            [y.copy() for y in self.e_jac_product],
        )
