"""Jacobian storage and matrix-free Jacobian-vector products for ndjax"""

from ndjax.jacobians.assembly import (
    as_linear_operator,
    assemble_dense_jacobian,
    assemble_sparse_jacobian,
)
from ndjax.jacobians.autodiff import edge_jacobian_from_fn, vertex_jacobian_from_fn
from ndjax.jacobians.operator import NDJacVecOperator
from ndjax.jacobians.storage import JacGraphData

__all__ = [
    "JacGraphData",
    "NDJacVecOperator",
    # Autodiff callbacks
    "vertex_jacobian_from_fn",
    "edge_jacobian_from_fn",
    # Assembly
    "assemble_dense_jacobian",
    "assemble_sparse_jacobian",
    "as_linear_operator",
]
