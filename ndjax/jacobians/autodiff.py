"""Jacobian callbacks derived from vertex and edge functions with JAX.

Writing Jacobian callbacks by hand is error prone. Given the (JAX-traceable)
dynamics of a vertex or the contribution of an edge, these helpers build the
in-place callbacks expected by NDJacVecOperator using forward-mode autodiff:

    f(v, p, t) -> dv                    vertex dynamics
    g(v_s, v_d, p, t) -> contribution   edge contribution to the destination

``p`` must be a JAX pytree (None, scalars, arrays, tuples of those). The
Jacobian function is compiled once per callback with jax.jit and retraced
only when the vertex dimension changes.
"""

from typing import Callable

import jax
import jax.numpy as jnp
import numpy as np


def vertex_jacobian_from_fn(f: Callable, jit: bool = True) -> Callable:
    """Build ``vertex_jacobian(J, v, p, t)`` from vertex dynamics ``f(v, p, t)``."""
    jac_fn = jax.jacfwd(f, argnums=0)
    if jit:
        jac_fn = jax.jit(jac_fn)

    def vertex_jacobian(J, v, p, t):
        J[...] = np.asarray(jac_fn(jnp.asarray(np.asarray(v)), p, t))

    vertex_jacobian.__name__ = f"vertex_jacobian_{getattr(f, '__name__', 'fn')}"
    return vertex_jacobian


def edge_jacobian_from_fn(g: Callable, jit: bool = True) -> Callable:
    """Build ``edge_jacobian(J_s, J_d, v_s, v_d, p, t)`` from ``g(v_s, v_d, p, t)``."""
    jac_fn = jax.jacfwd(g, argnums=(0, 1))
    if jit:
        jac_fn = jax.jit(jac_fn)

    def edge_jacobian(J_s, J_d, v_s, v_d, p, t):
        d_src, d_dst = jac_fn(jnp.asarray(np.asarray(v_s)), jnp.asarray(np.asarray(v_d)), p, t)
        J_s[...] = np.asarray(d_src)
        J_d[...] = np.asarray(d_dst)

    edge_jacobian.__name__ = f"edge_jacobian_{getattr(g, '__name__', 'fn')}"
    return edge_jacobian
