"""Parameter-object conventions for vertex and edge callbacks.

A parameter object ``p`` is handed to the operator as a whole and split per
entity before each callback:

- ``p`` is not a 2-tuple (including ``None``): every vertex and edge gets ``p``.
- ``p = (p_v, p_e)``: vertices receive parts of ``p_v``, edges parts of ``p_e``.
  Each part is either indexable per entity (list, tuple or NumPy array,
  indexed along its first axis) or a single object shared by all entities.

The same convention applies to the callbacks themselves: a single callable
is shared, a list or tuple holds one callable per entity.
"""

from typing import Any

import numpy as np

from ndjax.errors import DimensionMismatchError

_INDEXABLE = (list, tuple, np.ndarray)


def _is_split(p: Any) -> bool:
    return isinstance(p, tuple) and len(p) == 2


def _check_part(part: Any, n: int, kind: str) -> None:
    if isinstance(part, _INDEXABLE):
        if len(part) != n:
            raise DimensionMismatchError(
                f"{kind} parameters have length {len(part)}, expected {n}"
            )


def check_params(p: Any, num_v: int, num_e: int) -> None:
    """Validate the parameter object against the vertex and edge counts.

    Raises:
        DimensionMismatchError: a per-entity part has the wrong length
    """
    if _is_split(p):
        _check_part(p[0], num_v, "Vertex")
        _check_part(p[1], num_e, "Edge")


def p_v_idx(p: Any, i: int) -> Any:
    """Parameters of vertex i."""
    if not _is_split(p):
        return p
    p_v = p[0]
    return p_v[i] if isinstance(p_v, _INDEXABLE) else p_v


def p_e_idx(p: Any, i: int) -> Any:
    """Parameters of edge i."""
    if not _is_split(p):
        return p
    p_e = p[1]
    return p_e[i] if isinstance(p_e, _INDEXABLE) else p_e


def check_callbacks(fns: Any, n: int, kind: str) -> None:
    """Validate a per-entity callback list against the entity count."""
    if isinstance(fns, (list, tuple)) and len(fns) != n:
        raise DimensionMismatchError(f"Got {len(fns)} {kind} callbacks for {n} {kind}s")


def maybe_idx(fns: Any, i: int) -> Any:
    """The callback of entity i: indexed if ``fns`` is a list or tuple, else shared."""
    return fns[i] if isinstance(fns, (list, tuple)) else fns
