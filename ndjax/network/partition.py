"""Index partitions of stacked arrays.

Vertex (and edge) states are stored back to back in one flat array. These
helpers compute where each entity's window starts and which indices it
covers, given the entity dimensions in stacking order.
"""

from typing import List, Sequence

from ndjax.errors import DimensionMismatchError


def _check_dims(dims: Sequence[int]) -> None:
    for i, dim in enumerate(dims):
        if dim < 0:
            raise DimensionMismatchError(f"Dimension of entity {i} is negative ({dim})")


def create_offsets(dims: Sequence[int], counter: int = 0) -> List[int]:
    """Create offsets for stacked array of dimensions dims.

    Args:
        dims: Per-entity dimensions in stacking order
        counter: Offset of the first entity

    Returns:
        Starting offset of each entity
    """
    _check_dims(dims)
    offs = []
    for dim in dims:
        offs.append(counter)
        counter += dim
    return offs


def create_idxs(dims: Sequence[int], counter: int = 0) -> List[range]:
    """Create index ranges for stacked array of dimensions dims.

    Zero dimensions yield empty ranges; the ranges are disjoint and cover
    ``[counter, counter + sum(dims))``.
    """
    _check_dims(dims)
    idxs = []
    for dim in dims:
        idxs.append(range(counter, counter + dim))
        counter += dim
    return idxs


def create_idxs_from_offsets(offs: Sequence[int], dims: Sequence[int]) -> List[range]:
    """Create index ranges from precomputed offsets, without re-accumulating."""
    if len(offs) != len(dims):
        raise DimensionMismatchError(f"Got {len(offs)} offsets for {len(dims)} dimensions")
    _check_dims(dims)
    return [range(off, off + dim) for off, dim in zip(offs, dims)]
