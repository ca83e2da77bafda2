"""Error kinds raised by the ndjax indexing layer and Jacobian operator.

None of these are caught inside the package: they surface to the caller
(typically the time-stepping solver), which decides whether to abort.
"""


class NDJaxError(Exception):
    """Base class for all ndjax errors."""


class DimensionMismatchError(NDJaxError, ValueError):
    """A buffer, block, vector or parameter object has the wrong shape."""


class TopologyError(NDJaxError, ValueError):
    """An edge endpoint lies outside the vertex range."""


class IndexOutOfRangeError(NDJaxError, IndexError):
    """A bounds-checked view was indexed outside [0, len)."""
