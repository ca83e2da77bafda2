"""ndjax: index structures and Jacobian-vector operators for network dynamics"""

import jax

from ndjax._logging import enable_performance_logging, logger, set_log_level

__version__ = "0.1.0"


def _backend_supports_x64() -> bool:
    """Check if the current JAX backend supports 64-bit floats.

    Returns:
        True if backend supports float64, False otherwise.

    Note:
        - Metal (Apple Silicon) does not support float64
        - TPU does not natively support float64
        - CPU and CUDA support float64
    """
    try:
        backend = jax.default_backend().lower()
        if backend in ("metal", "tpu", "iree_metal"):
            return False
        for d in jax.devices():
            platform = getattr(d, "platform", "").lower()
            if "metal" in platform:
                return False
        return True
    except RuntimeError:
        # No backend could be initialized; the NumPy paths still run in float64
        return True


def configure_precision(force_x64: bool | None = None) -> bool:
    """Configure JAX precision based on backend capabilities.

    Autodiff Jacobian callbacks are written into float64 blocks, so x64 is
    enabled whenever the backend supports it.

    Args:
        force_x64: If True, force x64 even on unsupported backends (may fail).
                   If False, force x32. If None (default), auto-detect.

    Returns:
        True if x64 is enabled, False otherwise.
    """
    if force_x64 is not None:
        enable_x64 = force_x64
    else:
        enable_x64 = _backend_supports_x64()

    if enable_x64:
        logger.info("Using 64-bit float precision")
    else:
        logger.warning("Using 32-bit float precision")

    jax.config.update("jax_enable_x64", enable_x64)
    return enable_x64


def get_precision_info() -> dict:
    """Get information about the current precision configuration."""
    return {
        "x64_enabled": jax.config.jax_enable_x64,
        "backend": jax.default_backend(),
        "backend_supports_x64": _backend_supports_x64(),
    }


# Auto-configure precision on import
_x64_enabled = configure_precision()


from ndjax.errors import (  # noqa: E402
    DimensionMismatchError,
    IndexOutOfRangeError,
    NDJaxError,
    TopologyError,
)
from ndjax.jacobians import (  # noqa: E402
    JacGraphData,
    NDJacVecOperator,
    as_linear_operator,
    assemble_dense_jacobian,
    assemble_sparse_jacobian,
    edge_jacobian_from_fn,
    vertex_jacobian_from_fn,
)
from ndjax.network import (  # noqa: E402
    EdgeData,
    GraphData,
    GraphStruct,
    I,
    VertexData,
    construct_mass_matrix,
    create_idxs,
    create_idxs_from_offsets,
    create_offsets,
    prep_gd,
)
from ndjax.parallel import (  # noqa: E402
    ExecutionStrategy,
    SequentialStrategy,
    ThreadPoolStrategy,
)

__all__ = [
    # Index structures
    "create_offsets",
    "create_idxs",
    "create_idxs_from_offsets",
    "GraphStruct",
    "GraphData",
    "VertexData",
    "EdgeData",
    "prep_gd",
    "I",
    "construct_mass_matrix",
    # Jacobians
    "JacGraphData",
    "NDJacVecOperator",
    "vertex_jacobian_from_fn",
    "edge_jacobian_from_fn",
    "assemble_dense_jacobian",
    "assemble_sparse_jacobian",
    "as_linear_operator",
    # Execution strategies
    "ExecutionStrategy",
    "SequentialStrategy",
    "ThreadPoolStrategy",
    # Errors
    "NDJaxError",
    "DimensionMismatchError",
    "TopologyError",
    "IndexOutOfRangeError",
    # Configuration
    "configure_precision",
    "get_precision_info",
    "enable_performance_logging",
    "set_log_level",
]
