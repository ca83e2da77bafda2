"""Default configuration values for ndjax.

This module centralizes configuration constants and the environment
variables that switch on debug behaviour.

Environment Variables:
    NDJAX_BOUNDS_CHECK: Bounds-check every vertex/edge view access (1 or true)
    NDJAX_PROFILE: Time coefficient refreshes and products (1 or true)
"""

import os

import numpy as np

# Element type of the flat vertex/edge buffers and of the Jacobian blocks
DEFAULT_DTYPE = np.float64


def _env_bool(name: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    val = os.environ.get(name, "").lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


def bounds_check_enabled() -> bool:
    """Default for view bounds checking (off unless NDJAX_BOUNDS_CHECK is set)."""
    return _env_bool("NDJAX_BOUNDS_CHECK")


def profiling_enabled() -> bool:
    """Default for profile sections (off unless NDJAX_PROFILE is set)."""
    return _env_bool("NDJAX_PROFILE")
