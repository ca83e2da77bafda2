"""Profiling utilities for ndjax.

Provides a context manager that times the coefficient refresh and the
Jacobian-vector product, optionally inside a JAX trace annotation so the
sections show up in Perfetto/TensorBoard traces.

Usage:
    from ndjax.profiling import profile_section, enable_profiling

    enable_profiling()
    with profile_section("update_coefficients"):
        op.update_coefficients(x, p, t)

Environment Variables:
    NDJAX_PROFILE: Enable profiling sections (1 or true)
"""

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Optional

import jax

from ndjax._logging import logger
from ndjax.config import profiling_enabled


@dataclass(frozen=True)
class ProfileConfig:
    """Configuration for profiling (immutable for thread safety).

    Attributes:
        enabled: Time sections and log the elapsed time at DEBUG level
        annotate: Wrap sections in jax.profiler.TraceAnnotation
    """

    enabled: bool = field(default_factory=profiling_enabled)
    annotate: bool = True


_config_lock = threading.Lock()
_global_config: ProfileConfig = ProfileConfig()


def get_config() -> ProfileConfig:
    """Get the global profiling configuration (thread-safe)."""
    with _config_lock:
        return _global_config


def enable_profiling(annotate: bool = True) -> None:
    """Enable profiling sections globally (thread-safe)."""
    global _global_config
    with _config_lock:
        _global_config = replace(_global_config, enabled=True, annotate=annotate)


def disable_profiling() -> None:
    """Disable profiling sections globally (thread-safe)."""
    global _global_config
    with _config_lock:
        _global_config = replace(_global_config, enabled=False)


@contextmanager
def profile_section(name: str, config: Optional[ProfileConfig] = None):
    """Context manager for profiling a code section.

    Args:
        name: Name for the profiled section (used in trace annotations)
        config: Profiling configuration (uses global config if None)

    Example:
        with profile_section("jac_vec_prod"):
            y = op.jac_vec_prod(z)
    """
    cfg = config or get_config()

    if not cfg.enabled:
        yield
        return

    start = time.perf_counter()
    try:
        if cfg.annotate:
            with jax.profiler.TraceAnnotation(name):
                yield
        else:
            yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug(f"{name}: {elapsed_ms:.3f}ms")
