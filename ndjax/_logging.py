"""Logging configuration for ndjax.

Provides two logging modes:
- Default: WARNING level only (quiet)
- Performance tracing: DEBUG level with flush and optional memory stats

Usage:
    from ndjax._logging import logger, enable_performance_logging

    # Default - only warnings
    logger.warning("This will show")
    logger.debug("This won't show")

    # Enable for performance tracing
    enable_performance_logging()
    logger.debug("Now this shows with memory stats and flushes immediately")

    # Enable with perf_counter timestamps (for correlating with Perfetto traces)
    enable_performance_logging(with_perf_counter=True)
"""

import logging
import sys
import time
import tracemalloc

logger = logging.getLogger("ndjax")

# Default: WARNING level only (quiet operation)
logger.setLevel(logging.WARNING)

if not logger.handlers:
    _default_handler = logging.StreamHandler(sys.stdout)
    _default_handler.setLevel(logging.WARNING)
    _default_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(_default_handler)


def _get_memory_stats() -> str:
    """Get traced CPU memory stats string."""
    if not tracemalloc.is_tracing():
        return ""
    current, peak = tracemalloc.get_traced_memory()
    return f"[CPU:{current/1024/1024:.0f}MB peak:{peak/1024/1024:.0f}MB]"


class FlushingHandler(logging.StreamHandler):
    """StreamHandler that flushes after every emit."""

    def emit(self, record):
        super().emit(record)
        self.flush()


class MemoryLoggingHandler(logging.StreamHandler):
    """StreamHandler that prepends memory stats and flushes after every emit."""

    def emit(self, record):
        mem_stats = _get_memory_stats()
        if mem_stats:
            record.msg = f"{mem_stats} {record.msg}"
        super().emit(record)
        self.flush()


class PerfCounterHandler(logging.StreamHandler):
    """StreamHandler that prepends time.perf_counter() and flushes after every emit.

    Useful for correlating log messages with Perfetto trace timestamps.
    """

    def __init__(self, stream=None, with_memory: bool = False):
        super().__init__(stream)
        self.with_memory = with_memory

    def emit(self, record):
        prefix = f"[{time.perf_counter():.6f}]"
        if self.with_memory:
            mem_stats = _get_memory_stats()
            if mem_stats:
                prefix = f"{mem_stats} {prefix}"
        record.msg = f"{prefix} {record.msg}"
        super().emit(record)
        self.flush()


def enable_performance_logging(with_memory: bool = True, with_perf_counter: bool = False):
    """Enable DEBUG level logging with immediate flush for performance tracing.

    Args:
        with_memory: If True, prepend traced CPU memory stats to each log line.
        with_perf_counter: If True, prepend time.perf_counter() timestamps.
    """
    logger.setLevel(logging.DEBUG)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    if with_memory and not tracemalloc.is_tracing():
        tracemalloc.start()

    if with_perf_counter:
        handler = PerfCounterHandler(sys.stdout, with_memory=with_memory)
    elif with_memory:
        handler = MemoryLoggingHandler(sys.stdout)
    else:
        handler = FlushingHandler(sys.stdout)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)


def set_log_level(level: int):
    """Set the logging level.

    Args:
        level: logging.DEBUG, logging.INFO, logging.WARNING, etc.
    """
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)
