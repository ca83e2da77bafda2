"""Execution strategies for the per-vertex and per-edge loops.

The coefficient refresh and the Jacobian-vector product both consist of
loops whose iterations write to disjoint memory (one Jacobian block, one
scratch vector or one output window per iteration). A strategy decides
whether those iterations run in the calling thread or on a worker pool.

``run`` returns only after every iteration has finished, so two consecutive
``run`` calls are separated by a barrier.
"""

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ExecutionStrategy:
    """Base class: runs ``fn(i)`` for every ``i`` in ``range(n)``."""

    def run(self, fn: Callable[[int], None], n: int) -> None:
        raise NotImplementedError

    def shutdown(self) -> None:
        """Release any worker threads owned by the strategy."""


class SequentialStrategy(ExecutionStrategy):
    """Run every iteration in the calling thread, in index order."""

    def run(self, fn: Callable[[int], None], n: int) -> None:
        for i in range(n):
            fn(i)

    def __repr__(self) -> str:
        return "SequentialStrategy()"


class ThreadPoolStrategy(ExecutionStrategy):
    """Run iterations on a ``concurrent.futures`` thread pool.

    Iterations are submitted in contiguous chunks, one per worker, to keep
    scheduling overhead low for graphs with many small entities. Worker
    exceptions are re-raised in the caller.

    Args:
        max_workers: Pool size when the strategy creates its own pool
        executor: Existing executor to use instead (not shut down by us)
    """

    def __init__(self, max_workers: Optional[int] = None, executor: Optional[Executor] = None):
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="ndjax"
        )
        self.max_workers = max_workers or getattr(self._executor, "_max_workers", 1)

    def run(self, fn: Callable[[int], None], n: int) -> None:
        if n == 0:
            return
        n_chunks = max(1, min(self.max_workers, n))
        bounds = [(k * n) // n_chunks for k in range(n_chunks + 1)]

        def run_chunk(lo: int, hi: int) -> None:
            for i in range(lo, hi):
                fn(i)

        futures = [
            self._executor.submit(run_chunk, lo, hi)
            for lo, hi in zip(bounds[:-1], bounds[1:])
            if hi > lo
        ]
        # Barrier: wait for every chunk, surfacing the first failure
        for future in futures:
            future.result()

    def shutdown(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def __repr__(self) -> str:
        return f"ThreadPoolStrategy(max_workers={self.max_workers})"


def resolve_strategy(
    executor: Optional[ExecutionStrategy] = None, parallel: bool = False
) -> ExecutionStrategy:
    """Pick the strategy for an operator.

    An explicit ``executor`` wins; otherwise ``parallel=True`` creates a
    default-sized thread pool and ``parallel=False`` runs sequentially.
    """
    if executor is not None:
        return executor
    if parallel:
        strategy = ThreadPoolStrategy()
        logger.debug(f"Using {strategy!r}")
        return strategy
    return SequentialStrategy()
