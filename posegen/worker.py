"""Bounded background execution for pipelines.

Work is queued on a thread pool with a fixed number of workers, so a burst
of triggers waits in the queue instead of spawning unbounded threads.
There is no cancellation; submitted work runs to completion.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

logger = logging.getLogger(__name__)


class TaskRunner:
    def __init__(self, max_workers: int = 8, name: str = "posegen"):
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self._name = name
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=name)

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        return self._executor.submit(self._run, fn, args, kwargs)

    def _run(self, fn: Callable[..., Any], args: tuple, kwargs: dict) -> Any:
        try:
            return fn(*args, **kwargs)
        except Exception:
            logger.exception("Background work %s crashed in runner %s", getattr(fn, "__name__", fn), self._name)
            raise

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
