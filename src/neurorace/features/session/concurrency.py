"""Thread-pool bridge between async endpoints and the lock-guarded session manager."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

__all__ = ["run_blocking", "shutdown_executor"]

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

# Transitions queue on the manager's lock, so a handful of threads is plenty.
_WORKERS = max(1, min(8, os.cpu_count() or 1))
_executor: ThreadPoolExecutor | None = None


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    if _executor is None:
        _executor = ThreadPoolExecutor(max_workers=_WORKERS, thread_name_prefix="neurorace-session")
    return _executor


async def run_blocking(func: Callable[..., _T], /, *args: Any, **kwargs: Any) -> _T:
    """Run a session call on the worker pool and await its result."""

    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_get_executor(), lambda: func(*args, **kwargs))


def shutdown_executor(*, wait: bool = True) -> None:
    """Stop the worker pool; the next ``run_blocking`` call starts a fresh one."""

    global _executor
    if _executor is None:
        return
    executor, _executor = _executor, None
    executor.shutdown(wait=wait)
    logger.debug("Session worker pool stopped", extra={"workers": _WORKERS})
