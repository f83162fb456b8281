"""
One-way dispatch of best-effort side effects.

Counter increments and audit events are emitted after the response path has
decided success. They must never block or fail the caller, so every
dispatcher logs failures instead of raising them.
"""

from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Protocol

from aws_lambda_powertools import Logger

logger = Logger(UTC=True)


class EventDispatcher(Protocol):
    """Fire-and-forget task submission."""

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> None: ...


def _task_name(fn: Callable[..., Any]) -> str:
    return getattr(fn, "__qualname__", repr(fn))


class InlineDispatcher:
    """Runs tasks immediately in the calling thread.

    Failures are logged and swallowed, matching the background dispatcher.
    Suitable for single-invocation runtimes and tests.
    """

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> None:
        try:
            fn(*args, **kwargs)
        except Exception as exc:
            logger.warning(
                "Background task failed",
                extra={"task": _task_name(fn), "error": str(exc), "error_type": type(exc).__name__},
            )


class BackgroundDispatcher:
    """Runs tasks on a bounded worker pool without waiting for them."""

    def __init__(self, max_workers: int = 4) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="image-events",
        )

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> None:
        try:
            future = self._executor.submit(fn, *args, **kwargs)
        except RuntimeError as exc:
            # Executor already shut down
            logger.warning(
                "Background task rejected",
                extra={"task": _task_name(fn), "error": str(exc)},
            )
            return

        future.add_done_callback(lambda done: self._log_failure(fn, done))

    @staticmethod
    def _log_failure(fn: Callable[..., Any], future: Future[Any]) -> None:
        if future.cancelled():
            return

        exc = future.exception()
        if exc is not None:
            logger.warning(
                "Background task failed",
                extra={"task": _task_name(fn), "error": str(exc), "error_type": type(exc).__name__},
            )

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting tasks; with ``wait`` drain the ones already queued."""
        self._executor.shutdown(wait=wait)
