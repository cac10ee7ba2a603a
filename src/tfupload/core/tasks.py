"""Single-worker background runner with cancellation tokens.

Stages are chained by awaiting one task before submitting the next; the
interactive step in between runs on the calling (foreground) thread.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Generic, TypeVar

from tfupload.core.exceptions import OperationCancelledError

T = TypeVar("T")

log = logging.getLogger(__name__)


class CancellationToken:
    """Shared cancellation flag for one operation."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError("Operation cancelled")


class BackgroundTask(Generic[T]):
    """Handle for work submitted to a BackgroundRunner."""

    def __init__(self, title: str, future: Future, token: CancellationToken) -> None:
        self._title = title
        self._future = future
        self._token = token

    @property
    def title(self) -> str:
        return self._title

    @property
    def token(self) -> CancellationToken:
        return self._token

    def await_result(self, timeout: float | None = None) -> T:
        """Block until the task finishes; re-raises the task's exception."""
        return self._future.result(timeout)

    def cancel(self) -> None:
        """Signal the token; also drop the task if it has not started yet."""
        self._token.cancel()
        self._future.cancel()

    def done(self) -> bool:
        return self._future.done()


class BackgroundRunner:
    """Runs background stages one at a time on a dedicated worker thread."""

    def __init__(self) -> None:
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tfupload")

    def submit(
        self,
        title: str,
        fn: Callable[..., T],
        *args: Any,
        token: CancellationToken | None = None,
        **kwargs: Any,
    ) -> BackgroundTask[T]:
        token = token or CancellationToken()

        def _run() -> T:
            token.raise_if_cancelled()
            log.debug("Background task started: %s", title)
            try:
                return fn(*args, **kwargs)
            finally:
                log.debug("Background task finished: %s", title)

        return BackgroundTask(title, self._executor.submit(_run), token)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> BackgroundRunner:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()
