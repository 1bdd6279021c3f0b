"""
storj_notes/cancellation.py

Cooperative cancellation for blocking storage calls.

The Storj client performs blocking network I/O inside native code, where a
Ctrl-C would otherwise only be noticed after the call returns. To unwind
promptly, the CLI creates one CancellationToken per process run and passes
it to every network-facing call. Those calls run on a worker thread through
`run_cancellable`, while the main thread waits on the token. A SIGINT
handler installed with `interrupt_cancels` does nothing but trigger the
token.
"""

import signal
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar

from storj_notes.errors import OperationCancelled

T = TypeVar("T")

# How often the waiting thread re-checks the token (seconds).
POLL_INTERVAL = 0.05


class CancellationToken:
    """A one-shot cancellation flag shared across collaborators."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or until `timeout` elapses. Returns `cancelled`."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled("operation cancelled")


@contextmanager
def interrupt_cancels(token: CancellationToken) -> Iterator[CancellationToken]:
    """
    Route SIGINT to `token.cancel()` for the duration of the block.

    The previous handler is restored on exit. Signal handlers can only be
    installed from the main thread; elsewhere the block runs without one.
    """
    if threading.current_thread() is not threading.main_thread():
        yield token
        return

    def _handler(signum: int, frame: Any) -> None:
        token.cancel()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)


def run_cancellable(
    token: Optional[CancellationToken],
    func: Callable[..., T],
    *args: Any,
    on_abandon: Optional[Callable[[T], Any]] = None,
    **kwargs: Any,
) -> T:
    """
    Run a blocking call so that it can be abandoned when `token` is cancelled.

    Without a token the call runs inline. With a token it runs on a daemon
    worker thread; if the token fires first, OperationCancelled is raised.
    A result the worker produces after that point has no owner, so it is
    handed to `on_abandon` (e.g. to close a handle) instead of being
    dropped. Exceptions raised by `func` are re-raised unchanged on the
    calling thread.
    """
    if token is None:
        return func(*args, **kwargs)

    token.raise_if_cancelled()

    outcome: Dict[str, Any] = {}
    lock = threading.Lock()
    done = threading.Event()

    def _target() -> None:
        try:
            value = func(*args, **kwargs)
        except BaseException as exc:  # noqa: BLE001 - re-raised on the caller's thread
            outcome["error"] = exc
            done.set()
            return
        with lock:
            abandoned = outcome.get("abandoned", False)
            if not abandoned:
                outcome["value"] = value
        done.set()
        if abandoned and on_abandon is not None:
            on_abandon(value)

    worker = threading.Thread(target=_target, name="storj-notes-call", daemon=True)
    worker.start()

    while not done.wait(POLL_INTERVAL):
        if token.cancelled:
            with lock:
                outcome["abandoned"] = True
                finished = "value" in outcome
                value = outcome.pop("value", None)
            # The worker finished between the last poll and the lock.
            if finished and on_abandon is not None:
                on_abandon(value)
            raise OperationCancelled("operation cancelled")

    if "error" in outcome:
        raise outcome["error"]
    return outcome["value"]
