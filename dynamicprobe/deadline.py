"""Deadline scopes and the worker/deadline race shared by every check.

A Deadline plays the part of a request context: it expires at a fixed
monotonic time, or earlier when cancelled, and cancellation flows down to
child scopes. Expiry by time is observed (``err``/``remaining``), not
signalled; only ``cancel`` fires callbacks.

``run_with_deadline`` starts a probe on its own worker thread and returns
whichever comes first, the probe's outcome or the deadline.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable

from dynamicprobe.errors import ProbeFailure

logger = logging.getLogger(__name__)

DEADLINE_EXCEEDED = "context deadline exceeded"
CANCELED = "context canceled"


class Deadline:
    def __init__(
        self, timeout_s: float | None = None, parent: Deadline | None = None
    ) -> None:
        expires_at = None
        if timeout_s is not None:
            expires_at = time.monotonic() + max(0.0, timeout_s)
        if parent is not None and parent.expires_at is not None:
            expires_at = (
                parent.expires_at
                if expires_at is None
                else min(expires_at, parent.expires_at)
            )
        self.expires_at = expires_at
        self._lock = threading.Lock()
        self._reason: str | None = None
        self._callbacks: dict[int, Callable[[], None]] = {}
        self._next_token = 0
        self._detach: Callable[[], None] | None = None
        if parent is not None:
            self._detach = parent.on_cancel(
                lambda: self.cancel(parent.err() or CANCELED)
            )

    @classmethod
    def after(cls, seconds: float) -> Deadline:
        return cls(timeout_s=seconds)

    def child(self, timeout_s: float | None = None) -> Deadline:
        return Deadline(timeout_s=timeout_s, parent=self)

    def remaining(self) -> float | None:
        """Seconds left, or None for a scope without a deadline."""
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - time.monotonic())

    def timeout(self, cap: float | None = None) -> float | None:
        """The smaller of ``cap`` and the time remaining."""
        remaining = self.remaining()
        if remaining is None:
            return cap
        if cap is None:
            return remaining
        return min(cap, remaining)

    def err(self) -> str | None:
        with self._lock:
            if self._reason is not None:
                return self._reason
        if self.expires_at is not None and time.monotonic() >= self.expires_at:
            return DEADLINE_EXCEEDED
        return None

    def done(self) -> bool:
        return self.err() is not None

    def cancel(self, reason: str = CANCELED) -> None:
        with self._lock:
            if self._reason is not None:
                return
            self._reason = reason
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()

        if self._detach is not None:
            self._detach()
            self._detach = None
        for fn in callbacks:
            _fire(fn)

    def on_cancel(self, fn: Callable[[], None]) -> Callable[[], None]:
        """Register ``fn`` to run on cancellation; returns an unregister callable.

        ``fn`` runs right away when the scope is already cancelled.
        """
        with self._lock:
            if self._reason is None:
                token = self._next_token
                self._next_token += 1
                self._callbacks[token] = fn
                return lambda: self._remove(token)
        _fire(fn)
        return lambda: None

    def _remove(self, token: int) -> None:
        with self._lock:
            self._callbacks.pop(token, None)


def _fire(fn: Callable[[], None]) -> None:
    try:
        fn()
    except Exception:
        logger.debug("Cancel callback %r failed", fn, exc_info=True)


@dataclass(frozen=True)
class Outcome:
    passed: bool
    message: str


def timeout_message(reason: str | None) -> str:
    return f"Timeout limit reached: {reason or DEADLINE_EXCEEDED}"


def run_with_deadline(
    deadline: Deadline,
    probe: Callable[[Deadline], str],
    name: str = "probe",
) -> Outcome:
    """Race ``probe`` on a worker thread against ``deadline``.

    The probe receives a child scope of ``deadline`` and returns a success
    message or raises ProbeFailure. The scope is cancelled when this function
    returns, which lets the probe's cancel hooks shut down a worker that lost
    the race.
    """
    err = deadline.err()
    if err is not None:
        return Outcome(False, timeout_message(err))

    scope = deadline.child()
    future: Future = Future()
    wake = threading.Event()
    future.add_done_callback(lambda _f: wake.set())
    stop_waking = scope.on_cancel(wake.set)

    worker = threading.Thread(
        target=_work,
        args=(probe, scope, future, name),
        name=f"{name}-worker",
        daemon=True,
    )
    worker.start()
    try:
        wake.wait(scope.remaining())
        if future.done():
            return future.result()
        return Outcome(False, timeout_message(deadline.err()))
    finally:
        stop_waking()
        scope.cancel(deadline.err() or CANCELED)


def _work(
    probe: Callable[[Deadline], str],
    scope: Deadline,
    future: Future,
    name: str,
) -> None:
    if not future.set_running_or_notify_cancel():
        return
    try:
        outcome = Outcome(True, probe(scope))
    except ProbeFailure as exc:
        outcome = Outcome(False, str(exc))
    except Exception as exc:
        if scope.done():
            logger.debug("Probe %s failed after its scope ended: %s", name, exc)
        else:
            logger.exception("Probe %s raised an unexpected error", name)
        outcome = Outcome(False, f"Unexpected error during probe: {exc}")

    if scope.done():
        logger.debug("Probe %s finished after its scope ended: %s", name, scope.err())
        if not outcome.passed:
            # its own I/O timeouts share the deadline, so the deadline is the cause
            outcome = Outcome(False, timeout_message(scope.err()))
    future.set_result(outcome)
