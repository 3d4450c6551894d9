from __future__ import annotations

import queue
import threading

from dynamicprobe.checks.results import CheckResult


class ResultSink:
    """Collects results emitted by concurrently running checks.

    Works like a channel paired with a wait group: ``add`` before starting a
    check, the check ``put``s its result and calls ``done``.
    """

    def __init__(self) -> None:
        self._results: queue.Queue[CheckResult] = queue.Queue()
        self._pending = 0
        self._cond = threading.Condition()

    def add(self, n: int = 1) -> None:
        with self._cond:
            if self._pending + n < 0:
                raise ValueError("negative pending counter")
            self._pending += n
            if self._pending == 0:
                self._cond.notify_all()

    def done(self) -> None:
        self.add(-1)

    def put(self, result: CheckResult) -> None:
        self._results.put_nowait(result)

    @property
    def pending(self) -> int:
        with self._cond:
            return self._pending

    def wait(self, timeout: float | None = None) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: self._pending == 0, timeout=timeout)

    def drain(self) -> list[CheckResult]:
        out: list[CheckResult] = []
        while True:
            try:
                out.append(self._results.get_nowait())
            except queue.Empty:
                return out
