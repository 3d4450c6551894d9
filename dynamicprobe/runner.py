from __future__ import annotations

import json
import logging
import threading
import time
from typing import Callable, Iterable, Optional

from dynamicprobe.checks.results import CheckResult
from dynamicprobe.deadline import Deadline
from dynamicprobe.registry import ScheduledCheck
from dynamicprobe.sink import ResultSink

logger = logging.getLogger(__name__)

ResultHandler = Callable[[CheckResult], None]


def log_result(result: CheckResult) -> None:
    logger.info("result %s", json.dumps(result.to_dict(), sort_keys=True))


def _deliver(on_result: ResultHandler, result: CheckResult) -> None:
    try:
        on_result(result)
    except Exception:
        # A broken reporter should never stop the round.
        logger.exception("Result handler failed for check %s", result.id)


def run_once(
    scheduled: Iterable[ScheduledCheck],
    on_result: Optional[ResultHandler] = None,
) -> list[CheckResult]:
    """Run every check once, concurrently, each under its own deadline."""
    on_result = on_result or log_result
    sink = ResultSink()
    workers = []

    for s in scheduled:
        sink.add()
        t = threading.Thread(
            target=s.check.emit,
            args=(Deadline.after(s.timeout_s), sink),
            name=f"check-{s.check.get_config().id}",
            daemon=True,
        )
        workers.append(t)

    for t in workers:
        t.start()
    sink.wait()

    results = sink.drain()
    for res in results:
        _deliver(on_result, res)

    passed = sum(1 for r in results if r.passed)
    logger.info("Round finished: %d/%d checks passed", passed, len(results))
    return results


def loop_forever(
    scheduled: list[ScheduledCheck],
    interval_s: float,
    on_result: Optional[ResultHandler] = None,
) -> None:
    while True:
        start = time.perf_counter()
        run_once(scheduled, on_result=on_result)
        elapsed = time.perf_counter() - start
        sleep_s = max(0.0, interval_s - elapsed)
        time.sleep(sleep_s)
