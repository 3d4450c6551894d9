from __future__ import annotations

import argparse
import json
import sys

from dynamicprobe.config import settings
from dynamicprobe.logging_utils import setup_logging
from dynamicprobe.registry import build_checks, load_registry
from dynamicprobe.runner import log_result, loop_forever, run_once


def _print_json(result) -> None:
    print(json.dumps(result.to_dict(), sort_keys=True), flush=True)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="dynamicprobe",
        description="Run service checks (ssh, vnc, tcp, http) from a checks file.",
    )
    parser.add_argument("--checks", default=settings.CHECKS_PATH, help="Path to checks YAML")
    parser.add_argument("--once", action="store_true", help="Run a single round and exit")
    parser.add_argument(
        "--interval", type=float, default=settings.RUN_INTERVAL_S, help="Seconds between rounds"
    )
    parser.add_argument("--json", action="store_true", help="Print results as JSON lines")
    args = parser.parse_args(argv)

    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    scheduled = build_checks(load_registry(args.checks))
    on_result = _print_json if args.json else log_result

    if args.once:
        results = run_once(scheduled, on_result=on_result)
        return 0 if all(r.passed for r in results) else 1

    loop_forever(scheduled, args.interval, on_result=on_result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
