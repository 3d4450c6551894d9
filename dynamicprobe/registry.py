from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

from dynamicprobe.checks import Check, create_check
from dynamicprobe.config import settings
from dynamicprobe.errors import CheckError
from dynamicprobe.models import CheckConfig, Registry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduledCheck:
    check: Check
    timeout_s: float


def load_registry(path: Path | str | None = None) -> Registry:
    path = Path(path or settings.CHECKS_PATH)
    if not path.exists():
        raise FileNotFoundError(f"Missing checks file at {path}")

    data = yaml.safe_load(path.read_text()) or {}
    reg = Registry.model_validate(data)

    # Ensure unique IDs
    seen = set()
    for c in reg.checks:
        if c.id in seen:
            raise ValueError(f"Duplicate check id: {c.id}")
        seen.add(c.id)

    return reg


def apply_defaults(reg: Registry) -> dict[str, dict]:
    """
    Produce a normalized dict keyed by check id with defaults applied.
    Returns pure python dicts so they serialize cleanly.
    """
    out: dict[str, dict] = {}
    d = reg.defaults

    for c in reg.checks:
        cd = c.model_dump()
        cd["timeout_s"] = cd["timeout_s"] or d.timeout_s
        if cd["score_weight"] is None:
            cd["score_weight"] = d.score_weight
        out[c.id] = cd

    return out


def build_checks(reg: Registry) -> list[ScheduledCheck]:
    """
    Construct and initialize every check in the registry.

    A check that fails to initialize is logged and left out; it is never
    scheduled.
    """
    scheduled: list[ScheduledCheck] = []
    for check_id, c in apply_defaults(reg).items():
        config = CheckConfig(
            id=check_id,
            name=c["name"],
            group=c["group"],
            score_weight=c["score_weight"],
        )
        try:
            check = create_check(c["type"])
            check.init(config, c["definition"])
        except CheckError as exc:
            logger.error("Not scheduling check %s: %s", check_id, exc)
            continue
        scheduled.append(ScheduledCheck(check=check, timeout_s=float(c["timeout_s"])))

    logger.info("Loaded %d of %d checks", len(scheduled), len(reg.checks))
    return scheduled
