"""
Check abstraction shared by every protocol variant.

A check is built empty, configured once through ``init`` and then probed
any number of times through ``run``. Configuration is read-only after
``init``; each ``run`` owns its own connection and result.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from pydantic import ValidationError as PydanticValidationError

from dynamicprobe.checks.results import CheckResult, utcnow
from dynamicprobe.deadline import Deadline, Outcome, run_with_deadline
from dynamicprobe.errors import (
    DefinitionError,
    ProbeFailure,
    UnknownCheckTypeError,
    ValidationError,
)
from dynamicprobe.models import CheckConfig, Definition

if TYPE_CHECKING:
    from dynamicprobe.sink import ResultSink

DefinitionT = TypeVar("DefinitionT", bound=Definition)


class Check(ABC, Generic[DefinitionT]):
    check_type: ClassVar[str]
    definition_model: ClassVar[type[Definition]]
    required_fields: ClassVar[tuple[str, ...]] = ()

    def __init__(self) -> None:
        self.config: CheckConfig | None = None
        self.definition: DefinitionT | None = None
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def init(self, config: CheckConfig, definition: bytes | str | Mapping[str, Any]) -> None:
        """
        Decode ``definition`` into this check's typed fields and validate it.

        Defaults come from the definition model. Required fields are checked
        in declared order and only the first missing one is reported.

        Raises:
            DefinitionError: the document is not a JSON object or has bad values
            ValidationError: a required field is missing or empty
        """
        raw = self._decode(config, definition)
        try:
            parsed = self.definition_model.model_validate(
                self.definition_model.normalize_keys(raw)
            )
        except PydanticValidationError as exc:
            raise DefinitionError(config.id, self.check_type, str(exc)) from exc

        for field_name in self.required_fields:
            if not getattr(parsed, field_name):
                raise ValidationError(config.id, self.check_type, field_name)

        self.config = config
        self.definition = parsed  # type: ignore[assignment]

    def _decode(
        self, config: CheckConfig, definition: bytes | str | Mapping[str, Any]
    ) -> Mapping[str, Any]:
        if isinstance(definition, (bytes, str)):
            try:
                definition = json.loads(definition)
            except ValueError as exc:
                raise DefinitionError(config.id, self.check_type, str(exc)) from exc
        if not isinstance(definition, Mapping):
            raise DefinitionError(
                config.id,
                self.check_type,
                f"expected an object, got {type(definition).__name__}",
            )
        return definition

    def get_config(self) -> CheckConfig:
        if self.config is None:
            raise RuntimeError(f"{self.check_type} check has not been initialized")
        return self.config

    def run(self, deadline: Deadline) -> CheckResult:
        """Perform one probe attempt, returning no later than ``deadline``."""
        config = self.get_config()
        self.logger.debug("Probing %s (%s)", config.id, self.check_type)

        outcome = run_with_deadline(deadline, self.probe, name=f"{self.check_type}:{config.id}")

        if outcome.passed:
            self.logger.info("Check %s passed: %s", config.id, outcome.message)
        else:
            self.logger.warning("Check %s failed: %s", config.id, outcome.message)
        return self._result(config, outcome)

    def emit(self, deadline: Deadline, sink: ResultSink) -> None:
        """Run and deliver the result into ``sink``; always marks the sink done."""
        try:
            sink.put(self.run(deadline))
        finally:
            sink.done()

    def _result(self, config: CheckConfig, outcome: Outcome) -> CheckResult:
        return CheckResult(
            id=config.id,
            name=config.name,
            group=config.group,
            score_weight=config.score_weight,
            check_type=self.check_type,
            passed=outcome.passed,
            message=outcome.message,
            timestamp=utcnow(),
        )

    @abstractmethod
    def probe(self, scope: Deadline) -> str:
        """
        Blocking probe steps, run on a worker thread.

        Every blocking call must be bounded by ``scope`` and the probe should
        register cancel hooks that release its sockets.

        Returns:
            str: success message

        Raises:
            ProbeFailure: the probe failed; the message names the cause
        """


def require_match(pattern: str, text: str) -> None:
    """Raise ProbeFailure unless ``pattern`` is found somewhere in ``text``."""
    try:
        regex = re.compile(pattern)
    except re.error as exc:
        raise ProbeFailure(f"Error compiling regex string {pattern} : {exc}") from exc
    if regex.search(text) is None:
        raise ProbeFailure("Matching content not found")


CHECK_TYPES: dict[str, type[Check]] = {}


def register_check(cls: type[Check]) -> type[Check]:
    """Class decorator adding a variant to the check-type registry."""
    if cls.check_type in CHECK_TYPES:
        raise ValueError(f"Duplicate check type: {cls.check_type}")
    CHECK_TYPES[cls.check_type] = cls
    return cls


def create_check(check_type: str) -> Check:
    try:
        cls = CHECK_TYPES[check_type]
    except KeyError:
        raise UnknownCheckTypeError(check_type) from None
    return cls()
