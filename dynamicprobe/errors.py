from __future__ import annotations


class CheckError(Exception):
    pass


class ValidationError(CheckError):
    """A required definition field is missing or empty."""

    def __init__(self, check_id: str, check_type: str, field: str) -> None:
        self.check_id = check_id
        self.check_type = check_type
        self.field = field
        super().__init__(
            f"check {check_id} of type {check_type} is missing required field {field}"
        )


class DefinitionError(CheckError):
    """The raw definition document could not be decoded."""

    def __init__(self, check_id: str, check_type: str, reason: str) -> None:
        self.check_id = check_id
        self.check_type = check_type
        self.reason = reason
        super().__init__(
            f"check {check_id} of type {check_type} has a malformed definition: {reason}"
        )


class UnknownCheckTypeError(CheckError):
    def __init__(self, check_type: str) -> None:
        self.check_type = check_type
        super().__init__(f"Unknown check type: {check_type}")


class ProbeFailure(CheckError):
    """Raised inside a probe; the message becomes the failed result's message."""
