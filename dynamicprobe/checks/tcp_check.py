from __future__ import annotations

import socket

from dynamicprobe.checks.base import Check, register_check
from dynamicprobe.deadline import Deadline
from dynamicprobe.errors import ProbeFailure
from dynamicprobe.models import TCPDefinition


@register_check
class TCPCheck(Check[TCPDefinition]):
    check_type = "tcp"
    definition_model = TCPDefinition
    required_fields = ("host", "port")

    def probe(self, scope: Deadline) -> str:
        d = self.definition
        try:
            with socket.create_connection(
                (d.host, int(d.port)), timeout=scope.timeout()
            ):
                return f"Connected to {d.host}:{d.port}"
        except (OSError, ValueError) as e:
            raise ProbeFailure(f"Connection to {d.host}:{d.port} failed: {e}") from e
