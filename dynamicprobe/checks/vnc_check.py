"""VNC check: open a TCP connection and complete the RFB password handshake."""

from __future__ import annotations

import asyncio
import contextlib

import asyncvnc

from dynamicprobe.checks.base import Check, register_check
from dynamicprobe.deadline import Deadline
from dynamicprobe.errors import ProbeFailure
from dynamicprobe.models import VNCDefinition


@register_check
class VNCCheck(Check[VNCDefinition]):
    check_type = "vnc"
    definition_model = VNCDefinition
    required_fields = ("host", "password")

    def probe(self, scope: Deadline) -> str:
        d = self.definition
        try:
            asyncio.run(self._login(scope))
        except asyncio.CancelledError:
            raise ProbeFailure(
                f"VNC probe of {d.host} cancelled: {scope.err()}"
            ) from None
        return f"VNC login to {d.host}:{d.port} succeeded"

    async def _login(self, scope: Deadline) -> None:
        d = self.definition
        loop = asyncio.get_running_loop()
        task = asyncio.current_task()
        unregister = scope.on_cancel(lambda: loop.call_soon_threadsafe(task.cancel))
        try:
            try:
                reader, writer = await asyncio.wait_for(
                    asyncio.open_connection(d.host, int(d.port)),
                    timeout=scope.timeout(),
                )
            except (OSError, ValueError, asyncio.TimeoutError) as exc:
                raise ProbeFailure(
                    f"Connection to VNC host {d.host} failed: {str(exc) or 'timed out'}"
                ) from exc

            try:
                await asyncio.wait_for(
                    asyncvnc.Client.create(reader, writer, password=d.password),
                    timeout=scope.timeout(),
                )
            except PermissionError as exc:
                raise ProbeFailure(
                    f"Authentication to VNC server {d.host} failed: {exc}"
                ) from exc
            except Exception as exc:
                raise ProbeFailure(
                    f"VNC handshake with {d.host} failed: {str(exc) or type(exc).__name__}"
                ) from exc
            finally:
                writer.close()
                with contextlib.suppress(OSError):
                    await writer.wait_closed()
        finally:
            unregister()
