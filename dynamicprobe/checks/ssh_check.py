"""SSH check: log in with a password, run one command, optionally match its output."""

from __future__ import annotations

import paramiko

from dynamicprobe.checks.base import Check, register_check, require_match
from dynamicprobe.config import settings
from dynamicprobe.deadline import Deadline
from dynamicprobe.errors import ProbeFailure
from dynamicprobe.models import SSHDefinition

READ_CHUNK = 4096


@register_check
class SSHCheck(Check[SSHDefinition]):
    check_type = "ssh"
    definition_model = SSHDefinition
    required_fields = ("host", "username", "password", "cmd")

    def probe(self, scope: Deadline) -> str:
        d = self.definition
        client = paramiko.SSHClient()
        # Host keys are accepted unverified: this probes the service, it does
        # not secure the connection.
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        unregister = scope.on_cancel(client.close)
        try:
            self._connect(client, scope)
            output = self._execute(client, scope)
        finally:
            unregister()
            client.close()

        if not d.match_content:
            return f"Command {d.cmd} executed successfully: {output}"

        require_match(d.content_regex, output)
        return f"Matching content found in output of command {d.cmd}"

    def _connect(self, client: paramiko.SSHClient, scope: Deadline) -> None:
        d = self.definition
        dial_timeout = scope.timeout(settings.SSH_DIAL_TIMEOUT_S)
        try:
            client.connect(
                d.host,
                port=int(d.port),
                username=d.username,
                password=d.password,
                timeout=dial_timeout,
                banner_timeout=dial_timeout,
                auth_timeout=dial_timeout,
                allow_agent=False,
                look_for_keys=False,
            )
        except (paramiko.SSHException, OSError, ValueError) as exc:
            raise ProbeFailure(f"Error creating ssh client: {exc}") from exc

    def _execute(self, client: paramiko.SSHClient, scope: Deadline) -> str:
        d = self.definition
        try:
            transport = client.get_transport()
            if transport is None:
                raise paramiko.SSHException("transport is not connected")
            channel = transport.open_session(timeout=scope.timeout())
        except (paramiko.SSHException, OSError) as exc:
            raise ProbeFailure(f"Error creating a ssh session: {exc}") from exc

        try:
            channel.settimeout(scope.timeout())
            channel.set_combine_stderr(True)
            channel.exec_command(d.cmd)
            output = _read_all(channel)
            status = channel.recv_exit_status()
        except (paramiko.SSHException, OSError) as exc:
            raise ProbeFailure(f"Error executing command: {exc}") from exc
        finally:
            channel.close()

        if status != 0:
            raise ProbeFailure(
                f"Error executing command: Process exited with status {status}"
            )
        return output.decode("utf-8", errors="replace")


def _read_all(channel: paramiko.Channel) -> bytes:
    chunks = []
    while True:
        chunk = channel.recv(READ_CHUNK)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)
