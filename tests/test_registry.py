import tempfile
import textwrap
import unittest
from pathlib import Path
from unittest.mock import patch

from dynamicprobe.checks import SSHCheck, VNCCheck
from dynamicprobe.config import settings
from dynamicprobe.models import CheckEntry, Defaults, Registry
from dynamicprobe.registry import apply_defaults, build_checks, load_registry

CHECKS_YML = textwrap.dedent(
    """
    defaults:
      timeout_s: 20
    checks:
      - id: team01-ssh
        name: SSH
        group: team01
        type: ssh
        definition:
          host: 10.0.1.5
          username: scorecheck
          password: changeme
          cmd: id
      - id: team01-vnc
        name: VNC
        group: team01
        type: vnc
        score_weight: 3
        timeout_s: 5
        definition:
          Host: 10.0.1.6
          Password: changeme
    """
)


class LoadRegistryTests(unittest.TestCase):
    def _write(self, td: str, text: str) -> Path:
        path = Path(td) / "checks.yml"
        path.write_text(text)
        return path

    def test_loads_checks_file(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            reg = load_registry(self._write(td, CHECKS_YML))

        self.assertEqual([c.id for c in reg.checks], ["team01-ssh", "team01-vnc"])
        self.assertEqual(reg.defaults.timeout_s, 20)

    def test_missing_file_raises(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            with self.assertRaises(FileNotFoundError):
                load_registry(Path(td) / "nope.yml")

    def test_duplicate_ids_rejected(self) -> None:
        text = textwrap.dedent(
            """
            checks:
              - {id: web, type: tcp, definition: {host: a, port: 80}}
              - {id: web, type: tcp, definition: {host: b, port: 80}}
            """
        )
        with tempfile.TemporaryDirectory() as td:
            with self.assertRaises(ValueError):
                load_registry(self._write(td, text))


class ApplyDefaultsTests(unittest.TestCase):
    def test_defaults_fill_missing_values_only(self) -> None:
        reg = Registry(
            defaults=Defaults(timeout_s=15, score_weight=1),
            checks=[
                CheckEntry(id="a", type="tcp"),
                CheckEntry(id="b", type="tcp", timeout_s=3, score_weight=0),
            ],
        )

        checks = apply_defaults(reg)

        self.assertEqual(checks["a"]["timeout_s"], 15)
        self.assertEqual(checks["a"]["score_weight"], 1)
        self.assertEqual(checks["b"]["timeout_s"], 3)
        self.assertEqual(checks["b"]["score_weight"], 0)
    def test_timeout_falls_back_to_configured_setting(self) -> None:
        text = textwrap.dedent(
            """
            checks:
              - {id: web, type: tcp, definition: {host: 10.0.1.7, port: 80}}
            """
        )
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "checks.yml"
            path.write_text(text)
            with patch.object(settings, "CHECK_TIMEOUT_S", 5.0):
                [scheduled] = build_checks(load_registry(path))

        self.assertEqual(scheduled.timeout_s, 5.0)


class BuildChecksTests(unittest.TestCase):
    def test_builds_initialized_checks(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "checks.yml"
            path.write_text(CHECKS_YML)
            scheduled = build_checks(load_registry(path))

        self.assertEqual(len(scheduled), 2)
        ssh, vnc = scheduled
        self.assertIsInstance(ssh.check, SSHCheck)
        self.assertEqual(ssh.timeout_s, 20)
        self.assertEqual(ssh.check.get_config().group, "team01")
        self.assertIsInstance(vnc.check, VNCCheck)
        self.assertEqual(vnc.timeout_s, 5)
        self.assertEqual(vnc.check.get_config().score_weight, 3)
        self.assertEqual(vnc.check.definition.port, "5900")

    def test_invalid_checks_are_not_scheduled(self) -> None:
        reg = Registry(
            checks=[
                CheckEntry(id="bad-ssh", type="ssh", definition={"host": "h"}),
                CheckEntry(id="bad-type", type="gopher"),
                CheckEntry(id="ok", type="tcp", definition={"host": "h", "port": 22}),
            ]
        )

        with self.assertLogs("dynamicprobe.registry", level="ERROR") as logs:
            scheduled = build_checks(reg)

        self.assertEqual([s.check.get_config().id for s in scheduled], ["ok"])
        output = "\n".join(logs.output)
        self.assertIn("missing required field username", output)
        self.assertIn("Unknown check type: gopher", output)


if __name__ == "__main__":
    unittest.main()
