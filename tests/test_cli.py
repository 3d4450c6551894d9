import io
import json
import logging
import socket
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch

from dynamicprobe.__main__ import main
from dynamicprobe.logging_utils import JsonFormatter, setup_logging


class CliTests(unittest.TestCase):
    def _checks_file(self, td: str, port: int) -> Path:
        path = Path(td) / "checks.yml"
        path.write_text(
            "checks:\n"
            "  - id: local-tcp\n"
            "    name: Local TCP\n"
            "    group: lab\n"
            "    type: tcp\n"
            "    timeout_s: 5\n"
            "    definition:\n"
            "      host: 127.0.0.1\n"
            f"      port: {port}\n"
        )
        return path

    def test_once_prints_json_results(self) -> None:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as server:
            server.bind(("127.0.0.1", 0))
            server.listen(1)
            port = server.getsockname()[1]

            with tempfile.TemporaryDirectory() as td:
                path = self._checks_file(td, port)
                out = io.StringIO()
                with patch("dynamicprobe.__main__.setup_logging"), redirect_stdout(out):
                    code = main(["--checks", str(path), "--once", "--json"])

        self.assertEqual(code, 0)
        [line] = out.getvalue().strip().splitlines()
        payload = json.loads(line)
        self.assertEqual(payload["id"], "local-tcp")
        self.assertEqual(payload["check_type"], "tcp")
        self.assertTrue(payload["passed"])

    def test_once_exits_nonzero_on_failed_check(self) -> None:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind(("127.0.0.1", 0))
            port = s.getsockname()[1]

        with tempfile.TemporaryDirectory() as td:
            path = self._checks_file(td, port)
            with patch("dynamicprobe.__main__.setup_logging"), redirect_stdout(io.StringIO()):
                code = main(["--checks", str(path), "--once", "--json"])

        self.assertEqual(code, 1)


class SetupLoggingTests(unittest.TestCase):
    def setUp(self) -> None:
        root = logging.getLogger()
        saved = (root.level, list(root.handlers))

        def restore() -> None:
            root.handlers[:] = saved[1]
            root.setLevel(saved[0])

        self.addCleanup(restore)

    def test_installs_single_stdout_handler(self) -> None:
        setup_logging("debug", "json")

        root = logging.getLogger()
        self.assertEqual(root.level, logging.DEBUG)
        self.assertEqual(len(root.handlers), 1)
        self.assertIsInstance(root.handlers[0].formatter, JsonFormatter)
        self.assertEqual(logging.getLogger("paramiko").level, logging.WARNING)

    def test_json_format_emits_parseable_lines(self) -> None:
        setup_logging("info", "json")
        stream = io.StringIO()
        logging.getLogger().handlers[0].setStream(stream)

        message = 'Error compiling regex string ( : missing ), unterminated "subpattern"'
        logging.getLogger("dynamicprobe.runner").info("result %s", json.dumps({"message": message}))

        record = json.loads(stream.getvalue().strip())
        self.assertEqual(record["level"], "INFO")
        self.assertEqual(record["name"], "dynamicprobe.runner")
        self.assertEqual(json.loads(record["message"][len("result "):]), {"message": message})

    def test_unknown_level_falls_back_to_info(self) -> None:
        setup_logging("chatty")
        self.assertEqual(logging.getLogger().level, logging.INFO)


if __name__ == "__main__":
    unittest.main()
