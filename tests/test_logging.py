import io
import json
import logging
import tempfile
import unittest
from pathlib import Path

from rich.console import Console

from sitecheck.core.logging import JSONFormatter, get_site_logger, setup_logging


class LoggingTestCase(unittest.TestCase):
    def tearDown(self) -> None:
        logger = logging.getLogger("sitecheck")
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.setLevel(logging.NOTSET)

    def test_site_logger_stamps_records(self) -> None:
        log = get_site_logger("check", target=42, url="https://a.dev")
        with self.assertLogs("sitecheck.check", level="INFO") as logs:
            log.bind(attempt=2).info("checking")
        record = logs.records[0]
        self.assertEqual(record.target, 42)
        self.assertEqual(record.url, "https://a.dev")
        self.assertEqual(record.attempt, 2)

    def test_per_call_extra_is_merged(self) -> None:
        log = get_site_logger("check", target=1)
        with self.assertLogs("sitecheck.check", level="ERROR") as logs:
            log.error("down", extra={"status_code": 503})
        self.assertEqual(logs.records[0].status_code, 503)
        self.assertFalse(hasattr(logs.records[0], "url"))

    def test_json_formatter(self) -> None:
        record = logging.LogRecord("sitecheck.check", logging.WARNING, __file__, 1, "slow %s", ("site",), None)
        record.target = 7
        data = json.loads(JSONFormatter().format(record))
        self.assertEqual(data["message"], "slow site")
        self.assertEqual(data["level"], "WARNING")
        self.assertEqual(data["target"], 7)
        self.assertNotIn("url", data)

    def test_rich_console_keeps_brackets(self) -> None:
        buffer = io.StringIO()
        setup_logging("INFO", console=Console(file=buffer, width=200, color_system=None))
        get_site_logger("runner", target=3).info("Updating labels: [status:404]")
        self.assertIn("#3 Updating labels: [status:404]", buffer.getvalue())

    def test_level_filtering_and_file_output(self) -> None:
        buffer = io.StringIO()
        with tempfile.TemporaryDirectory() as tmp:
            log_file = Path(tmp) / "logs" / "run.jsonl"
            setup_logging("warning", log_file=log_file, console=Console(file=buffer, color_system=None))
            logger = logging.getLogger("sitecheck.runner")
            logger.info("quiet")
            logger.warning("loud")
            for handler in logging.getLogger("sitecheck").handlers:
                handler.flush()
            lines = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
            self.tearDown()

        self.assertNotIn("quiet", buffer.getvalue())
        self.assertIn("loud", buffer.getvalue())
        self.assertEqual([line["message"] for line in lines], ["quiet", "loud"])

    def test_unknown_level(self) -> None:
        with self.assertRaises(ValueError):
            setup_logging("chatty")


if __name__ == "__main__":
    unittest.main()
