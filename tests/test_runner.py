import asyncio
import json
import tempfile
import unittest
from pathlib import Path

import httpx

from sitecheck.core.check import CheckResult, CheckTarget
from sitecheck.core.config import AppConfig, CheckerMode
from sitecheck.core.fetch import ConcurrencyPool
from sitecheck.core.orchestrator import CheckRunner, RunStats, TargetError, run_site_check, write_report
from sitecheck.tracker.base import LabelSink


class RecordingSink(LabelSink):
    def __init__(self, fail_for=()):
        self.calls: list[tuple[object, list[str]]] = []
        self.fail_for = set(fail_for)

    async def set_labels(self, target_id, labels):
        if target_id in self.fail_for:
            raise RuntimeError(f"sink rejected #{target_id}")
        self.calls.append((target_id, list(labels)))


class StubChecker:
    """Checker double returning canned results keyed by URL."""

    mode = CheckerMode.FRIEND

    def __init__(self, results, delay=0.0):
        self.results = results
        self.delay = delay
        self.active = 0
        self.peak = 0

    async def check(self, target):
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delay)
            outcome = self.results[target.resolve_url()]
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        finally:
            self.active -= 1


OK = CheckResult(status_code=200, reachable=True, valid=True, attempts=1)
DOWN = CheckResult(status_code=404, reachable=False, valid=False, attempts=1)


class CheckRunnerTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.config = AppConfig()

    async def test_reconciled_labels_reach_sink(self) -> None:
        checker = StubChecker({"https://a.dev": OK, "https://b.dev": DOWN})
        sink = RecordingSink()
        runner = CheckRunner(self.config, checker, sink)

        stats = await runner.run([
            CheckTarget(id=1, url="https://a.dev", labels=("status:500",)),
            CheckTarget(id=2, url="https://b.dev"),
        ])

        self.assertTrue(stats.ok)
        self.assertEqual(stats.checked, 2)
        self.assertEqual(stats.reachable, 1)
        self.assertEqual(stats.valid, 1)
        self.assertEqual(stats.updated, 2)
        self.assertEqual(
            sorted(sink.calls, key=lambda call: call[0]),
            [(1, []), (2, ["status:404", "无法访问"])],
        )
        self.assertIsNotNone(stats.duration_seconds)

    async def test_missing_url_is_skipped_not_failed(self) -> None:
        sink = RecordingSink()
        runner = CheckRunner(self.config, StubChecker({}), sink)

        stats = await runner.run([CheckTarget(id=9, body="nothing to see")])

        self.assertTrue(stats.ok)
        self.assertEqual(stats.skipped, 1)
        self.assertEqual(stats.checked, 0)
        self.assertEqual(sink.calls, [])

    async def test_unit_failures_do_not_stop_siblings(self) -> None:
        checker = StubChecker({
            "https://a.dev": OK,
            "https://b.dev": RuntimeError("checker exploded"),
            "https://c.dev": OK,
        })
        sink = RecordingSink(fail_for={3})
        runner = CheckRunner(self.config, checker, sink)

        stats = await runner.run([
            CheckTarget(id=1, url="https://a.dev"),
            CheckTarget(id=2, url="https://b.dev"),
            CheckTarget(id=3, url="https://c.dev"),
        ])

        self.assertFalse(stats.ok)
        self.assertEqual(stats.errors_count, 2)
        self.assertEqual(sorted(error.target_id for error in stats.errors), [2, 3])
        self.assertEqual(sink.calls, [(1, [])])
        messages = {error.target_id: error.message for error in stats.errors}
        self.assertEqual(messages[2], "checker exploded")
        self.assertEqual(messages[3], "sink rejected #3")

    async def test_dry_run_never_calls_sink(self) -> None:
        sink = RecordingSink()
        runner = CheckRunner(self.config, StubChecker({"https://a.dev": DOWN}), sink, dry_run=True)

        stats = await runner.run([CheckTarget(id=1, url="https://a.dev")])

        self.assertEqual(sink.calls, [])
        self.assertEqual(stats.updated, 0)
        self.assertEqual(stats.outcomes[0].labels_after, ["status:404", "无法访问"])

    async def test_pool_bounds_concurrency(self) -> None:
        urls = [f"https://site{i}.dev" for i in range(8)]
        checker = StubChecker({url: OK for url in urls}, delay=0.01)
        runner = CheckRunner(self.config, checker, RecordingSink(), pool=ConcurrencyPool(3))

        with self.assertLogs("sitecheck.core.orchestrator.runner", level="DEBUG") as logs:
            stats = await runner.run([CheckTarget(id=i, url=url) for i, url in enumerate(urls)])

        self.assertEqual(stats.checked, 8)
        self.assertLessEqual(checker.peak, 3)
        self.assertTrue(
            any('"capacity":3,"active":0,"waiting":0' in line for line in logs.output),
            logs.output,
        )

    async def test_empty_run(self) -> None:
        stats = await CheckRunner(self.config, StubChecker({}), RecordingSink()).run([])
        self.assertTrue(stats.ok)
        self.assertEqual(stats.targets, 0)


def issue(number, url=None, labels=()):
    body = f'{{"title": "site {number}", "url": "{url}"}}' if url else "no link"
    return {"number": number, "body": body, "labels": [{"name": name} for name in labels]}


class RunSiteCheckTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.report = Path(self.tmp.name) / "reports" / "run.json"
        self.config = AppConfig(
            retry_times=2,
            retry_delay_seconds=0,
            politeness={"request_delay_min_ms": 0, "request_delay_max_ms": 0},
            github={"repository": "owner/links", "token": "secret"},
            report_file=self.report,
        )
        self.puts: dict[int, list[str]] = {}

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def api_handler(self, request: httpx.Request) -> httpx.Response:
        if request.method == "PUT":
            number = int(request.url.path.rsplit("/", 2)[-2])
            self.puts[number] = json.loads(request.content)["labels"]
            return httpx.Response(200, json=[])

        self.assertEqual(request.headers["authorization"], "Bearer secret")
        if request.url.params.get("page") == "2":
            return httpx.Response(200, json=[issue(3, "https://down.dev/", ["status:500"])])
        return httpx.Response(
            200,
            json=[
                issue(1, "https://up.dev/", ["无法访问"]),
                issue(2, "https://held.dev/", ["审核中"]),
                issue(4),
            ],
            headers={"Link": '<https://api.github.com/repositories/1/issues?page=2>; rel="next"'},
        )

    @staticmethod
    def site_handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "up.dev":
            return httpx.Response(200, text="<html></html>")
        return httpx.Response(503, text="unavailable")

    async def test_end_to_end(self) -> None:
        stats = await run_site_check(
            self.config,
            environ={},
            site_transport=httpx.MockTransport(self.site_handler),
            api_transport=httpx.MockTransport(self.api_handler),
        )

        self.assertTrue(stats.ok)
        self.assertEqual(stats.targets, 2)
        self.assertEqual(self.puts, {1: [], 3: ["status:503", "无法访问"]})

        report = json.loads(self.report.read_text(encoding="utf-8"))
        self.assertEqual(report["checked"], 2)
        self.assertEqual(report["errors_count"], 0)

    async def test_dry_run_end_to_end(self) -> None:
        stats = await run_site_check(
            self.config,
            dry_run=True,
            environ={},
            site_transport=httpx.MockTransport(self.site_handler),
            api_transport=httpx.MockTransport(self.api_handler),
        )

        self.assertEqual(self.puts, {})
        self.assertEqual(stats.updated, 0)
        self.assertEqual(len(stats.outcomes), 2)


class WriteReportTestCase(unittest.TestCase):
    def test_writes_json(self) -> None:
        stats = RunStats(targets=1, checked=1)
        stats.errors.append(TargetError(target_id=5, url="https://x.dev", message="boom"))

        with tempfile.TemporaryDirectory() as tmp:
            path = write_report(stats, Path(tmp) / "nested" / "report.json")
            data = json.loads(path.read_text(encoding="utf-8"))

        self.assertEqual(data["targets"], 1)
        self.assertEqual(data["errors"], [{"target": 5, "url": "https://x.dev", "error": "boom"}])
        self.assertIsNone(data["duration_seconds"])


if __name__ == "__main__":
    unittest.main()
