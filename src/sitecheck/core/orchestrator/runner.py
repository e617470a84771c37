"""
Site check runner orchestrator.

Coordinates the full workflow: pool -> check (with retries) ->
reconcile labels -> hand labels to the tracker.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping, Sequence

from sitecheck.core.backends.http_backend import HttpBackend
from sitecheck.core.check.base import CheckResult, CheckTarget
from sitecheck.core.check.checker import SiteChecker
from sitecheck.core.fetch.throttling import ConcurrencyPool
from sitecheck.core.labels import label_diff, reconcile_labels
from sitecheck.core.logging import get_site_logger, json_dumps

if TYPE_CHECKING:
    import httpx

    from sitecheck.core.config.models import AppConfig
    from sitecheck.tracker.base import LabelSink


logger = logging.getLogger(__name__)


@dataclass
class TargetError:
    """A unit that raised instead of finishing."""

    target_id: Any
    url: str | None
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"target": self.target_id, "url": self.url, "error": self.message}


@dataclass
class TargetOutcome:
    """What happened to one target."""

    target_id: Any
    url: str
    result: CheckResult
    labels_before: list[str]
    labels_after: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": self.target_id,
            "url": self.url,
            "result": self.result.to_dict(),
            "labels_before": self.labels_before,
            "labels_after": self.labels_after,
        }


@dataclass
class RunStats:
    """Statistics for a check run."""

    targets: int = 0
    checked: int = 0
    skipped: int = 0
    reachable: int = 0
    valid: int = 0
    updated: int = 0

    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None

    errors: list[TargetError] = field(default_factory=list)
    outcomes: list[TargetOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when no unit recorded an error."""
        return not self.errors

    @property
    def errors_count(self) -> int:
        return len(self.errors)

    @property
    def duration_seconds(self) -> float | None:
        """Get run duration in seconds."""
        if self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "targets": self.targets,
            "checked": self.checked,
            "skipped": self.skipped,
            "reachable": self.reachable,
            "valid": self.valid,
            "updated": self.updated,
            "errors_count": self.errors_count,
            "duration_seconds": self.duration_seconds,
            "errors": [error.to_dict() for error in self.errors],
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


class CheckRunner:
    """Orchestrates a complete check run over a list of targets.

    Coordinates:
    - Concurrency limiting through a FIFO pool
    - Site checks (retries live inside the checker)
    - Label reconciliation and hand-off to the label sink
    - Per-target error capture and the final verdict
    """

    def __init__(
        self,
        config: AppConfig,
        checker: SiteChecker,
        sink: LabelSink,
        *,
        pool: ConcurrencyPool | None = None,
        dry_run: bool = False,
    ) -> None:
        """Initialize the runner.

        Args:
            config: Application configuration
            checker: Site checker shared by all units
            sink: Where reconciled labels go
            pool: Concurrency pool (default: sized from config)
            dry_run: If True, compute labels but never call the sink
        """
        self.config = config
        self.checker = checker
        self.sink = sink
        self.pool = pool or ConcurrencyPool(config.politeness.max_concurrent_requests)
        self.dry_run = dry_run

    async def run(self, targets: Sequence[CheckTarget]) -> RunStats:
        """Check every target and reconcile its labels.

        Args:
            targets: Records to check

        Returns:
            RunStats; ``stats.ok`` is False if any unit failed
        """
        stats = RunStats(targets=len(targets))
        logger.info(f"Total sites to check: {len(targets)}")

        await asyncio.gather(
            *(self.pool.submit(lambda t=target: self._process(t, stats)) for target in targets)
        )

        stats.finished_at = datetime.now(timezone.utc)
        logger.debug(f"Pool after run: {json_dumps(self.pool.stats())}")

        if stats.errors:
            logger.warning(f"Completed with {stats.errors_count} errors:")
            for error in stats.errors:
                logger.warning(f"Issue #{error.target_id} ({error.url}): {error.message}")
        else:
            logger.info(
                f"Completed: {stats.checked} checked, {stats.skipped} skipped, "
                f"{stats.updated} updated in {stats.duration_seconds:.1f}s"
            )

        return stats

    async def _process(self, target: CheckTarget, stats: RunStats) -> None:
        """One unit of work. Never raises: errors land in ``stats``."""
        url = target.resolve_url()
        log = get_site_logger("runner", target=target.id, url=url)

        try:
            if not url:
                log.warning("No url found in issue body")
                stats.skipped += 1
                return

            log.info(f"Checking site: {url}")
            result = await self.checker.check(target)
            stats.checked += 1
            stats.reachable += int(result.reachable)
            stats.valid += int(result.valid)
            log.info(f"Checked site: {url} checkResult: {json_dumps(result.to_dict())}")

            before = list(target.labels)
            after = reconcile_labels(result, before, self.config.labels, self.checker.mode)
            added, removed = label_diff(before, after)
            log.info(
                f"Updating labels: '{', '.join(after)}' "
                f"(+{added or '[]'} -{removed or '[]'})"
            )

            if not self.dry_run:
                await self.sink.set_labels(target.id, after)
                stats.updated += 1

            stats.outcomes.append(
                TargetOutcome(
                    target_id=target.id,
                    url=url,
                    result=result,
                    labels_before=before,
                    labels_after=after,
                )
            )
        except Exception as e:
            stats.errors.append(TargetError(target_id=target.id, url=url, message=str(e) or repr(e)))
            log.error(f"Error processing site: {e}")


def write_report(stats: RunStats, path: Path | str) -> Path:
    """Write the run statistics as JSON."""
    report_path = Path(path)
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(json_dumps(stats.to_dict()), encoding="utf-8")
    return report_path


async def run_site_check(
    config: AppConfig,
    *,
    dry_run: bool = False,
    environ: Mapping[str, str] | None = None,
    rng: random.Random | None = None,
    site_transport: httpx.AsyncBaseTransport | None = None,
    api_transport: httpx.AsyncBaseTransport | None = None,
) -> RunStats:
    """Convenience function: fetch records, check them, update labels.

    Args:
        config: Application configuration
        dry_run: Don't write labels back
        environ: Environment for tracker fallbacks
        rng: Random source for jitter
        site_transport: Transport for site requests (tests)
        api_transport: Transport for tracker requests (tests)

    Returns:
        RunStats with execution statistics

    Raises:
        TrackerError: If records cannot be fetched
    """
    from sitecheck.tracker.github import GitHubIssueTracker

    tracker = GitHubIssueTracker.from_config(config.github, environ=environ, transport=api_transport)
    backend = HttpBackend(
        timeout=config.politeness.request_timeout_seconds,
        transport=site_transport,
        max_connections=max(config.politeness.max_concurrent_requests, 1) * 2,
    )

    async with tracker, backend:
        checker = SiteChecker.from_config(config, backend, rng=rng)
        targets = await tracker.fetch_open_records(config.exclude_issue_with_labels)
        runner = CheckRunner(config, checker, tracker, dry_run=dry_run)
        stats = await runner.run(targets)

    if config.report_file:
        report_path = write_report(stats, config.report_file)
        logger.info(f"Report written to {report_path}")

    return stats
