"""
Site checker.

Fetches one site (with jitter and retries) and turns the response
into a CheckResult. Ordinary network and HTTP trouble never escapes
as an exception; it becomes ``reachable=False, valid=False``.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, Iterable

from sitecheck.core.backends.base import Backend, FetchError, FetchResult, RequestSpec
from sitecheck.core.config.models import CheckerMode
from sitecheck.core.fetch.retries import RetryConfig, retry_async
from sitecheck.core.fetch.throttling import RequestJitter
from sitecheck.core.logging import SiteLogger, get_site_logger
from .base import CheckResult, CheckTarget
from .theme import ThemeInspector, build_inspector

if TYPE_CHECKING:
    from sitecheck.core.config.models import AppConfig


FORBIDDEN = 403
TOO_MANY_REQUESTS = 429


class SiteChecker:
    """Checks sites for reachability and, in theme mode, theme metadata.

    The checker owns no connection state; the backend does. One checker
    is shared by every concurrent unit of a run.
    """

    def __init__(
        self,
        mode: CheckerMode,
        backend: Backend,
        *,
        accepted_codes: Iterable[str] = ("200", "301"),
        retry: RetryConfig | None = None,
        jitter: RequestJitter | None = None,
        timeout: float = 10.0,
        extra_headers: dict[str, str] | None = None,
        inspector: ThemeInspector | None = None,
    ) -> None:
        """Initialize the checker.

        Args:
            mode: Which validity rule applies
            backend: Fetching backend
            accepted_codes: Status codes (as strings) counted as reachable
            retry: Retry policy around each fetch
            jitter: Pre-request delay and User-Agent source
            timeout: Per-request timeout in seconds
            extra_headers: Headers added to every request
            inspector: Theme inspector; required in theme mode

        Raises:
            ValueError: If theme mode has no inspector
        """
        if mode is CheckerMode.THEME and inspector is None:
            raise ValueError("theme checker needs a ThemeInspector")
        self.mode = mode
        self.backend = backend
        self.accepted_codes = frozenset(str(code).strip() for code in accepted_codes)
        self.retry = retry or RetryConfig(retry_exceptions=(FetchError,))
        self.jitter = jitter or RequestJitter(min_delay_ms=0, max_delay_ms=0)
        self.timeout = timeout
        self.extra_headers = dict(extra_headers or {})
        self.inspector = inspector

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        backend: Backend,
        *,
        rng: random.Random | None = None,
    ) -> "SiteChecker":
        """Build a checker from application configuration."""
        politeness = config.politeness
        jitter = RequestJitter(
            min_delay_ms=politeness.request_delay_min_ms,
            max_delay_ms=politeness.request_delay_max_ms,
            user_agents=list(politeness.user_agents),
            rng=rng or random.Random(),
        )
        inspector = build_inspector(config.theme) if config.checker is CheckerMode.THEME else None
        return cls(
            config.checker,
            backend,
            accepted_codes=config.accepted_code_set,
            retry=RetryConfig(
                max_attempts=config.retry_times,
                delay=config.retry_delay_seconds,
                retry_exceptions=(FetchError,),
            ),
            jitter=jitter,
            timeout=politeness.request_timeout_seconds,
            extra_headers=politeness.request_headers,
            inspector=inspector,
        )

    def is_reachable(self, status_code: int | None) -> bool:
        return status_code is not None and str(status_code) in self.accepted_codes

    async def check(self, target: CheckTarget) -> CheckResult:
        """Check one target.

        Args:
            target: Record to check

        Returns:
            CheckResult; network failures are folded into it

        Raises:
            ValueError: If the target has no URL
        """
        url = target.resolve_url()
        if not url:
            raise ValueError(f"target {target.id} has no url")

        log = get_site_logger("check", target=target.id, url=url)
        attempts = 0

        async def attempt() -> FetchResult:
            nonlocal attempts
            attempts += 1
            await self.jitter.pause()
            request = RequestSpec(
                url=url,
                headers=self.jitter.headers(self.extra_headers),
                timeout=self.timeout,
                target_id=target.id,
            )
            log.bind(attempt=attempts).debug(f"Attempt {attempts}/{self.retry.max_attempts}: GET {url}")
            return await self.backend.fetch(request)

        try:
            response = await retry_async(attempt, config=self.retry)
        except FetchError as e:
            self._log_block_signal(log, e.status_code, url)
            reason = "timed out" if e.timed_out else "failed"
            log.error(
                f"Site {url} {reason} after {attempts} attempt(s): {e}",
                extra={"status_code": e.status_code},
            )
            return CheckResult.failed(
                status_code=e.status_code,
                attempts=attempts,
                error=str(e),
            )

        log.debug(response.describe())
        self._log_block_signal(log, response.status_code, url)
        return self._evaluate(response, attempts, log)

    def _evaluate(
        self,
        response: FetchResult,
        attempts: int,
        log: SiteLogger,
    ) -> CheckResult:
        reachable = self.is_reachable(response.status_code)

        if self.mode is CheckerMode.THEME:
            # inspector presence is enforced in __init__
            match = self.inspector.inspect(response.html)  # type: ignore[union-attr]
            if match is None:
                log.info(f"No theme metadata found ({self.inspector.name})")  # type: ignore[union-attr]
                return CheckResult(
                    status_code=response.status_code,
                    reachable=reachable,
                    valid=False,
                    attempts=attempts,
                )
            return CheckResult(
                status_code=response.status_code,
                reachable=reachable,
                valid=True,
                theme_name=match.name,
                theme_version=match.version,
                attempts=attempts,
            )

        # Friend checker: reachability only. Back-link verification
        # is not implemented.
        return CheckResult(
            status_code=response.status_code,
            reachable=reachable,
            valid=reachable,
            attempts=attempts,
        )

    @staticmethod
    def _log_block_signal(log: SiteLogger, status_code: int | None, url: str) -> None:
        if status_code == FORBIDDEN:
            log.warning(f"Access forbidden for site {url}, possibly due to anti-crawling measures")
        elif status_code == TOO_MANY_REQUESTS:
            log.warning(f"Rate limited for site {url}")
