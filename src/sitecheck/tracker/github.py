"""
GitHub Issues tracker using httpx.

Lists open issues of a repository (all pages), drops pull requests
and issues carrying an excluded label, and replaces issue labels.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Iterable, Mapping, Sequence

import httpx

from sitecheck.core.check.base import CheckTarget, extract_url
from sitecheck.core.config.models import GitHubConfig
from .base import IssueTracker, TrackerError

logger = logging.getLogger(__name__)

API_VERSION = "2022-11-28"


class GitHubIssueTracker(IssueTracker):
    """Issues of one repository as check targets."""

    def __init__(
        self,
        repository: str,
        token: str | None = None,
        *,
        api_url: str = "https://api.github.com",
        per_page: int = 100,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the tracker.

        Args:
            repository: ``owner/repo``
            token: API token sent as a bearer header
            api_url: REST API base URL
            per_page: Issues per page
            timeout: Request timeout in seconds
            transport: Custom transport (tests use httpx.MockTransport)
        """
        if repository.count("/") != 1:
            raise ValueError(f"repository must look like 'owner/repo', got {repository!r}")
        self.repository = repository
        self.per_page = per_page

        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        kwargs: dict[str, Any] = {
            "base_url": api_url.rstrip("/"),
            "headers": headers,
            "timeout": httpx.Timeout(timeout),
        }
        if transport is not None:
            kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**kwargs)

    @classmethod
    def from_config(
        cls,
        config: GitHubConfig,
        environ: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "GitHubIssueTracker":
        """Build from config, falling back to the Actions environment.

        Raises:
            TrackerError: If no repository is configured
        """
        if environ is None:
            environ = os.environ
        repository = config.repository or environ.get("GITHUB_REPOSITORY")
        if not repository:
            raise TrackerError("No repository configured; set github.repository or GITHUB_REPOSITORY")
        return cls(
            repository,
            config.token or environ.get("GITHUB_TOKEN"),
            api_url=config.api_url,
            per_page=config.per_page,
            timeout=config.timeout_seconds,
            transport=transport,
        )

    async def list_open_issues(self) -> list[dict[str, Any]]:
        """All open issues, newest first, following pagination links."""
        url: str | None = f"/repos/{self.repository}/issues"
        params: dict[str, Any] | None = {
            "state": "open",
            "per_page": self.per_page,
            "sort": "created",
            "direction": "desc",
        }
        issues: list[dict[str, Any]] = []

        while url:
            try:
                response = await self._client.get(url, params=params)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise TrackerError(
                    f"Error fetching issues: {e.response.status_code} {e.response.text[:200]}",
                    status_code=e.response.status_code,
                ) from e
            except httpx.HTTPError as e:
                raise TrackerError(f"Error fetching issues: {e}") from e

            page = response.json()
            issues.extend(item for item in page if "pull_request" not in item)

            # The next link already carries the query string
            url = response.links.get("next", {}).get("url")
            params = None

        logger.info(
            f"Fetched {len(issues)} issues: "
            + ",".join(str(issue["number"]) for issue in issues)
        )
        return issues

    async def fetch_open_records(self, exclude_labels: Iterable[str]) -> list[CheckTarget]:
        excluded = {label for label in exclude_labels if label}
        issues = await self.list_open_issues()

        targets: list[CheckTarget] = []
        for issue in issues:
            labels = tuple(label["name"] for label in issue.get("labels", []))
            if excluded.intersection(labels):
                continue
            body = issue.get("body")
            url = extract_url(body)
            if not url:
                logger.debug(f"#{issue['number']} has no url in its body")
                continue
            targets.append(CheckTarget(id=issue["number"], url=url, labels=labels, body=body))

        logger.info(
            f"Filtered({', '.join(sorted(excluded))}) {len(issues)} -> {len(targets)}: "
            + ",".join(str(target.id) for target in targets)
        )
        return targets

    async def set_labels(self, target_id: Any, labels: Sequence[str]) -> None:
        clean = [label for label in labels if label]
        logger.info(f"Will update labels for issue #{target_id} at {self.repository}: {clean}")
        try:
            response = await self._client.put(
                f"/repos/{self.repository}/issues/{target_id}/labels",
                json={"labels": clean},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Error updating labels for issue #{target_id}: "
                f"{e.response.status_code} - {e.response.text[:200]}"
            )
            return
        except httpx.HTTPError as e:
            logger.error(f"Error updating labels for issue #{target_id}: {e}")
            return
        logger.info(f"Updated labels for issue #{target_id}")

    async def close(self) -> None:
        if not self._client.is_closed:
            await self._client.aclose()
