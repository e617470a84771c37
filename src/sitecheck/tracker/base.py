"""
Issue tracker interfaces.

The checking pipeline only needs two things from a tracker: the open
records to check, and a way to replace a record's labels.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable, Sequence

from sitecheck.core.check.base import CheckTarget


class TrackerError(Exception):
    """The tracker could not be read."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RecordSource(ABC):
    """Supplies the records to check."""

    @abstractmethod
    async def fetch_open_records(self, exclude_labels: Iterable[str]) -> list[CheckTarget]:
        """Open records without any excluded label and with a resolvable URL.

        Raises:
            TrackerError: If records cannot be listed
        """
        pass


class LabelSink(ABC):
    """Receives reconciled label sets."""

    @abstractmethod
    async def set_labels(self, target_id: Any, labels: Sequence[str]) -> None:
        """Replace a record's labels. Failures are logged, not raised."""
        pass


class IssueTracker(RecordSource, LabelSink):
    """A tracker that is both source and sink."""

    async def close(self) -> None:
        pass

    async def __aenter__(self) -> "IssueTracker":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
