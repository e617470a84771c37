"""
Check data structures.

Targets come from tracker records; results are produced once per
target per run and never mutated afterwards.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from typing import Any


# Records carry the site as a JSON-ish "url": "<value>" token in free text
URL_FIELD_PATTERN = re.compile(r'"url":\s*"([^"]+)"')


def extract_url(body: str | None) -> str | None:
    """Pull the first ``"url": "<value>"`` token out of a record body."""
    if not body:
        return None
    match = URL_FIELD_PATTERN.search(body)
    if match is None:
        return None
    url = match.group(1).strip()
    return url or None


@dataclass(frozen=True)
class CheckTarget:
    """One auditable record: an identifier, its site URL and its labels."""

    id: int | str
    url: str | None = None
    labels: tuple[str, ...] = ()
    body: str | None = field(default=None, repr=False)

    def resolve_url(self) -> str | None:
        """The explicit URL, else the one embedded in the body."""
        return self.url or extract_url(self.body)


@dataclass(frozen=True)
class CheckResult:
    """Outcome of checking one site."""

    status_code: int | None = None
    reachable: bool = False
    valid: bool = False
    theme_name: str | None = None
    theme_version: str | None = None

    # Reporting only; reconciliation ignores these
    attempts: int = 0
    error: str | None = None

    @classmethod
    def failed(
        cls,
        status_code: int | None = None,
        attempts: int = 0,
        error: str | None = None,
    ) -> "CheckResult":
        """Result for a site that could not be fetched."""
        return cls(
            status_code=status_code,
            reachable=False,
            valid=False,
            attempts=attempts,
            error=error,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
