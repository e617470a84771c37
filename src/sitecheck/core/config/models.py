"""
Pydantic configuration models for sitecheck.

These models provide type-safe configuration with validation for:
- Checker selection and retry settings
- Request politeness (concurrency, delays, User-Agent pool)
- Label names used by reconciliation
- Theme metadata selectors
- Issue tracker access
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from cssselect import SelectorError
from lxml.cssselect import CSSSelector
from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Enums
# =============================================================================


class CheckerMode(str, Enum):
    """Site validity checker variants."""

    FRIEND = "friend"
    THEME = "theme"


# Sentinel meta selector that switches the theme checker to the
# legacy <head hexo-theme="..."> detection
VOLANTIS_SENTINEL = "volantis"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
]


def _split_csv(value: Any) -> Any:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


# =============================================================================
# Politeness Configuration
# =============================================================================


class PolitenessConfig(BaseModel):
    """Concurrency, pacing and request identity settings."""

    max_concurrent_requests: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Max sites checked at the same time",
    )
    request_delay_min_ms: int = Field(
        default=1000,
        ge=0,
        description="Lower bound of the random pre-request delay",
    )
    request_delay_max_ms: int = Field(
        default=3000,
        ge=0,
        description="Upper bound (exclusive) of the random pre-request delay",
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=300.0,
        description="Wall-clock timeout for a single HTTP request",
    )
    user_agents: list[str] = Field(
        default_factory=lambda: list(DEFAULT_USER_AGENTS),
        min_length=1,
        description="User-Agent pool; one is picked at random per request",
    )
    request_headers: dict[str, str] = Field(
        default_factory=dict,
        description="Extra headers sent with every site request",
    )

    @field_validator("request_delay_max_ms")
    @classmethod
    def max_delay_gte_min(cls, v: int, info: Any) -> int:
        """Ensure max delay is at least min delay."""
        min_delay = info.data.get("request_delay_min_ms", 0)
        if v < min_delay:
            raise ValueError("request_delay_max_ms must be >= request_delay_min_ms")
        return v


# =============================================================================
# Label Configuration
# =============================================================================


class LabelConfig(BaseModel):
    """Label names written back to tracker records."""

    unreachable_label: str = Field(
        default="无法访问",
        min_length=1,
        description="Added when the site cannot be reached",
    )
    theme_checker_invalid_label: str = Field(
        default="无效主题",
        min_length=1,
        description="Added by the theme checker when no theme metadata is found",
    )
    friend_checker_invalid_label: str = Field(
        default="未添加友链",
        min_length=1,
        description="Added by the friend checker when the site is not valid",
    )
    status_prefix: str = Field(
        default="status:",
        min_length=1,
        description="Prefix of HTTP status labels",
    )
    version_prefix: str = Field(
        default="v",
        description="Prefix of theme version labels",
    )

    def invalid_label_for(self, mode: CheckerMode) -> str:
        """Return the invalid label owned by a checker mode."""
        if mode is CheckerMode.THEME:
            return self.theme_checker_invalid_label
        return self.friend_checker_invalid_label


# =============================================================================
# Theme Checker Configuration
# =============================================================================


class ThemeCheckerConfig(BaseModel):
    """Where the theme checker looks for theme metadata."""

    meta_tag: str = Field(
        default='meta[theme-name="Stellar"]',
        min_length=1,
        description="CSS selector of the metadata element, or 'volantis'",
    )
    content_attr: str = Field(
        default="content",
        min_length=1,
        description="Attribute holding the theme URL",
    )
    version_attr: str = Field(
        default="theme-version",
        min_length=1,
        description="Attribute holding the theme version",
    )

    @field_validator("meta_tag")
    @classmethod
    def selector_compiles(cls, v: str) -> str:
        if v.strip().lower() == VOLANTIS_SENTINEL:
            return v
        try:
            CSSSelector(v, translator="html")
        except SelectorError as e:
            raise ValueError(f"meta_tag is not a valid CSS selector: {e}") from e
        return v

    @property
    def legacy_volantis(self) -> bool:
        return self.meta_tag.strip().lower() == VOLANTIS_SENTINEL


# =============================================================================
# Issue Tracker Configuration
# =============================================================================


class GitHubConfig(BaseModel):
    """GitHub repository whose issues list the sites."""

    repository: str | None = Field(
        default=None,
        description="owner/repo; falls back to GITHUB_REPOSITORY",
    )
    token: str | None = Field(
        default=None,
        description="API token; falls back to GITHUB_TOKEN",
    )
    api_url: str = Field(
        default="https://api.github.com",
        description="REST API base URL",
    )
    per_page: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Page size when listing issues",
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for API requests",
    )

    @field_validator("repository", "token", mode="before")
    @classmethod
    def blank_is_unset(cls, v: Any) -> Any:
        # ${VAR} expansion of an unset variable yields ""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("repository")
    @classmethod
    def repository_has_owner(cls, v: str | None) -> str | None:
        if v is not None and v.count("/") != 1:
            raise ValueError("repository must look like 'owner/repo'")
        return v


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    file: Path | None = Field(
        default=None,
        description="Log file path",
    )
    json_format: bool = Field(
        default=True,
        description="Use JSON format for file logs",
    )
    rich_console: bool = Field(
        default=True,
        description="Use Rich for console output",
    )

    @field_validator("level")
    @classmethod
    def known_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"level must be one of {', '.join(LOG_LEVELS)}")
        return level


# =============================================================================
# Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """Root application configuration.

    Loaded from sitecheck.yaml and overlaid with action inputs.
    """

    checker: CheckerMode = Field(
        default=CheckerMode.FRIEND,
        description="Which validity checker to run",
    )
    retry_times: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Attempts per site before giving up",
    )
    retry_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Fixed pause between attempts",
    )
    exclude_issue_with_labels: list[str] = Field(
        default_factory=lambda: ["审核中", "白名单"],
        description="Issues carrying any of these labels are not checked",
    )
    accepted_codes: str = Field(
        default="200,301",
        description="Comma-separated status codes counted as reachable",
    )

    politeness: PolitenessConfig = Field(default_factory=PolitenessConfig)
    labels: LabelConfig = Field(default_factory=LabelConfig)
    theme: ThemeCheckerConfig = Field(default_factory=ThemeCheckerConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    report_file: Path | None = Field(
        default=None,
        description="Write a JSON run report here",
    )

    @field_validator("checker", mode="before")
    @classmethod
    def normalize_checker(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("exclude_issue_with_labels", mode="before")
    @classmethod
    def split_exclude_labels(cls, v: Any) -> Any:
        return _split_csv(v)

    @field_validator("accepted_codes", mode="before")
    @classmethod
    def join_accepted_codes(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return ",".join(str(code) for code in v)
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("accepted_codes")
    @classmethod
    def accepted_codes_not_empty(cls, v: str) -> str:
        if not _split_csv(v):
            raise ValueError("accepted_codes must list at least one status code")
        return v

    @property
    def accepted_code_set(self) -> frozenset[str]:
        """Accepted status codes, compared as strings."""
        return frozenset(_split_csv(self.accepted_codes))

    @property
    def invalid_label(self) -> str:
        return self.labels.invalid_label_for(self.checker)
