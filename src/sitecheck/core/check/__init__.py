"""Site checking - targets, results, theme inspection, the checker."""

from .base import CheckResult, CheckTarget, extract_url
from .checker import SiteChecker
from .theme import (
    VERSION_STRATEGIES,
    MetaTagInspector,
    ThemeInspector,
    ThemeMatch,
    VolantisInspector,
    build_inspector,
    resolve_version,
    version_from_bare_token,
    version_from_tree_path,
)

__all__ = [
    "CheckResult",
    "CheckTarget",
    "extract_url",
    "SiteChecker",
    "ThemeInspector",
    "ThemeMatch",
    "MetaTagInspector",
    "VolantisInspector",
    "build_inspector",
    "VERSION_STRATEGIES",
    "resolve_version",
    "version_from_tree_path",
    "version_from_bare_token",
]
