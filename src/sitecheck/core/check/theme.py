"""
Theme metadata extraction.

Finds the theme name and version a site advertises in its HTML.
Two inspectors exist:

- ``MetaTagInspector``: a configurable CSS selector (usually a
  ``<meta theme-name=... theme-version=... content=...>`` tag)
- ``VolantisInspector``: the legacy ``<head hexo-theme="...#<version>">``
  convention, kept for sites that have not moved to the meta tag yet

When the version attribute is missing, the version is derived from the
content attribute by trying ``VERSION_STRATEGIES`` in order.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from lxml import etree
from lxml import html as lxml_html
from lxml.cssselect import CSSSelector
from lxml.html import HtmlElement

from sitecheck.core.config.models import ThemeCheckerConfig

logger = logging.getLogger(__name__)


TREE_VERSION_PATTERN = re.compile(r"/tree/([\d.]+(?:-[\w.]+)?)")
BARE_VERSION_PATTERN = re.compile(r"^\d+\.\d+\.\d+(?:-[\w.]+)?$")

VOLANTIS_THEME_NAME = "Volantis"
VOLANTIS_HEAD_ATTR = "hexo-theme"
VOLANTIS_REPO_PATH = "/volantis-x/hexo-theme-volantis/"
VOLANTIS_VERSION_PATTERN = re.compile(r"/#([\d.]+(?:-[\w.]+)?)")

THEME_NAME_ATTR = "theme-name"

VersionStrategy = Callable[[str], Optional[str]]


# =============================================================================
# Version Extraction Strategies
# =============================================================================


def version_from_tree_path(content: str) -> str | None:
    """``https://github.com/org/theme/tree/1.2.3`` -> ``1.2.3``."""
    match = TREE_VERSION_PATTERN.search(content)
    return match.group(1) if match else None


def version_from_bare_token(content: str) -> str | None:
    """The whole value is a semantic version, e.g. ``1.30.0-rc.1``."""
    match = BARE_VERSION_PATTERN.match(content.strip())
    return match.group(0) if match else None


VERSION_STRATEGIES: tuple[VersionStrategy, ...] = (
    version_from_tree_path,
    version_from_bare_token,
)


def resolve_version(
    content: str | None,
    strategies: Sequence[VersionStrategy] = VERSION_STRATEGIES,
) -> str | None:
    """Return the first version any strategy finds in ``content``."""
    if not content:
        return None
    for strategy in strategies:
        version = strategy(content)
        if version:
            return version
    return None


# =============================================================================
# Inspectors
# =============================================================================


@dataclass(frozen=True)
class ThemeMatch:
    """Theme metadata found on a page."""

    name: str | None
    version: str


def parse_document(html: str) -> HtmlElement | None:
    """Parse an HTML page, returning None for empty or unparseable input."""
    if not html or not html.strip():
        return None
    try:
        # Bytes so pages with an XML encoding declaration still parse
        return lxml_html.document_fromstring(html.encode("utf-8"))
    except (etree.ParserError, ValueError) as e:
        logger.debug(f"Failed to parse HTML: {e}")
        return None


class ThemeInspector(ABC):
    """Looks for theme metadata in a page."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Inspector identifier."""
        pass

    @abstractmethod
    def inspect(self, html: str) -> ThemeMatch | None:
        """Return the theme found in ``html``, or None."""
        pass


class MetaTagInspector(ThemeInspector):
    """Reads theme metadata from the first element matching a selector."""

    def __init__(
        self,
        selector: str,
        content_attr: str = "content",
        version_attr: str = "theme-version",
        strategies: Sequence[VersionStrategy] = VERSION_STRATEGIES,
    ) -> None:
        """Initialize the inspector.

        Args:
            selector: CSS selector of the metadata element
            content_attr: Attribute that must be non-empty
            version_attr: Attribute holding the version
            strategies: Fallbacks applied to the content attribute

        Raises:
            cssselect.SelectorError: If ``selector`` is not valid CSS
        """
        self.selector = selector
        self.content_attr = content_attr
        self.version_attr = version_attr
        self.strategies = tuple(strategies)
        self._compiled = CSSSelector(selector, translator="html")

    @property
    def name(self) -> str:
        return "meta_tag"

    def inspect(self, html: str) -> ThemeMatch | None:
        doc = parse_document(html)
        if doc is None:
            return None

        elements = self._compiled(doc)
        if not elements:
            return None

        element = elements[0]
        content = element.get(self.content_attr)
        version = element.get(self.version_attr) or resolve_version(content, self.strategies)

        if content and version:
            return ThemeMatch(name=element.get(THEME_NAME_ATTR), version=version)
        return None


class VolantisInspector(ThemeInspector):
    """Legacy ``<head hexo-theme="https://github.com/volantis-x/hexo-theme-volantis/#6.0.0">``."""

    @property
    def name(self) -> str:
        return "volantis"

    def inspect(self, html: str) -> ThemeMatch | None:
        doc = parse_document(html)
        if doc is None:
            return None

        heads = doc.cssselect("head")
        theme_url = heads[0].get(VOLANTIS_HEAD_ATTR) if heads else None
        if not theme_url or VOLANTIS_REPO_PATH not in theme_url:
            logger.debug("Volantis theme URL not found")
            return None

        match = VOLANTIS_VERSION_PATTERN.search(theme_url)
        if match is None:
            return None
        return ThemeMatch(name=VOLANTIS_THEME_NAME, version=match.group(1))


def build_inspector(config: ThemeCheckerConfig) -> ThemeInspector:
    """Pick the inspector matching the configured selector."""
    if config.legacy_volantis:
        return VolantisInspector()
    return MetaTagInspector(
        config.meta_tag,
        content_attr=config.content_attr,
        version_attr=config.version_attr,
    )
