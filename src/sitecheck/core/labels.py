"""
Label reconciliation.

Turns a check outcome plus a record's current labels into the label
set the record should carry next. Pure and total: no I/O, no
exceptions for any CheckResult shape.
"""

from __future__ import annotations

import re
from typing import Callable, Iterable

from sitecheck.core.check.base import CheckResult
from sitecheck.core.config.models import CheckerMode, LabelConfig

# Semantic-version-like labels, optionally v-prefixed: v1.2.0, 6.0.0-alpha.0, v2
VERSION_LABEL_PATTERN = re.compile(r"^v?\d+(?:\.\d+)*(?:-[\w.]+)?$")


def is_version_label(label: str) -> bool:
    return VERSION_LABEL_PATTERN.match(label) is not None


def _dedupe(labels: Iterable[str]) -> list[str]:
    """Drop duplicates and empty names, keeping first-seen order."""
    return list(dict.fromkeys(label for label in labels if label))


def _replace(labels: list[str], owned: Callable[[str], bool], wanted: str) -> list[str]:
    """Leave ``wanted`` as the only label ``owned`` matches.

    An existing ``wanted`` keeps its position so repeated runs are stable.
    """
    if wanted in labels:
        return [label for label in labels if label == wanted or not owned(label)]
    return [label for label in labels if not owned(label)] + [wanted]


def _add(labels: list[str], wanted: str) -> list[str]:
    return labels if wanted in labels else labels + [wanted]


def _bare_version(version: str) -> str:
    """``v1.2.0`` -> ``1.2.0``; the label prefix is added separately."""
    return version[1:] if version[:1] in ("v", "V") else version


def reconcile_labels(
    result: CheckResult,
    current: Iterable[str],
    config: LabelConfig,
    mode: CheckerMode,
) -> list[str]:
    """Compute the next label set for a record.

    Steps run in order:

    1. Status: a 200 clears every ``status:`` label; any other known
       code replaces them with ``status:<code>``.
    2. Version: a resolved theme version replaces every version label
       with ``v<version>``.
    3. Reachability: reachable sites lose the unreachable label and
       gain or lose the mode's invalid label according to ``valid``.
       Unreachable sites gain the unreachable label; the invalid label
       is left as it was.
    4. Deduplicate, preserving first-seen order.

    Labels that are already correct stay where they are, so feeding the
    output back in with the same result returns the same list.

    Args:
        result: Outcome of the site check
        current: Labels the record carries now
        config: Label names and prefixes
        mode: Checker mode that produced ``result``

    Returns:
        Next label list
    """
    labels = list(current)
    status_prefix = config.status_prefix

    def is_status(label: str) -> bool:
        return label.startswith(status_prefix)

    if result.status_code == 200:
        labels = [label for label in labels if not is_status(label)]
    elif result.status_code is not None:
        labels = _replace(labels, is_status, f"{status_prefix}{result.status_code}")

    if result.theme_version:
        version_label = f"{config.version_prefix}{_bare_version(result.theme_version)}"
        labels = _replace(labels, is_version_label, version_label)

    invalid_label = config.invalid_label_for(mode)
    if result.reachable:
        labels = [label for label in labels if label != config.unreachable_label]
        if result.valid:
            labels = [label for label in labels if label != invalid_label]
        else:
            labels = _add(labels, invalid_label)
    else:
        labels = _add(labels, config.unreachable_label)

    return _dedupe(labels)


def label_diff(before: Iterable[str], after: Iterable[str]) -> tuple[list[str], list[str]]:
    """Labels added and removed between two label sets, for logging."""
    before_list = list(before)
    after_list = list(after)
    added = [label for label in after_list if label not in before_list]
    removed = [label for label in before_list if label not in after_list]
    return added, removed
