"""Issue tracker collaborators - record source and label sink."""

from .base import IssueTracker, LabelSink, RecordSource, TrackerError
from .github import GitHubIssueTracker

__all__ = [
    "IssueTracker",
    "LabelSink",
    "RecordSource",
    "TrackerError",
    "GitHubIssueTracker",
]
