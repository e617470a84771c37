"""
sitecheck - Audit issue-tracked site links and keep their labels honest.

Checks every site listed in open tracker issues for reachability and
theme metadata, then rewrites each issue's labels to match the outcome.
"""

__version__ = "0.1.0"
__app_name__ = "sitecheck"
