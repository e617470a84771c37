"""Orchestrator - run coordination and error accounting."""

from .runner import CheckRunner, RunStats, TargetError, TargetOutcome, run_site_check, write_report

__all__ = [
    "CheckRunner",
    "RunStats",
    "TargetError",
    "TargetOutcome",
    "run_site_check",
    "write_report",
]
