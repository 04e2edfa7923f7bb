"""Bulk URL testing: runners, the orchestrator and the default form runner."""

from formpilot.testrun.backends import RunOutcome, SubprocessRunner, TestRunner, parse_report
from formpilot.testrun.orchestrator import TestOrchestrator

__all__ = [
    "RunOutcome",
    "SubprocessRunner",
    "TestOrchestrator",
    "TestRunner",
    "parse_report",
]
