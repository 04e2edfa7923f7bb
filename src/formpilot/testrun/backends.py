"""Test runner abstraction for the URL test orchestrator.

A runner executes the form commands of one URL in a separate process and
reports back an exit code plus the plain-text report that process wrote.
The orchestrator only relies on two report lines::

    Successfully executed: <int>
    Failed: <int>

and falls back to zero for either one that is missing.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import psutil

from formpilot import config

logger = logging.getLogger(__name__)

# Whole-line matches only; command lines may echo user values.
EXECUTED_RE = re.compile(r"^Successfully executed: (\d+)[ \t\r]*$", re.MULTILINE)
FAILED_RE = re.compile(r"^Failed: (\d+)[ \t\r]*$", re.MULTILINE)


@dataclass(frozen=True)
class RunOutcome:
    exit_code: int
    report_text: str = ""
    report_file: str | None = None


def parse_report(text: str) -> tuple[int, int]:
    """Return (executed, failed) command counts scraped from a report."""
    # The summary closes the report, so the last match wins.
    executed = EXECUTED_RE.findall(text or "")
    failed = FAILED_RE.findall(text or "")
    return (
        int(executed[-1]) if executed else 0,
        int(failed[-1]) if failed else 0,
    )


class TestRunner(ABC):
    """Runs one URL's form test to completion."""

    __test__ = False

    @abstractmethod
    def run(self, url: str, report_file: str) -> RunOutcome:
        ...

    def kill_all(self) -> None:
        """Stop any in-flight runs (Ctrl+C). Default: nothing to stop."""
        return None


class SubprocessRunner(TestRunner):
    """Spawns the runner command once per URL.

    The child receives FORM_URL, REPORT_FILE and FORMPILOT_REPORT_DIR in its
    environment and is expected to write ``REPORT_FILE`` into the report
    directory. Its console output goes to a per-run log in the log directory.
    """

    def __init__(
        self,
        command: Sequence[str] | None = None,
        report_dir: Path | None = None,
        headless: bool = True,
    ) -> None:
        self.command = list(command) if command else config.runner_command()
        self.report_dir = Path(report_dir) if report_dir else config.report_dir()
        self.headless = headless
        self._active_procs: dict[str, subprocess.Popen] = {}
        self._lock = threading.Lock()

    def _prepare_environment(self, url: str, report_file: str) -> dict[str, str]:
        env = os.environ.copy()
        env["FORM_URL"] = url
        env["REPORT_FILE"] = report_file
        env["FORMPILOT_REPORT_DIR"] = str(self.report_dir)
        env["FORMPILOT_HEADLESS"] = "1" if self.headless else "0"
        return env

    def run(self, url: str, report_file: str) -> RunOutcome:
        self.report_dir.mkdir(parents=True, exist_ok=True)
        config.log_dir().mkdir(parents=True, exist_ok=True)
        run_log = config.log_dir() / f"runner-{Path(report_file).stem}.log"

        logger.info("Launching runner for %s", url)
        with open(run_log, "a", encoding="utf-8") as lf:
            proc = subprocess.Popen(
                self.command,
                stdout=lf,
                stderr=subprocess.STDOUT,
                env=self._prepare_environment(url, report_file),
            )
            with self._lock:
                self._active_procs[url] = proc
            try:
                returncode = proc.wait()
            finally:
                with self._lock:
                    self._active_procs.pop(url, None)

        report_path = self.report_dir / report_file
        report_text = ""
        if report_path.exists():
            report_text = report_path.read_text(encoding="utf-8", errors="replace")
        else:
            logger.warning("Runner wrote no report for %s (expected %s)", url, report_path)

        logger.info("Runner finished for %s with exit code %s", url, returncode)
        return RunOutcome(exit_code=returncode, report_text=report_text, report_file=report_file)

    def get_active_proc(self, url: str) -> subprocess.Popen | None:
        return self._active_procs.get(url)

    def kill_all(self) -> None:
        with self._lock:
            procs = list(self._active_procs.values())
        for proc in procs:
            if proc.poll() is None:
                _kill_process_tree(proc.pid)


def _kill_process_tree(pid: int) -> None:
    """Kill a process and all its children."""
    try:
        parent = psutil.Process(pid)
        for child in parent.children(recursive=True):
            child.terminate()
        parent.terminate()
        _, alive = psutil.wait_procs([parent], timeout=3)
        for p in alive:
            p.kill()
    except psutil.NoSuchProcess:
        pass
