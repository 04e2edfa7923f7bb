"""Bulk form testing: run a domain's test URLs, record results in its history.

URLs are processed in contiguous chunks of ``parallel`` entries. All URLs in
a chunk run at once (one runner process each) and the chunk is joined before
the next one starts. A failing URL never stops its siblings. Each result is
appended to the domain's history by re-reading the document and writing it
back merged; that is not transactional across processes.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Callable, Iterable, Sequence, TypeVar

from formpilot.errors import DomainNotFound, NoTestUrls, UrlNotInSchema
from formpilot.models import DomainConfig, TestHistoryRecord, TestUrl, normalize_domain
from formpilot.store.service import DomainConfigService
from formpilot.testrun.backends import TestRunner, parse_report

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Selection helpers
# ---------------------------------------------------------------------------


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    """Split into contiguous chunks of ``size``; the last may be shorter."""
    if size < 1:
        raise ValueError(f"chunk size must be >= 1, got {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def latest_results(history: Iterable[TestHistoryRecord]) -> dict[str, TestHistoryRecord]:
    """Most recent record per URL, by timestamp."""
    latest: dict[str, TestHistoryRecord] = {}
    for record in history:
        existing = latest.get(record.url)
        if existing is None or record.timestamp > existing.timestamp:
            latest[record.url] = record
    return latest


def failed_urls(history: Iterable[TestHistoryRecord]) -> set[str]:
    return {url for url, record in latest_results(history).items() if record.status == "failed"}


def report_file_name(domain: str, url: str, timestamp: datetime) -> str:
    stamp = timestamp.astimezone(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    digest = hashlib.sha1(url.encode("utf-8")).hexdigest()[:8]
    return f"form-fill-report-{domain.replace('.', '-')}-{stamp}-{digest}.txt"


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class TestOrchestrator:
    """Runs a domain's test URLs through a TestRunner."""

    __test__ = False

    def __init__(
        self,
        service: DomainConfigService,
        runner: TestRunner,
        track_history: bool = True,
        on_result: Callable[[TestHistoryRecord], None] | None = None,
    ) -> None:
        self.service = service
        self.runner = runner
        self.track_history = track_history
        self.on_result = on_result
        self._history_lock = threading.Lock()

    def select_urls(
        self,
        config: DomainConfig,
        url: str | None = None,
        failed_only: bool = False,
    ) -> list[TestUrl]:
        """Apply the single-URL and failed-only filters to a domain's test URLs."""
        if not config.test_urls:
            raise NoTestUrls(config.domain)

        selected = list(config.test_urls)

        if url:
            selected = [tu for tu in selected if tu.url == url]
            if not selected:
                raise UrlNotInSchema(url)

        if failed_only:
            if not config.test_history:
                logger.info("No test history found for %s. Running all tests.", config.domain)
            else:
                failed = failed_urls(config.test_history)
                selected = [tu for tu in selected if tu.url in failed]
                logger.info("Running %d previously failed tests", len(selected))

        return selected

    def run(
        self,
        domain: str,
        url: str | None = None,
        failed_only: bool = False,
        parallel: int = 1,
    ) -> list[TestHistoryRecord]:
        """Test the selected URLs of ``domain``; return one record per URL run."""
        config = self.service.get_domain_config(domain)
        if config is None:
            raise DomainNotFound(domain)

        selected = self.select_urls(config, url=url, failed_only=failed_only)
        chunks = chunked(selected, parallel)
        logger.info(
            "Testing %d URL(s) for %s in %d chunk(s) of up to %d",
            len(selected),
            config.domain,
            len(chunks),
            parallel,
        )

        records: list[TestHistoryRecord] = []
        for chunk in chunks:
            records.extend(self._run_chunk(config.domain, chunk))
        return records

    def _run_chunk(self, domain: str, chunk: list[TestUrl]) -> list[TestHistoryRecord]:
        results: list[TestHistoryRecord | None] = [None] * len(chunk)
        with ThreadPoolExecutor(max_workers=len(chunk), thread_name_prefix="form-test") as executor:
            futures = {executor.submit(self.run_url, domain, test_url): i for i, test_url in enumerate(chunk)}
            try:
                for future in as_completed(futures):
                    index = futures[future]
                    results[index] = future.result()
            except KeyboardInterrupt:
                # Kill before the executor joins, or siblings run to completion.
                logger.warning("Interrupted, stopping active runners")
                self.runner.kill_all()
                executor.shutdown(wait=False, cancel_futures=True)
                raise
        return [r for r in results if r is not None]

    def run_url(self, domain: str, test_url: TestUrl) -> TestHistoryRecord:
        """Run one URL. Runner crashes become a failed record, never an exception."""
        timestamp = datetime.now(timezone.utc)
        report_file = report_file_name(normalize_domain(domain), test_url.url, timestamp)
        logger.info("Testing: %s (%s)", test_url.description or test_url.url, test_url.url)

        try:
            outcome = self.runner.run(test_url.url, report_file)
            exit_code = outcome.exit_code
            executed, failed = parse_report(outcome.report_text)
        except Exception:
            logger.exception("Runner error for %s", test_url.url)
            exit_code, executed, failed = -1, 0, 0

        record = TestHistoryRecord(
            url=test_url.url,
            timestamp=timestamp,
            status="success" if exit_code == 0 else "failed",
            executed_commands=executed,
            failed_commands=failed,
            report_file=report_file,
        )
        logger.info("Test completed with status: %s (exit code: %s)", record.status, exit_code)

        if self.track_history:
            self.record_history(domain, record)
        if self.on_result is not None:
            self.on_result(record)
        return record

    def record_history(self, domain: str, record: TestHistoryRecord) -> None:
        """Append ``record`` and refresh the cached URL status. Store errors are logged only."""
        with self._history_lock:
            try:
                config = self.service.get_domain_config(domain)
                if config is None:
                    logger.warning("Domain %s disappeared, history not saved", domain)
                    return
                config.test_history.append(record)
                for index, tu in enumerate(config.test_urls):
                    if tu.url == record.url:
                        config.test_urls[index] = tu.model_copy(update={"status": record.status})
                self.service.save_domain_config(config)
                logger.debug("Test history updated for %s", record.url)
            except Exception:
                logger.exception("Error updating test history for %s", record.url)
