"""Periodic scan service that reports changes to a single handler."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from docwatch.config import DocwatchConfig
from docwatch.ingestion.cache import Clock, TimedCache
from docwatch.ingestion.detectors import HashComputer
from docwatch.ingestion.discovery import build_strategies
from docwatch.ingestion.metadata import MetadataFetcher
from docwatch.ingestion.models import FileInfo
from docwatch.ingestion.pipeline import ScanPipeline
from docwatch.ingestion.transport import RequestsTransport, Transport
from docwatch.state import ChangeDetector, ChangeReport, Snapshot

LOGGER = logging.getLogger(__name__)

ChangeHandler = Callable[[ChangeReport], None]


class WatchService:
    """Own the scan state for one scanner and drive scans on an interval.

    Every instance holds its own existence cache, content cache, and retained
    snapshot, so several services (for example one per base path) never share
    state. Scan cycles for one instance are serialized: a manual
    :meth:`perform_scan` waits for a scheduled cycle to finish and vice versa,
    and a cycle that outlasts the interval delays the next one.
    """

    def __init__(
        self,
        config: DocwatchConfig | None = None,
        *,
        transport: Transport | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            config: Loaded docwatch configuration; defaults when omitted.
            transport: Transport used for every request; a ``requests``-backed
                transport is built from ``config.transport`` when omitted.
            clock: Monotonic clock used by the existence cache.
        """

        self._config = config or DocwatchConfig()
        discovery = self._config.discovery
        self._transport = transport or RequestsTransport(
            timeout=self._config.transport.timeout_seconds,
            user_agent=self._config.transport.user_agent,
        )
        self._fetcher = MetadataFetcher(
            self._transport,
            hasher=HashComputer(self._config.fingerprint.algorithm),
            existence_cache=TimedCache(clock),
            existence_ttl=self._config.cache.existence_ttl_seconds,
        )
        self._pipeline = ScanPipeline(
            build_strategies(discovery, self._transport, self._fetcher.test_file_exists),
            self._fetcher,
            extension=discovery.extension,
        )
        self._detector = ChangeDetector()
        self._handler: Optional[ChangeHandler] = None
        self._scan_lock = threading.Lock()
        self._schedule_lock = threading.Lock()
        self._worker: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    @property
    def pipeline(self) -> ScanPipeline:
        return self._pipeline

    @property
    def fetcher(self) -> MetadataFetcher:
        return self._fetcher

    @property
    def last_snapshot(self) -> Snapshot:
        """Return the snapshot retained from the most recent scan."""
        return self._detector.previous

    @property
    def is_scanning(self) -> bool:
        """Return whether a periodic schedule is active."""
        with self._schedule_lock:
            return self._stop_event is not None and not self._stop_event.is_set()

    def set_change_handler(self, handler: Optional[ChangeHandler]) -> None:
        """Register the handler invoked with each report that has changes.

        There is a single slot: registering replaces any previous handler and
        passing ``None`` clears it.
        """
        self._handler = handler

    def scan_directory(self, base_path: str) -> Snapshot:
        """Scan ``base_path`` without touching the retained snapshot."""
        return self._pipeline.scan_directory(base_path)

    def perform_scan(self, base_path: str) -> ChangeReport:
        """Run one scan cycle and notify the handler when changes were found.

        Returns:
            ChangeReport: Report for the cycle; an empty report when the cycle
            failed, in which case the retained snapshot is left untouched.
        """
        LOGGER.info("Performing scan of %s", base_path)
        with self._scan_lock:
            try:
                snapshot = self._pipeline.scan_directory(base_path)
                report = self._detector.detect_changes(snapshot)
            except Exception:
                LOGGER.exception("Scan error for %s", base_path)
                return ChangeReport.empty()
            self._fetcher.retain_content(record.url for record in snapshot.records)

        if report.has_changes:
            self._invoke_change_handler(report)
        return report

    def start_scanning(self, base_path: str, interval: float | None = None) -> None:
        """Scan ``base_path`` now and then every ``interval`` seconds.

        Any schedule already running is stopped first.

        Raises:
            ValueError: If ``interval`` is not positive.
        """
        seconds = self._config.scan.interval_seconds if interval is None else interval
        if seconds <= 0:
            raise ValueError("Scan interval must be greater than zero.")

        with self._schedule_lock:
            self._stop_locked()
            stop_event = threading.Event()
            worker = threading.Thread(
                target=self._run_loop,
                args=(base_path, seconds, stop_event),
                name=f"docwatch-scan-{base_path}",
                daemon=True,
            )
            self._stop_event = stop_event
            self._worker = worker
            worker.start()
        LOGGER.info("Started scanning %s every %.1fs", base_path, seconds)

    def stop_scanning(self, timeout: float | None = None) -> None:
        """Prevent further scheduled cycles; safe to call repeatedly.

        An in-flight cycle is not interrupted. When ``timeout`` is given, wait
        up to that many seconds for the worker to finish it.
        """
        with self._schedule_lock:
            worker = self._stop_locked()
        if worker is not None and timeout is not None and worker is not threading.current_thread():
            worker.join(timeout)

    def refresh_file(self, name: str, base_path: str) -> FileInfo:
        """Drop cached data for one document and fetch it again."""
        url = self._pipeline.document_url(base_path, name)
        self._fetcher.invalidate(url)
        return self._fetcher.get_file_info(url)

    def get_cached_content(self, name: str, base_path: str) -> Optional[str]:
        """Return the body of the last successful fetch of ``name``, if any.

        Bodies of documents missing from the latest scan are dropped when that
        scan completes.
        """
        info = self._fetcher.cached_info(self._pipeline.document_url(base_path, name))
        return info.content if info is not None else None

    def cleanup_cache(self, max_age: float | None = None) -> int:
        """Evict existence cache entries older than ``max_age`` seconds.

        Returns:
            int: Number of evicted entries.
        """
        age = self._config.cache.cleanup_max_age_seconds if max_age is None else max_age
        return self._fetcher.cleanup_cache(age)

    def close(self) -> None:
        """Stop scanning and release transport resources."""
        self.stop_scanning()
        close = getattr(self._transport, "close", None)
        if callable(close):
            close()

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _stop_locked(self) -> Optional[threading.Thread]:
        worker = self._worker
        if self._stop_event is not None:
            self._stop_event.set()
        self._stop_event = None
        self._worker = None
        return worker

    def _run_loop(self, base_path: str, interval: float, stop_event: threading.Event) -> None:
        """Run cycles until ``stop_event`` is set."""
        while not stop_event.is_set():
            try:
                self.perform_scan(base_path)
            except Exception:  # pragma: no cover - perform_scan already guards
                LOGGER.exception("Unexpected failure in scan loop for %s", base_path)
            if stop_event.wait(interval):
                break
        LOGGER.debug("Scan loop for %s exited", base_path)

    def _invoke_change_handler(self, report: ChangeReport) -> None:
        handler = self._handler
        if handler is None:
            return
        try:
            handler(report)
        except Exception:
            LOGGER.exception("Change handler raised an exception")


__all__ = ["ChangeHandler", "WatchService"]
