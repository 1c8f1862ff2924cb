"""Tests for the periodic watch service."""

from __future__ import annotations

import json
import threading

import pytest

from docwatch.config import DocwatchConfig
from docwatch.config.models import DiscoveryOptions
from docwatch.state import ChangeReport, Snapshot
from docwatch.watch import WatchService


def _config() -> DocwatchConfig:
    return DocwatchConfig(
        discovery=DiscoveryOptions(strategies=["index", "manifest"]),
    )


def _service(transport, clock) -> WatchService:
    return WatchService(_config(), transport=transport, clock=clock)


def _publish(transport, base_url: str, documents: dict[str, str]) -> None:
    transport.serve(f"{base_url}chapters.json", json.dumps(sorted(documents)))
    for name, body in documents.items():
        transport.serve(f"{base_url}{name}.xml", body, headers={"Last-Modified": "t1"})


def test_perform_scan_reports_and_notifies(transport, clock, base_url: str) -> None:
    _publish(transport, base_url, {"ch1": "<a/>", "ch2": "<b/>"})
    service = _service(transport, clock)
    received: list[ChangeReport] = []
    service.set_change_handler(received.append)

    first = service.perform_scan(base_url)

    assert first.has_changes
    assert sorted(record.name for record in first.added) == ["ch1", "ch2"]
    assert received == [first]
    assert service.last_snapshot.names() == ["ch1", "ch2"]

    second = service.perform_scan(base_url)

    assert not second.has_changes
    assert received == [first]

    transport.serve(f"{base_url}ch1.xml", "<a>edited</a>", headers={"Last-Modified": "t1"})
    transport.remove(f"{base_url}ch2.xml")
    third = service.perform_scan(base_url)

    assert [entry.name for entry in third.modified] == ["ch1"]
    assert third.modified[0].change_flags.content_changed
    assert third.modified[0].change_flags.size_changed
    assert not third.modified[0].change_flags.time_changed
    assert [record.name for record in third.removed] == ["ch2"]
    assert received[-1] == third


def test_change_handler_is_single_slot(transport, clock, base_url: str) -> None:
    _publish(transport, base_url, {"ch1": "<a/>"})
    service = _service(transport, clock)
    first: list[ChangeReport] = []
    second: list[ChangeReport] = []

    service.set_change_handler(first.append)
    service.set_change_handler(second.append)
    service.perform_scan(base_url)

    assert first == []
    assert len(second) == 1

    service.set_change_handler(None)
    transport.serve(f"{base_url}ch1.xml", "<changed/>")
    assert service.perform_scan(base_url).has_changes
    assert len(second) == 1


def test_handler_errors_do_not_break_scans(transport, clock, base_url: str) -> None:
    _publish(transport, base_url, {"ch1": "<a/>"})
    service = _service(transport, clock)

    def _explode(report: ChangeReport) -> None:
        raise RuntimeError("consumer bug")

    service.set_change_handler(_explode)

    report = service.perform_scan(base_url)

    assert report.has_changes
    assert service.last_snapshot.names() == ["ch1"]


def test_failed_cycle_reports_no_changes(
    transport, clock, base_url: str, monkeypatch: pytest.MonkeyPatch
) -> None:
    _publish(transport, base_url, {"ch1": "<a/>"})
    service = _service(transport, clock)
    service.perform_scan(base_url)
    retained = service.last_snapshot
    calls: list[ChangeReport] = []
    service.set_change_handler(calls.append)

    def _fail(base_path: str) -> Snapshot:
        raise RuntimeError("orchestrator crashed")

    monkeypatch.setattr(service.pipeline, "scan_directory", _fail)

    report = service.perform_scan(base_url)

    assert report == ChangeReport.empty()
    assert calls == []
    assert service.last_snapshot is retained


def test_refresh_file_bypasses_caches(transport, clock, base_url: str) -> None:
    _publish(transport, base_url, {"ch1": "<v1/>"})
    service = _service(transport, clock)
    service.perform_scan(base_url)
    assert service.get_cached_content("ch1", base_url) == "<v1/>"

    transport.serve(f"{base_url}ch1.xml", "<v2/>")
    info = service.refresh_file("ch1", base_url)

    assert info.exists and info.content == "<v2/>"
    assert service.get_cached_content("ch1", base_url) == "<v2/>"
    assert service.get_cached_content("unknown", base_url) is None


def test_refresh_file_missing_document(transport, clock, base_url: str) -> None:
    service = _service(transport, clock)

    info = service.refresh_file("nowhere", base_url)

    assert info.exists is False
    assert service.get_cached_content("nowhere", base_url) is None


def test_cached_content_follows_latest_scan(transport, clock, base_url: str) -> None:
    _publish(transport, base_url, {"ch1": "<a/>", "ch2": "<b/>"})
    service = _service(transport, clock)
    service.perform_scan(base_url)
    assert service.get_cached_content("ch2", base_url) == "<b/>"

    _publish(transport, base_url, {"ch1": "<a/>"})
    transport.remove(f"{base_url}ch2.xml")
    service.perform_scan(base_url)

    assert service.get_cached_content("ch1", base_url) == "<a/>"
    assert service.get_cached_content("ch2", base_url) is None


def test_cached_content_is_dropped_when_base_path_changes(
    transport, clock, base_url: str
) -> None:
    other = "http://mirror.example/xml/"
    _publish(transport, base_url, {"ch1": "<a/>"})
    _publish(transport, other, {"ch9": "<z/>"})
    service = _service(transport, clock)

    service.perform_scan(base_url)
    service.perform_scan(other)

    assert service.get_cached_content("ch1", base_url) is None
    assert service.get_cached_content("ch9", other) == "<z/>"


def test_cleanup_cache_uses_configured_default(transport, clock, base_url: str) -> None:
    service = _service(transport, clock)
    service.fetcher.test_file_exists(f"{base_url}a.xml")
    clock.advance(120)
    service.fetcher.test_file_exists(f"{base_url}b.xml")

    assert service.cleanup_cache() == 0
    assert service.cleanup_cache(max_age=60) == 1

    clock.advance(3601)
    assert service.cleanup_cache() == 1
    assert len(service.fetcher.existence_cache) == 0


def test_cleanup_cache_while_existence_checks_run_on_another_thread(
    transport, base_url: str
) -> None:
    service = WatchService(_config(), transport=transport)
    errors: list[BaseException] = []
    finished = threading.Event()

    def _check_many() -> None:
        try:
            for index in range(5000):
                service.fetcher.test_file_exists(f"{base_url}doc-{index}.xml")
        except BaseException as exc:  # pragma: no cover - only on regression
            errors.append(exc)
        finally:
            finished.set()

    worker = threading.Thread(target=_check_many)
    worker.start()
    try:
        while not finished.is_set():
            try:
                service.cleanup_cache(max_age=3600)
                service.refresh_file("doc-0", base_url)
            except RuntimeError as exc:  # pragma: no cover - only on regression
                errors.append(exc)
                break
    finally:
        worker.join(timeout=30)

    assert errors == []
    assert not worker.is_alive()


def test_services_do_not_share_state(transport, clock, base_url: str) -> None:
    _publish(transport, base_url, {"ch1": "<a/>"})
    first = _service(transport, clock)
    second = _service(transport, clock)

    first.perform_scan(base_url)

    assert second.last_snapshot.records == ()
    assert second.perform_scan(base_url).has_changes


def test_start_and_stop_scanning(transport, clock, base_url: str) -> None:
    _publish(transport, base_url, {"ch1": "<a/>"})
    service = _service(transport, clock)
    notified = threading.Event()
    service.set_change_handler(lambda report: notified.set())

    service.start_scanning(base_url, interval=60)
    try:
        assert notified.wait(timeout=5)
        assert service.is_scanning
    finally:
        service.stop_scanning(timeout=5)

    assert not service.is_scanning
    service.stop_scanning()
    assert service.last_snapshot.names() == ["ch1"]


def test_start_scanning_replaces_active_schedule(transport, clock, base_url: str) -> None:
    service = _service(transport, clock)

    service.start_scanning(base_url, interval=60)
    first_worker = service._worker
    service.start_scanning(base_url, interval=60)
    try:
        assert service._worker is not first_worker
        assert first_worker is not None
        first_worker.join(timeout=5)
        assert not first_worker.is_alive()
    finally:
        service.stop_scanning(timeout=5)


def test_start_scanning_rejects_non_positive_interval(transport, clock, base_url: str) -> None:
    service = _service(transport, clock)

    with pytest.raises(ValueError):
        service.start_scanning(base_url, interval=0)
    assert not service.is_scanning
