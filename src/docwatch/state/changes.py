"""Change detection between consecutive snapshots."""

from __future__ import annotations

import logging
import threading

from .models import ChangeFlags, ChangeReport, ModifiedEntry, Snapshot

LOGGER = logging.getLogger(__name__)


def compute_changes(previous: Snapshot, current: Snapshot) -> ChangeReport:
    """Diff ``current`` against ``previous``.

    Names only in ``current`` are added, names only in ``previous`` removed.
    Shared names are modified when fingerprint, last-modified token, or size
    differ, and unchanged otherwise.

    Args:
        previous: Snapshot retained from the prior scan.
        current: Snapshot produced by the latest scan.

    Returns:
        ChangeReport: Disjoint partition of both snapshots' names.
    """
    previous_map = previous.by_name()
    current_map = current.by_name()

    added = [record for name, record in current_map.items() if name not in previous_map]
    removed = [record for name, record in previous_map.items() if name not in current_map]
    modified: list[ModifiedEntry] = []
    unchanged = []

    for name, record in current_map.items():
        before = previous_map.get(name)
        if before is None:
            continue
        flags = ChangeFlags(
            content_changed=record.fingerprint != before.fingerprint,
            size_changed=record.size != before.size,
            time_changed=record.last_modified != before.last_modified,
        )
        if flags.content_changed or flags.size_changed or flags.time_changed:
            modified.append(
                ModifiedEntry(name=name, previous=before, current=record, change_flags=flags)
            )
        else:
            unchanged.append(record)

    return ChangeReport(
        has_changes=bool(added or removed or modified),
        added=added,
        removed=removed,
        modified=modified,
        unchanged=unchanged,
        all_files=list(current_map),
    )


class ChangeDetector:
    """Keep the previous snapshot and diff each new one against it."""

    def __init__(self, initial: Snapshot | None = None) -> None:
        self._previous = initial if initial is not None else Snapshot.empty()
        self._lock = threading.Lock()

    @property
    def previous(self) -> Snapshot:
        """Return the snapshot the next detection will compare against."""
        return self._previous

    def detect_changes(self, current: Snapshot) -> ChangeReport:
        """Diff ``current`` against the retained snapshot, then retain ``current``.

        The retained snapshot is replaced whether or not changes were found.
        """
        with self._lock:
            report = compute_changes(self._previous, current)
            self._previous = current

        if report.has_changes:
            LOGGER.info(
                "Scan detected changes: added=%d removed=%d modified=%d unchanged=%d",
                len(report.added),
                len(report.removed),
                len(report.modified),
                len(report.unchanged),
            )
            if report.modified:
                LOGGER.debug("Modified files: %s", [entry.name for entry in report.modified])
        return report


__all__ = ["ChangeDetector", "compute_changes"]
