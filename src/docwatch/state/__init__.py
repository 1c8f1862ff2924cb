"""Snapshot models and change detection."""

from .changes import ChangeDetector, compute_changes
from .models import ChangeFlags, ChangeReport, FileRecord, ModifiedEntry, Snapshot

__all__ = [
    "ChangeDetector",
    "compute_changes",
    "ChangeFlags",
    "ChangeReport",
    "FileRecord",
    "ModifiedEntry",
    "Snapshot",
]
