"""Scan state data models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class FileRecord(BaseModel):
    """Metadata describing one existing remote document at scan time."""

    model_config = ConfigDict(frozen=True)

    name: str
    url: str
    fingerprint: str
    last_modified: str
    size: int


class Snapshot(BaseModel):
    """Every document found by one scan, keyed by logical name."""

    model_config = ConfigDict(frozen=True)

    records: Tuple[FileRecord, ...] = ()
    base_path: Optional[str] = None
    scanned_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def empty(cls, base_path: Optional[str] = None) -> "Snapshot":
        return cls(base_path=base_path)

    def __len__(self) -> int:
        return len(self.records)

    def names(self) -> List[str]:
        """Return logical names in scan order."""
        return [record.name for record in self.records]

    def by_name(self) -> Dict[str, FileRecord]:
        """Return a name -> record mapping; later duplicates win."""
        return {record.name: record for record in self.records}


class ChangeFlags(BaseModel):
    """Which compared fields differ between two records of the same name."""

    model_config = ConfigDict(frozen=True)

    content_changed: bool = False
    size_changed: bool = False
    time_changed: bool = False


class ModifiedEntry(BaseModel):
    """A document present in both snapshots whose metadata differs."""

    model_config = ConfigDict(frozen=True)

    name: str
    previous: FileRecord
    current: FileRecord
    change_flags: ChangeFlags


class ChangeReport(BaseModel):
    """Structured difference between two consecutive snapshots.

    Attributes:
        has_changes: True when anything was added, removed, or modified.
        added: Records present only in the current snapshot.
        removed: Records present only in the previous snapshot.
        modified: Entries present in both whose fingerprint, size, or time differ.
        unchanged: Current records identical to their previous counterpart.
        all_files: Names in the current snapshot, in scan order.
    """

    model_config = ConfigDict(frozen=True)

    has_changes: bool = False
    added: List[FileRecord] = Field(default_factory=list)
    removed: List[FileRecord] = Field(default_factory=list)
    modified: List[ModifiedEntry] = Field(default_factory=list)
    unchanged: List[FileRecord] = Field(default_factory=list)
    all_files: List[str] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "ChangeReport":
        """Return the report used when a scan cycle produced no usable result."""
        return cls()

    def counts(self) -> Dict[str, int]:
        return {
            "added": len(self.added),
            "removed": len(self.removed),
            "modified": len(self.modified),
            "unchanged": len(self.unchanged),
        }


__all__ = [
    "FileRecord",
    "Snapshot",
    "ChangeFlags",
    "ModifiedEntry",
    "ChangeReport",
]
