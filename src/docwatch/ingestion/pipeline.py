"""Scan orchestration: discovery followed by per-candidate metadata fetches."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from docwatch.state.models import FileRecord, Snapshot

from .discovery import DiscoveryStrategy
from .metadata import MetadataFetcher
from .models import DiscoveryResult, StrategyOutcome

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ScanResult:
    """Snapshot produced by a scan plus the discovery that fed it.

    Attributes:
        snapshot: Existing documents and their metadata.
        discovery: Candidate names and per-strategy outcomes.
    """

    snapshot: Snapshot
    discovery: DiscoveryResult


class ScanPipeline:
    """Coordinate discovery strategies and the metadata fetcher into snapshots."""

    def __init__(
        self,
        strategies: Sequence[DiscoveryStrategy],
        fetcher: MetadataFetcher,
        *,
        extension: str = ".xml",
    ) -> None:
        self.strategies = list(strategies)
        self.fetcher = fetcher
        self.extension = extension

    def document_url(self, base_path: str, name: str) -> str:
        """Return the URL of logical document ``name`` under ``base_path``."""
        return f"{base_path}{name}{self.extension}"

    def discover(self, base_path: str) -> DiscoveryResult:
        """Run every strategy and union their names in first-seen order."""
        outcomes: list[StrategyOutcome] = []
        names: dict[str, None] = {}
        for strategy in self.strategies:
            outcome = strategy.discover(base_path)
            outcomes.append(outcome)
            names.update(dict.fromkeys(outcome.names))
        return DiscoveryResult(names=tuple(names), outcomes=outcomes)

    def scan_directory(self, base_path: str) -> Snapshot:
        """Discover candidates under ``base_path`` and record those that exist."""
        return self.run(base_path).snapshot

    def run(self, base_path: str) -> ScanResult:
        """Scan ``base_path`` and keep the discovery details alongside the snapshot.

        Never raises: a failing candidate is treated as absent and a failing
        discovery yields an empty snapshot.
        """
        LOGGER.info("Scanning directory: %s", base_path)
        try:
            discovery = self.discover(base_path)
        except Exception:
            LOGGER.exception("Directory scan failed for %s", base_path)
            return ScanResult(snapshot=Snapshot.empty(base_path), discovery=DiscoveryResult())

        records: list[FileRecord] = []
        for name in discovery.names:
            url = self.document_url(base_path, name)
            try:
                info = self.fetcher.get_file_info(url)
            except Exception as exc:
                LOGGER.warning("Fetching %s failed: %s", url, exc)
                continue
            if not info.exists:
                continue
            records.append(
                FileRecord(
                    name=name,
                    url=url,
                    fingerprint=info.fingerprint or "",
                    last_modified=info.last_modified or "",
                    size=info.size,
                )
            )

        LOGGER.debug(
            "Scan of %s: %d candidate(s), %d existing", base_path, len(discovery.names), len(records)
        )
        return ScanResult(
            snapshot=Snapshot(records=tuple(records), base_path=base_path),
            discovery=discovery,
        )


__all__ = ["ScanPipeline", "ScanResult"]
