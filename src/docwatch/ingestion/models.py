"""Ingestion data models."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class FileInfo(BaseModel):
    """Result of fetching one remote document.

    Attributes:
        exists: Whether the document was fetched successfully.
        content: Response body when the document exists.
        fingerprint: Content fingerprint when the document exists.
        last_modified: Opaque modification token from the response headers.
        size: Length of ``content`` in characters.
    """

    model_config = ConfigDict(frozen=True)

    exists: bool
    content: Optional[str] = None
    fingerprint: Optional[str] = None
    last_modified: Optional[str] = None
    size: int = 0

    @classmethod
    def missing(cls) -> "FileInfo":
        """Return the record used for documents that could not be fetched."""
        return cls(exists=False)


class StrategyOutcome(BaseModel):
    """Names produced by one discovery strategy during a single run.

    Attributes:
        strategy: Strategy identifier (``index``, ``listing``, ...).
        names: Logical names found, in discovery order without duplicates.
        diagnostic: Explanation when the strategy failed or was cut short.
        probes: Number of existence probes issued.
    """

    model_config = ConfigDict(frozen=True)

    strategy: str
    names: Tuple[str, ...] = ()
    diagnostic: Optional[str] = None
    probes: int = 0

    @property
    def ok(self) -> bool:
        return self.diagnostic is None


class DiscoveryResult(BaseModel):
    """Union of every strategy's names plus the per-strategy outcomes."""

    model_config = ConfigDict(frozen=True)

    names: Tuple[str, ...] = ()
    outcomes: List[StrategyOutcome] = Field(default_factory=list)

    def sources(self) -> Dict[str, List[str]]:
        """Map each logical name to the strategies that reported it."""
        mapping: Dict[str, List[str]] = {}
        for outcome in self.outcomes:
            for name in outcome.names:
                mapping.setdefault(name, []).append(outcome.strategy)
        return mapping


__all__ = ["FileInfo", "StrategyOutcome", "DiscoveryResult"]
