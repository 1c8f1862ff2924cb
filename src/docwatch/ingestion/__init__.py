"""Remote document discovery and fetching."""

from .cache import TimedCache, existence_key
from .detectors import HashComputer, rolling_fingerprint
from .discovery import (
    DirectoryListingStrategy,
    DiscoveryStrategy,
    IndexFileStrategy,
    ManifestStrategy,
    PatternProbeStrategy,
    build_strategies,
    logical_name,
    normalize_base_path,
)
from .metadata import MetadataFetcher
from .models import DiscoveryResult, FileInfo, StrategyOutcome
from .pipeline import ScanPipeline
from .transport import RequestsTransport, Transport, TransportError, TransportResponse

__all__ = [
    "TimedCache",
    "existence_key",
    "HashComputer",
    "rolling_fingerprint",
    "DiscoveryStrategy",
    "IndexFileStrategy",
    "DirectoryListingStrategy",
    "PatternProbeStrategy",
    "ManifestStrategy",
    "build_strategies",
    "logical_name",
    "normalize_base_path",
    "MetadataFetcher",
    "DiscoveryResult",
    "FileInfo",
    "StrategyOutcome",
    "ScanPipeline",
    "RequestsTransport",
    "Transport",
    "TransportError",
    "TransportResponse",
]
