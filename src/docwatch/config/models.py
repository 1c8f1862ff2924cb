"""Configuration models describing docwatch settings."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

StrategyName = Literal["index", "listing", "pattern", "manifest"]


class DocwatchBaseModel(BaseModel):
    """Shared configuration for docwatch Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class DiscoveryOptions(DocwatchBaseModel):
    """Options controlling how candidate documents are discovered.

    Attributes:
        extension: File extension appended to logical names when fetching.
        index_files: Ordered index file names tried by the index strategy.
        manifest_name: JSON manifest fetched by the manifest strategy.
        pattern_prefixes: Prefixes combined with numbers by the pattern strategy.
        pattern_max_number: Highest number probed for each prefix.
        pattern_pad_width: Width used for the zero-padded number variant.
        common_names: Whole names probed by the pattern strategy.
        max_probes: Upper bound on existence probes per scan cycle.
        strategies: Enabled strategies, in the order they run.
    """

    extension: str = ".xml"
    index_files: List[str] = Field(
        default_factory=lambda: [
            "index.txt",
            "files.txt",
            "chapters.txt",
            "list.txt",
            "manifest.txt",
            "xml-list.txt",
        ]
    )
    manifest_name: str = "chapters.json"
    pattern_prefixes: List[str] = Field(
        default_factory=lambda: [
            "chapter-",
            "quiz-",
            "test-",
            "questions-",
            "unit-",
            "lesson-",
            "topic-",
            "module-",
            "ch-",
            "q-",
            "t-",
            "ex-",
        ]
    )
    pattern_max_number: int = Field(default=30, ge=0)
    pattern_pad_width: int = Field(default=2, ge=1)
    common_names: List[str] = Field(
        default_factory=lambda: [
            "questions",
            "quiz",
            "test",
            "exam",
            "practice",
            "exercise",
            "problems",
            "review",
            "final",
            "midterm",
            "chapter1",
            "chapter2",
            "chapter3",
            "unit1",
            "unit2",
            "algebra",
            "geometry",
            "calculus",
            "physics",
            "chemistry",
        ]
    )
    max_probes: int = Field(default=800, ge=0)
    strategies: List[StrategyName] = Field(
        default_factory=lambda: ["index", "listing", "pattern", "manifest"]
    )

    @field_validator("strategies")
    @classmethod
    def _check_strategies(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("at least one discovery strategy must be enabled")
        duplicates = sorted({name for name in value if value.count(name) > 1})
        if duplicates:
            raise ValueError(f"strategies listed more than once: {', '.join(duplicates)}")
        return value

    @field_validator("extension")
    @classmethod
    def _check_extension(cls, value: str) -> str:
        if not value.startswith(".") or len(value) < 2:
            raise ValueError("extension must start with a dot, e.g. '.xml'")
        return value


class CacheSettings(DocwatchBaseModel):
    """Lifetimes applied to the existence cache.

    Attributes:
        existence_ttl_seconds: Age after which a cached probe result is re-probed.
        cleanup_max_age_seconds: Default age used when sweeping stale entries.
    """

    existence_ttl_seconds: float = Field(default=30.0, ge=0)
    cleanup_max_age_seconds: float = Field(default=3600.0, ge=0)


class FingerprintSettings(DocwatchBaseModel):
    """Content fingerprint configuration.

    Attributes:
        algorithm: ``rolling`` for the fast 32-bit hash, ``sha256`` for a digest.
    """

    algorithm: Literal["rolling", "sha256"] = "rolling"


class ScanSettings(DocwatchBaseModel):
    """Periodic scan behavior.

    Attributes:
        interval_seconds: Delay between consecutive scan cycles.
    """

    interval_seconds: float = Field(default=30.0, gt=0)


class TransportSettings(DocwatchBaseModel):
    """HTTP transport options.

    Attributes:
        timeout_seconds: Per-request timeout.
        user_agent: User-Agent header sent with every request.
    """

    timeout_seconds: float = Field(default=10.0, gt=0)
    user_agent: str = "docwatch"


class LoggingSettings(DocwatchBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Optional path of a rotating log file.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    file: Optional[str] = None
    max_size_mb: int = 100
    backup_count: int = 5


class CLIOptions(DocwatchBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class DocwatchConfig(DocwatchBaseModel):
    """Top-level configuration struct for docwatch.

    Attributes:
        discovery: Discovery strategy settings.
        cache: Existence cache lifetimes.
        fingerprint: Content fingerprint settings.
        scan: Periodic scan settings.
        transport: HTTP transport settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    discovery: DiscoveryOptions = Field(default_factory=DiscoveryOptions)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    fingerprint: FingerprintSettings = Field(default_factory=FingerprintSettings)
    scan: ScanSettings = Field(default_factory=ScanSettings)
    transport: TransportSettings = Field(default_factory=TransportSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "StrategyName",
    "DocwatchBaseModel",
    "DiscoveryOptions",
    "CacheSettings",
    "FingerprintSettings",
    "ScanSettings",
    "TransportSettings",
    "LoggingSettings",
    "CLIOptions",
    "DocwatchConfig",
]
