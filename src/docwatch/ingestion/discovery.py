"""Discovery strategies that guess which documents exist under a base path.

Each strategy is one heuristic signal. None of them is complete on its own;
the scan pipeline unions whatever they report. A strategy never raises: any
failure is logged and carried on the returned :class:`StrategyOutcome`.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, List, Sequence

from bs4 import BeautifulSoup

from docwatch.config.models import DiscoveryOptions

from .models import StrategyOutcome
from .transport import Transport, TransportError

LOGGER = logging.getLogger(__name__)

Prober = Callable[[str], bool]


def logical_name(reference: str, extension: str = ".xml") -> str:
    """Return the document name referenced by ``reference`` without its extension.

    The last path segment ending in ``extension`` wins (``docs/ch-1.xml`` ->
    ``ch-1``). References that merely contain the extension have its first
    occurrence removed.
    """
    reference = reference.strip()
    match = re.search(r"([^/]+?)" + re.escape(extension) + r"$", reference, re.IGNORECASE)
    if match:
        return match.group(1)
    return reference.replace(extension, "", 1)


def normalize_base_path(base_path: str) -> str:
    """Ensure ``base_path`` ends with a slash so names can be appended."""
    return base_path if base_path.endswith("/") else f"{base_path}/"


def _unique(names: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(name for name in names if name))


class DiscoveryStrategy:
    """Base class for discovery heuristics."""

    name = "strategy"

    def __init__(self, transport: Transport, options: DiscoveryOptions) -> None:
        self.transport = transport
        self.options = options

    def discover(self, base_path: str) -> StrategyOutcome:
        """Run the strategy against ``base_path``, converting errors into diagnostics."""
        try:
            outcome = self._collect(base_path)
        except Exception as exc:
            LOGGER.warning("%s discovery failed for %s: %s", self.name, base_path, exc)
            return StrategyOutcome(strategy=self.name, diagnostic=f"{type(exc).__name__}: {exc}")
        if outcome.diagnostic:
            LOGGER.warning("%s discovery for %s: %s", self.name, base_path, outcome.diagnostic)
        elif outcome.names:
            LOGGER.info("Found %d file(s) via %s discovery", len(outcome.names), self.name)
        return outcome

    def _collect(self, base_path: str) -> StrategyOutcome:
        raise NotImplementedError

    def _names_from_references(self, references: Iterable[str]) -> tuple[str, ...]:
        extension = self.options.extension
        return _unique(logical_name(ref, extension) for ref in references)


class IndexFileStrategy(DiscoveryStrategy):
    """Read plain-text index files listing one document per line.

    Index files are tried in order; the first one yielding at least one name
    is used and the rest are skipped.
    """

    name = "index"

    def _collect(self, base_path: str) -> StrategyOutcome:
        extension = self.options.extension
        for index_file in self.options.index_files:
            url = f"{base_path}{index_file}"
            try:
                response = self.transport.request("GET", url)
            except TransportError as exc:
                LOGGER.debug("Index file %s unavailable: %s", url, exc)
                continue
            if not response.ok:
                continue

            lines = (line.strip() for line in response.body.split("\n"))
            names = self._names_from_references(line for line in lines if extension in line)
            if names:
                LOGGER.debug("Using index file %s", index_file)
                return StrategyOutcome(strategy=self.name, names=names)
        return StrategyOutcome(strategy=self.name)


class DirectoryListingStrategy(DiscoveryStrategy):
    """Parse an HTML directory listing served at the base path."""

    name = "listing"

    def _collect(self, base_path: str) -> StrategyOutcome:
        try:
            response = self.transport.request("GET", base_path)
        except TransportError as exc:
            LOGGER.debug("Directory listing %s unavailable: %s", base_path, exc)
            return StrategyOutcome(strategy=self.name)

        content_type = response.header("content-type") or ""
        if not response.ok or "text/html" not in content_type:
            return StrategyOutcome(strategy=self.name)

        soup = BeautifulSoup(response.body, "html.parser")
        extension = self.options.extension
        hrefs: List[str] = []
        for anchor in soup.find_all("a", href=True):
            href = anchor.get("href")
            if not isinstance(href, str) or extension not in href:
                continue
            if href.startswith("http") or href.startswith("#"):
                continue
            hrefs.append(href)
        return StrategyOutcome(strategy=self.name, names=self._names_from_references(hrefs))


class PatternProbeStrategy(DiscoveryStrategy):
    """Probe numbered and well-known names with existence checks.

    For every number up to ``pattern_max_number`` and every prefix, both the
    plain (``unit-3``) and zero-padded (``unit-03``) spellings are probed, then
    each common name. At most ``max_probes`` probes are issued per run.
    """

    name = "pattern"

    def __init__(
        self,
        transport: Transport,
        options: DiscoveryOptions,
        *,
        prober: Prober,
    ) -> None:
        super().__init__(transport, options)
        self.prober = prober

    def candidates(self) -> List[str]:
        """Return every name this strategy would probe, in probe order."""
        opts = self.options
        names: List[str] = []
        for number in range(1, opts.pattern_max_number + 1):
            plain = str(number)
            padded = plain.zfill(opts.pattern_pad_width)
            for prefix in opts.pattern_prefixes:
                names.append(f"{prefix}{plain}")
                if padded != plain:
                    names.append(f"{prefix}{padded}")
        names.extend(opts.common_names)
        return names

    def _collect(self, base_path: str) -> StrategyOutcome:
        extension = self.options.extension
        limit = self.options.max_probes
        found: List[str] = []
        probes = 0
        for candidate in self.candidates():
            if probes >= limit:
                return StrategyOutcome(
                    strategy=self.name,
                    names=_unique(found),
                    probes=probes,
                    diagnostic=f"probe limit of {limit} reached",
                )
            probes += 1
            if self.prober(f"{base_path}{candidate}{extension}"):
                found.append(candidate)
        return StrategyOutcome(strategy=self.name, names=_unique(found), probes=probes)


class ManifestStrategy(DiscoveryStrategy):
    """Read a JSON array of logical names from the manifest file."""

    name = "manifest"

    def _collect(self, base_path: str) -> StrategyOutcome:
        url = f"{base_path}{self.options.manifest_name}"
        try:
            response = self.transport.request("GET", url)
        except TransportError as exc:
            LOGGER.debug("Manifest %s unavailable: %s", url, exc)
            return StrategyOutcome(strategy=self.name)
        if not response.ok:
            return StrategyOutcome(strategy=self.name)

        try:
            payload = response.json()
        except ValueError as exc:
            return StrategyOutcome(strategy=self.name, diagnostic=f"invalid JSON in {url}: {exc}")

        return StrategyOutcome(strategy=self.name, names=parse_manifest(payload))


def parse_manifest(payload: object) -> tuple[str, ...]:
    """Return the trimmed, non-empty string entries of a manifest array."""
    if not isinstance(payload, list):
        return ()
    return _unique(entry.strip() for entry in payload if isinstance(entry, str))


def build_strategies(
    options: DiscoveryOptions,
    transport: Transport,
    prober: Prober,
) -> Sequence[DiscoveryStrategy]:
    """Instantiate the strategies enabled in ``options`` in their configured order."""
    strategies: List[DiscoveryStrategy] = []
    for name in options.strategies:
        if name == "index":
            strategies.append(IndexFileStrategy(transport, options))
        elif name == "listing":
            strategies.append(DirectoryListingStrategy(transport, options))
        elif name == "pattern":
            strategies.append(PatternProbeStrategy(transport, options, prober=prober))
        elif name == "manifest":
            strategies.append(ManifestStrategy(transport, options))
    return strategies


__all__ = [
    "DiscoveryStrategy",
    "IndexFileStrategy",
    "DirectoryListingStrategy",
    "PatternProbeStrategy",
    "ManifestStrategy",
    "Prober",
    "build_strategies",
    "logical_name",
    "normalize_base_path",
    "parse_manifest",
]
