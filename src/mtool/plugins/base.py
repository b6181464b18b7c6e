"""
Abstract capabilities for everything the pipeline delegates to the outside
world.

The stages only ever talk to these interfaces, so tests can hand them fakes
returning canned durations and JSON instead of running ffmpeg, yt-dlp or
touching the network. Concrete implementations live next to this module.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Mapping, Optional

from ..core.models import ItemMetadata, MatchCandidate, ProbeResult, Site


class Prober(ABC):
    @abstractmethod
    def probe(self, path: Path) -> ProbeResult:
        """Return duration and existing container tags for a media file.

        Raises CollaboratorError when the file is not a readable container.
        """


class Muxer(ABC):
    @abstractmethod
    def remux(self, source: Path, destination: Path, tags: Mapping[str, str]) -> None:
        """Copy every stream of `source` into `destination`, injecting `tags`."""


class SearchProvider(ABC):
    @abstractmethod
    def search(self, query: str, site: Site, max_results: int) -> list[MatchCandidate]:
        """Free-text search; results keep the provider's relevance order."""


class ItemMetadataProvider(ABC):
    @abstractmethod
    def fetch(self, site: Site, item_id: str) -> ItemMetadata:
        """Full metadata for a known (site, id)."""


class PageScraper(ABC):
    @abstractmethod
    def fetch_embedded_json(self, url: str) -> Optional[Mapping[str, Any]]:
        """Fetch a page and return its embedded metadata document, if any."""
