"""
yt-dlp plugin: catalog search and per-item metadata for youtube.

Both operations go through `yt_dlp.YoutubeDL.extract_info` with downloads
disabled. Network reads are bounded by `timeout` (yt-dlp's socket timeout);
nothing is retried.
"""

from __future__ import annotations

import logging
from typing import Any

from yt_dlp import YoutubeDL
from yt_dlp.utils import DownloadError, ExtractorError

from ..core.errors import (
    CollaboratorTimeout,
    NotFound,
    ProviderParseFailure,
    UnsupportedSite,
)
from ..core.models import ItemMetadata, MatchCandidate, Site
from .base import ItemMetadataProvider, SearchProvider

logger = logging.getLogger(__name__)

SEARCH_PREFIXES = {Site.YOUTUBE: "ytsearch"}
WATCH_URL = "https://www.youtube.com/watch?v={id}"


class YtDlpProvider(SearchProvider, ItemMetadataProvider):
    def __init__(self, timeout: float = 60.0):
        self.timeout = timeout

    def options(self) -> dict[str, Any]:
        return {
            "quiet": True,
            "no_warnings": True,
            "skip_download": True,
            "noplaylist": True,
            "cachedir": False,
            "socket_timeout": self.timeout,
        }

    def extract(self, url: str) -> dict[str, Any]:
        logger.debug("yt-dlp extract_info %s", url)
        try:
            with YoutubeDL(self.options()) as ydl:
                info = ydl.extract_info(url, download=False)
        except DownloadError as e:
            message = str(e).strip()
            if "timed out" in message.lower():
                raise CollaboratorTimeout("yt-dlp took too long") from e
            raise NotFound(message.splitlines()[-1] if message else "yt-dlp returned no data") from e
        except ExtractorError as e:
            raise ProviderParseFailure(f"couldn't parse metadata: {e}") from e
        if not isinstance(info, dict):
            raise ProviderParseFailure("unexpected metadata from yt-dlp")
        return info

    def search(self, query: str, site: Site, max_results: int) -> list[MatchCandidate]:
        prefix = SEARCH_PREFIXES.get(site)
        if prefix is None:
            raise UnsupportedSite(f"search is not implemented for {site.value}")
        data = self.extract(f"{prefix}{max_results}:{query}")

        candidates = []
        for entry in data.get("entries") or []:
            if not isinstance(entry, dict) or not entry.get("id"):
                continue
            meta = ItemMetadata.from_ytdlp(entry)
            candidates.append(
                MatchCandidate(
                    id=meta.id,
                    title=meta.title or "",
                    duration=meta.duration,
                    rank=len(candidates),
                    metadata=meta,
                )
            )
        return candidates

    def fetch(self, site: Site, item_id: str) -> ItemMetadata:
        if site is not Site.YOUTUBE:
            raise UnsupportedSite(f"metadata lookup is not implemented for {site.value}")
        return ItemMetadata.from_ytdlp(self.extract(WATCH_URL.format(id=item_id)))
