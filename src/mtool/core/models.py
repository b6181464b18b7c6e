"""
Data models shared by every stage.

Plain dataclasses: the media file under consideration, the (site, id)
identity, search candidates and the per-item metadata returned by providers.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .errors import ProviderParseFailure

UPLOAD_DATE_FORMAT = "%Y%m%d"


class Site(str, enum.Enum):
    YOUTUBE = "youtube"
    IMGUR = "imgur"
    REDDIT = "reddit"
    TWITTER = "twitter"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Site"]:
        """Map a tag/CLI value onto the enum; unrecognized names become UNKNOWN."""
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class Identity:
    site: Site
    id: Optional[str]

    @property
    def is_unknown(self) -> bool:
        return self.site is Site.UNKNOWN and not self.id


@dataclass(frozen=True)
class ProbeResult:
    duration: Optional[float] = None
    tags: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class MediaFile:
    """A file on disk as seen at stage entry. Never mutated."""

    path: Path
    duration: Optional[float]
    modified: datetime
    tags: Mapping[str, str]

    @property
    def extension(self) -> str:
        return self.path.suffix

    @property
    def stem(self) -> str:
        return self.path.stem

    @classmethod
    def load(cls, path: Path, probe: ProbeResult) -> "MediaFile":
        path = path.resolve()
        return cls(
            path=path,
            duration=probe.duration,
            modified=datetime.fromtimestamp(path.stat().st_mtime),
            tags=MappingProxyType(dict(probe.tags)),
        )


def parse_upload_date(value: Optional[str]) -> Optional[datetime]:
    """Parse a `yyyyMMdd` string; None for empty input, ValueError otherwise."""
    if not value:
        return None
    return datetime.strptime(str(value).strip(), UPLOAD_DATE_FORMAT)


@dataclass
class ItemMetadata:
    """Canonical metadata for one item, as returned by a provider."""

    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    uploader: Optional[str] = None
    upload_date: Optional[str] = None
    duration: Optional[float] = None
    url: Optional[str] = None
    channel_id: Optional[str] = None

    @classmethod
    def from_ytdlp(cls, info: Mapping[str, Any]) -> "ItemMetadata":
        if not isinstance(info, Mapping) or not info.get("id"):
            raise ProviderParseFailure("metadata entry has no id")
        duration = info.get("duration")
        try:
            duration = float(duration) if duration is not None else None
        except (TypeError, ValueError):
            duration = None
        return cls(
            id=str(info["id"]),
            title=info.get("title"),
            description=info.get("description"),
            uploader=info.get("uploader"),
            upload_date=info.get("upload_date"),
            duration=duration,
            url=info.get("webpage_url"),
            channel_id=info.get("channel_id"),
        )


@dataclass(frozen=True)
class MatchCandidate:
    """One search hit; `rank` is the provider's order and is never re-sorted."""

    id: str
    title: str
    duration: Optional[float]
    rank: int
    metadata: Optional[ItemMetadata] = None
