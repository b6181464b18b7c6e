"""
Metadata verification for files with a known or guessed identity.

`resolve_identity` decides which (site, id) to trust for a file, and
`MetadataVerifier.verify` fetches canonical metadata for it and checks it
against what is already known locally (upload date, duration). Anything that
doesn't line up raises a `RejectionError` subclass; the caller quarantines
the file instead of guessing.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional

from . import tags as T
from .errors import (
    DateMismatch,
    DurationMismatch,
    MalformedId,
    MissingIdentity,
    NotFound,
    ProviderParseFailure,
    UnsupportedSite,
)
from .models import UPLOAD_DATE_FORMAT, Identity, MediaFile, Site, parse_upload_date
from ..plugins.base import ItemMetadataProvider, PageScraper
from ..plugins.imgur import FLAT_URL, GALLERY_URL

logger = logging.getLogger(__name__)

VERIFY_DURATION_EPSILON = 2.0
IMGUR_DATE_TOLERANCE = timedelta(hours=24)

YOUTUBE_ID = re.compile(r"[A-Za-z0-9_\-]{11}")
YOUTUBE_WATCH = re.compile(r"watch\?v=([A-Za-z0-9_\-]+)")


@dataclass(frozen=True)
class VerifiedMetadata:
    identity: Identity
    title: Optional[str]
    upload_date: Optional[datetime]
    tags: Mapping[str, str]


def _youtube_from_purl(purl: Optional[str]) -> Optional[Identity]:
    if not purl:
        return None
    lowered = purl.lower()
    if "youtube" not in lowered and "youtu.be" not in lowered:
        return None
    match = YOUTUBE_WATCH.search(purl)
    return Identity(Site.YOUTUBE, match.group(1) if match else None)


def _parse_site(value: Optional[str]) -> Optional[Site]:
    site = Site.parse(value)
    if site is Site.UNKNOWN and value.strip().lower() != Site.UNKNOWN.value:
        raise UnsupportedSite(f"site {value.strip().lower()} not implemented")
    return site


def resolve_identity(
    media: MediaFile,
    *,
    site_override: Optional[str] = None,
    id_override: Optional[str] = None,
    use_filename: bool = False,
) -> Identity:
    """Pick the identity to verify, in priority order.

    1. explicit overrides from the caller
    2. a confirmed MTOOL_ID / MTOOL_SITE pair
    3. a youtube watch URL in PURL
    4. the best-guess tags
    5. the filename itself (only with `use_filename`)

    The id and its site come from the same source; an override replaces
    whichever part it names. Raises MissingIdentity when either is missing and
    UnsupportedSite for a site name outside the known set.
    """
    tags = media.tags
    source: Optional[Identity] = None

    if tags.get(T.MTOOL_ID):
        source = Identity(_parse_site(tags.get(T.MTOOL_SITE)), tags[T.MTOOL_ID])
    if source is None:
        source = _youtube_from_purl(T.source_url(tags))
    if source is None and tags.get(T.MTOOL_BESTGUESS_ID):
        source = Identity(_parse_site(tags.get(T.MTOOL_BESTGUESS_SITE)), tags[T.MTOOL_BESTGUESS_ID])
    if source is None and use_filename:
        source = Identity(_parse_site(tags.get(T.MTOOL_BESTGUESS_SITE)), media.stem)

    site = _parse_site(site_override) or (source.site if source else None)
    item_id = id_override or (source.id if source else None)
    if site is None or not item_id:
        raise MissingIdentity()
    return Identity(site, item_id)


def known_upload_date(media: MediaFile) -> Optional[datetime]:
    """The DATE tag already on the file, if it parses as yyyyMMdd."""
    try:
        return parse_upload_date(media.tags.get(T.DATE))
    except ValueError:
        logger.warning("ignoring unparsable DATE tag %r on %s", media.tags.get(T.DATE), media.path)
        return None


def check_duration(known: Optional[float], fetched: Any) -> None:
    """Skip when either side is unknown; otherwise enforce the epsilon."""
    if known is None or fetched is None:
        return
    try:
        fetched = float(fetched)
    except (TypeError, ValueError):
        return
    if abs(fetched - known) > VERIFY_DURATION_EPSILON:
        raise DurationMismatch(f"failed duration check ({fetched:.2f}s vs {known:.2f}s)")


def _require(data: Mapping[str, Any], *path: str) -> Any:
    node: Any = data
    for key in path:
        if not isinstance(node, Mapping) or node.get(key) is None:
            raise ProviderParseFailure(f"metadata is missing {'.'.join(path)}")
        node = node[key]
    return node


def _parse_timestamp(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as e:
        raise ProviderParseFailure(f"unparsable creation date {value!r}") from e
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class MetadataVerifier:
    def __init__(self, metadata: ItemMetadataProvider, scraper: PageScraper):
        self.metadata_provider = metadata
        self.scraper = scraper
        self._handlers = {
            Site.YOUTUBE: self.verify_youtube,
            Site.IMGUR: self.verify_imgur,
        }

    def verify(self, media: MediaFile, identity: Identity) -> VerifiedMetadata:
        handler = self._handlers.get(identity.site)
        if handler is None:
            raise UnsupportedSite(f"site {identity.site.value} not implemented")
        return handler(media, identity)

    def verify_youtube(self, media: MediaFile, identity: Identity) -> VerifiedMetadata:
        if not YOUTUBE_ID.fullmatch(identity.id):
            raise MalformedId("id not in correct format for youtube")

        meta = self.metadata_provider.fetch(Site.YOUTUBE, identity.id)
        try:
            upload_date = parse_upload_date(meta.upload_date)
        except ValueError as e:
            raise ProviderParseFailure(f"unparsable upload date {meta.upload_date!r}") from e
        if upload_date is None:
            raise ProviderParseFailure("metadata is missing upload_date")

        known_date = known_upload_date(media)
        if known_date is not None and known_date.date() != upload_date.date():
            raise DateMismatch(
                f"failed upload date check ({upload_date:{UPLOAD_DATE_FORMAT}} vs "
                f"{known_date:{UPLOAD_DATE_FORMAT}})"
            )
        check_duration(media.duration, meta.duration)

        tags = T.metadata_tags(meta)
        tags.update(T.identity_tags(identity))
        return VerifiedMetadata(identity=identity, title=meta.title, upload_date=upload_date, tags=tags)

    def fetch_imgur(self, item_id: str) -> Mapping[str, Any]:
        for template in (GALLERY_URL, FLAT_URL):
            data = self.scraper.fetch_embedded_json(template.format(id=item_id))
            if data is not None:
                return data
        raise NotFound("can't find json data in response (probably missing)")

    def verify_imgur(self, media: MediaFile, identity: Identity) -> VerifiedMetadata:
        data = self.fetch_imgur(identity.id)
        raw_created = _require(data, "created_at")
        created = _parse_timestamp(raw_created)

        known_date = known_upload_date(media)
        # a DATE tag is a UTC calendar day
        if known_date is not None and abs(created - known_date.replace(tzinfo=timezone.utc)) > IMGUR_DATE_TOLERANCE:
            raise DateMismatch(f"failed creation date check ({raw_created})")

        media_entries = data.get("media") or []
        first = media_entries[0] if media_entries and isinstance(media_entries[0], Mapping) else {}
        if first.get("type") not in (None, "image"):
            check_duration(media.duration, (first.get("metadata") or {}).get("duration"))

        title = _require(data, "title")
        description = data.get("description") or ""
        tags = {
            T.TITLE: str(title),
            T.COMMENT: str(description),
            T.ARTIST: str(_require(data, "account", "username")),
            T.DATE: created.strftime(UPLOAD_DATE_FORMAT),
            T.DESCRIPTION: str(description),
            T.PURL: str(_require(data, "url")),
            T.UPLOADER_ID: str(_require(data, "account_id")),
            T.MTOOL_RAW_DATE: str(raw_created),
        }
        tags.update(T.identity_tags(identity))
        return VerifiedMetadata(identity=identity, title=str(title), upload_date=created, tags=tags)
