"""
Tag vocabulary and the layered merge used by every stage.

Tag keys are case-sensitive. Internal keys carry the `MTOOL_` prefix:
`MTOOL_ID`/`MTOOL_SITE` hold a confirmed identity, `MTOOL_BESTGUESS_*` an
unverified one.
"""

from typing import Mapping, Optional

from .models import Identity, ItemMetadata, Site

TITLE = "title"
COMMENT = "COMMENT"
ARTIST = "ARTIST"
DATE = "DATE"
DESCRIPTION = "DESCRIPTION"
PURL = "PURL"
CHANNEL_ID = "CHANNEL_ID"
UPLOADER_ID = "UPLOADER_ID"

MTOOL_ORIGINAL_FILENAME = "MTOOL_ORIGINAL_FILENAME"
MTOOL_SITE = "MTOOL_SITE"
MTOOL_ID = "MTOOL_ID"
MTOOL_BESTGUESS_SITE = "MTOOL_BESTGUESS_SITE"
MTOOL_BESTGUESS_ID = "MTOOL_BESTGUESS_ID"
MTOOL_FINDER_CONFIDENCE = "MTOOL_FINDER_CONFIDENCE"
MTOOL_RAW_DATE = "MTOOL_RAW_DATE"

# yt-dlp and some muxers write the source URL in lowercase
PURL_KEYS = (PURL, "purl")


def merge_tags(
    computed: Mapping[str, str],
    existing: Mapping[str, str],
    provisional: Optional[Mapping[str, str]] = None,
    best_guess: Optional[Mapping[str, str]] = None,
) -> dict[str, str]:
    """Merge tag layers, highest precedence first.

    Tags computed by the current stage always win, tags already on the file
    fill the remaining keys, then provisional (candidate-derived) tags, and
    best-guess keys come last without overwriting anything.
    """
    merged = {k: v for k, v in computed.items() if v is not None}
    for layer in (existing, provisional or {}, best_guess or {}):
        for key, value in layer.items():
            if value is not None and key not in merged:
                merged[key] = value
    return merged


def metadata_tags(meta: ItemMetadata) -> dict[str, str]:
    """Descriptive tags for a provider item; absent fields are left out."""
    pairs = {
        TITLE: meta.title,
        COMMENT: meta.description,
        ARTIST: meta.uploader,
        DATE: meta.upload_date,
        DESCRIPTION: meta.description,
        PURL: meta.url,
        CHANNEL_ID: meta.channel_id,
    }
    return {k: str(v) for k, v in pairs.items() if v is not None}


def identity_tags(identity: Identity) -> dict[str, str]:
    return {MTOOL_ID: identity.id, MTOOL_SITE: identity.site.value}


def best_guess_tags(identity: Identity) -> dict[str, str]:
    tags = {}
    if identity.id:
        tags[MTOOL_BESTGUESS_ID] = identity.id
    if identity.site is not Site.UNKNOWN:
        tags[MTOOL_BESTGUESS_SITE] = identity.site.value
    return tags


def source_url(tags: Mapping[str, str]) -> Optional[str]:
    for key in PURL_KEYS:
        value = tags.get(key)
        if isinstance(value, str) and value:
            return value
    return None
