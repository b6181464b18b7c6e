from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType

import pytest

from fakes import FakeMetadata, FakeScraper
from mtool.core.errors import (
    DateMismatch,
    DurationMismatch,
    MalformedId,
    MissingIdentity,
    NotFound,
    ProviderParseFailure,
    UnsupportedSite,
)
from mtool.core.models import Identity, ItemMetadata, MediaFile, Site
from mtool.core.verifier import MetadataVerifier, resolve_identity

YT_ID = "dQw4w9WgXcQ"


def _media(name="video.mkv", duration=None, **tags):
    return MediaFile(
        path=Path("/videos") / name,
        duration=duration,
        modified=datetime(2024, 1, 1),
        tags=MappingProxyType(tags),
    )


def _yt_item(**overrides):
    data = dict(
        id=YT_ID,
        title="Never Gonna Give You Up",
        description="The official video",
        uploader="Rick Astley",
        upload_date="20091025",
        duration=212.0,
        url=f"https://www.youtube.com/watch?v={YT_ID}",
        channel_id="UCuAXFkgsw1L7xaCfnd5JJOw",
    )
    data.update(overrides)
    return ItemMetadata(**data)


def _imgur_blob(**overrides):
    data = {
        "id": "aBcDeF1",
        "title": "Cat does a thing",
        "description": "look at it",
        "created_at": "2023-01-01T15:30:00Z",
        "url": "https://imgur.com/gallery/aBcDeF1",
        "account_id": 12345,
        "account": {"username": "catperson"},
        "media": [{"type": "video", "metadata": {"duration": 12.5}}],
    }
    data.update(overrides)
    return data


def _verifier(items=None, pages=None):
    return MetadataVerifier(FakeMetadata(items or {}), FakeScraper(pages or {}))


# --- identity resolution ---


def test_confirmed_tags_win_over_best_guess():
    media = _media(
        MTOOL_ID=YT_ID,
        MTOOL_SITE="youtube",
        MTOOL_BESTGUESS_ID="other",
        MTOOL_BESTGUESS_SITE="twitter",
    )
    assert resolve_identity(media) == Identity(Site.YOUTUBE, YT_ID)


def test_purl_watch_link_wins_over_best_guess():
    media = _media(
        PURL=f"https://www.youtube.com/watch?v={YT_ID}&t=3",
        MTOOL_BESTGUESS_ID="nope",
        MTOOL_BESTGUESS_SITE="imgur",
    )
    assert resolve_identity(media) == Identity(Site.YOUTUBE, YT_ID)


def test_best_guess_is_used_last():
    media = _media(MTOOL_BESTGUESS_ID="aBcDeF1", MTOOL_BESTGUESS_SITE="imgur")
    assert resolve_identity(media) == Identity(Site.IMGUR, "aBcDeF1")


def test_overrides_take_priority():
    media = _media(MTOOL_BESTGUESS_ID="aBcDeF1", MTOOL_BESTGUESS_SITE="imgur")
    assert resolve_identity(media, site_override="youtube") == Identity(Site.YOUTUBE, "aBcDeF1")
    assert resolve_identity(media, id_override=YT_ID, site_override="youtube") == Identity(
        Site.YOUTUBE, YT_ID
    )


def test_filename_as_id_only_when_enabled():
    media = _media(name=f"{YT_ID}.mp4")
    with pytest.raises(MissingIdentity):
        resolve_identity(media, site_override="youtube")
    assert resolve_identity(media, site_override="youtube", use_filename=True) == Identity(
        Site.YOUTUBE, YT_ID
    )


def test_missing_site_is_rejected():
    with pytest.raises(MissingIdentity):
        resolve_identity(_media(MTOOL_BESTGUESS_ID="abc"))


# --- youtube ---


def test_youtube_success_produces_confirmed_tags():
    verifier = _verifier({YT_ID: _yt_item()})
    media = _media(duration=213.5, DATE="20091025")
    result = verifier.verify(media, Identity(Site.YOUTUBE, YT_ID))

    assert result.tags["MTOOL_ID"] == YT_ID
    assert result.tags["MTOOL_SITE"] == "youtube"
    assert result.tags["title"] == "Never Gonna Give You Up"
    assert result.tags["ARTIST"] == "Rick Astley"
    assert result.tags["DATE"] == "20091025"
    assert result.tags["CHANNEL_ID"] == "UCuAXFkgsw1L7xaCfnd5JJOw"
    assert result.upload_date == datetime(2009, 10, 25)


def test_youtube_malformed_id():
    verifier = _verifier()
    with pytest.raises(MalformedId):
        verifier.verify(_media(), Identity(Site.YOUTUBE, "too-short"))
    assert verifier.metadata_provider.fetched == []


def test_youtube_date_mismatch():
    verifier = _verifier({YT_ID: _yt_item(upload_date="20230102")})
    with pytest.raises(DateMismatch):
        verifier.verify(_media(DATE="20230101"), Identity(Site.YOUTUBE, YT_ID))


@pytest.mark.parametrize("local, ok", [(210.0, True), (209.99, False), (214.0, True), (214.5, False)])
def test_youtube_duration_epsilon(local, ok):
    verifier = _verifier({YT_ID: _yt_item(duration=212.0)})
    media = _media(duration=local)
    if ok:
        verifier.verify(media, Identity(Site.YOUTUBE, YT_ID))
    else:
        with pytest.raises(DurationMismatch):
            verifier.verify(media, Identity(Site.YOUTUBE, YT_ID))


def test_youtube_unparsable_upload_date():
    verifier = _verifier({YT_ID: _yt_item(upload_date="yesterday")})
    with pytest.raises(ProviderParseFailure):
        verifier.verify(_media(), Identity(Site.YOUTUBE, YT_ID))


# --- imgur ---


def test_imgur_falls_back_to_flat_url():
    verifier = _verifier(pages={"https://imgur.com/aBcDeF1": _imgur_blob()})
    result = verifier.verify(_media(duration=12.0), Identity(Site.IMGUR, "aBcDeF1"))

    assert verifier.scraper.urls == [
        "https://imgur.com/gallery/aBcDeF1",
        "https://imgur.com/aBcDeF1",
    ]
    assert result.tags["DATE"] == "20230101"
    assert result.tags["ARTIST"] == "catperson"
    assert result.tags["UPLOADER_ID"] == "12345"
    assert result.tags["MTOOL_RAW_DATE"] == "2023-01-01T15:30:00Z"
    assert result.tags["MTOOL_SITE"] == "imgur"


def test_imgur_not_found():
    with pytest.raises(NotFound):
        _verifier().verify(_media(), Identity(Site.IMGUR, "aBcDeF1"))


def test_imgur_date_within_24_hours():
    pages = {"https://imgur.com/gallery/aBcDeF1": _imgur_blob()}
    # 2023-01-02 00:00 is 8.5 hours after creation
    _verifier(pages=pages).verify(_media(DATE="20230102"), Identity(Site.IMGUR, "aBcDeF1"))
    with pytest.raises(DateMismatch):
        _verifier(pages=pages).verify(_media(DATE="20221230"), Identity(Site.IMGUR, "aBcDeF1"))


def test_imgur_duration_check_and_missing_local_duration():
    pages = {"https://imgur.com/gallery/aBcDeF1": _imgur_blob()}
    with pytest.raises(DurationMismatch):
        _verifier(pages=pages).verify(_media(duration=20.0), Identity(Site.IMGUR, "aBcDeF1"))
    # no local duration: the check is skipped, not compared against zero
    _verifier(pages=pages).verify(_media(duration=None), Identity(Site.IMGUR, "aBcDeF1"))


def test_imgur_images_skip_duration_check():
    blob = _imgur_blob(media=[{"type": "image", "metadata": {"duration": 99}}])
    pages = {"https://imgur.com/gallery/aBcDeF1": blob}
    _verifier(pages=pages).verify(_media(duration=1.0), Identity(Site.IMGUR, "aBcDeF1"))


def test_imgur_missing_fields_are_parse_failures():
    blob = _imgur_blob()
    del blob["account"]
    pages = {"https://imgur.com/gallery/aBcDeF1": blob}
    with pytest.raises(ProviderParseFailure):
        _verifier(pages=pages).verify(_media(), Identity(Site.IMGUR, "aBcDeF1"))


# --- other sites ---


def test_twitter_best_guess_is_unsupported_not_youtube():
    media = _media(MTOOL_BESTGUESS_ID="1598765432109876543", MTOOL_BESTGUESS_SITE="twitter")
    identity = resolve_identity(media)
    assert identity.site is Site.TWITTER
    verifier = _verifier()
    with pytest.raises(UnsupportedSite):
        verifier.verify(media, identity)
    assert verifier.metadata_provider.fetched == []


@pytest.mark.parametrize(
    "kwargs, tags",
    [
        ({}, {"MTOOL_BESTGUESS_ID": "12345", "MTOOL_BESTGUESS_SITE": "vimeo"}),
        ({"site_override": "Vimeo"}, {"MTOOL_BESTGUESS_ID": "12345"}),
    ],
)
def test_unrecognized_site_name_is_kept_in_the_rejection(kwargs, tags):
    with pytest.raises(UnsupportedSite, match="vimeo"):
        resolve_identity(_media(**tags), **kwargs)


def test_youtube_id_with_trailing_newline_is_malformed():
    verifier = _verifier({YT_ID: _yt_item()})
    with pytest.raises(MalformedId):
        verifier.verify(_media(), Identity(Site.YOUTUBE, YT_ID + "\n"))


def test_imgur_creation_time_stays_in_utc():
    pages = {"https://imgur.com/gallery/aBcDeF1": _imgur_blob(created_at="2023-01-01T23:30:00-02:00")}
    result = _verifier(pages=pages).verify(_media(), Identity(Site.IMGUR, "aBcDeF1"))

    assert result.upload_date == datetime(2023, 1, 2, 1, 30, tzinfo=timezone.utc)
    assert result.tags["DATE"] == "20230102"
