from datetime import datetime
from pathlib import Path
from types import MappingProxyType

import pytest

from fakes import FakeSearch, candidate
from mtool.core.errors import RunAborted
from mtool.core.matcher import (
    CandidateSearchMatcher,
    clean_search_term,
    duration_matches,
    normalize_title,
)
from mtool.core.models import MediaFile, Site


def _media(name="funny-clip-AbCdEfGhIjK.mkv", duration=212.4, tags=None):
    return MediaFile(
        path=Path("/videos") / name,
        duration=duration,
        modified=datetime(2024, 1, 1),
        tags=MappingProxyType(dict(tags or {})),
    )


@pytest.mark.parametrize(
    "stem, term",
    [
        ("funny-clip-AbCdEfGhIjK", "funny clip"),
        ("My Video (HD) [final]", "My Video HD final"),
        ("short-id-abc", "short id abc"),
        ("under_score_name", "under score name"),
        ("!!!", ""),
    ],
)
def test_clean_search_term(stem, term):
    assert clean_search_term(stem) == term


def test_normalize_title_ignores_case_and_punctuation():
    assert normalize_title("Funny Clip!") == normalize_title("funny   clip") == "funnyclip"


def test_duration_epsilon_is_inclusive():
    assert duration_matches(100.0, candidate("a", "t", 101.0))
    assert not duration_matches(100.0, candidate("a", "t", 101.01))
    assert not duration_matches(100.0, candidate("a", "t", None))


def test_scenario_accepts_rank_zero_within_epsilon():
    search = FakeSearch([candidate("AbCdEfGhIjK", "Funny Clip", 212.9, upload_date="20230101")])
    result = CandidateSearchMatcher(search).match(_media())

    assert result is not None
    assert result.identity.id == "AbCdEfGhIjK"
    assert result.computed["MTOOL_ID"] == "AbCdEfGhIjK"
    assert result.computed["MTOOL_SITE"] == "youtube"
    assert result.provisional["MTOOL_ORIGINAL_FILENAME"] == "funny-clip-AbCdEfGhIjK.mkv"
    assert result.provisional["DATE"] == "20230101"
    assert search.queries == [("funny clip", Site.YOUTUBE, 10)]


def test_scenario_rejects_candidate_outside_epsilon():
    search = FakeSearch([candidate("AbCdEfGhIjK", "Funny Clip", 215.0)])
    assert CandidateSearchMatcher(search).match(_media()) is None


def test_provider_rank_order_is_the_tie_break():
    search = FakeSearch(
        [
            candidate("first000000", "Funny Clip", 213.5, rank=0),
            candidate("second00000", "Funny Clip", 212.4, rank=1),
            candidate("third000000", "Funny Clip", 212.5, rank=2),
        ]
    )
    result = CandidateSearchMatcher(search).match(_media())
    # first candidate is out of range, second is exact: no re-sorting by closeness
    assert result.identity.id == "second00000"


def test_every_accepted_candidate_is_within_epsilon():
    durations = [200.0, 211.3, 211.4, 213.4, 213.5, 230.0]
    for d in durations:
        search = FakeSearch([candidate("x0000000000", "Funny Clip", d)])
        result = CandidateSearchMatcher(search).match(_media())
        if result is None:
            assert abs(212.4 - d) > 1.0
        else:
            assert abs(212.4 - d) <= 1.0


def test_title_matching_mode():
    search = FakeSearch(
        [
            candidate("wrong000000", "Something Else", 212.4, rank=0),
            candidate("right000000", "FUNNY clip!!", 212.0, rank=1),
        ]
    )
    plain = CandidateSearchMatcher(search).match(_media())
    assert plain.identity.id == "wrong000000"
    assert plain.computed["MTOOL_FINDER_CONFIDENCE"] == "duration"

    strict = CandidateSearchMatcher(search, match_title=True).match(_media())
    assert strict.identity.id == "right000000"
    assert strict.computed["MTOOL_FINDER_CONFIDENCE"] == "duration+title"


def test_search_timeout_aborts_the_run():
    with pytest.raises(RunAborted):
        CandidateSearchMatcher(FakeSearch(timeout=True)).match(_media())
