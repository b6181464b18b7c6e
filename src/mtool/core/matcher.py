"""
Candidate search: find the identity of a file that has no id in its name.

The filename is cleaned into a search phrase, the search provider is asked
for ranked candidates, and the first candidate (in provider order) whose
duration agrees with the file, and optionally whose title agrees with the
filename, is accepted.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from . import tags as T
from .errors import CollaboratorTimeout, RunAborted
from .models import Identity, MatchCandidate, MediaFile, Site
from ..plugins.base import ItemMetadataProvider, SearchProvider

logger = logging.getLogger(__name__)

SEARCH_DURATION_EPSILON = 1.0
SEARCH_SITE = Site.YOUTUBE

_TRAILING_ID = re.compile(r"-\s*\w{10,}\s*$")
_NOT_ALNUM = re.compile(r"[^a-zA-Z0-9]+")


def clean_search_term(stem: str) -> str:
    """Turn a filename stem into a plain search phrase.

    A trailing `-<id>` token is cut off, then every character that is not a
    letter or digit becomes a space. May return an empty string.
    """
    if _TRAILING_ID.search(stem):
        stem = stem[: stem.rfind("-")]
    cleaned = "".join(ch if ch.isalnum() else " " for ch in stem)
    return " ".join(cleaned.split())


def normalize_title(value: str) -> str:
    return _NOT_ALNUM.sub("", value or "").lower()


def duration_matches(file_duration: float, candidate: MatchCandidate) -> bool:
    if candidate.duration is None:
        return False
    return abs(file_duration - candidate.duration) <= SEARCH_DURATION_EPSILON


@dataclass
class MatchResult:
    identity: Identity
    candidate: MatchCandidate
    computed: dict[str, str] = field(default_factory=dict)
    provisional: dict[str, str] = field(default_factory=dict)
    best_guess: dict[str, str] = field(default_factory=dict)

    @property
    def title(self) -> Optional[str]:
        return self.provisional.get(T.TITLE) or self.candidate.title or None


class CandidateSearchMatcher:
    def __init__(
        self,
        search: SearchProvider,
        *,
        match_title: bool = False,
        max_results: int = 10,
        metadata: Optional[ItemMetadataProvider] = None,
    ):
        self.search_provider = search
        self.match_title = match_title
        self.max_results = max_results
        self.metadata_provider = metadata

    def search(self, term: str) -> list[MatchCandidate]:
        try:
            return self.search_provider.search(term, SEARCH_SITE, self.max_results)
        except CollaboratorTimeout as e:
            raise RunAborted(f"search provider did not respond: {e}") from e

    def select(self, term: str, duration: float, candidates: list[MatchCandidate]) -> Optional[MatchCandidate]:
        wanted_title = normalize_title(term)
        for candidate in candidates:
            if not duration_matches(duration, candidate):
                logger.debug(
                    "candidate %s rejected: duration %s vs %.2f",
                    candidate.id,
                    candidate.duration,
                    duration,
                )
                continue
            if self.match_title and normalize_title(candidate.title) != wanted_title:
                logger.debug("candidate %s rejected: title %r", candidate.id, candidate.title)
                continue
            return candidate
        return None

    def match(self, media: MediaFile) -> Optional[MatchResult]:
        """Return the accepted candidate and its tag layers, or None for no match.

        Callers must check `media.duration` and the cleaned term beforehand.
        """
        term = clean_search_term(media.stem)
        candidates = self.search(term)
        candidate = self.select(term, media.duration, candidates)
        if candidate is None:
            return None

        identity = Identity(SEARCH_SITE, candidate.id)
        meta = candidate.metadata
        if meta is None and self.metadata_provider is not None:
            meta = self.metadata_provider.fetch(SEARCH_SITE, candidate.id)

        provisional = {T.MTOOL_ORIGINAL_FILENAME: media.path.name}
        if meta is not None:
            provisional.update(T.metadata_tags(meta))
        elif candidate.title:
            provisional[T.TITLE] = candidate.title

        computed = T.identity_tags(identity)
        computed[T.MTOOL_FINDER_CONFIDENCE] = "duration+title" if self.match_title else "duration"
        return MatchResult(
            identity=identity,
            candidate=candidate,
            computed=computed,
            provisional=provisional,
            best_guess=T.best_guess_tags(identity),
        )
