"""
Filename heuristics: best-guess (site, id) from a filename alone.

The rules form an ordered table of (predicate, extractor) pairs. They are
evaluated top to bottom and the first predicate that matches decides the
result; there is no scoring and no backtracking.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional

from .models import Identity, Site

SINGLE_FILE_SAVER_PREFIXES = ("redditsave.com",)
GALLERY_SAVER_PREFIXES = ("Imgur",)

YOUTUBE_ID_LENGTH = 11
_HYPHEN_TOKEN = re.compile(r"-\s*[A-Za-z0-9]{10,}")


def _is_snowflake(value: str) -> bool:
    """All ASCII digits and longer than a youtube id (twitter status ids)."""
    return len(value) > YOUTUBE_ID_LENGTH and value.isascii() and value.isdigit()


def _after_last_hyphen(name: str) -> str:
    return name[name.rfind("-") + 1 :].strip()


def _single_saver(name: str) -> bool:
    lowered = name.lower()
    return any(lowered.startswith(p.lower()) for p in SINGLE_FILE_SAVER_PREFIXES)


def _gallery_saver(name: str) -> bool:
    return name.startswith(GALLERY_SAVER_PREFIXES) and "[" in name and "]" in name


def _trailing_brackets(name: str) -> bool:
    return name.endswith("]") and "[" in name


def _hyphen_token(name: str) -> bool:
    return bool(_HYPHEN_TOKEN.search(name))


def _bare_token(name: str) -> bool:
    return not any(ch in name for ch in " []")


def _reddit(name: str) -> Identity:
    return Identity(Site.REDDIT, _after_last_hyphen(name))


def _imgur(name: str) -> Identity:
    start = name.find("[") + 1
    end = name.find("]", start)
    return Identity(Site.IMGUR, name[start:end] if end >= 0 else name[start:])


def _site_for_token(token: str, *, allow_youtube: bool) -> Site:
    if allow_youtube and len(token) == YOUTUBE_ID_LENGTH:
        return Site.YOUTUBE
    if _is_snowflake(token):
        return Site.TWITTER
    return Site.UNKNOWN


def _bracketed(name: str) -> Identity:
    token = name[name.rfind("[") + 1 : -1]
    return Identity(_site_for_token(token, allow_youtube=True), token)


def _youtube(name: str) -> Identity:
    return Identity(Site.YOUTUBE, _after_last_hyphen(name))


def _whole_name(name: str) -> Identity:
    return Identity(_site_for_token(name, allow_youtube=False), name)


@dataclass(frozen=True)
class Rule:
    name: str
    matches: Callable[[str], bool]
    extract: Callable[[str], Identity]


RULES: tuple[Rule, ...] = (
    Rule("single-file saver", _single_saver, _reddit),
    Rule("gallery saver", _gallery_saver, _imgur),
    Rule("trailing brackets", _trailing_brackets, _bracketed),
    Rule("hyphen token", _hyphen_token, _youtube),
    Rule("bare token", _bare_token, _whole_name),
)

UNKNOWN = Identity(Site.UNKNOWN, None)


def classify(stem: str) -> Identity:
    """Return the best-guess identity for a filename without extension."""
    return match_rule(stem)[1]


def match_rule(stem: str) -> tuple[Optional[Rule], Identity]:
    """Like `classify`, but also report which rule fired (None if none did)."""
    for rule in RULES:
        if rule.matches(stem):
            identity = rule.extract(stem)
            if not identity.id:
                identity = Identity(identity.site, None)
            return rule, identity
    return None, UNKNOWN
