"""
Imgur page scraper.

Imgur post pages embed their metadata as an escaped JSON string inside an
inline `<script>` element. `ImgurScraper` downloads the page with `requests`
and `extract_embedded_json` pulls that document out and un-escapes it.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Mapping, Optional

import requests

from ..core.errors import CollaboratorError, CollaboratorTimeout, ProviderParseFailure
from .base import PageScraper

logger = logging.getLogger(__name__)

GALLERY_URL = "https://imgur.com/gallery/{id}"
FLAT_URL = "https://imgur.com/{id}"

_SCRIPT_PAYLOAD = re.compile(r'<script>[^"]+"{.*}"</script>')


def extract_embedded_json(html: str) -> Optional[str]:
    """Return the un-escaped JSON document embedded in a page, or None."""
    if not html or not html.strip():
        return None
    match = _SCRIPT_PAYLOAD.search(html)
    if not match:
        return None
    payload = match.group(0)
    start = payload.find("{")
    end = payload.rfind("}")
    return payload[start : end + 1].replace('\\"', '"').replace("\\\\", "\\")


class ImgurScraper(PageScraper):
    def __init__(self, timeout: float = 60.0, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_embedded_json(self, url: str) -> Optional[Mapping[str, Any]]:
        try:
            r = self.session.get(url, timeout=self.timeout)
        except requests.Timeout as e:
            raise CollaboratorTimeout(f"timed out fetching {url}") from e
        except requests.RequestException as e:
            raise CollaboratorError(f"failed to fetch {url}: {e}") from e

        blob = extract_embedded_json(r.text)
        if blob is None:
            logger.debug("no embedded metadata at %s (HTTP %s)", url, r.status_code)
            return None
        try:
            data = json.loads(blob)
        except json.JSONDecodeError as e:
            raise ProviderParseFailure("couldn't parse embedded metadata json") from e
        if not isinstance(data, dict):
            raise ProviderParseFailure("unexpected embedded metadata json")
        return data
