"""
Find mode (`mtool -mode find`).

For files with no usable id in their name: search youtube by the cleaned
filename, accept the first ranked result whose duration (and optionally
title) agrees, and write the confirmed identity plus the result's metadata
into the file. Files without a match are moved untouched to the not-found
folder.
"""

from pathlib import Path
from typing import Optional

from ..core.config import RunConfig
from ..core.errors import ConfigurationError
from ..core.matcher import CandidateSearchMatcher, clean_search_term
from ..core.models import MediaFile, Site, parse_upload_date
from ..core.pipeline import NO_MATCH, OK, SKIPPED, FileOutcome, Stage
from ..core.reconciler import TagReconciler, renamed_stem
from ..core.tags import DATE, merge_tags
from ..plugins.base import Muxer, Prober, SearchProvider
from ..plugins.ffmpeg import FFmpegMuxer, FFprobeProber
from ..plugins.ytdlp import YtDlpProvider


class FindStage(Stage):
    title = "FIND id and metadata for files without an id even in the filename"

    def __init__(
        self,
        config: RunConfig,
        *,
        prober: Optional[Prober] = None,
        muxer: Optional[Muxer] = None,
        search: Optional[SearchProvider] = None,
    ):
        super().__init__(config)
        site = Site.parse(config.site_override) or Site.YOUTUBE
        if site is not Site.YOUTUBE:
            raise ConfigurationError("Only YouTube is supported for find mode")

        s = config.settings
        self.prober = prober or FFprobeProber(s.ffprobe_path, s.probe_timeout)
        self.reconciler = TagReconciler(
            muxer or FFmpegMuxer(s.ffmpeg_path, s.mux_timeout),
            container_extension=s.container_extension,
            temp_dir=config.temp_dir,
        )
        self.matcher = CandidateSearchMatcher(
            search or YtDlpProvider(timeout=s.fetch_timeout),
            match_title=config.match_title,
            max_results=s.search_results,
        )

    def describe(self) -> list[tuple[str, str]]:
        c = self.config
        return super().describe() + [
            ("Found output directory", str(c.found_dir or "(in place)")),
            ("Not-Found output directory", str(c.missing_dir or "(in place)")),
            ("Site override", c.site_override or "none"),
            ("Rename files?", "yes" if c.rename else "no"),
            ("Match title?", "yes" if c.match_title else "no"),
        ]

    def prepare(self) -> None:
        for folder in (self.config.found_dir, self.config.missing_dir):
            if folder is not None:
                folder.mkdir(parents=True, exist_ok=True)

    def process(self, path: Path) -> FileOutcome:
        if not clean_search_term(path.stem):
            return FileOutcome(path, SKIPPED, reason="name after cleaning is blank")

        media = MediaFile.load(path, self.prober.probe(path))
        if media.duration is None:
            return FileOutcome(path, SKIPPED, reason="no duration from probe")

        result = self.matcher.match(media)
        if result is None:
            if self.config.missing_dir is None:
                return FileOutcome(path, NO_MATCH, reason="NO MATCH")
            moved = self.reconciler.move(path, self.config.missing_dir)
            return FileOutcome(path, NO_MATCH, moved, reason="NO MATCH")

        stem = None
        if self.config.rename and result.title:
            stem = renamed_stem(result.title, result.identity.id)
        # the stamp follows the DATE tag that ends up in the file
        written = merge_tags(result.computed, media.tags, result.provisional, result.best_guess)
        try:
            upload_date = parse_upload_date(written.get(DATE))
        except ValueError:
            upload_date = None

        destination = self.reconciler.commit(
            media,
            self.config.found_dir,
            computed=result.computed,
            provisional=result.provisional,
            best_guess=result.best_guess,
            upload_date=upload_date,
            stem=stem,
        )
        return FileOutcome(path, OK, destination, reason=result.identity.id)
