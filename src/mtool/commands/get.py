"""
Get mode (`mtool -mode get`).

For files whose identity is known (confirmed tags, a source URL, best-guess
tags or, optionally, the filename): fetch canonical metadata, cross-check it
against the file's existing date and duration, and write it in. Anything
that fails verification is moved untouched to the missing-metadata folder
with the reason logged.
"""

from pathlib import Path
from typing import Optional

from ..core.config import RunConfig
from ..core.errors import CollaboratorError, RejectionError
from ..core.models import MediaFile
from ..core.pipeline import OK, REJECTED, FileOutcome, Stage
from ..core.reconciler import TagReconciler, renamed_stem
from ..core.verifier import MetadataVerifier, resolve_identity
from ..plugins.base import ItemMetadataProvider, Muxer, PageScraper, Prober
from ..plugins.ffmpeg import FFmpegMuxer, FFprobeProber
from ..plugins.imgur import ImgurScraper
from ..plugins.ytdlp import YtDlpProvider


class GetStage(Stage):
    title = "GET metadata from the internet for files with known id"

    def __init__(
        self,
        config: RunConfig,
        *,
        prober: Optional[Prober] = None,
        muxer: Optional[Muxer] = None,
        metadata: Optional[ItemMetadataProvider] = None,
        scraper: Optional[PageScraper] = None,
    ):
        super().__init__(config)
        s = config.settings
        self.prober = prober or FFprobeProber(s.ffprobe_path, s.probe_timeout)
        self.reconciler = TagReconciler(
            muxer or FFmpegMuxer(s.ffmpeg_path, s.mux_timeout),
            container_extension=s.container_extension,
            temp_dir=config.temp_dir,
        )
        self.verifier = MetadataVerifier(
            metadata or YtDlpProvider(timeout=s.fetch_timeout),
            scraper or ImgurScraper(timeout=s.fetch_timeout),
        )

    def describe(self) -> list[tuple[str, str]]:
        c = self.config
        return super().describe() + [
            ("Retrieved-Metadata output directory", str(c.found_dir or "(in place)")),
            ("Missing-Metadata output directory", str(c.missing_dir or "(in place)")),
            ("Site override", c.site_override or "none"),
            ("Use filename as ID?", "yes" if c.use_filename else "no"),
            ("Rename files?", "yes" if c.rename else "no"),
        ]

    def prepare(self) -> None:
        for folder in (self.config.found_dir, self.config.missing_dir):
            if folder is not None:
                folder.mkdir(parents=True, exist_ok=True)

    def reject(self, path: Path, error: Exception, reason: Optional[str] = None) -> FileOutcome:
        reason = reason or str(error)
        error_class = type(error).__name__
        if self.config.missing_dir is None:
            return FileOutcome(path, REJECTED, reason=reason, error_class=error_class)
        moved = self.reconciler.move(path, self.config.missing_dir)
        return FileOutcome(path, REJECTED, moved, reason=reason, error_class=error_class)

    def process(self, path: Path) -> FileOutcome:
        try:
            media = MediaFile.load(path, self.prober.probe(path))
        except CollaboratorError as e:
            return self.reject(path, e, f"invalid probe result: {e}")

        c = self.config
        try:
            identity = resolve_identity(
                media,
                site_override=c.site_override,
                id_override=c.id_override,
                use_filename=c.use_filename,
            )
            verified = self.verifier.verify(media, identity)
        except (RejectionError, CollaboratorError) as e:
            return self.reject(path, e)

        stem = renamed_stem(verified.title, identity.id) if c.rename and verified.title else None
        destination = self.reconciler.commit(
            media,
            c.found_dir,
            computed=verified.tags,
            upload_date=verified.upload_date,
            stem=stem,
        )
        return FileOutcome(path, OK, destination, reason=f"{identity.site.value} {identity.id}")
