"""
Guess mode (`mtool -mode guess`).

Classifies files by filename alone and moves each one into a per-site folder
(`_youtube`, `_reddit`, `_imgur`, `_twitter`, `_unknown`) with its best-guess
id and site written into the container tags. Files whose name reveals
nothing are left where they are.
"""

from pathlib import Path
from typing import Optional

from ..core.classifier import match_rule
from ..core.config import RunConfig
from ..core.models import MediaFile, Site
from ..core.pipeline import OK, SKIPPED, FileOutcome, Stage
from ..core.reconciler import TagReconciler
from ..core.tags import best_guess_tags
from ..plugins.base import Muxer, Prober
from ..plugins.ffmpeg import FFmpegMuxer, FFprobeProber

SITE_FOLDERS = {
    Site.YOUTUBE: "_youtube",
    Site.REDDIT: "_reddit",
    Site.IMGUR: "_imgur",
    Site.TWITTER: "_twitter",
    Site.UNKNOWN: "_unknown",
}


class GuessStage(Stage):
    title = "Guess ID and website for files based on filename"

    def __init__(self, config: RunConfig, *, prober: Optional[Prober] = None, muxer: Optional[Muxer] = None):
        super().__init__(config)
        s = config.settings
        self.prober = prober or FFprobeProber(s.ffprobe_path, s.probe_timeout)
        self.reconciler = TagReconciler(
            muxer or FFmpegMuxer(s.ffmpeg_path, s.mux_timeout),
            container_extension=s.container_extension,
            temp_dir=config.temp_dir,
        )
        self.output_dir = config.output_dir or config.input_dir
        self.folders = {site: self.output_dir / name for site, name in SITE_FOLDERS.items()}

    def describe(self) -> list[tuple[str, str]]:
        return super().describe() + [("Output base directory", str(self.output_dir))]

    def prepare(self) -> None:
        for folder in self.folders.values():
            folder.mkdir(parents=True, exist_ok=True)

    def process(self, path: Path) -> FileOutcome:
        rule, identity = match_rule(path.stem)
        if identity.is_unknown:
            return FileOutcome(path, SKIPPED, reason="UNKNOWN ID, UNKNOWN SITE")

        media = MediaFile.load(path, self.prober.probe(path))
        destination = self.reconciler.commit(
            media,
            self.folders[identity.site],
            computed={},
            best_guess=best_guess_tags(identity),
        )
        label = f"{identity.id or 'UNKNOWN ID'}, {identity.site.value} via {rule.name}"
        return FileOutcome(path, OK, destination, reason=label)
