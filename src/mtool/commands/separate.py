"""
Separate mode (`mtool -mode separate`).

Splits a folder into files that already carry a source URL tag and files
that don't. Files are moved as they are; nothing is remuxed.
"""

from pathlib import Path
from typing import Optional

from ..core.config import RunConfig
from ..core.pipeline import OK, FileOutcome, Stage
from ..core.reconciler import move_file
from ..core.tags import source_url
from ..plugins.base import Prober
from ..plugins.ffmpeg import FFprobeProber

WITH_METADATA = "WITH-METADATA"
NO_METADATA = "NO-METADATA"


class SeparateStage(Stage):
    title = "Separate files with metadata from files without"

    def __init__(self, config: RunConfig, *, prober: Optional[Prober] = None):
        super().__init__(config)
        s = config.settings
        self.prober = prober or FFprobeProber(s.ffprobe_path, s.probe_timeout)

    def describe(self) -> list[tuple[str, str]]:
        c = self.config
        return super().describe() + [
            ("With-Metadata output directory", str(c.found_dir or "(in place)")),
            ("No-Metadata output directory", str(c.missing_dir or "(in place)")),
        ]

    def prepare(self) -> None:
        for folder in (self.config.found_dir, self.config.missing_dir):
            if folder is not None:
                folder.mkdir(parents=True, exist_ok=True)

    def process(self, path: Path) -> FileOutcome:
        probe = self.prober.probe(path)
        has_metadata = source_url(probe.tags) is not None
        label = WITH_METADATA if has_metadata else NO_METADATA
        folder = self.config.found_dir if has_metadata else self.config.missing_dir
        if folder is None:
            return FileOutcome(path, OK, reason=label)
        return FileOutcome(path, OK, move_file(path, folder), reason=label)
