"""
Writing results back to disk.

`TagReconciler` owns every change a stage makes to the filesystem: it merges
the tag layers, remuxes the source into a new container at the destination,
stamps the destination's modification time, and removes the source only once
the new file is confirmed to exist. It also performs the plain moves used for
files that are routed somewhere without being modified.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from datetime import datetime
from pathlib import Path
from typing import Mapping, Optional

from .errors import CollaboratorError, FileLifecycleError
from .models import MediaFile
from .tags import merge_tags
from ..plugins.base import Muxer

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 128
# When both of these exist for one stem, the source extension is kept as an infix
ALTERNATE_EXTENSIONS = (".webm", ".mp4")

_ILLEGAL_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def sanitize_title(title: str) -> str:
    """Make a title safe to use as a filename stem."""
    return _ILLEGAL_FILENAME_CHARS.sub("_", title)[:MAX_TITLE_LENGTH]


def renamed_stem(title: str, item_id: str) -> str:
    return f"{sanitize_title(title)} - {item_id}"


def unique_path(folder: Path, stem: str, suffix: str) -> Path:
    """`folder/stem+suffix`, or the first free `stem (n)+suffix`."""
    candidate = folder / f"{stem}{suffix}"
    n = 1
    while candidate.exists():
        candidate = folder / f"{stem} ({n}){suffix}"
        n += 1
    return candidate


def move_file(source: Path, folder: Path) -> Path:
    """Move a file unmodified; the destination never overwrites anything."""
    folder.mkdir(parents=True, exist_ok=True)
    destination = unique_path(folder, source.stem, source.suffix)
    try:
        shutil.move(str(source), str(destination))
    except OSError as e:
        raise FileLifecycleError(f"failed to move {source} to {destination}: {e}") from e
    if not destination.exists():
        raise FileLifecycleError(f"{destination} missing after move")
    return destination


class TagReconciler:
    def __init__(self, muxer: Muxer, *, container_extension: str = ".mkv", temp_dir: Optional[Path] = None):
        self.muxer = muxer
        self.container_extension = "." + container_extension.lstrip(".")
        self.temp_dir = temp_dir

    def destination_for(self, source: Path, folder: Path, stem: Optional[str] = None) -> Path:
        """Compute a non-colliding container path for `source` inside `folder`."""
        infix = ""
        if all(source.with_suffix(ext).exists() for ext in ALTERNATE_EXTENSIONS):
            infix = source.suffix
        stem = stem or source.stem
        return unique_path(folder, stem, f"{infix}{self.container_extension}")

    def commit(
        self,
        media: MediaFile,
        folder: Optional[Path],
        *,
        computed: Mapping[str, str],
        provisional: Optional[Mapping[str, str]] = None,
        best_guess: Optional[Mapping[str, str]] = None,
        upload_date: Optional[datetime] = None,
        stem: Optional[str] = None,
    ) -> Path:
        """Remux `media` with merged tags into `folder` and retire the source.

        `folder=None` keeps the result beside the source: the remux goes
        through the temp folder first so the source is never overwritten.
        Without `upload_date` the source's modification time is carried over.
        """
        tags = merge_tags(computed, media.tags, provisional, best_guess)
        in_place = folder is None
        target_dir = self.temp_dir if in_place else folder
        if target_dir is None:
            raise FileLifecycleError("no temp folder configured for in-place output")
        target_dir.mkdir(parents=True, exist_ok=True)

        staged = self.destination_for(media.path, target_dir, stem)
        try:
            self.muxer.remux(media.path, staged, tags)
        except CollaboratorError:
            if staged.exists():
                staged.unlink()
            raise
        if not staged.exists():
            raise FileLifecycleError(f"muxer failed to create {staged}")

        self.stamp(staged, upload_date or media.modified)
        media.path.unlink()
        logger.debug("removed source %s", media.path)

        if in_place:
            return self.move(staged, media.path.parent)
        return staged

    def move(self, source: Path, folder: Path) -> Path:
        return move_file(source, folder)

    @staticmethod
    def stamp(path: Path, when: datetime) -> None:
        ts = when.timestamp()
        os.utime(path, (path.stat().st_atime, ts))
