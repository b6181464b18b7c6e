"""
The directory loop shared by every run mode.

A stage creates its destination folders once, the loop pauses briefly, lists
the input folder once, and hands each video file to the stage in turn. A file
is fully processed (and usually moved) before the next one is looked at.
Errors are isolated per file: they are logged and the loop moves on. Only
`RunAborted` ends the run early.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .config import RunConfig
from .errors import MtoolError, RunAborted

logger = logging.getLogger(__name__)

OK = "ok"
REJECTED = "rejected"
NO_MATCH = "no-match"
SKIPPED = "skipped"
IGNORED = "ignored"
FAILED = "failed"


@dataclass
class FileOutcome:
    source: Path
    status: str
    destination: Optional[Path] = None
    reason: Optional[str] = None
    error_class: Optional[str] = None


@dataclass
class RunReport:
    outcomes: list[FileOutcome] = field(default_factory=list)

    def add(self, outcome: FileOutcome) -> None:
        self.outcomes.append(outcome)

    def counts(self) -> Counter:
        return Counter(o.status for o in self.outcomes)

    def by_status(self, status: str) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.status == status]


class Stage(ABC):
    """One run mode. Subclasses take a `RunConfig` and their collaborators."""

    title = ""

    def __init__(self, config: RunConfig):
        self.config = config

    def describe(self) -> list[tuple[str, str]]:
        return [("Input directory", str(self.config.input_dir))]

    def prepare(self) -> None:
        """Create destination folders; runs once before enumeration."""

    @abstractmethod
    def process(self, path: Path) -> FileOutcome:
        """Handle one video file completely."""


def _log_outcome(outcome: FileOutcome) -> None:
    extra = {
        "file": outcome.source,
        "destination": outcome.destination,
        "status": outcome.status,
        "reason": outcome.reason,
        "error_class": outcome.error_class,
    }
    where = f"-> {outcome.destination}" if outcome.destination else "kept in place"
    label = outcome.status.upper()
    if outcome.reason:
        label = f"{label}: {outcome.reason}"
    if outcome.error_class:
        label = f"{label} ({outcome.error_class})"
    level = logging.INFO if outcome.status in (OK, NO_MATCH, SKIPPED) else logging.WARNING
    logger.log(level, "%s %s [%s]", outcome.source, where, label, extra=extra)


def run_stage(stage: Stage) -> RunReport:
    config = stage.config
    settings = config.settings
    stage.prepare()

    time.sleep(settings.settle_delay)

    report = RunReport()
    files = sorted(p for p in config.input_dir.iterdir() if p.is_file())
    for path in files:
        if not settings.is_video_file(path):
            logger.debug("%s [IGNORE: NOT A VIDEO FILE]", path)
            report.add(FileOutcome(path, IGNORED))
            continue
        try:
            outcome = stage.process(path)
        except RunAborted:
            raise
        except MtoolError as e:
            outcome = FileOutcome(path, FAILED, reason=str(e), error_class=type(e).__name__)
            logger.error(
                "Failed to handle file %s with %s: %s",
                path,
                type(e).__name__,
                e,
                extra={"file": path, "error_class": type(e).__name__, "status": FAILED},
            )
            report.add(outcome)
            continue
        except Exception as e:
            outcome = FileOutcome(path, FAILED, reason=str(e), error_class=type(e).__name__)
            logger.exception(
                "Unexpected error handling file %s",
                path,
                extra={"file": path, "error_class": type(e).__name__, "status": FAILED},
            )
            report.add(outcome)
            continue
        _log_outcome(outcome)
        report.add(outcome)
    return report
