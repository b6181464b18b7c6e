"""
ffprobe/ffmpeg wrappers.

`FFprobeProber` reads the container duration and global tags;
`FFmpegMuxer` copies all streams into a new container and injects tags.
Both run the binaries through `subprocess` with a hard timeout.
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Mapping

from ..core.errors import CollaboratorError, CollaboratorTimeout
from ..core.models import ProbeResult
from .base import Muxer, Prober

logger = logging.getLogger(__name__)


class FFprobeProber(Prober):
    def __init__(self, binary: str = "ffprobe", timeout: float = 10.0):
        self.binary = binary
        self.timeout = timeout

    def probe(self, path: Path) -> ProbeResult:
        cmd = [
            self.binary,
            "-v",
            "quiet",
            "-print_format",
            "json",
            "-show_format",
            "-i",
            str(path),
        ]
        try:
            cp = subprocess.run(
                cmd, capture_output=True, text=True, check=False, timeout=self.timeout
            )
        except subprocess.TimeoutExpired as e:
            raise CollaboratorTimeout(f"ffprobe took too long on {path.name}") from e
        except OSError as e:
            raise CollaboratorError(f"cannot run {self.binary}: {e}") from e
        if cp.returncode != 0:
            raise CollaboratorError(cp.stderr.strip() or f"ffprobe failed on {path.name}")
        try:
            data = json.loads(cp.stdout or "{}")
        except json.JSONDecodeError as e:
            raise CollaboratorError(f"invalid ffprobe output for {path.name}") from e
        fmt = data.get("format")
        if not isinstance(fmt, dict):
            raise CollaboratorError("invalid ffprobe result")

        duration = None
        if fmt.get("duration") is not None:
            try:
                duration = float(fmt["duration"])
            except (TypeError, ValueError):
                duration = None
        raw_tags = fmt.get("tags") or {}
        tags = {str(k): str(v) for k, v in raw_tags.items()} if isinstance(raw_tags, dict) else {}
        return ProbeResult(duration=duration, tags=tags)


class FFmpegMuxer(Muxer):
    def __init__(self, binary: str = "ffmpeg", timeout: float = 30.0):
        self.binary = binary
        self.timeout = timeout

    def build_command(self, source: Path, destination: Path, tags: Mapping[str, str]) -> list[str]:
        cmd = [
            self.binary,
            "-nostdin",
            "-v",
            "error",
            "-i",
            str(source),
            "-c:v",
            "copy",
            "-c:a",
            "copy",
            "-c:s",
            "copy",
            "-map",
            "0",
        ]
        for key, value in tags.items():
            cmd.extend(["-metadata", f"{key}={value}"])
        cmd.append(str(destination))
        return cmd

    def remux(self, source: Path, destination: Path, tags: Mapping[str, str]) -> None:
        cmd = self.build_command(source, destination, tags)
        logger.debug("ffmpeg %s -> %s (%d tags)", source, destination, len(tags))
        try:
            cp = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
                cwd=str(source.parent),
            )
        except subprocess.TimeoutExpired as e:
            raise CollaboratorTimeout("ffmpeg took too long") from e
        except OSError as e:
            raise CollaboratorError(f"cannot run {self.binary}: {e}") from e
        if cp.returncode != 0:
            raise CollaboratorError(cp.stderr.strip() or "ffmpeg failed")
