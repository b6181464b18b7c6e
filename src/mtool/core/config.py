"""
Configuration management using Dynaconf and Pydantic.

Two layers live here:

- `MtoolSettings`: tool-wide settings (external binaries, timeouts, the video
  allow-list). Dynaconf loads them from `settings.toml`, `.secrets.toml`, the
  user config directory and `MTOOL_*` environment variables; Pydantic
  validates them. `get_settings` returns a singleton.
- `RunConfig`: the immutable per-run options (input/output folders and flags)
  built from the command line and handed to each stage's constructor.
"""

import json
import os
from pathlib import Path
from typing import Optional

import toml
from dynaconf import Dynaconf
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from rich.console import Console

console = Console()

USER_CONFIG_DIR = Path.home() / ".config" / "mtool"
USER_SETTINGS_FILE = USER_CONFIG_DIR / "settings.toml"
USER_SECRETS_FILE = USER_CONFIG_DIR / ".secrets.toml"

LOCAL_SETTINGS_FILE = Path("settings.toml")

settings_loader = Dynaconf(
    envvar_prefix="MTOOL",
    settings_files=[
        "settings.toml",
        ".secrets.toml",
        str(USER_SETTINGS_FILE),
        str(USER_SECRETS_FILE),
    ],
    environments=True,
    load_dotenv=True,
)

MODES = ("guess", "find", "get", "separate")

# Default destination folder names per mode: (with-result, without-result)
DEFAULT_FOLDERS = {
    "find": ("_WithMetadata", "_NoMetadata"),
    "separate": ("_WithMetadata", "_NoMetadata"),
    "get": ("_RetrievedMetadata", "_MissingMetadata"),
}
TEMP_FOLDER_NAME = "_TEMP"


class MtoolSettings(BaseModel):
    """A Pydantic model that defines and validates all tool settings."""

    ffprobe_path: str = "ffprobe"
    ffmpeg_path: str = "ffmpeg"

    probe_timeout: float = 10.0
    mux_timeout: float = 30.0
    fetch_timeout: float = 60.0

    # Pause before enumerating the input folder
    settle_delay: float = 1.0
    search_results: int = 10
    container_extension: str = ".mkv"
    video_extensions: list[str] = Field(
        default_factory=lambda: ["mkv", "webm", "mp4", "mov"]
    )

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    def is_video_file(self, path: Path) -> bool:
        allowed = {ext.lower().lstrip(".") for ext in self.video_extensions}
        return path.suffix.lower().lstrip(".") in allowed


_settings_instance: Optional[MtoolSettings] = None


def get_settings() -> MtoolSettings:
    """Get the tool settings as a singleton Pydantic model.

    Honors MTOOL_SETTINGS_PATH when set: a JSON file layered under everything
    else, used by tests and for one-off overrides.
    """
    global _settings_instance
    if _settings_instance is None:
        try:
            config_dict = {}

            env_settings_path = os.getenv("MTOOL_SETTINGS_PATH")
            if env_settings_path:
                p = Path(env_settings_path)
                if p.exists():
                    config_dict.update(json.loads(p.read_text(encoding="utf-8")) or {})

            dc_dict = settings_loader.as_dict() or {}
            config_dict.update({k.lower(): v for k, v in dc_dict.items()})

            ignore_local = os.getenv("MTOOL_IGNORE_LOCAL_SETTINGS") == "1"
            if (not ignore_local) and LOCAL_SETTINGS_FILE.exists():
                local_data = toml.loads(LOCAL_SETTINGS_FILE.read_text(encoding="utf-8")) or {}
                if isinstance(local_data, dict):
                    config_dict.update(local_data)

            _settings_instance = MtoolSettings(**config_dict)
        except ValidationError as e:
            console.print(f"[red]Configuration error:[/red]\n{e}")
            raise

    return _settings_instance


def reset_settings():
    """Reset in-memory settings (does not touch files on disk)."""
    global _settings_instance
    _settings_instance = None


class RunConfig(BaseModel):
    """Immutable options for one run of one stage."""

    mode: str
    input_dir: Path
    # guess: base folder for the per-site folders
    output_dir: Optional[Path] = None
    # find/get/separate: success and failure destinations; None = leave in place
    found_dir: Optional[Path] = None
    missing_dir: Optional[Path] = None
    site_override: Optional[str] = None
    id_override: Optional[str] = None
    rename: bool = False
    match_title: bool = False
    use_filename: bool = False
    interactive: bool = True
    settings: MtoolSettings = Field(default_factory=MtoolSettings)

    model_config = ConfigDict(frozen=True)

    @property
    def temp_dir(self) -> Path:
        return self.input_dir / TEMP_FOLDER_NAME


def build_run_config(
    mode: str,
    *,
    input_dir: Optional[Path] = None,
    output_dir: Optional[Path] = None,
    found_dir: Optional[Path] = None,
    missing_dir: Optional[Path] = None,
    site_override: Optional[str] = None,
    id_override: Optional[str] = None,
    rename: bool = False,
    match_title: bool = False,
    use_filename: bool = False,
    interactive: bool = True,
    settings: Optional[MtoolSettings] = None,
) -> RunConfig:
    """Apply the mode-specific folder defaults and freeze the result.

    When neither destination is given both defaults apply; giving only one of
    them means files with the other outcome stay where they are.
    """
    mode = (mode or "").lower()
    base = (input_dir or Path.cwd()).resolve()

    if mode == "guess":
        output_dir = (output_dir or base).resolve()
    elif mode in DEFAULT_FOLDERS and found_dir is None and missing_dir is None:
        found_name, missing_name = DEFAULT_FOLDERS[mode]
        found_dir = base / found_name
        missing_dir = base / missing_name

    return RunConfig(
        mode=mode,
        input_dir=base,
        output_dir=output_dir,
        found_dir=found_dir.resolve() if found_dir else None,
        missing_dir=missing_dir.resolve() if missing_dir else None,
        site_override=site_override.lower() if site_override else None,
        id_override=id_override or None,
        rename=rename,
        match_title=match_title,
        use_filename=use_filename,
        interactive=interactive,
        settings=settings or get_settings(),
    )
