import json

import pytest
from pydantic import ValidationError

from mtool.core.config import (
    MtoolSettings,
    build_run_config,
    get_settings,
    reset_settings,
)


def test_settings_path_is_layered_in(tmp_path, monkeypatch):
    settings_file = tmp_path / "settings.json"
    settings_file.write_text(json.dumps({"probe_timeout": 3, "ffprobe_path": "/opt/ffprobe"}))
    monkeypatch.setenv("MTOOL_SETTINGS_PATH", str(settings_file))
    reset_settings()

    s = get_settings()
    assert s.probe_timeout == 3
    assert s.ffprobe_path == "/opt/ffprobe"
    assert s.ffmpeg_path == "ffmpeg"
    assert get_settings() is s


def test_invalid_settings_are_rejected(tmp_path, monkeypatch):
    settings_file = tmp_path / "settings.json"
    settings_file.write_text(json.dumps({"search_results": "lots"}))
    monkeypatch.setenv("MTOOL_SETTINGS_PATH", str(settings_file))
    reset_settings()

    with pytest.raises(ValidationError):
        get_settings()


def test_video_allow_list(tmp_path):
    s = MtoolSettings()
    assert s.is_video_file(tmp_path / "a.MKV")
    assert s.is_video_file(tmp_path / "a.webm")
    assert not s.is_video_file(tmp_path / "a.txt")
    assert not s.is_video_file(tmp_path / "mkv")


@pytest.mark.parametrize(
    "mode, found, missing",
    [
        ("find", "_WithMetadata", "_NoMetadata"),
        ("separate", "_WithMetadata", "_NoMetadata"),
        ("get", "_RetrievedMetadata", "_MissingMetadata"),
    ],
)
def test_default_destinations(tmp_path, mode, found, missing):
    config = build_run_config(mode, input_dir=tmp_path)
    assert config.found_dir == tmp_path.resolve() / found
    assert config.missing_dir == tmp_path.resolve() / missing
    assert config.temp_dir == tmp_path.resolve() / "_TEMP"


def test_one_destination_disables_the_other_default(tmp_path):
    config = build_run_config("get", input_dir=tmp_path, missing_dir=tmp_path / "review")
    assert config.found_dir is None
    assert config.missing_dir == (tmp_path / "review").resolve()


def test_guess_output_defaults_to_input(tmp_path):
    config = build_run_config("guess", input_dir=tmp_path)
    assert config.output_dir == tmp_path.resolve()
    assert config.found_dir is None


def test_run_config_is_frozen(tmp_path):
    config = build_run_config("get", input_dir=tmp_path, site_override="YouTube")
    assert config.site_override == "youtube"
    with pytest.raises(ValidationError):
        config.rename = True
