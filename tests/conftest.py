import json

import pytest

from mtool.core.config import reset_settings


@pytest.fixture(autouse=True)
def fast_settings(tmp_path_factory, monkeypatch):
    """Isolate settings from the user's config and skip the settle pause."""
    settings_file = tmp_path_factory.mktemp("settings") / "settings.json"
    settings_file.write_text(json.dumps({"settle_delay": 0}), encoding="utf-8")
    monkeypatch.setenv("MTOOL_SETTINGS_PATH", str(settings_file))
    monkeypatch.setenv("MTOOL_IGNORE_LOCAL_SETTINGS", "1")
    reset_settings()
    yield
    reset_settings()
