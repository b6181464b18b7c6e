"""Basic tests for mtool."""

from importlib.util import find_spec


def test_import():
    """Test that package is importable without side effects."""
    assert find_spec("mtool") is not None


def test_cli_import():
    """Test that CLI can be imported."""
    try:
        from mtool.cli import app

        assert app is not None
    except ImportError:
        assert False, "Failed to import CLI"


def test_every_mode_has_a_stage():
    from mtool.commands import STAGES
    from mtool.core.config import MODES

    assert set(STAGES) == set(MODES)
