"""Run modes for the mtool CLI.

Each module provides one `Stage` subclass; `STAGES` maps the `-mode` value
to it.
"""

from .find import FindStage
from .get import GetStage
from .guess import GuessStage
from .separate import SeparateStage

STAGES = {
    "guess": GuessStage,
    "find": FindStage,
    "get": GetStage,
    "separate": SeparateStage,
}

__all__ = [
    "STAGES",
    "GuessStage",
    "FindStage",
    "GetStage",
    "SeparateStage",
]
