"""Load and save editor settings from/to JSON files.

Settings files hold the keys of ``EditorSettings.to_dict()``; missing keys
fall back to the defaults (16px grid, overlap allowed, 800px slot-search
width, 1000 search attempts, 100x60 minimum size).

Used by:
  - ``frontend/cli.py`` — ``--settings PATH`` for every subcommand.
"""

from __future__ import annotations

import json
from pathlib import Path

from .types import EditorSettings


def load_settings(path: Path) -> EditorSettings:
    """Load a JSON settings file into a validated ``EditorSettings``.

    Raises ValueError when the file is not a JSON object or a value is out
    of range (e.g. a zero grid size).
    """
    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a JSON object")
    return EditorSettings.from_dict(data)


def save_settings(settings: EditorSettings, path: Path) -> None:
    """Write settings to a JSON file.

    Creates parent directories if they don't exist.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(settings.to_dict(), f, indent=2)
        f.write("\n")
