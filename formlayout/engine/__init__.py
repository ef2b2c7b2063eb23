"""Form layout geometry engine.

``EditorSession`` is the entry point for an interactive view layer; the
lower-level pieces (``FormLayout``, the placement functions and the gesture
controller) are importable on their own for batch tools such as the CLI.
"""

from .geometry import Rect, rects_overlap, snap_to_grid
from .layout import FormLayout
from .placement import (
    find_non_overlapping_position,
    find_overlapping_pairs,
    has_overlap,
    resolve_overlaps,
)
from .session import EditorSession, LayoutChange
from .snapshot import build_snapshot, restore_layout, snapshot_from_dict
from .types import Component, EditorSettings, LayoutSnapshot

__all__ = [
    "Component",
    "EditorSession",
    "EditorSettings",
    "FormLayout",
    "LayoutChange",
    "LayoutSnapshot",
    "Rect",
    "build_snapshot",
    "find_non_overlapping_position",
    "find_overlapping_pairs",
    "has_overlap",
    "rects_overlap",
    "resolve_overlaps",
    "restore_layout",
    "snap_to_grid",
    "snapshot_from_dict",
]
