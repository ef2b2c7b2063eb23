"""Flatten a layout into its serializable snapshot, and back.

The snapshot is the only exported artifact:

    {"components": [{id, type, label, x, y, width, height, options,
                     parentSectionId, children, name, properties}, ...],
     "allowOverlap": bool, "timestamp": ISO-8601, "schemaVersion": 1}

Component records keep creation order and each component's own coordinate
space (relative for children). ``restore_layout`` rebuilds a ``FormLayout``
and refuses snapshots whose parent/children references are inconsistent,
since every engine algorithm assumes they are.
"""

from __future__ import annotations

import copy
import json
from datetime import datetime, timezone

from .layout import FormLayout
from .types import EditorSettings, LayoutSnapshot

SCHEMA_VERSION = 1


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def build_snapshot(
    layout: FormLayout,
    settings: EditorSettings,
    timestamp: str | None = None,
) -> LayoutSnapshot:
    """Detached copy of the layout; later edits do not leak into it."""
    return LayoutSnapshot(
        components=copy.deepcopy(layout.components),
        allow_overlap=settings.allow_overlap,
        timestamp=timestamp if timestamp is not None else utc_timestamp(),
        schema_version=SCHEMA_VERSION,
    )


def snapshot_json(snapshot: LayoutSnapshot, indent: int | None = 2) -> str:
    return json.dumps(snapshot.to_dict(), indent=indent)


def snapshot_from_dict(d: dict) -> LayoutSnapshot:
    """Parse a snapshot dict, raising ValueError for malformed input."""
    if not isinstance(d, dict) or not isinstance(d.get("components"), list):
        raise ValueError(
            "Layout snapshot must be an object with a 'components' list"
        )
    try:
        return LayoutSnapshot.from_dict(d)
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed component record: {e!r}") from e


def restore_layout(snapshot: LayoutSnapshot) -> FormLayout:
    """Rebuild a layout from a snapshot.

    Raises ValueError for an unsupported schema version or when the
    component references are inconsistent (missing parents, one-sided
    parent/child links, cycles, duplicate ids).
    """
    if snapshot.schema_version > SCHEMA_VERSION:
        raise ValueError(
            f"Layout schema version {snapshot.schema_version} is newer than "
            f"supported version {SCHEMA_VERSION}"
        )
    layout = FormLayout(copy.deepcopy(snapshot.components))
    problems = layout.check_invariants()
    if problems:
        raise ValueError("Inconsistent layout: " + "; ".join(problems))
    return layout
