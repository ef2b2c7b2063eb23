"""Move/resize gesture state machine.

A gesture runs ``idle -> moving -> idle`` or ``idle -> resizing -> idle``.
``GestureController.begin`` captures the component, the gesture, the resize
handle, and the starting pointer and geometry; every ``update`` recomputes a
candidate rectangle from the total pointer delta (not the per-event delta,
so rounding never accumulates) and runs it through the constraint pipeline:

  1. snap x and y to the grid (width and height too, for a resize);
  2. enforce the minimum size floor (and, for sections, the extent of their
     children); a floored west/north drag keeps the opposite edge fixed;
  3. clamp the position to be non-negative (a west/north edge stops at 0
     instead of dragging the far edge along);
  4. for a child, keep the box inside the parent: a move clamps the
     position, a resize caps the size at the parent's far edge so the
     edge opposite the handle never moves;
  5. with overlap avoidance on, discard the tick if the candidate collides.

Only a candidate that survives every step is written back to the
component. Nothing here raises for constraint problems: a tick is either
applied, clamped, or dropped. ``end`` returns to idle and resets every
transient field.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from .geometry import Rect, clamp, snap_to_grid
from .layout import FormLayout
from .placement import has_overlap
from .types import Component, EditorSettings

log = logging.getLogger(__name__)

IDLE = "idle"
MOVING = "moving"
RESIZING = "resizing"

MOVE = "move"
RESIZE = "resize"
GESTURES = (MOVE, RESIZE)

RESIZE_HANDLES = ("n", "s", "e", "w", "ne", "nw", "se", "sw")


@dataclass
class DragState:
    mode: str = IDLE
    component_id: int | None = None
    handle: str | None = None
    pointer_x: float = 0.0
    pointer_y: float = 0.0
    start_x: float = 0.0
    start_y: float = 0.0
    start_width: float = 0.0
    start_height: float = 0.0

    @property
    def active(self) -> bool:
        return self.mode != IDLE

    @property
    def start_rect(self) -> Rect:
        return Rect(
            self.start_x, self.start_y, self.start_width, self.start_height
        )


def check_gesture(gesture: str, handle: str | None) -> None:
    if gesture not in GESTURES:
        raise ValueError(
            f"Unknown gesture {gesture!r} (expected 'move' or 'resize')"
        )
    if gesture == RESIZE and handle not in RESIZE_HANDLES:
        raise ValueError(
            f"Unknown resize handle {handle!r} "
            f"(expected one of {', '.join(RESIZE_HANDLES)})"
        )


def move_candidate(state: DragState, dx: float, dy: float) -> Rect:
    return state.start_rect.translated(dx, dy)


def resize_candidate(state: DragState, dx: float, dy: float) -> Rect:
    """Raw resized rectangle for the active handle, before constraints."""
    handle = state.handle or ""
    x, y = state.start_x, state.start_y
    width, height = state.start_width, state.start_height
    if "e" in handle:
        width = state.start_width + dx
    if "w" in handle:
        width = state.start_width - dx
        x = state.start_x + dx
    if "s" in handle:
        height = state.start_height + dy
    if "n" in handle:
        height = state.start_height - dy
        y = state.start_y + dy
    return Rect(x, y, width, height)


def _size_floor(
    layout: FormLayout,
    component: Component,
    settings: EditorSettings,
) -> tuple[float, float]:
    min_w, min_h = settings.min_width, settings.min_height
    if component.is_section:
        for child in layout.children_of(component):
            min_w = max(min_w, child.x + child.width)
            min_h = max(min_h, child.y + child.height)
    return min_w, min_h


def apply_constraints(
    layout: FormLayout,
    component: Component,
    rect: Rect,
    settings: EditorSettings,
    handle: str | None = None,
) -> Rect | None:
    """Run a raw candidate through the constraint pipeline.

    ``rect`` is in component's own coordinate space. ``handle`` is None for
    a move, which keeps the size as is; a resize snaps the size as well.
    Returns the constrained rectangle, or None when overlap avoidance
    rejects it.
    """
    grid = settings.grid_size
    x = snap_to_grid(rect.x, grid)
    y = snap_to_grid(rect.y, grid)
    width, height = rect.width, rect.height
    if handle:
        width = snap_to_grid(width, grid)
        height = snap_to_grid(height, grid)

    min_w, min_h = _size_floor(layout, component, settings)
    handle = handle or ""
    if width < min_w:
        if "w" in handle:
            x -= min_w - width
        width = min_w
    if height < min_h:
        if "n" in handle:
            y -= min_h - height
        height = min_h

    # A west/north edge dragged past 0 stops there; the far edge stays put.
    if x < 0:
        if "w" in handle:
            width = max(min_w, width + x)
        x = 0
    if y < 0:
        if "n" in handle:
            height = max(min_h, height + y)
        y = 0

    parent = layout.parent_of(component)
    if parent is not None and handle:
        width = min(width, parent.width - x)
        height = min(height, parent.height - y)
    elif parent is not None:
        width = min(width, parent.width)
        height = min(height, parent.height)
        x = clamp(x, 0, parent.width - width)
        y = clamp(y, 0, parent.height - height)

    if not settings.allow_overlap:
        trial = replace(component, x=x, y=y, width=width, height=height)
        if has_overlap(layout, trial, component.id):
            return None

    return Rect(x, y, width, height)


class GestureController:
    """Drives one gesture at a time against a layout."""

    def __init__(self, layout: FormLayout, settings: EditorSettings) -> None:
        self.layout = layout
        self.settings = settings
        self.state = DragState()

    @property
    def mode(self) -> str:
        return self.state.mode

    def begin(
        self,
        component_id: int,
        gesture: str,
        pointer_x: float,
        pointer_y: float,
        handle: str | None = None,
    ) -> bool:
        """Start a gesture on component_id. Returns True if one started.

        Ignored while another gesture is active or when the component does
        not exist.
        """
        check_gesture(gesture, handle)
        if self.state.active:
            log.debug(
                "Ignoring %s on %s: %s gesture already active",
                gesture,
                component_id,
                self.state.mode,
            )
            return False
        component = self.layout.get(component_id)
        if component is None:
            log.debug(
                "Ignoring %s on missing component %s", gesture, component_id
            )
            return False

        self.state = DragState(
            mode=MOVING if gesture == MOVE else RESIZING,
            component_id=component.id,
            handle=handle if gesture == RESIZE else None,
            pointer_x=pointer_x,
            pointer_y=pointer_y,
            start_x=component.x,
            start_y=component.y,
            start_width=component.width,
            start_height=component.height,
        )
        return True

    def update(self, pointer_x: float, pointer_y: float) -> Component | None:
        """Apply one pointer-move tick.

        Returns the component if its geometry changed, otherwise None (no
        active gesture, component gone, tick rejected, or no net change).
        """
        if not self.state.active:
            return None
        component = self.layout.get(self.state.component_id)
        if component is None:
            log.debug(
                "Component %s vanished mid-gesture; ending gesture",
                self.state.component_id,
            )
            self.end()
            return None

        dx = pointer_x - self.state.pointer_x
        dy = pointer_y - self.state.pointer_y
        if self.state.mode == MOVING:
            raw = move_candidate(self.state, dx, dy)
        else:
            raw = resize_candidate(self.state, dx, dy)

        rect = apply_constraints(
            self.layout, component, raw, self.settings, self.state.handle
        )
        if rect is None:
            log.debug(
                "Discarded %s tick for component %d: overlap",
                self.state.mode,
                component.id,
            )
            return None
        if rect == component.rect:
            return None

        component.x, component.y = rect.x, rect.y
        component.width, component.height = rect.width, rect.height
        return component

    def end(self) -> int | None:
        """Finish the active gesture; returns the component id it targeted."""
        component_id = self.state.component_id
        self.state = DragState()
        return component_id
