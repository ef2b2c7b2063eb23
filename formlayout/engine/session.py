"""Editor session: the boundary between the view layer and the engine.

One ``EditorSession`` owns a layout, its settings, the current selection and
the gesture state machine. The view layer forwards raw input to the
``on_*`` handlers and repaints from ``components`` whenever a listener
registered with ``subscribe`` receives a ``LayoutChange``.

All mutation happens synchronously inside the handler for the triggering
event. Stale ids and out-of-order gesture events are tolerated as no-ops.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Callable

from .interaction import MOVING, GestureController
from .layout import FormLayout
from .placement import find_non_overlapping_position, resolve_overlaps
from .snapshot import build_snapshot, restore_layout, snapshot_json
from .types import (
    Component,
    EditorSettings,
    LayoutSnapshot,
    attribute_names,
    check_grid_size,
)

log = logging.getLogger(__name__)

CREATED = "created"
REMOVED = "removed"
MOVED = "moved"
RESIZED = "resized"
RELOCATED = "relocated"
UPDATED = "updated"
SELECTED = "selected"
CLEARED = "cleared"
SETTINGS = "settings"

DELETE_KEYS = ("Delete",)

_EDITABLE_FIELDS = ("label", "name")


@dataclass
class LayoutChange:
    action: str
    component_ids: list[int] = field(default_factory=list)


Listener = Callable[[LayoutChange], None]


class EditorSession:
    def __init__(
        self,
        settings: EditorSettings | None = None,
        layout: FormLayout | None = None,
    ) -> None:
        self.settings = settings or EditorSettings()
        self.layout = layout or FormLayout()
        self.selected_id: int | None = None
        self.gestures = GestureController(self.layout, self.settings)
        self._listeners: list[Listener] = []

    # -- outbound --

    @property
    def components(self) -> list[Component]:
        return self.layout.components

    @property
    def selected(self) -> Component | None:
        return self.layout.get(self.selected_id)

    @property
    def gesture_mode(self) -> str:
        return self.gestures.mode

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, action: str, component_ids: list[int]) -> None:
        change = LayoutChange(action, list(component_ids))
        for listener in list(self._listeners):
            listener(change)

    def _with_descendants(self, component: Component) -> list[int]:
        ids = [component.id]
        if component.is_section:
            ids.extend(c.id for c in self.layout.descendants_of(component))
        return ids

    def snapshot(self, timestamp: str | None = None) -> LayoutSnapshot:
        return build_snapshot(self.layout, self.settings, timestamp)

    def snapshot_json(self, indent: int | None = 2) -> str:
        return snapshot_json(self.snapshot(), indent=indent)

    def load_snapshot(self, snapshot: LayoutSnapshot) -> None:
        """Replace the layout with a restored snapshot.

        Raises ValueError for a structurally invalid snapshot, leaving the
        current layout untouched.
        """
        layout = restore_layout(snapshot)
        self.gestures.end()
        self.layout = layout
        self.gestures.layout = layout
        self.selected_id = None
        self.settings.allow_overlap = snapshot.allow_overlap
        log.info("Loaded layout with %d component(s)", len(layout))
        self._notify(CLEARED, [])
        self._notify(CREATED, [c.id for c in layout.components])

    # -- selection --

    def select(self, component_id: int | None) -> None:
        if component_id is not None and self.layout.get(component_id) is None:
            log.debug("select: no component with id %s", component_id)
            component_id = None
        if component_id == self.selected_id:
            return
        self.selected_id = component_id
        self._notify(SELECTED, [] if component_id is None else [component_id])

    # -- inbound: palette and toolbar --

    def on_create_request(
        self, kind: str, drop_x: float, drop_y: float
    ) -> Component:
        """Create a component dropped at absolute canvas point (x, y).

        The deepest section under the point adopts it. With overlap
        avoidance on, the new component slides to the nearest free slot.
        """
        target = self.layout.section_at(drop_x, drop_y)
        component = self.layout.create(
            kind,
            drop_x,
            drop_y,
            self.settings.grid_size,
            target.id if target is not None else None,
        )
        if not self.settings.allow_overlap:
            component.x, component.y = find_non_overlapping_position(
                self.layout, component, self.settings
            )
        self._notify(CREATED, [component.id])
        self.select(component.id)
        return component

    def on_remove_request(self, component_id: int) -> list[int]:
        removed = self.layout.remove(component_id)
        if not removed:
            return []
        if self.gestures.state.component_id in removed:
            self.gestures.end()
        if self.selected_id in removed:
            self.selected_id = None
            self._notify(SELECTED, [])
        self._notify(REMOVED, removed)
        return removed

    def on_overlap_policy_changed(self, allow_overlap: bool) -> list[int]:
        """Switch overlap avoidance; turning it on resolves overlaps.

        Returns the ids relocated by the resolve pass.
        """
        was_allowed = self.settings.allow_overlap
        self.settings.allow_overlap = bool(allow_overlap)
        self._notify(SETTINGS, [])
        if not was_allowed or self.settings.allow_overlap:
            return []
        moved = resolve_overlaps(self.layout, self.settings)
        if moved:
            ids: list[int] = []
            for component_id in moved:
                component = self.layout.get(component_id)
                if component is not None:
                    ids.extend(self._with_descendants(component))
            self._notify(RELOCATED, ids)
        return moved

    def on_grid_size_changed(self, grid_size: int) -> None:
        """Change the snap grid. Raises ValueError for a non-positive size."""
        self.settings.grid_size = check_grid_size(grid_size)
        self._notify(SETTINGS, [])

    def on_key_down(self, key: str) -> None:
        if key in DELETE_KEYS and self.selected_id is not None:
            self.on_remove_request(self.selected_id)

    def clear(self) -> None:
        self.gestures.end()
        self.layout.clear()
        self.selected_id = None
        self._notify(CLEARED, [])

    def update_properties(self, component_id: int, **values) -> bool:
        """Edit label, name or kind-specific attributes of a component.

        Geometry is not editable here. Returns False for a stale id; raises
        ValueError for a field the component's kind does not have.
        """
        component = self.layout.get(component_id)
        if component is None:
            return False
        allowed = set(_EDITABLE_FIELDS) | set(attribute_names(component.kind))
        unknown = sorted(set(values) - allowed)
        if unknown:
            raise ValueError(
                f"{component.kind} component has no editable field(s): "
                f"{', '.join(unknown)}"
            )
        attrs = {k: v for k, v in values.items() if k not in _EDITABLE_FIELDS}
        if "options" in attrs:
            attrs["options"] = [
                o for o in (str(v).strip() for v in attrs["options"]) if o
            ]
        if attrs:
            component.attributes = replace(component.attributes, **attrs)
        for name in _EDITABLE_FIELDS:
            if name in values:
                setattr(component, name, values[name])
        self._notify(UPDATED, [component.id])
        return True

    # -- inbound: gestures --

    def on_gesture_start(
        self,
        component_id: int,
        gesture: str,
        handle: str | None,
        pointer_x: float,
        pointer_y: float,
    ) -> bool:
        """Pointer/touch-down on a component; True if a gesture began."""
        started = self.gestures.begin(
            component_id, gesture, pointer_x, pointer_y, handle
        )
        if started:
            self.select(component_id)
        return started

    def on_gesture_move(self, pointer_x: float, pointer_y: float) -> bool:
        """Pointer/touch-move. Returns True if the component changed."""
        mode = self.gestures.mode
        component = self.gestures.update(pointer_x, pointer_y)
        if component is None:
            return False
        self._notify(
            MOVED if mode == MOVING else RESIZED,
            self._with_descendants(component),
        )
        return True

    def on_gesture_end(self) -> None:
        self.gestures.end()
