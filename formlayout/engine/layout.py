"""Component model and nesting rules.

``FormLayout`` owns the flat component collection (creation order doubles as
paint order for top-level components) and every rule about how components
relate to each other:

  * **Coordinates** — a component with a parent stores its position relative
    to that section; ``absolute_position`` walks up the parent chain (any
    depth) to recover canvas coordinates.
  * **Creation** — ``create`` snaps the drop point, assigns the next id,
    converts into the parent's space and clamps the new box fully inside the
    parent. Sections are always created top-level, so creation never nests
    a section inside a section.
  * **Removal** — ``remove`` cascades through children and unlinks the
    component from its parent, so the parent/children back-references stay
    consistent.
  * **Lookup** — ``section_at`` resolves the drop target for a point (the
    deepest containing section wins) and ``component_at`` the topmost
    component for a hit test.

Stale ids are tolerated everywhere: lookups return ``None`` and removal of a
missing id is a no-op. Overlap avoidance is layered on top in
``placement.py``.
"""

from __future__ import annotations

import logging

from .geometry import Rect, clamp, rect_contains_point, snap_to_grid
from .types import (
    DEFAULT_LABELS,
    SECTION,
    Component,
    check_kind,
    default_attributes,
    default_size,
)

log = logging.getLogger(__name__)


class FormLayout:
    def __init__(self, components: list[Component] | None = None) -> None:
        self.components: list[Component] = list(components or [])
        self.next_id: int = (
            max((c.id for c in self.components), default=0) + 1
        )

    def __len__(self) -> int:
        return len(self.components)

    def __iter__(self):
        return iter(self.components)

    # -- lookup --

    def get(self, component_id: int | None) -> Component | None:
        if component_id is None:
            return None
        for c in self.components:
            if c.id == component_id:
                return c
        return None

    def index_of(self, component_id: int) -> int:
        for i, c in enumerate(self.components):
            if c.id == component_id:
                return i
        return -1

    def parent_of(self, component: Component) -> Component | None:
        return self.get(component.parent_section_id)

    def sections(self) -> list[Component]:
        return [c for c in self.components if c.is_section]

    def children_of(self, section: Component) -> list[Component]:
        if not section.children:
            return []
        result = []
        for child_id in section.children:
            child = self.get(child_id)
            if child is not None:
                result.append(child)
        return result

    def descendants_of(self, section: Component) -> list[Component]:
        """All components nested under section, depth-first."""
        result: list[Component] = []
        seen = {section.id}
        stack = list(reversed(self.children_of(section)))
        while stack:
            c = stack.pop()
            if c.id in seen:
                continue
            seen.add(c.id)
            result.append(c)
            stack.extend(reversed(self.children_of(c)))
        return result

    def are_related(self, a: Component, b: Component) -> bool:
        """True for a direct parent/child pair (either direction)."""
        return a.parent_section_id == b.id or b.parent_section_id == a.id

    # -- coordinates --

    def absolute_position(self, component: Component) -> tuple[float, float]:
        """Canvas coordinates of component's top-left corner."""
        x, y = component.x, component.y
        seen = {component.id}
        parent = self.parent_of(component)
        while parent is not None and parent.id not in seen:
            seen.add(parent.id)
            x += parent.x
            y += parent.y
            parent = self.parent_of(parent)
        return x, y

    def absolute_rect(self, component: Component) -> Rect:
        x, y = self.absolute_position(component)
        return Rect(x, y, component.width, component.height)

    def to_absolute(self, component: Component, rect: Rect) -> Rect:
        """Convert rect from component's coordinate space to canvas space."""
        parent = self.parent_of(component)
        if parent is None:
            return rect
        px, py = self.absolute_position(parent)
        return rect.translated(px, py)

    def depth(self, component: Component) -> int:
        """Number of ancestors; 0 for top-level components."""
        d = 0
        seen = {component.id}
        parent = self.parent_of(component)
        while parent is not None and parent.id not in seen:
            seen.add(parent.id)
            d += 1
            parent = self.parent_of(parent)
        return d

    # -- drop target and hit testing --

    def section_at(self, x: float, y: float) -> Component | None:
        """Section that should adopt a component dropped at (x, y).

        Among sections whose absolute rectangle contains the point, the
        deepest wins; ties break by smallest area, then creation order.
        """
        best: Component | None = None
        best_key: tuple[int, float] | None = None
        for section in self.sections():
            rect = self.absolute_rect(section)
            if not rect_contains_point(rect, x, y):
                continue
            key = (-self.depth(section), rect.area)
            if best_key is None or key < best_key:
                best, best_key = section, key
        return best

    def component_at(self, x: float, y: float) -> Component | None:
        """Topmost component under (x, y).

        Children paint above their parents, and later components above
        earlier ones at the same depth.
        """
        best: Component | None = None
        best_depth = -1
        for c in self.components:
            if not rect_contains_point(self.absolute_rect(c), x, y):
                continue
            d = self.depth(c)
            if d >= best_depth:
                best, best_depth = c, d
        return best

    # -- mutation --

    def create(
        self,
        kind: str,
        x: float,
        y: float,
        grid_size: int,
        parent_section_id: int | None = None,
    ) -> Component:
        """Create a component whose top-left lands at absolute (x, y).

        With a parent section, the position is converted into the parent's
        space and clamped so the component lies fully inside it. A missing
        parent id, or a section being created, yields a top-level component.
        """
        check_kind(kind)
        width, height = default_size(kind)
        snapped_x = snap_to_grid(x, grid_size)
        snapped_y = snap_to_grid(y, grid_size)

        component = Component(
            id=self.next_id,
            kind=kind,
            x=snapped_x,
            y=snapped_y,
            width=width,
            height=height,
            label=DEFAULT_LABELS[kind],
            attributes=default_attributes(kind),
            children=[] if kind == SECTION else None,
        )
        self.next_id += 1

        parent = self.get(parent_section_id)
        if parent is not None and not parent.is_section:
            parent = None
        if parent is not None and kind == SECTION:
            log.debug(
                "Section %d dropped inside section %d; created top-level",
                component.id,
                parent.id,
            )
            parent = None

        if parent is not None:
            # A section resized below the default size still fits the child.
            component.width = min(component.width, parent.width)
            component.height = min(component.height, parent.height)
            px, py = self.absolute_position(parent)
            component.x = clamp(
                snapped_x - px, 0, parent.width - component.width
            )
            component.y = clamp(
                snapped_y - py, 0, parent.height - component.height
            )
            component.parent_section_id = parent.id
            parent.add_child(component.id)
        else:
            component.x = max(0, component.x)
            component.y = max(0, component.y)

        self.components.append(component)
        return component

    def remove(self, component_id: int) -> list[int]:
        """Remove a component and (recursively) its children.

        Returns the removed ids, children first. Unknown ids are a no-op.
        """
        component = self.get(component_id)
        if component is None:
            log.debug("remove: no component with id %s", component_id)
            return []

        removed: list[int] = []
        for child_id in list(component.children or []):
            child = self.get(child_id)
            if child is not None and child.parent_section_id == component.id:
                removed.extend(self.remove(child_id))
            else:
                component.remove_child(child_id)

        parent = self.parent_of(component)
        if parent is not None:
            parent.remove_child(component.id)

        self.components = [c for c in self.components if c.id != component.id]
        removed.append(component.id)
        return removed

    def clear(self) -> None:
        self.components = []

    # -- invariants --

    def check_invariants(
        self, min_width: float = 0, min_height: float = 0
    ) -> list[str]:
        """Describe every structural problem in the layout.

        Returns an empty list for a consistent layout.
        """
        problems: list[str] = []
        ids = [c.id for c in self.components]
        if len(ids) != len(set(ids)):
            problems.append("duplicate component ids")
        if ids and self.next_id <= max(ids):
            problems.append(f"next id {self.next_id} is not above {max(ids)}")

        for c in self.components:
            if c.width < min_width or c.height < min_height:
                problems.append(
                    f"component {c.id} is {c.width}x{c.height}, "
                    f"below {min_width}x{min_height}"
                )
            if c.is_section and c.children is None:
                problems.append(f"section {c.id} has no children list")
            if not c.is_section and c.children is not None:
                problems.append(f"{c.kind} {c.id} has a children list")

            if c.parent_section_id is not None:
                parent = self.get(c.parent_section_id)
                if parent is None:
                    problems.append(
                        f"component {c.id} references missing parent "
                        f"{c.parent_section_id}"
                    )
                elif not parent.is_section:
                    problems.append(
                        f"component {c.id} has non-section parent {parent.id}"
                    )
                elif c.id not in (parent.children or []):
                    problems.append(
                        f"section {parent.id} does not list child {c.id}"
                    )
                if self._has_parent_cycle(c):
                    problems.append(f"component {c.id} is its own ancestor")

            for child_id in c.children or []:
                child = self.get(child_id)
                if child is None:
                    problems.append(
                        f"section {c.id} lists missing child {child_id}"
                    )
                elif child.parent_section_id != c.id:
                    problems.append(
                        f"section {c.id} lists child {child_id} whose "
                        f"parent is {child.parent_section_id}"
                    )
        return problems

    def _has_parent_cycle(self, component: Component) -> bool:
        seen = {component.id}
        parent = self.parent_of(component)
        while parent is not None:
            if parent.id in seen:
                return True
            seen.add(parent.id)
            parent = self.parent_of(parent)
        return False
