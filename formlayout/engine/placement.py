"""Overlap avoidance for the form layout.

Consulted only when the session's ``allow_overlap`` setting is off. The
central question is "would this component, at this candidate geometry,
collide with anything?" (``has_overlap``); the other two functions search
for a free slot:

  * ``find_non_overlapping_position`` — scan rightward in grid steps from
    the current position, wrapping to x=0 one grid row down past
    ``search_max_x``. Gives up after ``max_search_attempts`` and returns the
    original position (a soft failure; the caller keeps the overlap).
  * ``resolve_overlaps`` — batch pass run when avoidance is switched on:
    for every overlapping pair the later-created component moves.

The read-only ``find_overlapping_pairs`` reports what is left, for checks.

Overlap is always judged in absolute canvas coordinates. A section and its
direct children never collide with each other. When the candidate is a
section, its children ride along with the candidate origin and are checked
as well, since their absolute positions move with it.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from .geometry import Rect, overlap_mask, rects_overlap
from .layout import FormLayout
from .types import Component, EditorSettings

log = logging.getLogger(__name__)


def _other_rects(
    layout: FormLayout,
    candidate: Component,
    exclude_ids: set[int],
) -> list[Rect]:
    """Absolute rects of everything candidate may collide with."""
    rects = []
    for other in layout.components:
        if other.id in exclude_ids:
            continue
        if layout.are_related(candidate, other):
            continue
        rects.append(layout.absolute_rect(other))
    return rects


def has_overlap(
    layout: FormLayout,
    candidate: Component,
    exclude_id: int | None = None,
) -> bool:
    """True if candidate collides with any unrelated component.

    ``candidate`` carries the proposed geometry in its own coordinate space
    (relative when it has a parent); it need not be the stored instance.
    ``exclude_id`` defaults to the candidate's own id.
    """
    if exclude_id is None:
        exclude_id = candidate.id
    cand_rect = layout.to_absolute(candidate, candidate.rect)

    # A section's descendants move with it, so they are checked at the
    # candidate origin rather than at their stored positions.
    stored = layout.get(candidate.id)
    subtree: list[Component] = []
    if candidate.is_section and stored is not None:
        subtree = layout.descendants_of(stored)
    skip = {exclude_id, candidate.id} | {c.id for c in subtree}

    if overlap_mask(cand_rect, _other_rects(layout, candidate, skip)).any():
        return True

    if not subtree:
        return False
    old_x, old_y = layout.absolute_position(stored)
    dx = cand_rect.x - old_x
    dy = cand_rect.y - old_y
    for child in subtree:
        child_rect = layout.absolute_rect(child).translated(dx, dy)
        if overlap_mask(child_rect, _other_rects(layout, child, skip)).any():
            return True
    return False


def _search_bounds(
    layout: FormLayout,
    component: Component,
    settings: EditorSettings,
) -> tuple[float, float | None]:
    """(max_x, max_y) for the slot search in component's own space.

    Children stay inside their section, so the parent's size bounds the
    search; top-level components wrap at ``search_max_x`` with no y bound.
    """
    parent = layout.parent_of(component)
    if parent is None:
        return settings.search_max_x, None
    return parent.width - component.width, parent.height - component.height


def find_non_overlapping_position(
    layout: FormLayout,
    component: Component,
    settings: EditorSettings,
) -> tuple[float, float]:
    """Nearest free slot scanning right then down, in grid steps.

    Returns component's own (x, y) unchanged when it is already free or
    when the attempt budget runs out. Does not mutate component.
    """
    max_x, max_y = _search_bounds(layout, component, settings)
    trial = replace(component)
    for _ in range(settings.max_search_attempts):
        if max_y is not None and trial.y > max_y:
            break
        if not has_overlap(layout, trial, component.id):
            return trial.x, trial.y
        trial.x += settings.grid_size
        if trial.x > max_x:
            trial.x = 0
            trial.y += settings.grid_size

    log.debug(
        "No free slot for component %d; keeping (%s, %s)",
        component.id,
        component.x,
        component.y,
    )
    return component.x, component.y


def resolve_overlaps(
    layout: FormLayout, settings: EditorSettings
) -> list[int]:
    """Relocate later components that overlap earlier ones.

    Pairs are visited in creation order (i < j); the later component j is
    moved. Direct parent/child pairs are skipped. Returns the ids of
    components whose position changed.
    """
    moved: list[int] = []
    comps = layout.components
    for i in range(len(comps)):
        component = comps[i]
        for j in range(i + 1, len(comps)):
            other = comps[j]
            if layout.are_related(component, other):
                continue
            if not rects_overlap(
                layout.absolute_rect(component), layout.absolute_rect(other)
            ):
                continue
            new_x, new_y = find_non_overlapping_position(
                layout, other, settings
            )
            if (new_x, new_y) != (other.x, other.y):
                other.x, other.y = new_x, new_y
                if other.id not in moved:
                    moved.append(other.id)
    if moved:
        log.info(
            "Resolved overlaps by relocating %d component(s)", len(moved)
        )
    return moved


def find_overlapping_pairs(layout: FormLayout) -> list[tuple[int, int]]:
    """Id pairs (earlier, later) of unrelated components that overlap."""
    pairs: list[tuple[int, int]] = []
    comps = layout.components
    rects = [layout.absolute_rect(c) for c in comps]
    for i in range(len(comps)):
        hits = overlap_mask(rects[i], rects[i + 1 :])
        for offset in hits.nonzero()[0]:
            j = i + 1 + int(offset)
            if not layout.are_related(comps[i], comps[j]):
                pairs.append((comps[i].id, comps[j].id))
    return pairs
