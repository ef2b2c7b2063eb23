"""Grid snapping and axis-aligned rectangle tests.

Everything the placement engine and the gesture state machine need to ask
about space goes through here:

  * ``snap_to_grid`` — round a coordinate or dimension to the active grid.
  * ``rects_overlap`` — interior intersection of two rectangles. Touching
    (shared edge or corner) is NOT counted as overlap.
  * ``rect_contains_point`` — inclusive containment, used for drop-target
    resolution and hit testing.
  * ``overlap_mask`` — vectorized ``rects_overlap`` of one rectangle against
    many, used by ``placement.py`` so the O(n²) passes stay cheap.

All rectangles handed to the overlap tests must be in absolute canvas
coordinates; converting relative (section-local) positions is the caller's
job (see ``FormLayout.absolute_rect``).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    def translated(self, dx: float, dy: float) -> Rect:
        return Rect(self.x + dx, self.y + dy, self.width, self.height)


def snap_to_grid(value: float, grid_size: int) -> int:
    """Round value to the nearest multiple of grid_size.

    Halves round up (toward +inf), so 8 snaps to 16 on a 16 grid.
    """
    return math.floor(value / grid_size + 0.5) * grid_size


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp value into [lo, hi]. When hi < lo, lo wins."""
    return max(lo, min(value, hi))


def rects_overlap(a: Rect, b: Rect) -> bool:
    """True if the interiors of two rectangles intersect."""
    return not (
        a.x >= b.right
        or a.right <= b.x
        or a.y >= b.bottom
        or a.bottom <= b.y
    )


def rect_contains_point(rect: Rect, px: float, py: float) -> bool:
    """Inclusive containment: points on the border count as inside."""
    return rect.x <= px <= rect.right and rect.y <= py <= rect.bottom


def overlap_mask(rect: Rect, others: Sequence[Rect]) -> np.ndarray:
    """Boolean array: ``rects_overlap(rect, others[i])`` for every i."""
    if not others:
        return np.zeros(0, dtype=bool)
    arr = np.array(
        [(o.x, o.y, o.right, o.bottom) for o in others], dtype=np.float64
    )
    separated = (
        (rect.x >= arr[:, 2])
        | (rect.right <= arr[:, 0])
        | (rect.y >= arr[:, 3])
        | (rect.bottom <= arr[:, 1])
    )
    return ~separated
