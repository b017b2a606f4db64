"""
Baseplate sections and the merge engine.

A multi‑section baseplate is drawn as a set of axis‑aligned rectangles
on the ground plane (X/Z).  Overlapping rectangles are combined into
their bounding union so the extruded baseplate has no internal seams.
Because a merged rectangle may in turn overlap a third one, merging is
repeated until a full pass performs no merge.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Iterable, List, Optional


@dataclass(frozen=True)
class BaseplateSection:
    """Axis‑aligned rectangle in ground‑plane coordinates (mm)."""

    id: str
    min_x: float
    max_x: float
    min_z: float
    max_z: float

    def __post_init__(self) -> None:
        if self.min_x > self.max_x or self.min_z > self.max_z:
            raise ValueError(
                f"Section {self.id!r} has inverted bounds: "
                f"x=[{self.min_x}, {self.max_x}], z=[{self.min_z}, {self.max_z}]"
            )

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def depth(self) -> float:
        return self.max_z - self.min_z


def new_section_id(prefix: str = "merged") -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


def sections_overlap(a: BaseplateSection, b: BaseplateSection) -> bool:
    """True when the rectangles overlap or touch on both axes."""
    return not (
        a.max_x < b.min_x or a.min_x > b.max_x or a.max_z < b.min_z or a.min_z > b.max_z
    )


def merge_pair(a: BaseplateSection, b: BaseplateSection, new_id: Optional[str] = None) -> BaseplateSection:
    """Bounding union of two sections under a fresh identifier."""
    return BaseplateSection(
        id=new_id or new_section_id(),
        min_x=min(a.min_x, b.min_x),
        max_x=max(a.max_x, b.max_x),
        min_z=min(a.min_z, b.min_z),
        max_z=max(a.max_z, b.max_z),
    )


def merge_sections(sections: Iterable[BaseplateSection]) -> List[BaseplateSection]:
    """Merge every group of overlapping sections.

    Sections that overlap nothing are returned unchanged (same id).
    The result contains no overlapping pair, so merging it again is a
    no‑op.  Output order follows the first member of each group.
    """
    merged = list(sections)
    if len(merged) <= 1:
        return merged

    did_merge = True
    while did_merge:
        did_merge = False
        next_pass: List[BaseplateSection] = []
        used = [False] * len(merged)
        for i, section in enumerate(merged):
            if used[i]:
                continue
            current = section
            for j in range(i + 1, len(merged)):
                if used[j]:
                    continue
                if sections_overlap(current, merged[j]):
                    current = merge_pair(current, merged[j])
                    used[j] = True
                    did_merge = True
            used[i] = True
            next_pass.append(current)
        merged = next_pass
    return merged


def sections_bounds(sections: Iterable[BaseplateSection]) -> Optional[tuple[float, float, float, float]]:
    """Overall ``(min_x, max_x, min_z, max_z)`` extent, or None when empty."""
    items = list(sections)
    if not items:
        return None
    return (
        min(s.min_x for s in items),
        max(s.max_x for s in items),
        min(s.min_z for s in items),
        max(s.max_z for s in items),
    )
