import threading
from typing import Iterable, List, Sequence, Tuple

from .geometry import Rectangle


def sprite_region(placement: Rectangle, margin: int) -> Rectangle:
    """The area a sprite's bleed may spread into: its placement plus the margin on all sides."""
    return placement.inflate(margin)


def build_regions(placements: Iterable[Tuple[str, Rectangle]], margin: int) -> List[Rectangle]:
    """Regions for a finished layout, in placement order."""
    return [sprite_region(rect, margin) for _, rect in placements]


class RegionTracker:
    """Collects sprite regions while sprites are drawn from worker threads."""

    def __init__(self, margin: int):
        self.margin = margin
        self._lock = threading.Lock()
        self._regions: List[Tuple[str, Rectangle]] = []

    def add(self, name: str, placement: Rectangle) -> Rectangle:
        region = sprite_region(placement, self.margin)
        with self._lock:
            self._regions.append((name, region))
        return region

    def regions(self, order: Sequence[str] = ()) -> List[Rectangle]:
        """Regions in the given sprite order (insertion order for sprites not listed)."""
        with self._lock:
            tracked = list(self._regions)
        if order:
            rank = {name: index for index, name in enumerate(order)}
            tracked.sort(key=lambda item: rank.get(item[0], len(rank)))
        return [region for _, region in tracked]

    def __len__(self):
        with self._lock:
            return len(self._regions)
