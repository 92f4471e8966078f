import enum
import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .geometry import Rectangle, Size

Placement = Tuple[str, Rectangle]
SizeLike = Union[Size, Tuple[int, int]]


class HeuristicType(enum.Enum):
    """Enum for placement heuristics."""
    BEST_SHORT_SIDE_FIT = 1  # Minimize the shorter leftover side
    BEST_LONG_SIDE_FIT = 2   # Minimize the longer leftover side
    BEST_AREA_FIT = 3        # Minimize the total area of leftover space
    BOTTOM_LEFT = 4          # Place at the top-most, then left-most position

    @classmethod
    def from_name(cls, name: str) -> 'HeuristicType':
        """Look up a heuristic by its command line name."""
        try:
            return HEURISTIC_NAMES[name.lower()]
        except KeyError:
            raise ValueError(f"Unknown placement heuristic: {name!r}") from None


HEURISTIC_NAMES = {
    'shortside': HeuristicType.BEST_SHORT_SIDE_FIT,
    'longside': HeuristicType.BEST_LONG_SIDE_FIT,
    'area': HeuristicType.BEST_AREA_FIT,
    'bottomleft': HeuristicType.BOTTOM_LEFT,
}


class LayoutStrategy(enum.Enum):
    """Enum for layout algorithms."""
    MAX_RECTS = 'maxrects'     # Maximal Rectangles, best of all heuristics
    SIMPLE_ROW = 'simple-row'  # Greedy row packer

    @classmethod
    def parse(cls, value: Union['LayoutStrategy', str]) -> 'LayoutStrategy':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown layout strategy: {value!r}") from None


def natural_key(s: str):
    """Sort key that orders embedded numbers by value ("b2" before "b10")."""
    return [int(t) if t.isdecimal() else t.lower() for t in re.split(r"(\d+)", s)]


def _normalize_sizes(sizes: Dict[str, SizeLike]) -> List[Tuple[str, Size]]:
    """Validate the input sizes, dropping zero-area sprites."""
    result = []
    for name, size in sizes.items():
        size = Size(*size)
        if size.width < 0 or size.height < 0:
            raise ValueError(f"Sprite {name} has negative size {size.width}×{size.height}")
        if size.width == 0 or size.height == 0:
            print(f"Skipping empty sprite: {name}")
            continue
        result.append((name, size))
    return result


def _check_canvas(max_width: int, max_height: int, margin: int) -> bool:
    """Return False for a degenerate (zero-area) canvas."""
    if margin < 0:
        raise ValueError(f"Margin must not be negative, got {margin}")
    if max_width < 0 or max_height < 0:
        raise ValueError(f"Canvas size must not be negative, got {max_width}×{max_height}")
    return max_width > 0 and max_height > 0


def calculate_occupancy(placements: Sequence[Placement], width: int, height: int) -> float:
    """Fraction of the canvas covered by placed sprites."""
    if not placements or width <= 0 or height <= 0:
        return 0.0
    total_area = sum(rect.area() for _, rect in placements)
    return total_area / (width * height)


def find_dropped(sizes: Dict[str, SizeLike], placements: Iterable[Placement]) -> List[str]:
    """Return the sprite ids that did not make it into the layout, in input order."""
    placed = {name for name, _ in placements}
    return [name for name in sizes if name not in placed]


class RowLayout:
    """Greedy row packer: tallest sprites first, left to right, top to bottom."""

    def layout(self, sizes: Dict[str, SizeLike], max_width: int, max_height: int,
               margin: int) -> List[Placement]:
        if not _check_canvas(max_width, max_height, margin):
            return []

        sprites = _normalize_sizes(sizes)
        sprites.sort(key=lambda item: natural_key(item[0]))
        sprites.sort(key=lambda item: item[1].height, reverse=True)

        result = []
        x = 0
        y = 0
        max_row_height = 0

        for name, size in sprites:
            padded_width = size.width + margin * 2
            if padded_width > max_width:
                print(f"Sprite {name} ({size.width}×{size.height}) is wider than the canvas and will be skipped")
                continue

            if x > 0 and x + padded_width > max_width:
                x = 0
                y += max_row_height + margin * 2
                max_row_height = 0

            row_height = max(max_row_height, size.height)
            if y + row_height + margin * 2 > max_height:
                print(f"Not enough space for sprite: {name}")
                break

            max_row_height = row_height
            result.append((name, Rectangle(x + margin, y + margin, size.width, size.height)))
            x += padded_width

        print(f"Row layout completed: {len(result)}/{len(sizes)} sprites placed, "
              f"occupancy: {calculate_occupancy(result, max_width, max_height):.2%}")
        return result


class MaxRectsBin:
    """Implementation of the Maximal Rectangles algorithm for a single canvas."""

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        # Start with the entire canvas as a free rectangle
        self.free_rects = [Rectangle(0, 0, width, height)]

    def find_position(self, width: int, height: int,
                      heuristic: HeuristicType) -> Optional[Rectangle]:
        """Find the best free position for a rectangle of the given size, or None if it doesn't fit."""
        best_score1 = float('inf')
        best_score2 = float('inf')
        best_rect = None

        for rect in self.free_rects:
            if rect.width >= width and rect.height >= height:
                score1, score2 = self._calculate_score(rect, width, height, heuristic)

                if ((score1 < best_score1) or
                        (score1 == best_score1 and score2 < best_score2)):
                    best_score1 = score1
                    best_score2 = score2
                    best_rect = Rectangle(rect.x, rect.y, width, height)

        return best_rect

    @staticmethod
    def _calculate_score(free_rect: Rectangle, width: int, height: int,
                         heuristic: HeuristicType) -> Tuple[int, int]:
        """Calculate the (primary, secondary) score of a candidate; lower is better."""
        leftover_width = free_rect.width - width
        leftover_height = free_rect.height - height

        if heuristic == HeuristicType.BEST_SHORT_SIDE_FIT:
            return min(leftover_width, leftover_height), max(leftover_width, leftover_height)

        if heuristic == HeuristicType.BEST_LONG_SIDE_FIT:
            return max(leftover_width, leftover_height), min(leftover_width, leftover_height)

        if heuristic == HeuristicType.BEST_AREA_FIT:
            return free_rect.area() - width * height, min(leftover_width, leftover_height)

        if heuristic == HeuristicType.BOTTOM_LEFT:
            return free_rect.y, free_rect.x

        raise ValueError(f"Unknown placement heuristic: {heuristic!r}")

    def insert(self, width: int, height: int, heuristic: HeuristicType) -> Optional[Rectangle]:
        """Try to insert a rectangle with given dimensions. Returns the used rectangle or None if it couldn't fit."""
        used_rect = self.find_position(width, height, heuristic)
        if used_rect is None:
            return None

        self._split_free_rectangles(used_rect)
        self._prune_free_rectangles()
        return used_rect

    def _split_free_rectangles(self, used_rect: Rectangle):
        """Split all free rectangles that overlap with the used rectangle."""
        new_free_rects = []

        for free_rect in self.free_rects:
            if not used_rect.intersects(free_rect):
                new_free_rects.append(free_rect)
                continue

            # Above the used rect
            if used_rect.y > free_rect.y:
                new_free_rects.append(Rectangle(
                    free_rect.x, free_rect.y,
                    free_rect.width, used_rect.y - free_rect.y))

            # Below the used rect
            if used_rect.bottom < free_rect.bottom:
                new_free_rects.append(Rectangle(
                    free_rect.x, used_rect.bottom,
                    free_rect.width, free_rect.bottom - used_rect.bottom))

            # Left of the used rect
            if used_rect.x > free_rect.x:
                new_free_rects.append(Rectangle(
                    free_rect.x, free_rect.y,
                    used_rect.x - free_rect.x, free_rect.height))

            # Right of the used rect
            if used_rect.right < free_rect.right:
                new_free_rects.append(Rectangle(
                    used_rect.right, free_rect.y,
                    free_rect.right - used_rect.right, free_rect.height))

        self.free_rects = new_free_rects

    def _prune_free_rectangles(self):
        """Remove redundant free rectangles (those completely contained within others)."""
        i = 0
        while i < len(self.free_rects):
            j = i + 1
            removed_i = False
            while j < len(self.free_rects):
                if self.free_rects[j].contains(self.free_rects[i]):
                    self.free_rects.pop(i)
                    removed_i = True
                    break
                if self.free_rects[i].contains(self.free_rects[j]):
                    self.free_rects.pop(j)
                else:
                    j += 1
            if not removed_i:
                i += 1


class PackingAttempt:
    """Outcome of packing all sprites with a single heuristic."""

    def __init__(self, heuristic: HeuristicType, placements: List[Placement], occupancy: float):
        self.heuristic = heuristic
        self.placements = placements
        self.occupancy = occupancy

    @property
    def placed_count(self) -> int:
        """Number of sprites this attempt managed to place."""
        return len(self.placements)

    def __repr__(self):
        return (f"PackingAttempt({self.heuristic.name}, placed={self.placed_count}, "
                f"occupancy={self.occupancy:.4f})")


def try_layout(sizes: Dict[str, SizeLike], max_width: int, max_height: int, margin: int,
               heuristic: HeuristicType) -> PackingAttempt:
    """Pack every sprite into an empty canvas using one heuristic."""
    packer = MaxRectsBin(max_width, max_height)

    # Largest area first, ties broken by the longer side
    sprites = _normalize_sizes(sizes)
    sprites.sort(key=lambda item: (item[1].area(), max(item[1])), reverse=True)

    placements = []
    for name, size in sprites:
        used_rect = packer.insert(size.width + margin * 2, size.height + margin * 2, heuristic)
        if used_rect is None:
            continue
        placements.append((name, Rectangle(used_rect.x + margin, used_rect.y + margin,
                                           size.width, size.height)))

    return PackingAttempt(heuristic, placements,
                          calculate_occupancy(placements, max_width, max_height))


def select_best_attempt(attempts: Iterable[PackingAttempt]) -> Optional[PackingAttempt]:
    """Keep the attempt that placed the most sprites, tie-broken by higher occupancy.

    Earlier attempts win exact ties.
    """
    best = None
    for attempt in attempts:
        if (best is None or attempt.placed_count > best.placed_count or
                (attempt.placed_count == best.placed_count and attempt.occupancy > best.occupancy)):
            best = attempt
    return best


class MaxRectsLayout:
    """Runs the MaxRects packer once per heuristic and keeps the best result."""

    def __init__(self, heuristics: Sequence[HeuristicType] = tuple(HeuristicType)):
        if not heuristics:
            raise ValueError("At least one placement heuristic is required")
        self.heuristics = tuple(heuristics)
        self.last_attempt: Optional[PackingAttempt] = None

    def layout(self, sizes: Dict[str, SizeLike], max_width: int, max_height: int,
               margin: int) -> List[Placement]:
        if not _check_canvas(max_width, max_height, margin):
            self.last_attempt = None
            return []

        attempts = [try_layout(sizes, max_width, max_height, margin, heuristic)
                    for heuristic in self.heuristics]
        best = select_best_attempt(attempts)
        self.last_attempt = best

        print(f"MaxRects layout completed using {best.heuristic.name}: "
              f"{best.placed_count}/{len(sizes)} sprites placed, occupancy: {best.occupancy:.2%}")
        return best.placements


def get_layout_algorithm(strategy: Union[LayoutStrategy, str],
                         heuristics: Sequence[HeuristicType] = tuple(HeuristicType)
                         ) -> Union[MaxRectsLayout, RowLayout]:
    """Create the layout algorithm for a strategy. Heuristics only apply to MaxRects."""
    strategy = LayoutStrategy.parse(strategy)
    if strategy == LayoutStrategy.MAX_RECTS:
        return MaxRectsLayout(heuristics)
    return RowLayout()
