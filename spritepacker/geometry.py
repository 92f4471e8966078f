from typing import NamedTuple, Optional


class Size(NamedTuple):
    """Pixel dimensions of a sprite."""
    width: int
    height: int

    def area(self) -> int:
        return self.width * self.height


class Point(NamedTuple):
    x: int
    y: int


class Rectangle:
    """Represents a rectangle with position (x, y), width and height."""
    __slots__ = ("x", "y", "width", "height")

    def __init__(self, x: int, y: int, width: int, height: int):
        self.x = x
        self.y = y
        self.width = width
        self.height = height

    def __repr__(self):
        return f"Rectangle({self.width}×{self.height} at ({self.x},{self.y}))"

    def __eq__(self, other):
        if not isinstance(other, Rectangle):
            return NotImplemented
        return (self.x, self.y, self.width, self.height) == (other.x, other.y, other.width, other.height)

    def __hash__(self):
        return hash((self.x, self.y, self.width, self.height))

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def location(self) -> Point:
        return Point(self.x, self.y)

    def area(self) -> int:
        """Get the area of the rectangle."""
        return self.width * self.height

    def intersects(self, other: 'Rectangle') -> bool:
        """Check if this rectangle intersects with another."""
        return not (
            self.right <= other.x or
            self.bottom <= other.y or
            self.x >= other.right or
            self.y >= other.bottom
        )

    def contains(self, other: 'Rectangle') -> bool:
        """Check if another rectangle lies wholly inside this one."""
        return (other.x >= self.x and other.y >= self.y and
                other.right <= self.right and other.bottom <= self.bottom)

    def inflate(self, amount: int) -> 'Rectangle':
        """Grow the rectangle by ``amount`` on every side."""
        return Rectangle(self.x - amount, self.y - amount,
                         self.width + amount * 2, self.height + amount * 2)

    def clip(self, width: int, height: int) -> Optional['Rectangle']:
        """Clip to the canvas [0, width) x [0, height). Returns None when nothing is left."""
        left = max(self.x, 0)
        top = max(self.y, 0)
        right = min(self.right, width)
        bottom = min(self.bottom, height)
        if right <= left or bottom <= top:
            return None
        return Rectangle(left, top, right - left, bottom - top)
