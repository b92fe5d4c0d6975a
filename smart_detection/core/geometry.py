"""
Geometry helpers - rectangles and regions of interest carried in two coordinate spaces
(full-size screen pixels and the downscaled matching space)
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple


def scale_value(value: float, ratio: float) -> int:
    """Scale a coordinate and round half up"""
    return int(math.floor(value * ratio + 0.5))


def unscale_value(value: float, ratio: float) -> int:
    """Bring a scaled coordinate back to full-size space"""
    return int(math.floor(value / ratio + 0.5))


@dataclass(frozen=True)
class Rect:
    """Integer rectangle"""
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    @classmethod
    def from_tuple(cls, values: Tuple[int, int, int, int]) -> 'Rect':
        x, y, width, height = values
        return cls(int(x), int(y), int(width), int(height))

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def center_x(self) -> int:
        return self.x + self.width // 2

    @property
    def center_y(self) -> int:
        return self.y + self.height // 2

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def offset(self, dx: int, dy: int) -> 'Rect':
        return Rect(self.x + dx, self.y + dy, self.width, self.height)

    def is_inside(self, width: int, height: int) -> bool:
        """True if this rect is non-empty and lies within a (0, 0, width, height) grid"""
        return (not self.is_empty
                and self.x >= 0 and self.y >= 0
                and self.right <= width and self.bottom <= height)

    def scaled(self, ratio: float) -> 'Rect':
        """
        Scale each component on its own

        The size scales exactly like an image of that size does, so a region
        and a condition with equal full-size dimensions stay equal once scaled.
        """
        return Rect(scale_value(self.x, ratio), scale_value(self.y, ratio),
                    scale_value(self.width, ratio), scale_value(self.height, ratio))

    def unscaled(self, ratio: float) -> 'Rect':
        """Inverse of scaled() for a rect living in the scaled space"""
        return Rect(unscale_value(self.x, ratio), unscale_value(self.y, ratio),
                    unscale_value(self.width, ratio), unscale_value(self.height, ratio))

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)


class RegionOfInterest:
    """
    A rectangle carried simultaneously in full-size and scaled coordinates
    """

    def __init__(self):
        self.full_size = Rect()
        self.scaled = Rect()

    def set_full_size(self, rect: Optional[Rect], ratio: float, frame: Optional[Rect] = None) -> 'RegionOfInterest':
        """
        Define the region from a full-size rect

        Args:
            rect: Full-size rect, or None for the whole frame
            ratio: Current scale ratio
            frame: Full-size frame rect, used when rect is None

        Returns:
            self
        """
        if rect is None:
            rect = frame if frame is not None else Rect()
        self.full_size = rect
        self.scaled = rect.scaled(ratio)
        return self

    def set_scaled(self, rect: Rect, ratio: float) -> 'RegionOfInterest':
        """Define the region from a scaled rect"""
        self.scaled = rect
        self.full_size = rect.unscaled(ratio)
        return self

    def full_size_center_x(self) -> int:
        return self.full_size.center_x

    def full_size_center_y(self) -> int:
        return self.full_size.center_y

    def __repr__(self) -> str:
        return f"RegionOfInterest(full_size={self.full_size.as_tuple()}, scaled={self.scaled.as_tuple()})"
