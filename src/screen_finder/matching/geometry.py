"""
Rectangles and match results.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, Union


@dataclass(frozen=True)
class Rectangle:
    """Axis-aligned rectangle used both as a search area and as a match."""
    
    x: int
    y: int
    width: int
    height: int
    
    @property
    def right(self) -> int:
        return self.x + self.width
    
    @property
    def bottom(self) -> int:
        return self.y + self.height
    
    @property
    def area(self) -> int:
        return max(0, self.width) * max(0, self.height)
    
    @property
    def center(self) -> Tuple[int, int]:
        """Get center point."""
        return (self.x + self.width // 2, self.y + self.height // 2)
    
    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0
    
    def to_tuple(self) -> Tuple[int, int, int, int]:
        """Return as (x, y, width, height) tuple."""
        return (self.x, self.y, self.width, self.height)
    
    def contains(self, other: "Rectangle") -> bool:
        """True if other lies entirely inside this rectangle."""
        return (
            other.x >= self.x
            and other.y >= self.y
            and other.right <= self.right
            and other.bottom <= self.bottom
        )
    
    def intersection(self, other: "Rectangle") -> Optional["Rectangle"]:
        left = max(self.x, other.x)
        top = max(self.y, other.y)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        if right <= left or bottom <= top:
            return None
        return Rectangle(left, top, right - left, bottom - top)
    
    def intersects(self, other: "Rectangle") -> bool:
        return self.intersection(other) is not None
    
    def intersection_over_union(self, other: "Rectangle") -> float:
        overlap = self.intersection(other)
        if overlap is None:
            return 0.0
        union = self.area + other.area - overlap.area
        return overlap.area / union if union > 0 else 0.0
    
    @classmethod
    def from_tuple(cls, values: Iterable[int]) -> "Rectangle":
        x, y, width, height = (int(v) for v in values)
        return cls(x, y, width, height)
    
    @classmethod
    def parse(cls, text: str) -> "Rectangle":
        """
        Parse "x,y,width,height".
        
        Raises:
            ValueError: If the text does not hold four integers
        """
        parts = [p.strip() for p in text.split(",")]
        if len(parts) != 4:
            raise ValueError(f"Expected x,y,width,height, got {text!r}")
        return cls.from_tuple(int(p) for p in parts)


AreaLike = Union[Rectangle, Tuple[int, int, int, int], None]


def as_rectangle(area: AreaLike) -> Optional[Rectangle]:
    """Normalize a rectangle or (x, y, w, h) tuple; None passes through."""
    if area is None or isinstance(area, Rectangle):
        return area
    return Rectangle.from_tuple(area)


@dataclass
class MatchResult:
    """Result of a search: a rectangle plus where it was discovered."""
    
    found: bool
    rect: Optional[Rectangle] = None
    quadrant: Optional[int] = None
    tolerance: float = 0.0
    
    @classmethod
    def not_found(cls, tolerance: float = 0.0) -> "MatchResult":
        return cls(found=False, tolerance=tolerance)
    
    @property
    def x(self) -> int:
        return self.rect.x if self.rect else 0
    
    @property
    def y(self) -> int:
        return self.rect.y if self.rect else 0
    
    @property
    def center(self) -> Optional[Tuple[int, int]]:
        return self.rect.center if self.rect else None
    
    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "found": self.found,
            "rect": self.rect.to_tuple() if self.rect else None,
            "quadrant": self.quadrant,
            "tolerance": self.tolerance,
        }


def merge_overlapping(
    results: List[MatchResult],
    iou_threshold: float = 0.0,
) -> List[MatchResult]:
    """
    Drop results overlapping an earlier kept result by more than iou_threshold.
    
    Results are processed top-to-bottom, left-to-right so the outcome does not
    depend on which worker reported first.
    """
    ordered = sorted(
        (r for r in results if r.found and r.rect is not None),
        key=lambda r: (r.rect.y, r.rect.x),
    )
    kept: List[MatchResult] = []
    for result in ordered:
        if any(
            result.rect.intersection_over_union(k.rect) > iou_threshold
            for k in kept
        ):
            continue
        kept.append(result)
    return kept
