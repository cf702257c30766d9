"""
Exception hierarchy for screen-finder.

Cancellation is not represented here: a cancelled search ends quietly with
whatever it already produced.
"""

from typing import List, Optional, Tuple


class FinderError(Exception):
    """Base exception for all screen-finder errors."""
    
    def __init__(self, message: str, code: int = 0):
        super().__init__(message)
        self.message = message
        self.code = code


class AreaTooSmall(FinderError, ValueError):
    """Raised before any scanning when the search area cannot hold the target."""
    
    def __init__(
        self,
        area_size: Tuple[int, int],
        target_size: Tuple[int, int],
    ):
        self.area_size = area_size
        self.target_size = target_size
        super().__init__(
            f"Search area {area_size[0]}x{area_size[1]} is smaller than "
            f"target {target_size[0]}x{target_size[1]}",
            code=1001,
        )


class OutOfBounds(FinderError, IndexError):
    """Raised on pixel or region access outside a buffer."""
    
    def __init__(
        self,
        x: int,
        y: int,
        buffer_size: Tuple[int, int],
        detail: Optional[str] = None,
    ):
        self.x = x
        self.y = y
        self.buffer_size = buffer_size
        message = (
            f"({x}, {y}) is outside buffer of size "
            f"{buffer_size[0]}x{buffer_size[1]}"
        )
        if detail:
            message = f"{detail}: {message}"
        super().__init__(message, code=1002)


class SearchFailed(FinderError):
    """
    Raised once every worker of a parallel search has stopped and some failed.
    
    Results the healthy workers produced are kept in `partial`.
    """
    
    def __init__(self, errors: List[BaseException], partial: Optional[list] = None):
        self.errors = list(errors)
        self.partial = list(partial or [])
        summary = "; ".join(f"{type(e).__name__}: {e}" for e in self.errors)
        super().__init__(
            f"{len(self.errors)} search worker(s) failed: {summary}",
            code=1003,
        )
