"""
Parallel quadrant search.

A search area that can hold the target at least `min_parallel_slices` times
is split once into a 2x2 grid of overlapping quadrants, and each quadrant is
scanned by its own Matcher on a worker thread. The inner edges of the
quadrants overlap by about one target size, so an occurrence straddling the
midline is still wholly inside at least one quadrant. An occurrence that
lies inside the overlap of two quadrants may be reported by both; pass
`dedupe_iou` to merge such duplicates.

The source and target buffers are only read during a search. Callers that
draw on the source (overlays) must not do so while a search on it is still
running.
"""

import asyncio
import threading
import time
from concurrent.futures import (
    FIRST_COMPLETED,
    Future,
    ThreadPoolExecutor,
    wait,
)
from enum import Enum
from typing import Any, Callable, List, Optional

from screen_finder.errors import AreaTooSmall, SearchFailed
from screen_finder.logging import get_logger
from screen_finder.matching.buffer import PixelBuffer
from screen_finder.matching.color import ColorComparator, ColorMetric
from screen_finder.matching.geometry import (
    AreaLike,
    MatchResult,
    Rectangle,
    as_rectangle,
    merge_overlapping,
)
from screen_finder.matching.matcher import DEFAULT_STRIDE, Matcher, validate_area

logger = get_logger(__name__)

QUADRANT_COUNT = 4


class SearchMode(str, Enum):
    """How a search reports its results."""

    ALL_MATCHES = "all_matches"
    FIRST_MATCH = "first_match"


def split_quadrants(area: Rectangle, target: PixelBuffer) -> List[Rectangle]:
    """
    Split area into four overlapping quadrants (TL, TR, BL, BR).

    The first column spans area.width // 2 + target.width // 2; the second
    starts target.width // 2 before the midline and runs to the right edge.
    Rows follow the same rule with heights.
    """
    half_w = area.width // 2
    half_h = area.height // 2

    col_start = half_w - target.width // 2
    row_start = half_h - target.height // 2

    columns = [(0, half_w + target.width // 2), (col_start, area.width - col_start)]
    rows = [(0, half_h + target.height // 2), (row_start, area.height - row_start)]

    return [
        Rectangle(area.x + cx, area.y + ry, cw, rh)
        for ry, rh in rows
        for cx, cw in columns
    ]


class SearchHandle:
    """
    Handle on a search running in the background.

    cancel() is cooperative: workers notice it between candidate windows and
    the search then completes normally with what it had found so far (an
    empty list or a not-found result), never with an exception.
    """

    def __init__(self, future: Future, cancel_event: threading.Event, mode: SearchMode):
        self._future = future
        self._cancel = cancel_event
        self._cancel_requested = False
        self.mode = mode

    @property
    def cancelled(self) -> bool:
        """True once cancel() has been called on this handle."""
        return self._cancel_requested

    def cancel(self) -> None:
        """Ask every worker of this search to stop."""
        self._cancel_requested = True
        self._cancel.set()

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> Any:
        """
        Block until the search finishes.

        Raises:
            concurrent.futures.TimeoutError: If timeout elapses first
            SearchFailed: If any worker raised
        """
        return self._future.result(timeout=timeout)

    def add_done_callback(self, callback: Callable[["SearchHandle"], None]) -> None:
        self._future.add_done_callback(lambda _f: callback(self))

    async def wait(self) -> Any:
        """Await the result from asyncio code."""
        return await asyncio.wrap_future(self._future)


class QuadrantScheduler:
    """
    Runs Matcher scans over a search area, in parallel where it pays off.
    """

    def __init__(
        self,
        metric: ColorMetric = ColorMetric.BRIGHTNESS,
        stride: int = DEFAULT_STRIDE,
        max_workers: int = QUADRANT_COUNT,
        min_parallel_slices: int = QUADRANT_COUNT,
        poll_interval: float = 1.0,
        dedupe_iou: Optional[float] = None,
    ):
        """
        Initialize scheduler.

        Args:
            metric: Colour distance used when tolerance > 0
            stride: Subsampling stride for window comparison
            max_workers: Threads per search (at most one per quadrant)
            min_parallel_slices: Below this many target-sized slices the
                area is scanned on the calling thread
            poll_interval: Wait-any timeout in FIRST_MATCH mode, seconds
            dedupe_iou: If set, merge ALL_MATCHES results overlapping by
                more than this intersection-over-union
        """
        self.metric = ColorMetric(metric)
        self.stride = stride
        self.max_workers = max(1, min(max_workers, QUADRANT_COUNT))
        self.min_parallel_slices = min_parallel_slices
        self.poll_interval = poll_interval
        self.dedupe_iou = dedupe_iou

        self._coordinator: Optional[ThreadPoolExecutor] = None
        self._coordinator_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: Any) -> "QuadrantScheduler":
        """Build from a SearchConfig."""
        return cls(
            metric=config.metric,
            stride=config.stride,
            max_workers=config.max_workers,
            min_parallel_slices=config.min_parallel_slices,
            poll_interval=config.poll_interval_seconds,
            dedupe_iou=config.dedupe_iou,
        )

    def plan(
        self,
        source: PixelBuffer,
        target: PixelBuffer,
        area: AreaLike = None,
        tolerance: float = 0.0,
    ) -> List[Rectangle]:
        """
        Work out the regions to scan: the whole area, or its four quadrants.

        Raises:
            AreaTooSmall: If the area cannot hold the target once
            OutOfBounds: If the area leaves the source buffer
        """
        if tolerance < 0:
            raise ValueError(f"Tolerance must be >= 0, got {tolerance}")
        area = as_rectangle(area) or source.bounds
        validate_area(area, target)
        source.check_region(area)

        slices = (area.width // target.width) * (area.height // target.height)
        if slices <= 0:
            raise AreaTooSmall(
                (area.width, area.height), (target.width, target.height)
            )
        if slices < self.min_parallel_slices:
            return [area]

        quadrants = split_quadrants(area, target)
        if any(q.width < target.width or q.height < target.height for q in quadrants):
            return [area]
        return quadrants

    def _matcher(self, name: str) -> Matcher:
        return Matcher(ColorComparator(self.metric), stride=self.stride, name=name)

    # Synchronous API

    def find_all(
        self,
        source: PixelBuffer,
        target: PixelBuffer,
        area: AreaLike = None,
        tolerance: float = 0.0,
    ) -> List[MatchResult]:
        """
        Find every occurrence of target in area.

        Raises:
            AreaTooSmall: Before any scanning, if area cannot hold target
            SearchFailed: If a quadrant worker raised
        """
        regions = self.plan(source, target, area, tolerance)
        return self._run_all(source, target, regions, tolerance, threading.Event())

    def find(
        self,
        source: PixelBuffer,
        target: PixelBuffer,
        area: AreaLike = None,
        tolerance: float = 0.0,
    ) -> MatchResult:
        """
        Find any one occurrence of target in area.

        Returns:
            The first match any worker reports, or MatchResult.not_found()
        """
        regions = self.plan(source, target, area, tolerance)
        return self._run_first(source, target, regions, tolerance, threading.Event())

    # Background API

    def find_all_async(
        self,
        source: PixelBuffer,
        target: PixelBuffer,
        area: AreaLike = None,
        tolerance: float = 0.0,
    ) -> SearchHandle:
        """Start find_all in the background. Validation errors raise here."""
        regions = self.plan(source, target, area, tolerance)
        cancel = threading.Event()
        future = self._submit(self._run_all, source, target, regions, tolerance, cancel)
        return SearchHandle(future, cancel, SearchMode.ALL_MATCHES)

    def find_async(
        self,
        source: PixelBuffer,
        target: PixelBuffer,
        area: AreaLike = None,
        tolerance: float = 0.0,
    ) -> SearchHandle:
        """Start find in the background. Validation errors raise here."""
        regions = self.plan(source, target, area, tolerance)
        cancel = threading.Event()
        future = self._submit(self._run_first, source, target, regions, tolerance, cancel)
        return SearchHandle(future, cancel, SearchMode.FIRST_MATCH)

    def _submit(self, fn: Callable[..., Any], *args: Any) -> Future:
        with self._coordinator_lock:
            if self._coordinator is None:
                self._coordinator = ThreadPoolExecutor(
                    thread_name_prefix="screen-finder-search",
                )
            return self._coordinator.submit(fn, *args)

    def close(self) -> None:
        """Wait for background searches and release their threads."""
        with self._coordinator_lock:
            if self._coordinator is not None:
                self._coordinator.shutdown(wait=True)
                self._coordinator = None

    def __enter__(self) -> "QuadrantScheduler":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # Execution

    def _run_all(
        self,
        source: PixelBuffer,
        target: PixelBuffer,
        regions: List[Rectangle],
        tolerance: float,
        cancel: threading.Event,
    ) -> List[MatchResult]:
        start = time.monotonic()

        if len(regions) == 1:
            matcher = self._matcher("area")
            results = [
                MatchResult(found=True, rect=rect, tolerance=tolerance)
                for rect in matcher.find(source, target, regions[0], tolerance, cancel)
            ]
        else:
            def scan(index: int, region: Rectangle) -> List[MatchResult]:
                matcher = self._matcher(f"quadrant-{index}")
                return [
                    MatchResult(found=True, rect=rect, quadrant=index, tolerance=tolerance)
                    for rect in matcher.find(source, target, region, tolerance, cancel)
                ]

            results = []
            errors: List[BaseException] = []
            with ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix="screen-finder-quadrant",
            ) as pool:
                futures = [pool.submit(scan, i, r) for i, r in enumerate(regions)]

            # Leaving the pool waited for every worker; keep quadrant order
            for future in futures:
                error = future.exception()
                if error is not None:
                    logger.error("Quadrant worker failed", error=str(error))
                    errors.append(error)
                else:
                    results.extend(future.result())

            if errors:
                raise SearchFailed(errors, partial=results)

        if self.dedupe_iou is not None:
            results = merge_overlapping(results, self.dedupe_iou)

        logger.info(
            "Search finished",
            mode=SearchMode.ALL_MATCHES.value,
            regions=len(regions),
            matches=len(results),
            cancelled=cancel.is_set(),
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        return results

    def _run_first(
        self,
        source: PixelBuffer,
        target: PixelBuffer,
        regions: List[Rectangle],
        tolerance: float,
        cancel: threading.Event,
    ) -> MatchResult:
        start = time.monotonic()

        if len(regions) == 1:
            matcher = self._matcher("area")
            rect = next(iter(matcher.find(source, target, regions[0], tolerance, cancel)), None)
            winner = (
                MatchResult(found=True, rect=rect, tolerance=tolerance)
                if rect is not None
                else MatchResult.not_found(tolerance)
            )
        else:
            def scan(index: int, region: Rectangle) -> Optional[Rectangle]:
                matcher = self._matcher(f"quadrant-{index}")
                return next(iter(matcher.find(source, target, region, tolerance, cancel)), None)

            winner = MatchResult.not_found(tolerance)
            errors: List[BaseException] = []
            with ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix="screen-finder-quadrant",
            ) as pool:
                pending = {
                    pool.submit(scan, i, r): i for i, r in enumerate(regions)
                }
                while pending and not winner.found and not cancel.is_set():
                    done, _ = wait(
                        pending, timeout=self.poll_interval, return_when=FIRST_COMPLETED
                    )
                    for future in done:
                        index = pending.pop(future)
                        error = future.exception()
                        if error is not None:
                            logger.error(
                                "Quadrant worker failed", quadrant=index, error=str(error)
                            )
                            errors.append(error)
                        elif future.result() is not None and not winner.found:
                            winner = MatchResult(
                                found=True,
                                rect=future.result(),
                                quadrant=index,
                                tolerance=tolerance,
                            )
                # Stop the others; leaving the pool waits for them to notice
                cancel.set()

            for future in pending:
                error = future.exception()
                if error is not None:
                    errors.append(error)

            if errors:
                raise SearchFailed(errors, partial=[winner] if winner.found else [])

        logger.info(
            "Search finished",
            mode=SearchMode.FIRST_MATCH.value,
            regions=len(regions),
            found=winner.found,
            match=winner.rect,
            quadrant=winner.quadrant,
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        return winner


_default_scheduler: Optional[QuadrantScheduler] = None
_default_lock = threading.Lock()


def get_default_scheduler() -> QuadrantScheduler:
    """Process-wide scheduler used by the module-level helpers."""
    global _default_scheduler
    with _default_lock:
        if _default_scheduler is None:
            _default_scheduler = QuadrantScheduler()
        return _default_scheduler


def find(
    source: PixelBuffer,
    target: PixelBuffer,
    area: AreaLike = None,
    tolerance: float = 0.0,
) -> MatchResult:
    """Find the first occurrence of target in source."""
    return get_default_scheduler().find(source, target, area, tolerance)


def find_all(
    source: PixelBuffer,
    target: PixelBuffer,
    area: AreaLike = None,
    tolerance: float = 0.0,
) -> List[MatchResult]:
    """Find every occurrence of target in source."""
    return get_default_scheduler().find_all(source, target, area, tolerance)


def find_async(
    source: PixelBuffer,
    target: PixelBuffer,
    area: AreaLike = None,
    tolerance: float = 0.0,
) -> SearchHandle:
    return get_default_scheduler().find_async(source, target, area, tolerance)


def find_all_async(
    source: PixelBuffer,
    target: PixelBuffer,
    area: AreaLike = None,
    tolerance: float = 0.0,
) -> SearchHandle:
    return get_default_scheduler().find_all_async(source, target, area, tolerance)
