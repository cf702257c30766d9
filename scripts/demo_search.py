#!/usr/bin/env python
"""
Search demo.

Finds images/b.png inside images/a.png in the background with a 0.2
brightness tolerance, outlines the match and writes images/c.png.

Run with:
    python scripts/demo_search.py [SOURCE TARGET OUTPUT]
"""

import sys
import time
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from screen_finder.logging import get_logger, setup_logging
from screen_finder.imaging import OverlayRenderer, load_buffer, save_buffer
from screen_finder.matching import QuadrantScheduler

setup_logging(level="DEBUG")
logger = get_logger(__name__)


def run_demo(source_path: Path, target_path: Path, output_path: Path) -> bool:
    print("\n" + "="*60)
    print("  SEARCH DEMO")
    print("="*60)
    
    source = load_buffer(source_path)
    target = load_buffer(target_path)
    print(f"  Source: {source_path} ({source.width}x{source.height})")
    print(f"  Target: {target_path} ({target.width}x{target.height})")
    
    with QuadrantScheduler() as scheduler:
        start = time.time()
        handle = scheduler.find_async(source, target, tolerance=0.2)
        result = handle.result()
        elapsed_ms = int((time.time() - start) * 1000)
    
    if not result.found:
        print(f"  ❌ Not found ({elapsed_ms}ms)")
        return False
    
    print(f"  ✅ Found at {result.rect.to_tuple()} in quadrant {result.quadrant} ({elapsed_ms}ms)")
    
    OverlayRenderer().draw(source, result.rect)
    save_buffer(source, output_path)
    print(f"  📂 Annotated copy: {output_path}")
    return True


if __name__ == "__main__":
    images = Path(__file__).parent.parent / "images"
    if len(sys.argv) == 4:
        paths = [Path(p) for p in sys.argv[1:4]]
    else:
        paths = [images / "a.png", images / "b.png", images / "c.png"]
    sys.exit(0 if run_demo(*paths) else 1)
