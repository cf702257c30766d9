"""
Platform detection, DPI awareness and display geometry.

Windows queries go through ctypes; elsewhere the values come from mss.
"""

import sys
import ctypes
from typing import List, Optional, Tuple
from dataclasses import dataclass

import mss

from screen_finder.logging import get_logger

logger = get_logger(__name__)

IS_WINDOWS = sys.platform == "win32"
IS_LINUX = sys.platform.startswith("linux")
IS_MACOS = sys.platform == "darwin"

DEFAULT_DPI = 96


@dataclass
class ScreenInfo:
    """Information about a screen/monitor."""
    
    index: int
    x: int
    y: int
    width: int
    height: int
    is_primary: bool = False
    
    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)


@dataclass 
class DPIInfo:
    """DPI awareness information."""
    
    is_aware: bool
    scale_factor: float  # 1.0 = 100%, 1.25 = 125%
    system_dpi: int


def set_dpi_awareness() -> bool:
    """
    Make the process DPI aware on Windows so captures use physical pixels.
    
    Returns True if successful or not needed.
    """
    if not IS_WINDOWS:
        return True
    
    try:
        ctypes.windll.shcore.SetProcessDpiAwareness(2)  # PROCESS_PER_MONITOR_DPI_AWARE
        logger.debug("DPI awareness set: per-monitor")
        return True
    except (AttributeError, OSError):
        pass
    
    try:
        ctypes.windll.user32.SetProcessDPIAware()
        logger.debug("DPI awareness set: system")
        return True
    except (AttributeError, OSError) as e:
        logger.warning("Could not set DPI awareness", error=str(e))
        return False


def get_dpi_info() -> DPIInfo:
    """Get the system DPI and scale factor."""
    if not IS_WINDOWS:
        return DPIInfo(is_aware=True, scale_factor=1.0, system_dpi=DEFAULT_DPI)
    
    try:
        hdc = ctypes.windll.user32.GetDC(0)
        dpi = ctypes.windll.gdi32.GetDeviceCaps(hdc, 88)  # LOGPIXELSX
        ctypes.windll.user32.ReleaseDC(0, hdc)
        
        try:
            awareness = ctypes.c_int()
            ctypes.windll.shcore.GetProcessDpiAwareness(0, ctypes.byref(awareness))
            is_aware = awareness.value > 0
        except (AttributeError, OSError):
            is_aware = False
        
        return DPIInfo(
            is_aware=is_aware,
            scale_factor=dpi / DEFAULT_DPI,
            system_dpi=dpi,
        )
    except (AttributeError, OSError) as e:
        logger.error("Error getting DPI info", error=str(e))
        return DPIInfo(is_aware=False, scale_factor=1.0, system_dpi=DEFAULT_DPI)


def get_screen_info() -> List[ScreenInfo]:
    """
    List the monitors mss can see.
    
    mss puts the union of all monitors at index 0; individual monitors
    follow, the first being the primary one.
    """
    with mss.mss() as sct:
        monitors = sct.monitors[1:] or sct.monitors[:1]
        return [
            ScreenInfo(
                index=i,
                x=m["left"],
                y=m["top"],
                width=m["width"],
                height=m["height"],
                is_primary=(i == 0),
            )
            for i, m in enumerate(monitors)
        ]


def get_primary_screen(screens: Optional[List[ScreenInfo]] = None) -> ScreenInfo:
    """Get the primary screen info."""
    screens = screens if screens is not None else get_screen_info()
    for screen in screens:
        if screen.is_primary:
            return screen
    if not screens:
        raise RuntimeError("No display available")
    return screens[0]


def scale_coordinates(x: int, y: int, scale_factor: float) -> Tuple[int, int]:
    """Physical to logical coordinates."""
    return (int(x / scale_factor), int(y / scale_factor))


def unscale_coordinates(x: int, y: int, scale_factor: float) -> Tuple[int, int]:
    """Logical to physical coordinates."""
    return (int(x * scale_factor), int(y * scale_factor))
