"""
Platform services - display geometry, DPI, capture and input.
"""

from screen_finder.platform.display import (
    IS_WINDOWS,
    IS_LINUX,
    IS_MACOS,
    DPIInfo,
    ScreenInfo,
    get_dpi_info,
    get_screen_info,
    get_primary_screen,
    set_dpi_awareness,
    scale_coordinates,
    unscale_coordinates,
)
from screen_finder.platform.services import PlatformServices

__all__ = [
    "IS_WINDOWS",
    "IS_LINUX",
    "IS_MACOS",
    "DPIInfo",
    "ScreenInfo",
    "get_dpi_info",
    "get_screen_info",
    "get_primary_screen",
    "set_dpi_awareness",
    "scale_coordinates",
    "unscale_coordinates",
    "PlatformServices",
]
