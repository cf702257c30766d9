"""
Platform services: screen capture, cursor and keyboard.

An explicitly constructed object handed to whatever needs the screen. The
matching engine never touches it; it only receives the PixelBuffers this
produces.
"""

import time
from typing import Optional, Tuple

import mss
import numpy as np

from screen_finder.logging import get_logger
from screen_finder.matching.buffer import PixelBuffer
from screen_finder.matching.geometry import AreaLike, Rectangle, as_rectangle
from screen_finder.platform.display import (
    DPIInfo,
    ScreenInfo,
    get_dpi_info,
    get_primary_screen,
    get_screen_info,
    set_dpi_awareness,
)

logger = get_logger(__name__)


def _pyautogui():
    # Imported on first use: pyautogui needs a display as soon as it loads
    import pyautogui
    pyautogui.FAILSAFE = True
    return pyautogui


class PlatformServices:
    """
    Screen capture and input injection.
    
    Supports dry-run mode, where input actions are only logged.
    """
    
    def __init__(
        self,
        monitor_index: int = 0,
        dry_run: bool = False,
        action_delay_ms: int = 50,
    ):
        """
        Initialize platform services.
        
        Args:
            monitor_index: Monitor to capture (0 = primary)
            dry_run: If True, log input actions without performing them
            action_delay_ms: Pause after each input action
        """
        self.monitor_index = monitor_index
        self.dry_run = dry_run
        self.action_delay_ms = action_delay_ms
        
        set_dpi_awareness()
        self._dpi: Optional[DPIInfo] = None
        self._screen: Optional[ScreenInfo] = None
        
        logger.info(
            "PlatformServices initialized",
            monitor=monitor_index,
            dry_run=dry_run,
        )
    
    @classmethod
    def from_config(cls, config) -> "PlatformServices":
        """Build from a CaptureConfig."""
        return cls(
            monitor_index=config.monitor_index,
            dry_run=config.dry_run,
            action_delay_ms=config.action_delay_ms,
        )
    
    @property
    def dpi(self) -> DPIInfo:
        if self._dpi is None:
            self._dpi = get_dpi_info()
        return self._dpi
    
    @property
    def screen(self) -> ScreenInfo:
        """The monitor being captured."""
        if self._screen is None:
            screens = get_screen_info()
            if self.monitor_index < len(screens):
                self._screen = screens[self.monitor_index]
            else:
                self._screen = get_primary_screen(screens)
        return self._screen
    
    @property
    def resolution(self) -> Tuple[int, int]:
        return self.screen.size
    
    def refresh(self) -> None:
        """Forget cached display geometry (after a resolution change)."""
        self._dpi = None
        self._screen = None
    
    def capture(self, region: AreaLike = None) -> PixelBuffer:
        """
        Capture the monitor, or a region of it, into a PixelBuffer.
        
        Region coordinates are relative to the monitor's top-left corner.
        """
        screen = self.screen
        rect = as_rectangle(region) or Rectangle(0, 0, screen.width, screen.height)
        monitor = {
            "left": screen.x + rect.x,
            "top": screen.y + rect.y,
            "width": rect.width,
            "height": rect.height,
        }
        
        start = time.time()
        with mss.mss() as sct:
            shot = sct.grab(monitor)
            # mss hands back BGRA rows
            bgra = np.frombuffer(shot.bgra, dtype=np.uint8).reshape(shot.height, shot.width, 4)
            rgba = bgra[..., [2, 1, 0, 3]].copy()
            rgba[..., 3] = 0xFF
        
        buffer = PixelBuffer.from_array(rgba)
        logger.debug(
            "Screen captured",
            region=rect,
            duration_ms=int((time.time() - start) * 1000),
        )
        return buffer
    
    def to_screen(self, point: Tuple[int, int]) -> Tuple[int, int]:
        """Convert a capture-relative point to absolute screen coordinates."""
        return (self.screen.x + point[0], self.screen.y + point[1])
    
    @property
    def cursor(self) -> Tuple[int, int]:
        position = _pyautogui().position()
        return (int(position[0]), int(position[1]))
    
    @cursor.setter
    def cursor(self, point: Tuple[int, int]) -> None:
        x, y = point
        if self.dry_run:
            logger.info("DRY-RUN: move cursor", x=x, y=y)
            return
        _pyautogui().moveTo(x, y)
        self._pause()
    
    def click(self, point: Optional[Tuple[int, int]] = None) -> None:
        """Left click, at point if given, else at the current cursor position."""
        if self.dry_run:
            logger.info("DRY-RUN: click", point=point)
            return
        gui = _pyautogui()
        if point is None:
            gui.click()
        else:
            gui.click(point[0], point[1])
        self._pause()
    
    def press(self, key: str) -> None:
        """Press and release one named key ("enter", "a", "f5", ...)."""
        if self.dry_run:
            logger.info("DRY-RUN: press", key=key)
            return
        _pyautogui().press(key)
        self._pause()
    
    def type_keys(self, text: str) -> None:
        """
        Press one key per character.
        
        Characters that are not key names are sent as a space.
        """
        gui = None if self.dry_run else _pyautogui()
        valid = set(gui.KEYBOARD_KEYS) if gui else None
        
        for char in text:
            key = char.lower()
            if valid is not None and key not in valid:
                key = "space"
            self.press(key)
    
    def _pause(self) -> None:
        if self.action_delay_ms:
            time.sleep(self.action_delay_ms / 1000)
