"""
Image file ingestion and overlay rendering using Pillow.

These sit outside the matching engine: they turn image files into
PixelBuffers and draw found rectangles back onto them.
"""

from pathlib import Path
from typing import Iterable, Tuple, Union

import numpy as np
from PIL import Image, ImageColor, ImageDraw

from screen_finder.logging import get_logger
from screen_finder.matching.buffer import PixelBuffer
from screen_finder.matching.geometry import MatchResult, Rectangle

logger = get_logger(__name__)

ColorSpec = Union[str, Tuple[int, int, int], Tuple[int, int, int, int]]


def buffer_from_image(image: Image.Image) -> PixelBuffer:
    """Convert a Pillow image to a PixelBuffer."""
    return PixelBuffer.from_source(image)


def buffer_to_image(buffer: PixelBuffer) -> Image.Image:
    """Convert a PixelBuffer to an RGBA Pillow image."""
    return Image.fromarray(buffer.to_rgba())


def load_buffer(path: Union[str, Path]) -> PixelBuffer:
    """
    Load an image file into a PixelBuffer.
    
    Raises:
        FileNotFoundError: If the file does not exist
        PIL.UnidentifiedImageError: If Pillow cannot read it
    """
    path = Path(path)
    with Image.open(path) as image:
        buffer = buffer_from_image(image)
    logger.debug("Image loaded", path=str(path), size=buffer.size)
    return buffer


def save_buffer(buffer: PixelBuffer, path: Union[str, Path]) -> Path:
    """Save a PixelBuffer; the format follows the file extension."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    image = buffer_to_image(buffer)
    if path.suffix.lower() in (".jpg", ".jpeg", ".bmp"):
        image = image.convert("RGB")
    image.save(path)
    logger.debug("Image saved", path=str(path), size=buffer.size)
    return path


class OverlayRenderer:
    """
    Draws rectangle outlines onto a PixelBuffer.
    
    Writes to the buffer in place. Do not draw on a buffer that a search is
    still reading.
    """
    
    DEFAULT_COLOR = "red"
    
    def __init__(self, color: ColorSpec = DEFAULT_COLOR, thickness: int = 1):
        if thickness < 1:
            raise ValueError(f"Thickness must be >= 1, got {thickness}")
        self.color = self._resolve(color)
        self.thickness = thickness
    
    @staticmethod
    def _resolve(color: ColorSpec) -> Tuple[int, int, int, int]:
        if isinstance(color, str):
            return ImageColor.getcolor(color, "RGBA")
        if len(color) == 3:
            return (*color, 255)
        return tuple(color)
    
    def draw(
        self,
        buffer: PixelBuffer,
        rect: Rectangle,
        color: ColorSpec = None,
        thickness: int = None,
    ) -> None:
        """Outline rect on buffer."""
        outline = self._resolve(color) if color is not None else self.color
        width = thickness or self.thickness
        
        image = buffer_to_image(buffer)
        ImageDraw.Draw(image).rectangle(
            [rect.x, rect.y, rect.right, rect.bottom],
            outline=outline,
            width=width,
        )
        buffer.pixels[:] = PixelBuffer.from_array(np.asarray(image)).pixels
    
    def draw_all(
        self,
        buffer: PixelBuffer,
        results: Iterable[Union[MatchResult, Rectangle]],
    ) -> int:
        """Outline every found result; returns how many were drawn."""
        count = 0
        for result in results:
            rect = result.rect if isinstance(result, MatchResult) else result
            if rect is None:
                continue
            self.draw(buffer, rect)
            count += 1
        return count
