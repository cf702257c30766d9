"""
Packed ARGB pixel buffer.

A PixelBuffer owns one contiguous uint32 array of width*height pixels laid
out row by row (index = x + y * width). Dimensions are fixed at
construction; pixel values may be changed in place.
"""

from typing import Any, Tuple

import numpy as np
from PIL import Image

from screen_finder.errors import OutOfBounds
from screen_finder.matching.color import brightness_plane, pack_argb
from screen_finder.matching.geometry import Rectangle

FINGERPRINT_SIZE = 16


def _as_rgba(value: Any) -> Tuple[int, int, int, int]:
    """Normalize a getpixel() value: grey int, (L, A), RGB or RGBA."""
    if isinstance(value, (int, np.integer)):
        return (int(value),) * 3 + (0xFF,)
    if not isinstance(value, (tuple, list)):
        raise ValueError(f"Unsupported pixel value: {value!r}")
    value = tuple(value)
    if len(value) == 2:
        return (value[0],) * 3 + (value[1],)
    if len(value) == 3:
        return (*value, 0xFF)
    if len(value) == 4:
        return value
    raise ValueError(f"Unsupported pixel value: {value!r}")


class PixelBuffer:
    """Flat ARGB pixel storage with bounds-checked access."""
    
    def __init__(self, width: int, height: int, pixels: np.ndarray = None):
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid buffer size: {width}x{height}")
        
        self._width = int(width)
        self._height = int(height)
        
        if pixels is None:
            self._pixels = np.zeros(self._width * self._height, dtype=np.uint32)
        else:
            pixels = np.ascontiguousarray(pixels, dtype=np.uint32).reshape(-1)
            if pixels.size != self._width * self._height:
                raise ValueError(
                    f"Expected {self._width * self._height} pixels, got {pixels.size}"
                )
            self._pixels = pixels
    
    @classmethod
    def create(cls, width: int, height: int) -> "PixelBuffer":
        """Blank (zero-filled, fully transparent) canvas."""
        return cls(width, height)
    
    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        """
        Build from an (h, w) ARGB uint32 array or an (h, w, 3|4) RGB(A) uint8 array.
        """
        array = np.asarray(array)
        if array.ndim == 2:
            height, width = array.shape
            return cls(width, height, array.astype(np.uint32).copy())
        
        if array.ndim == 3 and array.shape[2] in (3, 4):
            height, width = array.shape[:2]
            channels = array.astype(np.uint32)
            r, g, b = channels[..., 0], channels[..., 1], channels[..., 2]
            if array.shape[2] == 4:
                a = channels[..., 3]
            else:
                a = np.full((height, width), 0xFF, dtype=np.uint32)
            packed = (a << 24) | (r << 16) | (g << 8) | b
            return cls(width, height, packed)
        
        raise ValueError(f"Unsupported array shape: {array.shape}")
    
    @classmethod
    def from_source(cls, image: Any) -> "PixelBuffer":
        """
        Copy an external image into a new buffer.
        
        Accepts a Pillow image, a numpy array (see from_array), or any object
        with width, height and getpixel((x, y)) returning a grey int or an
        L(A)/RGB(A) tuple.
        """
        if isinstance(image, Image.Image):
            return cls.from_array(np.asarray(image.convert("RGBA")))
        if isinstance(image, np.ndarray):
            return cls.from_array(image)
        
        buffer = cls(image.width, image.height)
        for y in range(buffer.height):
            for x in range(buffer.width):
                r, g, b, a = _as_rgba(image.getpixel((x, y)))
                buffer._pixels[x + y * buffer.width] = pack_argb(a, r, g, b)
        return buffer
    
    @property
    def width(self) -> int:
        return self._width
    
    @property
    def height(self) -> int:
        return self._height
    
    @property
    def size(self) -> Tuple[int, int]:
        return (self._width, self._height)
    
    @property
    def bounds(self) -> Rectangle:
        """Rectangle covering the whole buffer."""
        return Rectangle(0, 0, self._width, self._height)
    
    @property
    def pixels(self) -> np.ndarray:
        """The flat backing array (shared, not copied)."""
        return self._pixels
    
    def _check(self, x: int, y: int) -> None:
        if not (0 <= x < self._width and 0 <= y < self._height):
            raise OutOfBounds(x, y, self.size)
    
    def get(self, x: int, y: int) -> int:
        self._check(x, y)
        return int(self._pixels[x + y * self._width])
    
    def set(self, x: int, y: int, pixel: int) -> None:
        self._check(x, y)
        self._pixels[x + y * self._width] = int(pixel) & 0xFFFFFFFF
    
    def as_2d(self) -> np.ndarray:
        """(height, width) view over the backing array."""
        return self._pixels.reshape(self._height, self._width)
    
    def check_region(self, rect: Rectangle) -> None:
        """Raise OutOfBounds unless rect lies inside the buffer."""
        if rect.is_empty:
            raise ValueError(f"Empty region: {rect.to_tuple()}")
        if rect.x < 0 or rect.y < 0:
            raise OutOfBounds(rect.x, rect.y, self.size, detail="Region origin")
        if rect.right > self._width or rect.bottom > self._height:
            raise OutOfBounds(
                rect.right - 1, rect.bottom - 1, self.size, detail="Region extent"
            )
    
    def crop(self, rect: Rectangle) -> "PixelBuffer":
        """Copy a sub-rectangle into a new buffer."""
        self.check_region(rect)
        region = self.as_2d()[rect.y:rect.bottom, rect.x:rect.right]
        return PixelBuffer(rect.width, rect.height, region.copy())
    
    def paste(self, other: "PixelBuffer", x: int, y: int) -> None:
        """Copy other into this buffer with its top-left corner at (x, y)."""
        self.check_region(Rectangle(x, y, other.width, other.height))
        self.as_2d()[y:y + other.height, x:x + other.width] = other.as_2d()
    
    def fill(self, pixel: int) -> None:
        self._pixels[:] = int(pixel) & 0xFFFFFFFF
    
    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self._width, self._height, self._pixels.copy())
    
    def to_rgba(self) -> np.ndarray:
        """(height, width, 4) uint8 RGBA array."""
        grid = self.as_2d()
        return np.stack(
            (
                (grid >> 16) & 0xFF,
                (grid >> 8) & 0xFF,
                grid & 0xFF,
                (grid >> 24) & 0xFF,
            ),
            axis=-1,
        ).astype(np.uint8)
    
    def fingerprint(self) -> str:
        """
        Coarse 16x16 brightness signature.
        
        The buffer is resized to 16x16 and each cell becomes 1 when its
        brightness is below 0.5, else 0. Cells are comma-separated, row-major.
        """
        image = Image.fromarray(self.to_rgba()).resize(
            (FINGERPRINT_SIZE, FINGERPRINT_SIZE)
        )
        small = PixelBuffer.from_source(image)
        dark = brightness_plane(small.pixels) < 0.5
        return ", ".join("1" if cell else "0" for cell in dark)
    
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return self.size == other.size and bool(np.array_equal(self._pixels, other._pixels))
    
    __hash__ = None  # mutable
    
    def __repr__(self) -> str:
        return f"PixelBuffer({self._width}x{self._height})"
