"""
Pytest configuration and fixtures.
"""

import numpy as np
import pytest

from screen_finder.matching import PixelBuffer, Rectangle, pack_argb


def noise_pixels(rng: np.random.Generator, width: int, height: int) -> np.ndarray:
    """Random opaque ARGB pixels."""
    rgb = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint32)
    return (
        (np.uint32(0xFF) << np.uint32(24))
        | (rgb[..., 0] << np.uint32(16))
        | (rgb[..., 1] << np.uint32(8))
        | rgb[..., 2]
    ).astype(np.uint32)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def noise(rng):
    """Factory for random opaque buffers."""
    def _create(width: int, height: int) -> PixelBuffer:
        return PixelBuffer.from_array(noise_pixels(rng, width, height))
    return _create


@pytest.fixture
def solid():
    """Factory for single-colour buffers."""
    def _create(width: int, height: int, pixel: int = pack_argb(255, 40, 80, 120)) -> PixelBuffer:
        buffer = PixelBuffer.create(width, height)
        buffer.fill(pixel)
        return buffer
    return _create


@pytest.fixture
def planted(noise):
    """
    Factory for a noise source with a noise target pasted at one spot.
    
    Returns (source, target, rect).
    """
    def _create(source_size: tuple, target_size: tuple, at: tuple):
        source = noise(*source_size)
        target = noise(*target_size)
        source.paste(target, *at)
        return source, target, Rectangle(at[0], at[1], *target_size)
    return _create


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """HOME pointing at an empty directory so no user config is picked up."""
    monkeypatch.setenv("HOME", str(tmp_path))
    for key in (
        "SCREEN_FINDER_TOLERANCE",
        "SCREEN_FINDER_STRIDE",
        "SCREEN_FINDER_WORKERS",
        "SCREEN_FINDER_METRIC",
        "SCREEN_FINDER_LOG_LEVEL",
        "SCREEN_FINDER_DRY_RUN",
    ):
        monkeypatch.delenv(key, raising=False)
    return tmp_path
