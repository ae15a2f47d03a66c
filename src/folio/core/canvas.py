"""In-memory drawing surfaces used as the rasterization buffer for OCR."""

import io
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

logger = logging.getLogger(__name__)


class Surface:
    """A Pillow image the size of one rendered page."""

    def __init__(self, image_module, image, width: int, height: int):
        self._image_module = image_module
        self.image = image
        self.width = width
        self.height = height

    @property
    def destroyed(self) -> bool:
        return self.image is None

    def draw_rgb(self, width: int, height: int, samples: bytes) -> None:
        """Paint raw RGB pixels at the origin."""
        if self.image is None:
            raise RuntimeError("Cannot draw on a destroyed surface")
        tile = self._image_module.frombytes("RGB", (width, height), samples)
        try:
            self.image.paste(tile, (0, 0))
        finally:
            tile.close()

    def to_png(self) -> bytes:
        """Serialize the surface to a PNG buffer."""
        if self.image is None:
            raise RuntimeError("Cannot serialize a destroyed surface")
        buffer = io.BytesIO()
        self.image.save(buffer, format="PNG", optimize=False)
        return buffer.getvalue()


class CanvasFactory:
    """Create, resize and destroy surfaces.

    Every ``create`` must be paired with exactly one ``destroy``; prefer the
    ``surface()`` context manager, which guarantees it.
    """

    def __init__(self, image_module):
        self._image = image_module

    def create(self, width: int, height: int) -> Surface:
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid canvas size {width}x{height}")
        image = self._image.new("RGB", (width, height), "white")
        return Surface(self._image, image, width, height)

    def reset(self, surface: Optional[Surface], width: int, height: int) -> None:
        if surface is None or surface.image is None:
            return
        old = surface.image
        surface.image = self._image.new("RGB", (width, height), "white")
        surface.width = width
        surface.height = height
        old.close()

    def destroy(self, surface: Optional[Surface]) -> None:
        """Release the pixel buffer now instead of waiting for the collector."""
        if surface is None or surface.image is None:
            return
        surface.image.close()
        surface.image = None
        surface.width = 0
        surface.height = 0

    @contextmanager
    def surface(self, width: int, height: int) -> Iterator[Surface]:
        canvas = self.create(width, height)
        try:
            yield canvas
        finally:
            self.destroy(canvas)
