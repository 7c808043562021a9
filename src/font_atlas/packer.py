"""Shelf packing of glyph coverage bitmaps into a single RGBA atlas."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from PIL import Image

from .errors import PackingOverflow

logger = logging.getLogger(__name__)

SIZE_HEADROOM = 1.2
GROWTH_FACTOR = 1.5
MAX_GROWTH_ATTEMPTS = 6


@dataclass(frozen=True)
class AtlasRect:
    x: int
    y: int
    w: int
    h: int

    @property
    def right(self) -> int:
        return self.x + self.w

    @property
    def bottom(self) -> int:
        return self.y + self.h

    def overlaps(self, other: "AtlasRect") -> bool:
        return (
            self.x < other.right
            and other.x < self.right
            and self.y < other.bottom
            and other.y < self.bottom
        )

    def fits_within(self, width: int, height: int) -> bool:
        return self.x >= 0 and self.y >= 0 and self.right <= width and self.bottom <= height


@dataclass(frozen=True)
class Atlas:
    image: Image.Image
    rects: Tuple[AtlasRect, ...]

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def row_padding(cell_height: int) -> int:
    return _clamp(int(math.ceil(cell_height * 0.1875)), 3, 10)


def glyph_padding(cell_height: int) -> int:
    return _clamp(int(math.ceil(cell_height * 0.125)), 2, 10)


def estimate_atlas_size(glyph_count: int, average_advance: float, cell_height: int) -> Tuple[int, int]:
    cells = int(math.ceil(math.sqrt(max(glyph_count, 1))))
    width = round(cells * max(average_advance, 1.0) * SIZE_HEADROOM)
    height = round(cells * cell_height * SIZE_HEADROOM)
    return max(width, 1), max(height, 1)


def layout(widths: Sequence[int], cell_height: int, atlas_size: Tuple[int, int]) -> List[AtlasRect]:
    """Place glyphs of the given widths shelf by shelf, in order.

    Raises PackingOverflow instead of returning a rect that leaves the atlas.
    """
    atlas_width, atlas_height = atlas_size
    rect_height = cell_height + 1
    x = 1
    y = 1
    rects = []
    for index, width in enumerate(widths):
        if x + width + 2 > atlas_width:
            if x == 1:
                raise PackingOverflow(
                    f"Glyph #{index} is {width}px wide, atlas is only {atlas_width}px wide"
                )
            x = 1
            y += cell_height + row_padding(cell_height)
        if y + rect_height > atlas_height:
            raise PackingOverflow(
                f"Glyph #{index} at y={y} needs {rect_height}px, atlas is only {atlas_height}px high"
            )
        rects.append(AtlasRect(x=x, y=y, w=width, h=rect_height))
        x += width + glyph_padding(cell_height)
    return rects


def _grown(size: Tuple[int, int], widest: int) -> Tuple[int, int]:
    width = max(int(math.ceil(size[0] * GROWTH_FACTOR)), widest + 3)
    height = int(math.ceil(size[1] * GROWTH_FACTOR))
    return width, height


def _whiten(atlas: Image.Image) -> Image.Image:
    white = Image.new("L", atlas.size, color=255)
    return Image.merge("RGBA", (white, white, white, atlas.getchannel("A")))


def pack_glyphs(
    bitmaps: Sequence[Image.Image],
    cell_height: int,
    average_advance: float,
    max_growth_attempts: int = MAX_GROWTH_ATTEMPTS,
) -> Atlas:
    """Pack coverage bitmaps (mode "L") into one atlas whose colour channels are white."""
    widths = [bitmap.width for bitmap in bitmaps]
    size = estimate_atlas_size(len(bitmaps), average_advance, cell_height)

    attempts = 0
    while True:
        try:
            rects = layout(widths, cell_height, size)
            break
        except PackingOverflow as exc:
            if attempts >= max_growth_attempts:
                raise PackingOverflow(
                    f"{len(bitmaps)} glyphs do not fit a {size[0]}x{size[1]} atlas "
                    f"after {attempts} growth attempts: {exc}"
                ) from exc
            attempts += 1
            previous = size
            size = _grown(size, max(widths, default=0))
            logger.debug(
                "Atlas %dx%d too small (%s), growing to %dx%d",
                previous[0], previous[1], exc, size[0], size[1],
            )

    atlas = Image.new("RGBA", size, color=(0, 0, 0, 0))
    for bitmap, rect in zip(bitmaps, rects):
        glyph = Image.new("RGBA", bitmap.size, color=(0, 0, 0, 0))
        glyph.putalpha(bitmap)
        # Plain paste replaces pixels: shelves never overlap, so nothing needs blending.
        atlas.paste(glyph, (rect.x, rect.y))

    return Atlas(image=_whiten(atlas), rects=tuple(rects))
