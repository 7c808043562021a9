from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from PIL import Image

from .raster import FontFace, SpacingMode

# Pixels with coverage above this value count towards a glyph's opaque bounds.
OPAQUE_BOUNDS_THRESHOLD = 0

BLANK_CHARS = frozenset(" \t")


@dataclass(frozen=True)
class GlyphRecord:
    char: str
    size: Tuple[int, int]
    offset: Tuple[float, float]
    advance: float


@dataclass(frozen=True)
class ShapedGlyph:
    """A glyph's record, its atlas bitmap and the measurements metrics are built from."""

    record: GlyphRecord
    bitmap: Image.Image
    measured_width: int
    opaque_top: int
    opaque_height: int

    @property
    def char(self) -> str:
        return self.record.char


def opaque_bounds(
    bitmap: Image.Image, threshold: int = OPAQUE_BOUNDS_THRESHOLD
) -> Optional[Tuple[int, int, int, int]]:
    """Bounding box (left, top, right, bottom) of pixels above ``threshold``, or None."""
    if threshold <= 0:
        return bitmap.getbbox()
    return bitmap.point(lambda value: 255 if value > threshold else 0).getbbox()


def _trim_horizontal(bitmap: Image.Image, bounds: Optional[Tuple[int, int, int, int]]) -> Image.Image:
    if bounds is None:
        return bitmap
    left, _, right, _ = bounds
    return bitmap.crop((left, 0, right, bitmap.height))


def shape_glyph(adapter, face: FontFace, char: str, antialias: bool) -> ShapedGlyph:
    measured_width, _ = adapter.measure(face, char)
    canvas = (max(1, measured_width), face.cell_height + 1)

    natural = adapter.rasterize(face, char, SpacingMode.NATURAL, antialias, canvas).bitmap
    opaque_top = 0
    opaque_height = 0
    if char in BLANK_CHARS:
        typographic = natural
    else:
        bounds = opaque_bounds(natural)
        if bounds is not None:
            opaque_top = bounds[1]
            opaque_height = bounds[3] - bounds[1]
        # Only trim horizontally: glyphs always keep the full line height.
        natural = _trim_horizontal(natural, bounds)

        tight = adapter.rasterize(face, char, SpacingMode.TIGHT, antialias, canvas).bitmap
        typographic = _trim_horizontal(tight, opaque_bounds(tight))

    width = natural.width
    offset_x = float(natural.width - typographic.width)
    if char == " ":
        width //= 2
        offset_x /= 2
    record = GlyphRecord(
        char=char,
        size=(width, natural.height),
        offset=(offset_x, 0.0),
        advance=width - offset_x,
    )
    return ShapedGlyph(
        record=record,
        bitmap=natural,
        measured_width=measured_width,
        opaque_top=opaque_top,
        opaque_height=opaque_height,
    )


def shape_glyphs(
    adapter,
    face: FontFace,
    chars: Sequence[str],
    antialias: bool,
    workers: int = 1,
) -> List[ShapedGlyph]:
    """Shape every character; results are always in ``chars`` order."""
    if workers <= 1 or len(chars) < 2:
        return [shape_glyph(adapter, face, char, antialias) for char in chars]
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(lambda char: shape_glyph(adapter, face, char, antialias), chars))


def apply_monospace(glyphs: Sequence[ShapedGlyph]) -> List[ShapedGlyph]:
    """Give every glyph the widest glyph's advance, centring narrower ones in the cell."""
    if not glyphs:
        return []
    max_width = max(glyph.record.size[0] for glyph in glyphs)
    adjusted = []
    for glyph in glyphs:
        record = glyph.record
        centring = round((max_width - record.size[0]) / 2.0)
        record = replace(
            record,
            offset=(record.offset[0] - centring, record.offset[1]),
            advance=float(max_width),
        )
        adjusted.append(replace(glyph, record=record))
    return adjusted
