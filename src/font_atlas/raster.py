"""Glyph rasterization boundary, backed by Pillow's FreeType bindings.

The build pipeline only talks to an adapter through ``load_face``,
``load_fallback_face``, ``family_metrics``, ``measure`` and ``rasterize``; any
object with those methods can stand in for :class:`PilRasterAdapter`.
"""

from __future__ import annotations

import hashlib
import io
import logging
import math
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum, Flag
from typing import Optional, Tuple

from fontTools.ttLib import TTFont
from PIL import Image, ImageDraw, ImageFont

from .config import DEFAULT_CACHE_SIZE, DEFAULT_FALLBACK_FONT
from .errors import ConfigurationError, InputError, RasterizationFailure

logger = logging.getLogger(__name__)

# Natural spacing pads each side of the glyph by a sixth of the em.
NATURAL_PADDING_EM = 1.0 / 6.0
ITALIC_SHEAR = 0.2
BOLD_STROKE_WIDTH = 1


class FontStyle(Flag):
    REGULAR = 0
    BOLD = 1
    ITALIC = 2
    BOLD_ITALIC = BOLD | ITALIC

    @classmethod
    def parse(cls, value: "str | FontStyle") -> "FontStyle":
        if isinstance(value, FontStyle):
            return value
        key = value.strip().upper().replace("-", "_").replace(" ", "_")
        if key in ("", "NORMAL"):
            return cls.REGULAR
        if key == "BOLDITALIC":
            key = "BOLD_ITALIC"
        try:
            return cls[key]
        except KeyError as exc:
            raise ConfigurationError(f"Unknown font style {value!r}") from exc

    @property
    def label(self) -> str:
        return {
            FontStyle.REGULAR: "regular",
            FontStyle.BOLD: "bold",
            FontStyle.ITALIC: "italic",
            FontStyle.BOLD_ITALIC: "bold-italic",
        }[self]


class SpacingMode(Enum):
    NATURAL = "natural"
    TIGHT = "tight"


@dataclass(frozen=True)
class FamilyMetrics:
    """Family level vertical metrics, in font design units."""

    em_height: float
    cell_ascent: float
    cell_descent: float
    line_spacing: float

    @classmethod
    def from_ttfont(cls, font: TTFont) -> "FamilyMetrics":
        em_height = font["head"].unitsPerEm
        hhea = font["hhea"]
        ascent = hhea.ascent
        descent = abs(hhea.descent)
        if "OS/2" in font and font["OS/2"].usWinAscent > 0:
            ascent = font["OS/2"].usWinAscent
            descent = font["OS/2"].usWinDescent
        line_spacing = max(ascent + descent, hhea.ascent - hhea.descent + hhea.lineGap)
        return cls(
            em_height=float(em_height),
            cell_ascent=float(ascent),
            cell_descent=float(descent),
            line_spacing=float(line_spacing),
        )


@dataclass(frozen=True, eq=False)
class FontFace:
    name: str
    size: float
    style: FontStyle
    font: ImageFont.FreeTypeFont
    family: FamilyMetrics
    is_fallback: bool = False

    @property
    def baseline(self) -> int:
        return self.font.getmetrics()[0]

    @property
    def cell_height(self) -> int:
        """Height in pixels of one rendered line."""
        ascent, descent = self.font.getmetrics()
        return ascent + descent


@dataclass
class GlyphRaster:
    char: str
    spacing: SpacingMode
    bitmap: Image.Image


CacheKey = Tuple[str, float, FontStyle]


@dataclass
class FaceCache:
    """LRU of loaded faces keyed by font content hash, size and style.

    Owned by one adapter; nothing is shared between adapters.
    """

    capacity: int = DEFAULT_CACHE_SIZE
    _entries: "OrderedDict[CacheKey, FontFace]" = field(default_factory=OrderedDict, repr=False)

    @staticmethod
    def key_for(font_data: bytes, size: float, style: FontStyle) -> CacheKey:
        return (hashlib.sha256(font_data).hexdigest(), float(size), style)

    def get(self, key: CacheKey) -> Optional[FontFace]:
        face = self._entries.get(key)
        if face is not None:
            self._entries.move_to_end(key)
            logger.debug("Face cache hit for %s", face.name)
        return face

    def put(self, key: CacheKey, face: FontFace) -> None:
        self._entries[key] = face
        self._entries.move_to_end(key)
        while len(self._entries) > self.capacity:
            _, evicted = self._entries.popitem(last=False)
            logger.debug("Evicted %s from face cache", evicted.name)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def _family_name(font: TTFont) -> str:
    if "name" not in font:
        return "unnamed"
    name = font["name"].getDebugName(4) or font["name"].getDebugName(1)
    return name or "unnamed"


def _shear(image: Image.Image, baseline: int, antialias: bool) -> Image.Image:
    resample = Image.Resampling.BILINEAR if antialias else Image.Resampling.NEAREST
    return image.transform(
        image.size,
        Image.Transform.AFFINE,
        (1, ITALIC_SHEAR, -ITALIC_SHEAR * baseline, 0, 1, 0),
        resample=resample,
    )


class PilRasterAdapter:
    def __init__(
        self,
        fallback_font: str = DEFAULT_FALLBACK_FONT,
        cache: FaceCache | None = None,
    ) -> None:
        self.fallback_font = fallback_font
        self.cache = cache if cache is not None else FaceCache()
        # FreeType faces are not thread safe; shaping workers share one face.
        self._freetype_lock = threading.Lock()

    def load_face(self, font_data: bytes, size: float, style: FontStyle) -> FontFace:
        if not font_data:
            raise InputError("Font data is empty")

        key = FaceCache.key_for(font_data, size, style)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            ttfont = TTFont(io.BytesIO(font_data))
            family = FamilyMetrics.from_ttfont(ttfont)
            name = _family_name(ttfont)
        except Exception as exc:
            raise InputError(f"Font data is not a readable TrueType/OpenType font: {exc}") from exc

        try:
            font = ImageFont.truetype(io.BytesIO(font_data), size=size)
        except OSError as exc:
            raise RasterizationFailure(
                f"Failed to create face '{name} {size}, {style.label}': {exc}"
            ) from exc

        face = FontFace(name=name, size=size, style=style, font=font, family=family)
        self.cache.put(key, face)
        return face

    def load_fallback_face(self, size: float, style: FontStyle) -> FontFace:
        try:
            font = ImageFont.truetype(self.fallback_font, size=size)
            name = self.fallback_font
        except OSError:
            logger.warning(
                "Fallback font %r is not installed, using Pillow's built-in face", self.fallback_font
            )
            font = ImageFont.load_default(size=size)
            name = "Pillow default"
        if not isinstance(font, ImageFont.FreeTypeFont):
            raise RasterizationFailure("Pillow was built without FreeType; no fallback face available")

        ascent, descent = font.getmetrics()
        family = FamilyMetrics(
            em_height=float(size),
            cell_ascent=float(ascent),
            cell_descent=float(descent),
            line_spacing=float(ascent + descent),
        )
        return FontFace(name=name, size=size, style=style, font=font, family=family, is_fallback=True)

    def family_metrics(self, face: FontFace) -> FamilyMetrics:
        return face.family

    def _padding(self, face: FontFace) -> int:
        return int(math.ceil(face.size * NATURAL_PADDING_EM))

    def measure(self, face: FontFace, text: str) -> Tuple[int, int]:
        """Natural spacing extent of ``text``: (width, cell height)."""
        with self._freetype_lock:
            length = face.font.getlength(text)
        width = math.ceil(length) + 2 * self._padding(face)
        if face.style & FontStyle.BOLD:
            width += 2 * BOLD_STROKE_WIDTH
        if face.style & FontStyle.ITALIC:
            width += math.ceil(ITALIC_SHEAR * face.baseline)
        return width, face.cell_height

    def rasterize(
        self,
        face: FontFace,
        text: str,
        spacing: SpacingMode,
        antialias: bool,
        canvas_size: Tuple[int, int],
    ) -> GlyphRaster:
        width = max(int(canvas_size[0]), 1)
        height = max(int(canvas_size[1]), 1)
        image = Image.new("L", (width, height), color=0)
        draw = ImageDraw.Draw(image)
        draw.fontmode = "L" if antialias else "1"

        stroke = BOLD_STROKE_WIDTH if face.style & FontStyle.BOLD else 0
        origin_x = self._padding(face) if spacing is SpacingMode.NATURAL else 0
        with self._freetype_lock:
            draw.text(
                (origin_x + stroke, 0),
                text,
                font=face.font,
                fill=255,
                stroke_width=stroke,
                stroke_fill=255,
            )
        if face.style & FontStyle.ITALIC:
            image = _shear(image, face.baseline, antialias)
        return GlyphRaster(char=text, spacing=spacing, bitmap=image)
