"""Kerning inferred from rendered glyph silhouettes.

Each glyph is sampled at a handful of heights. For every height band we record
how many empty columns separate the glyph's left and right edges from its ink.
A pair's kerning offset is the negated smallest combined gap over all bands:
the two glyphs can move that far together without their ink touching at any
sampled height.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from PIL import Image

from .metrics import FontMetrics
from .shaper import BLANK_CHARS, ShapedGlyph

# Coverage at or below this is treated as empty, so faint antialiasing fringes don't block kerning.
KERNING_ALPHA_THRESHOLD = 64
MIN_SAMPLE_ROWS = 6


@dataclass(frozen=True)
class KerningPair:
    left: str
    right: str
    offset: float


@dataclass(frozen=True)
class DepthProfile:
    left: Tuple[int, ...]
    right: Tuple[int, ...]


def _div(numerator: int, denominator: int) -> int:
    # Truncates toward zero, also for negative metrics.
    return int(numerator / denominator)


def sample_rows(metrics: FontMetrics) -> List[int]:
    """Vertical sample positions, top to bottom, in cell coordinates."""
    baseline = metrics.baseline
    ascent = metrics.ascent
    body = metrics.body_ascent
    descent = metrics.descent

    count = _div(ascent + descent, 4)
    if count <= MIN_SAMPLE_ROWS:
        return [
            baseline - ascent,
            baseline - body,
            baseline - _div(body * 2, 3),
            baseline - _div(body, 3),
            baseline,
            baseline + descent,
        ]

    body_count = count * 2 // 3
    descent_count = (count - body_count) // 2
    ascent_count = count - body_count - descent_count

    rows = []
    for k in range(ascent_count):
        rows.append(baseline - ascent + _div(k * (ascent - body), ascent_count))
    for k in range(body_count):
        rows.append(baseline - body + _div(k * body, body_count - 1))
    for k in range(descent_count):
        rows.append(baseline + _div((k + 1) * descent, descent_count))
    return rows


def _bands(rows: Sequence[int], offset_y: int, height: int):
    """Yield (begin, end) row ranges, one per sample; the last one runs to the bottom."""
    last = 0
    for index, row in enumerate(rows):
        begin = min(max(last, 0), height - 1)
        end = min(max(row + offset_y, 0), height)
        if index == len(rows) - 1:
            end = height
        last = end
        yield begin, end


def depth_profile(char: str, offset_y: float, bitmap: Image.Image, rows: Sequence[int]) -> DepthProfile:
    """Empty columns between each edge of ``bitmap`` and its ink, per sample band.

    Depths are capped at the horizontal midpoint. Blank characters and empty
    bitmaps get all-zero profiles.
    """
    width, height = bitmap.size
    if char in BLANK_CHARS or width <= 0 or height <= 0:
        zeros = (0,) * len(rows)
        return DepthProfile(left=zeros, right=zeros)

    pixels = bitmap.load()
    left_mid = width // 2
    right_mid = (width + 1) // 2
    left = []
    right = []
    for begin, end in _bands(rows, int(offset_y), height):
        left_depth = left_mid
        right_depth = right_mid
        for y in range(begin, end):
            x = 0
            while pixels[x, y] <= KERNING_ALPHA_THRESHOLD:
                x += 1
                if x >= left_mid:
                    break
            left_depth = min(left_depth, x)

            x = width - 1
            while pixels[x, y] <= KERNING_ALPHA_THRESHOLD:
                x -= 1
                if x <= right_mid:
                    break
            right_depth = min(right_depth, width - 1 - x)
        left.append(left_depth)
        right.append(right_depth)
    return DepthProfile(left=tuple(left), right=tuple(right))


def infer_kerning(glyphs: Sequence[ShapedGlyph], metrics: FontMetrics) -> List[KerningPair]:
    """Sparse kerning table over every ordered pair of glyphs, self pairs included."""
    if metrics.monospace:
        return []

    rows = sample_rows(metrics)
    kernable = [glyph for glyph in glyphs if glyph.char not in BLANK_CHARS]
    profiles = [
        depth_profile(glyph.char, glyph.record.offset[1], glyph.bitmap, rows) for glyph in kernable
    ]

    pairs = []
    for left_glyph, left_profile in zip(kernable, profiles):
        for right_glyph, right_profile in zip(kernable, profiles):
            min_sum = min(
                a + b for a, b in zip(left_profile.right, right_profile.left)
            )
            if min_sum != 0:
                pairs.append(KerningPair(left_glyph.char, right_glyph.char, float(-min_sum)))
    return pairs
