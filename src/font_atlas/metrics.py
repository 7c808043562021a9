from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .charset import CharacterRepertoire
from .errors import ConfigurationError
from .raster import FamilyMetrics
from .shaper import BLANK_CHARS, ShapedGlyph


@dataclass(frozen=True)
class FontMetrics:
    point_size: float
    cell_height: int
    ascent: int
    body_ascent: int
    descent: int
    baseline: int
    monospace: bool


def _require_reference(label: str, subset) -> int:
    if not subset:
        raise ConfigurationError(f"The {label} reference subset is empty; cannot average over it")
    return len(subset)


def check_references(repertoire: CharacterRepertoire) -> None:
    """Raise ConfigurationError if any metric reference subset is empty."""
    _require_reference("body ascent", repertoire.body_ascent_ref)
    _require_reference("baseline", repertoire.baseline_ref)
    _require_reference("descent", repertoire.descent_ref)


def aggregate_metrics(
    glyphs: Sequence[ShapedGlyph],
    repertoire: CharacterRepertoire,
    family: FamilyMetrics,
    point_size: float,
    cell_height: int,
    monospace: bool,
) -> FontMetrics:
    """Derive font wide metrics from the family metrics and the reference glyphs.

    Sums are divided by the size of each reference subset, so reference
    characters that render no ink pull the average down rather than being
    skipped.
    """
    body_count = _require_reference("body ascent", repertoire.body_ascent_ref)
    baseline_count = _require_reference("baseline", repertoire.baseline_ref)
    descent_count = _require_reference("descent", repertoire.descent_ref)

    body_sum = 0
    baseline_sum = 0
    descent_sum = 0
    for glyph in glyphs:
        if glyph.char in BLANK_CHARS:
            continue
        bottom = glyph.opaque_top + glyph.opaque_height
        if glyph.char in repertoire.body_ascent_ref:
            body_sum += glyph.opaque_height
        if glyph.char in repertoire.baseline_ref:
            baseline_sum += bottom
        if glyph.char in repertoire.descent_ref:
            descent_sum += bottom

    ascent = round(family.cell_ascent * point_size / family.em_height)
    body_ascent = body_sum // body_count
    baseline = baseline_sum // baseline_count
    descent = round(descent_sum / descent_count - baseline)

    return FontMetrics(
        point_size=point_size,
        cell_height=cell_height,
        ascent=int(ascent),
        body_ascent=body_ascent,
        descent=int(descent),
        baseline=baseline,
        monospace=monospace,
    )
