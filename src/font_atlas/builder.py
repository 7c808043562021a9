from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from PIL import Image

from .charset import CharacterRepertoire
from .errors import ConfigurationError, RasterizationFailure
from .kerning import KerningPair, infer_kerning
from .metrics import FontMetrics, aggregate_metrics, check_references
from .packer import AtlasRect, pack_glyphs
from .raster import FontStyle, PilRasterAdapter
from .shaper import GlyphRecord, apply_monospace, shape_glyphs

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportOptions:
    size: float = 16.0
    style: FontStyle = FontStyle.REGULAR
    extended_charset: str = ""
    antialias: bool = True
    monospace: bool = False

    def __post_init__(self) -> None:
        if not self.size > 0:
            raise ConfigurationError(f"Font size must be positive, got {self.size}")
        object.__setattr__(self, "style", FontStyle.parse(self.style))


@dataclass(frozen=True)
class FontAsset:
    atlas: Image.Image
    glyphs: Tuple[GlyphRecord, ...]
    rects: Tuple[AtlasRect, ...]
    metrics: FontMetrics
    kerning: Tuple[KerningPair, ...]
    face_name: str = ""
    fallback_used: bool = False
    diagnostics: Tuple[str, ...] = ()
    _index: Dict[str, int] = field(init=False, repr=False, compare=False)
    _kerning_index: Dict[Tuple[str, str], float] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if len(self.glyphs) != len(self.rects):
            raise ValueError(
                f"Glyph table has {len(self.glyphs)} entries but atlas has {len(self.rects)} rects"
            )
        object.__setattr__(self, "_index", {glyph.char: i for i, glyph in enumerate(self.glyphs)})
        object.__setattr__(
            self, "_kerning_index", {(pair.left, pair.right): pair.offset for pair in self.kerning}
        )

    def glyph_index(self, char: str) -> Optional[int]:
        return self._index.get(char)

    def kerning_offset(self, left: str, right: str) -> float:
        return self._kerning_index.get((left, right), 0.0)


def build_font_asset(
    font_data: bytes,
    options: ImportOptions = ImportOptions(),
    repertoire: CharacterRepertoire | None = None,
    adapter=None,
    workers: int = 1,
) -> FontAsset:
    """Render, pack, measure and kern one font at one style.

    Any error other than a face that fails to instantiate aborts the build;
    that one is recovered by switching to the adapter's fallback face.
    """
    adapter = adapter if adapter is not None else PilRasterAdapter()
    base = repertoire if repertoire is not None else CharacterRepertoire.default()
    charset = base.merged_with(options.extended_charset)
    check_references(charset)

    diagnostics = []
    try:
        face = adapter.load_face(font_data, options.size, options.style)
    except RasterizationFailure as exc:
        logger.warning("%s; falling back to a monospace face", exc)
        diagnostics.append(f"Recovered with fallback face: {exc}")
        face = adapter.load_fallback_face(options.size, options.style)

    glyphs = shape_glyphs(adapter, face, charset.chars, options.antialias, workers=workers)
    cell_height = face.cell_height

    average_advance = sum(glyph.record.advance for glyph in glyphs) / max(len(glyphs), 1)
    atlas = pack_glyphs([glyph.bitmap for glyph in glyphs], cell_height, average_advance)

    if options.monospace:
        glyphs = apply_monospace(glyphs)

    metrics = aggregate_metrics(
        glyphs,
        charset,
        adapter.family_metrics(face),
        point_size=options.size,
        cell_height=cell_height,
        monospace=options.monospace,
    )
    kerning = infer_kerning(glyphs, metrics)

    asset = FontAsset(
        atlas=atlas.image,
        glyphs=tuple(glyph.record for glyph in glyphs),
        rects=atlas.rects,
        metrics=metrics,
        kerning=tuple(kerning),
        face_name=face.name,
        fallback_used=face.is_fallback,
        diagnostics=tuple(diagnostics),
    )
    logger.info(
        "Built %s %.1f %s: %d glyphs, %dx%d atlas, %d kerning pairs",
        face.name,
        options.size,
        options.style.label,
        len(asset.glyphs),
        asset.atlas.width,
        asset.atlas.height,
        len(asset.kerning),
    )
    return asset
