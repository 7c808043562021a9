from PIL import Image

from fakes import Box, FakeAdapter, shaped
from font_atlas.raster import SpacingMode
from font_atlas.shaper import apply_monospace, opaque_bounds, shape_glyph, shape_glyphs

BOXES = {
    "A": Box(width=12, natural=(3, 10), tight=(0, 5), top=2, bottom=8),
    "I": Box(width=6, natural=(2, 4), tight=(0, 2), top=2, bottom=8),
    " ": Box(width=10),
    "\t": Box(width=8),
    "\u200b": Box(width=0),
}


def test_glyph_is_trimmed_to_its_opaque_columns_but_keeps_full_height():
    adapter = FakeAdapter(BOXES)
    glyph = shape_glyph(adapter, adapter.face, "A", True)

    assert glyph.bitmap.size == (7, 11)
    assert glyph.record.size == (7, 11)
    assert glyph.opaque_top == 2
    assert glyph.opaque_height == 6
    assert glyph.measured_width == 12


def test_offset_is_natural_minus_typographic_width():
    adapter = FakeAdapter(BOXES)
    record = shape_glyph(adapter, adapter.face, "A", True).record

    assert record.offset == (2.0, 0.0)
    assert record.advance == 5.0
    assert record.advance == record.size[0] - record.offset[0]


def test_each_glyph_is_rasterized_in_both_spacing_modes():
    adapter = FakeAdapter(BOXES)
    shape_glyph(adapter, adapter.face, "A", True)
    assert adapter.rasterized == [("A", SpacingMode.NATURAL), ("A", SpacingMode.TIGHT)]


def test_space_size_and_offset_are_halved():
    adapter = FakeAdapter(BOXES)
    glyph = shape_glyph(adapter, adapter.face, " ", True)

    assert glyph.record.size == (5, 11)
    assert glyph.record.offset == (0.0, 0.0)
    assert glyph.record.advance == 5.0
    # The atlas keeps the full measured cell.
    assert glyph.bitmap.width == 10
    assert adapter.rasterized == [(" ", SpacingMode.NATURAL)]


def test_tab_is_not_trimmed_or_halved():
    adapter = FakeAdapter(BOXES)
    glyph = shape_glyph(adapter, adapter.face, "\t", True)
    assert glyph.record.size == (8, 11)
    assert glyph.record.advance == 8.0


def test_zero_width_glyph_still_gets_a_one_pixel_bitmap():
    adapter = FakeAdapter(BOXES)
    glyph = shape_glyph(adapter, adapter.face, "\u200b", True)
    assert glyph.bitmap.size == (1, 11)
    assert glyph.record.size == (1, 11)
    assert glyph.opaque_height == 0


def test_parallel_shaping_keeps_repertoire_order():
    adapter = FakeAdapter(BOXES)
    chars = ["I", "A", " ", "I", "\t", "A"]
    sequential = shape_glyphs(adapter, adapter.face, chars, True)
    parallel = shape_glyphs(adapter, adapter.face, chars, True, workers=4)

    assert [glyph.char for glyph in parallel] == chars
    assert [glyph.record for glyph in parallel] == [glyph.record for glyph in sequential]


def test_monospace_gives_every_glyph_the_widest_advance():
    adapter = FakeAdapter(BOXES)
    glyphs = shape_glyphs(adapter, adapter.face, ["A", "I"], True)
    adjusted = apply_monospace(glyphs)

    assert [glyph.record.advance for glyph in adjusted] == [7.0, 7.0]
    wide, narrow = adjusted
    assert wide.record.offset == glyphs[0].record.offset
    # "I" is 2px wide: centring in a 7px cell shifts it by round(2.5) == 2.
    assert narrow.record.offset[0] == glyphs[1].record.offset[0] - 2
    assert narrow.bitmap is glyphs[1].bitmap


def test_monospace_of_nothing_is_nothing():
    assert apply_monospace([]) == []


def test_opaque_bounds_threshold():
    bitmap = Image.new("L", (6, 4), color=0)
    bitmap.putpixel((1, 1), 30)
    bitmap.putpixel((4, 2), 200)
    assert opaque_bounds(bitmap) == (1, 1, 5, 3)
    assert opaque_bounds(bitmap, threshold=64) == (4, 2, 5, 3)
    assert opaque_bounds(Image.new("L", (3, 3))) is None


def test_shaped_helper_builds_consistent_records():
    glyph = shaped("x", width=3, height=5)
    assert glyph.record.size == (3, 5)
