import io

import pytest
from fontTools.fontBuilder import FontBuilder
from fontTools.pens.ttGlyphPen import TTGlyphPen

from font_atlas.charset import CharacterRepertoire
from font_atlas.raster import FaceCache, PilRasterAdapter

UNITS_PER_EM = 1000
ASCENT = 800
DESCENT = -200

MISSING_FONT = "no-such-font-for-tests.ttf"


def polygon(*points):
    pen = TTGlyphPen(None)
    pen.moveTo(points[0])
    for point in points[1:]:
        pen.lineTo(point)
    pen.closePath()
    return pen.glyph()


def rect(x0, y0, x1, y1):
    return polygon((x0, y0), (x0, y1), (x1, y1), (x1, y0))


# name: (char, outline, advance, left side bearing)
GLYPHS = {
    "A": ("A", polygon((50, 0), (500, 700), (950, 0)), 1000, 50),
    "V": ("V", polygon((50, 700), (950, 700), (500, 0)), 1000, 50),
    "H": ("H", rect(100, 0, 900, 700), 1000, 100),
    "I": ("I", rect(100, 0, 250, 700), 350, 100),
    "o": ("o", rect(100, 0, 600, 450), 700, 100),
    "x": ("x", rect(100, 0, 600, 450), 700, 100),
    "p": ("p", rect(100, -200, 600, 450), 700, 100),
    "g": ("g", rect(100, -200, 600, 450), 700, 100),
    "space": (" ", TTGlyphPen(None).glyph(), 300, 0),
}


def build_test_font() -> bytes:
    fb = FontBuilder(UNITS_PER_EM, isTTF=True)
    glyph_order = [".notdef"] + list(GLYPHS)
    fb.setupGlyphOrder(glyph_order)
    fb.setupCharacterMap({ord(entry[0]): name for name, entry in GLYPHS.items()})

    glyphs = {".notdef": rect(100, 0, 600, 700)}
    glyphs.update({name: entry[1] for name, entry in GLYPHS.items()})
    fb.setupGlyf(glyphs)

    metrics = {".notdef": (700, 100)}
    for name, (_, _, advance, lsb) in GLYPHS.items():
        metrics[name] = (advance, lsb)
    fb.setupHorizontalMetrics(metrics)
    fb.setupHorizontalHeader(ascent=ASCENT, descent=DESCENT)
    fb.setupNameTable({"familyName": "Atlas Test", "styleName": "Regular"})
    fb.setupOS2(
        sTypoAscender=ASCENT,
        sTypoDescender=DESCENT,
        sTypoLineGap=0,
        usWinAscent=ASCENT,
        usWinDescent=abs(DESCENT),
    )
    fb.setupPost()
    fb.setupMaxp()

    buffer = io.BytesIO()
    fb.save(buffer)
    return buffer.getvalue()


@pytest.fixture(scope="session")
def font_bytes():
    return build_test_font()


@pytest.fixture
def adapter():
    return PilRasterAdapter(fallback_font=MISSING_FONT, cache=FaceCache(capacity=4))


@pytest.fixture
def av_repertoire():
    return CharacterRepertoire.create("AV ", body_ascent_ref="AV", baseline_ref="AV", descent_ref="V")


@pytest.fixture
def test_repertoire():
    return CharacterRepertoire.create(
        "AVHIoxpg ", body_ascent_ref="ox", baseline_ref="ox", descent_ref="pg"
    )
