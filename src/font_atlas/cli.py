"""CLI entry point: build a font asset and write a preview atlas plus JSON manifest."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

from .builder import FontAsset, ImportOptions, build_font_asset
from .config import Settings
from .errors import FontAtlasError
from .raster import FaceCache, FontStyle, PilRasterAdapter

load_dotenv()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Render a TrueType font into a bitmap font atlas.")
    parser.add_argument("font", help="Path to the .ttf/.otf file to import.")
    parser.add_argument("--size", type=float, default=16.0, help="Font size.")
    parser.add_argument(
        "--style",
        default="regular",
        help="regular, bold, italic or bold-italic.",
    )
    parser.add_argument(
        "--extended-charset",
        default="",
        help="Characters to render in addition to printable ASCII.",
    )
    parser.add_argument("--no-antialias", action="store_true", help="Render 1-bit glyphs.")
    parser.add_argument("--monospace", action="store_true", help="Give every glyph the same advance.")
    parser.add_argument(
        "--output-dir",
        default=".",
        help="Directory to write atlas.png and font.json to.",
    )
    return parser.parse_args(argv)


def asset_manifest(asset: FontAsset) -> Dict[str, Any]:
    metrics = asset.metrics
    return {
        "face": asset.face_name,
        "fallback_used": asset.fallback_used,
        "diagnostics": list(asset.diagnostics),
        "atlas": {"width": asset.atlas.width, "height": asset.atlas.height},
        "metrics": {
            "size": metrics.point_size,
            "height": metrics.cell_height,
            "ascent": metrics.ascent,
            "body_ascent": metrics.body_ascent,
            "descent": metrics.descent,
            "baseline": metrics.baseline,
            "monospace": metrics.monospace,
        },
        "glyphs": [
            {
                "char": glyph.char,
                "size": list(glyph.size),
                "offset": list(glyph.offset),
                "advance": glyph.advance,
                "rect": [rect.x, rect.y, rect.w, rect.h],
            }
            for glyph, rect in zip(asset.glyphs, asset.rects)
        ],
        "kerning": [[pair.left, pair.right, pair.offset] for pair in asset.kerning],
    }


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        settings = Settings.from_env()
    except FontAtlasError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")

    font_path = Path(args.font).expanduser().resolve()
    if not font_path.exists():
        print(f"ERROR: font not found at {font_path}", file=sys.stderr)
        return 1

    adapter = PilRasterAdapter(
        fallback_font=settings.fallback_font,
        cache=FaceCache(capacity=settings.cache_size),
    )
    try:
        options = ImportOptions(
            size=args.size,
            style=FontStyle.parse(args.style),
            extended_charset=args.extended_charset,
            antialias=not args.no_antialias,
            monospace=args.monospace,
        )
        asset = build_font_asset(
            font_path.read_bytes(),
            options,
            adapter=adapter,
            workers=settings.workers,
        )
    except FontAtlasError as exc:
        print(f"ERROR: import of {font_path.name} failed: {exc}", file=sys.stderr)
        return 1

    output_dir = Path(args.output_dir).expanduser().resolve()
    output_dir.mkdir(parents=True, exist_ok=True)
    atlas_path = output_dir / "atlas.png"
    manifest_path = output_dir / "font.json"
    asset.atlas.save(atlas_path)
    manifest_path.write_text(json.dumps(asset_manifest(asset), indent=2, ensure_ascii=False), encoding="utf-8")

    summary = {
        "font": str(font_path),
        "atlas": str(atlas_path),
        "manifest": str(manifest_path),
        "glyphs": len(asset.glyphs),
        "kerning_pairs": len(asset.kerning),
        "fallback_used": asset.fallback_used,
    }
    print(json.dumps(summary))
    return 0


if __name__ == "__main__":
    sys.exit(main())
