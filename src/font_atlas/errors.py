"""Error types raised while building a font asset."""

from __future__ import annotations


class FontAtlasError(Exception):
    """Base class for every failure that aborts a font build."""


class ConfigurationError(FontAtlasError):
    """Import parameters or reference subsets are unusable."""


class InputError(FontAtlasError):
    """Font bytes are empty or not a font program."""


class RasterizationFailure(FontAtlasError):
    """The rasterizer could not instantiate the requested face."""


class PackingOverflow(FontAtlasError):
    """Glyphs did not fit into the atlas, even after growing it."""
