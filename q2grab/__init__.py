"""Palettes, sprites, skin layouts, strip commands, compressors, cinematics and pak files for Quake II data."""

__version__ = "0.1.0"