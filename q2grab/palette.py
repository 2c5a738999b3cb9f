"""Palette matching, colormap building and image cropping for 8-bit images."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

_WORST_DISTORTION = 256 * 256 * 4
_CHUNK = 4096


class GrabError(Exception):
    """Raised when an image grab cannot be carried out."""


def _palette_array(palette: bytes | Sequence[int]) -> np.ndarray:
    data = bytes(palette)
    if len(data) != 768:
        raise GrabError(f"palette must hold 768 bytes, not {len(data)}")
    return np.frombuffer(data, dtype=np.uint8).reshape(256, 3).astype(np.int64)


def _best_colors(pal: np.ndarray, colors: np.ndarray, start: int, stop: int) -> np.ndarray:
    """Vectorised nearest palette entry; entry 0 is the last resort."""
    colors = np.asarray(colors, dtype=np.int64).reshape(-1, 3)
    candidates = pal[start : stop + 1]
    result = np.zeros(len(colors), dtype=np.int64)
    if len(candidates) == 0:
        return result
    for offset in range(0, len(colors), _CHUNK):
        block = colors[offset : offset + _CHUNK]
        diff = block[:, None, :] - candidates[None, :, :]
        distortion = (diff * diff).sum(axis=2)
        best = distortion.argmin(axis=1)
        lowest = distortion[np.arange(len(block)), best]
        result[offset : offset + len(block)] = np.where(
            lowest < _WORST_DISTORTION, best + start, 0
        )
    return result


def best_color(palette, r: int, g: int, b: int, start: int, stop: int) -> int:
    """Return the palette index in [start, stop] closest to (r, g, b).

    The first of equally close entries wins; 0 if none is close enough.
    """
    pal = _palette_array(palette)
    return int(_best_colors(pal, np.array([[r, g, b]]), start, stop)[0])


def find_color(palette, r: int, g: int, b: int) -> int:
    """Clamp the colour to 0..255 and match it against entries 0..254."""
    r, g, b = (min(max(c, 0), 255) for c in (r, g, b))
    return best_color(palette, r, g, b, 0, 254)


def remap_zero(pixels: bytes | Sequence[int], palette) -> bytes:
    """Replace every 0 pixel with the darkest palette entry among 1..254."""
    pal = _palette_array(palette)
    sums = pal[1:255].sum(axis=1)
    alt_zero = int(sums.argmin()) + 1
    return bytes(alt_zero if p == 0 else p for p in bytes(pixels))


def build_colormap(palette) -> bytes:
    """Build the 64 light levels and the 256-row translucency table.

    The result is 256 columns by 320 rows, brightest level first.
    """
    pal = _palette_array(palette)
    levels = 64
    brights = 1
    color_range = np.float32(2)
    shaded_cols = 256 - brights
    pal_f32 = pal[:shaded_cols].astype(np.float32)
    rows: list[np.ndarray] = []

    for level in range(levels):
        frac = color_range - color_range * np.float32(level) / np.float32(levels - 1)
        scaled = (pal_f32 * np.float32(frac)).astype(np.float64) + 0.5
        colors = np.trunc(scaled).astype(np.int64)
        indices = _best_colors(pal, colors, 1, 254)
        fullbrights = np.arange(shaded_cols, 256, dtype=np.int64)
        rows.append(np.concatenate([indices, fullbrights]))

    src = pal[:255].astype(np.float64)
    blended = src[None, :, :] * 0.33 + src[:, None, :] * 0.66
    blended = np.trunc(blended.astype(np.float32)).astype(np.int64)
    for level in range(255):
        indices = _best_colors(pal, blended[level], 1, 254)
        rows.append(np.concatenate([indices, [255]]))
    rows.append(np.full(256, 255, dtype=np.int64))

    return np.concatenate(rows).astype(np.uint8).tobytes()


def crop(
    image: bytes | Sequence[int],
    image_width: int,
    image_height: int,
    x: int,
    y: int,
    width: int,
    height: int,
) -> bytes:
    """Cut a width x height block out of an 8-bit image."""
    if (
        x < 0
        or y < 0
        or width < 0
        or height < 0
        or x + width > image_width
        or y + height > image_height
    ):
        raise GrabError(f"GrabPic: Bad size: {x}, {y}, {width}, {height}")
    data = bytes(image)
    return b"".join(
        data[row * image_width + x : row * image_width + x + width]
        for row in range(y, y + height)
    )


def rgba_to_indexed(rgba: bytes | Sequence[int], palette) -> bytes:
    """Convert 32-bit RGBA pixels to palette indices, ignoring alpha."""
    data = bytes(rgba)
    if len(data) % 4:
        raise GrabError("RGBA data length is not a multiple of 4")
    pal = _palette_array(palette)
    pixels = np.frombuffer(data, dtype=np.uint8).reshape(-1, 4)[:, :3]
    return _best_colors(pal, pixels, 0, 254).astype(np.uint8).tobytes()


class ErrorDiffuser:
    """Averages pixel blocks to one palette colour, carrying the error forward."""

    def __init__(self, palette, source_palette) -> None:
        self._palette = _palette_array(palette)
        self._source = _palette_array(source_palette)
        self.error = (0, 0, 0)

    def average(self, pixels: Sequence[int]) -> int:
        """Return the palette index best matching the mean colour of pixels."""
        indices = list(pixels)
        if not indices:
            raise GrabError("cannot average an empty pixel block")
        total = self._source[indices].sum(axis=0)
        count = len(indices)
        r, g, b = (int(c) // count + e for c, e in zip(total, self.error))
        clamped = [min(max(c, 0), 255) for c in (r, g, b)]
        best = int(_best_colors(self._palette, np.array([clamped]), 0, 254)[0])
        pr, pg, pb = (int(c) for c in self._palette[best])
        self.error = (r - pr, g - pg, b - pb)
        return best