"""Skin coordinates and triangle strip/fan command lists for alias models."""

from __future__ import annotations

import math
import struct
from collections.abc import Sequence
from dataclasses import dataclass

Vertex = Sequence[float]
Triangle = Sequence[Vertex]
StripResult = tuple[tuple[int, ...], tuple[int, ...], tuple[int, ...]]

_MAX_SKIN_WIDTH = 150.0
_MAX_SKIN_HEIGHT = 190.0
_DEFAULT_SCALE = 8.0
_BORDER = 4
_MARGIN = 2


@dataclass(frozen=True)
class IndexedTriangle:
    """A triangle given as three vertex indices and three skin-coordinate indices."""

    index_xyz: tuple[int, int, int]
    index_st: tuple[int, int, int]

    def __post_init__(self) -> None:
        xyz = tuple(self.index_xyz)
        st = tuple(self.index_st)
        if len(xyz) != 3 or len(st) != 3:
            raise ValueError("a triangle needs exactly three corners")
        object.__setattr__(self, "index_xyz", xyz)
        object.__setattr__(self, "index_st", st)


@dataclass(frozen=True)
class SkinLayout:
    """Skin size and the integer (s, t) coordinates of every triangle corner."""

    width: int
    height: int
    coords: tuple[tuple[tuple[int, int], ...], ...]


def _rint(value: float) -> int:
    return math.floor(value + 0.5)


def build_st(
    triangles: Sequence[Triangle], fixed_width: int = 0, fixed_height: int = 0
) -> SkinLayout:
    """Project the base frame onto a skin, front faces on one half, back on the other.

    With no fixed size the scale is chosen so the skin stays within the
    traditional limits; otherwise the given size is filled.
    """
    triangles = list(triangles)
    if not triangles:
        raise ValueError("cannot lay out a skin for a model without triangles")

    points = [tuple(float(c) for c in vertex) for tri in triangles for vertex in tri]
    mins = [math.floor(min(p[axis] for p in points)) for axis in range(3)]
    maxs = [math.ceil(max(p[axis] for p in points)) for axis in range(3)]

    width = int(maxs[0] - mins[0])
    height = int(maxs[2] - mins[2])

    if not fixed_width:
        scale = _DEFAULT_SCALE
        if width * scale >= _MAX_SKIN_WIDTH:
            scale = _MAX_SKIN_WIDTH / width
        if height * scale >= _MAX_SKIN_HEIGHT:
            scale = _MAX_SKIN_HEIGHT / height
        s_scale = t_scale = scale
        iwidth = math.ceil(width * s_scale) + _BORDER
        iheight = math.ceil(height * t_scale) + _BORDER
    else:
        if width == 0 or height == 0:
            raise ValueError("model has no extent to map onto a fixed skin size")
        iwidth = int(fixed_width / 2)
        iheight = fixed_height
        s_scale = (iwidth - _BORDER) / width
        t_scale = (iheight - _BORDER) / height

    coords = []
    for tri in triangles:
        v0, v1, v2 = (tuple(float(c) for c in vertex) for vertex in tri)
        a = [v0[i] - v1[i] for i in range(3)]
        b = [v2[i] - v1[i] for i in range(3)]
        normal_y = a[2] * b[0] - a[0] * b[2]
        basex = iwidth + _MARGIN if normal_y > 0 else _MARGIN
        basey = _MARGIN
        coords.append(
            tuple(
                (
                    _rint((vertex[0] - mins[0]) * s_scale + basex),
                    _rint((maxs[2] - vertex[2]) * t_scale + basey),
                )
                for vertex in (v0, v1, v2)
            )
        )

    # a multiple of 4 keeps every scan line dword aligned
    skin_width = (iwidth * 2 + 3) & ~3
    return SkinLayout(width=skin_width, height=iheight, coords=tuple(coords))


def _next_triangle(
    triangles: Sequence[IndexedTriangle],
    start: int,
    edge: list[tuple[int, int]],
) -> tuple[int, int] | None:
    """Find the first later triangle that carries the edge, and the corner it starts at."""
    (m1, st1), (m2, st2) = edge
    for j in range(start + 1, len(triangles)):
        check = triangles[j]
        for k in range(3):
            after = (k + 1) % 3
            if (
                check.index_xyz[k] == m1
                and check.index_st[k] == st1
                and check.index_xyz[after] == m2
                and check.index_st[after] == st2
            ):
                return j, k
    return None


def _grow(
    triangles: Sequence[IndexedTriangle],
    used: Sequence[bool],
    start: int,
    startv: int,
    strip: bool,
) -> StripResult:
    first = triangles[start]
    xyz = [first.index_xyz[(startv + i) % 3] for i in range(3)]
    st = [first.index_st[(startv + i) % 3] for i in range(3)]
    tris = [start]

    if strip:
        edge = [(xyz[2], st[2]), (xyz[1], st[1])]
    else:
        edge = [(xyz[0], st[0]), (xyz[2], st[2])]

    while True:
        found = _next_triangle(triangles, start, edge)
        if found is None:
            break
        j, k = found
        if used[j] or j in tris:
            break
        check = triangles[j]
        corner = (check.index_xyz[(k + 2) % 3], check.index_st[(k + 2) % 3])
        if strip:
            edge[1 if len(tris) % 2 else 0] = corner
        else:
            edge[1] = corner
        xyz.append(corner[0])
        st.append(corner[1])
        tris.append(j)

    return tuple(xyz), tuple(st), tuple(tris)


def strip_length(
    triangles: Sequence[IndexedTriangle], used: Sequence[bool], start: int, startv: int
) -> StripResult:
    """Grow a triangle strip from one triangle and corner.

    Returns the vertex indices, the skin-coordinate indices and the triangle
    numbers of the strip. Only later triangles not flagged in used are taken.
    """
    return _grow(triangles, used, start, startv, strip=True)


def fan_length(
    triangles: Sequence[IndexedTriangle], used: Sequence[bool], start: int, startv: int
) -> StripResult:
    """Grow a triangle fan around one corner of a triangle; returns as strip_length."""
    return _grow(triangles, used, start, startv, strip=False)


def _float_bits(value: float) -> int:
    return struct.unpack("<i", struct.pack("<f", value))[0]


def build_gl_commands(
    triangles: Sequence[IndexedTriangle],
    st: Sequence[tuple[int, int]],
    skin_width: int,
    skin_height: int,
) -> list[int]:
    """Cover the model with strips and fans and return the command stream.

    Each command is a vertex count (positive for a strip, negative for a fan)
    followed by s, t and a vertex index per vertex, all as 32-bit words with s
    and t stored as float bit patterns; a 0 word ends the list.
    """
    if skin_width <= 0 or skin_height <= 0:
        raise ValueError("skin size must be positive")
    triangles = list(triangles)
    used = [False] * len(triangles)
    commands: list[int] = []

    for index in range(len(triangles)):
        if used[index]:
            continue

        best: StripResult | None = None
        best_is_strip = False
        for is_strip in (False, True):
            grow = strip_length if is_strip else fan_length
            for startv in range(3):
                candidate = grow(triangles, used, index, startv)
                if best is None or len(candidate[2]) > len(best[2]):
                    best = candidate
                    best_is_strip = is_strip

        xyz, st_indices, tris = best
        for tri in tris:
            used[tri] = True

        count = len(xyz)
        commands.append(count if best_is_strip else -count)
        for vertex, st_index in zip(xyz, st_indices):
            s, t = st[st_index]
            commands.append(_float_bits((s + 0.5) / skin_width))
            commands.append(_float_bits((t + 0.5) / skin_height))
            commands.append(vertex)

    commands.append(0)
    return commands