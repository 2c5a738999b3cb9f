import struct

import pytest

from q2grab.glcmds import (
    IndexedTriangle,
    SkinLayout,
    build_gl_commands,
    build_st,
    fan_length,
    strip_length,
)


def _as_float(word):
    return struct.unpack("<f", struct.pack("<i", word))[0]


def _decode(commands):
    """Split a command stream into (count, [(s, t, xyz), ...]) groups."""
    groups = []
    position = 0
    while commands[position] != 0:
        count = commands[position]
        position += 1
        verts = []
        for _ in range(abs(count)):
            s, t, xyz = commands[position : position + 3]
            verts.append((_as_float(s), _as_float(t), xyz))
            position += 3
        groups.append((count, verts))
    assert position == len(commands) - 1
    return groups


def _tri(xyz, st=None):
    return IndexedTriangle(tuple(xyz), tuple(st if st is not None else xyz))


FRONT = ((0.0, 0.0, 0.0), (10.0, 0.0, 0.0), (0.0, 0.0, 10.0))
BACK = ((0.0, 0.0, 0.0), (0.0, 0.0, 10.0), (10.0, 0.0, 0.0))


def test_build_st_fixed_size_sets_skin_dimensions():
    layout = build_st([FRONT], 64, 32)
    assert isinstance(layout, SkinLayout)
    assert layout.width == 64
    assert layout.height == 32


def test_build_st_width_is_multiple_of_four():
    tri = ((0.0, 0.0, 0.0), (7.3, 0.0, 0.0), (0.0, 0.0, 5.1))
    layout = build_st([tri])
    assert layout.width % 4 == 0
    assert len(layout.coords) == 1
    assert len(layout.coords[0]) == 3


def test_build_st_front_faces_use_right_half():
    layout = build_st([FRONT])
    half = layout.width // 2
    assert all(s > half for s, _ in layout.coords[0])


def test_build_st_back_faces_use_left_half():
    layout = build_st([BACK])
    half = layout.width // 2
    assert all(0 <= s < half for s, _ in layout.coords[0])


def test_build_st_coords_inside_skin():
    layout = build_st([FRONT, BACK])
    for corners in layout.coords:
        for s, t in corners:
            assert 0 <= s <= layout.width
            assert 0 <= t <= layout.height


def test_build_st_top_of_model_maps_to_top_of_skin():
    layout = build_st([BACK])
    by_vertex = dict(zip(BACK, layout.coords[0]))
    assert by_vertex[(0.0, 0.0, 10.0)][1] < by_vertex[(0.0, 0.0, 0.0)][1]


def test_build_st_rejects_empty_model():
    with pytest.raises(ValueError):
        build_st([])


def test_build_st_fixed_size_rejects_flat_model():
    flat = ((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 5.0))
    with pytest.raises(ValueError):
        build_st([flat], 64, 64)


def test_strip_length_joins_shared_edge():
    tris = [_tri((0, 1, 2)), _tri((2, 1, 3))]
    xyz, st, members = strip_length(tris, [False, False], 0, 0)
    assert xyz == (0, 1, 2, 3)
    assert st == (0, 1, 2, 3)
    assert members == (0, 1)


def test_fan_length_joins_around_corner():
    tris = [_tri((0, 1, 2)), _tri((0, 2, 3))]
    xyz, st, members = fan_length(tris, [False, False], 0, 0)
    assert xyz == (0, 1, 2, 3)
    assert members == (0, 1)


def test_strip_stops_at_used_triangle():
    tris = [_tri((0, 1, 2)), _tri((2, 1, 3))]
    used = [False, True]
    xyz, _, members = strip_length(tris, used, 0, 0)
    assert members == (0,)
    assert xyz == (0, 1, 2)
    assert used == [False, True]


def test_strip_needs_matching_skin_coordinates():
    tris = [_tri((0, 1, 2)), _tri((2, 1, 3), (2, 9, 3))]
    _, _, members = strip_length(tris, [False, False], 0, 0)
    assert members == (0,)


def test_strip_only_looks_at_later_triangles():
    tris = [_tri((2, 1, 3)), _tri((0, 1, 2))]
    _, _, members = strip_length(tris, [False, False], 1, 0)
    assert members == (1,)


def test_single_triangle_command():
    tris = [_tri((0, 1, 2))]
    st = [(0, 0), (3, 0), (0, 5)]
    commands = build_gl_commands(tris, st, 8, 16)
    groups = _decode(commands)
    assert commands[-1] == 0
    assert len(groups) == 1
    count, verts = groups[0]
    assert count == -3
    assert [v[2] for v in verts] == [0, 1, 2]
    for (s, t, xyz) in verts:
        assert s * 8 - 0.5 == pytest.approx(st[xyz][0])
        assert t * 16 - 0.5 == pytest.approx(st[xyz][1])


def test_quad_becomes_one_command():
    tris = [_tri((0, 1, 2)), _tri((2, 1, 3))]
    st = [(0, 0), (4, 0), (0, 4), (4, 4)]
    commands = build_gl_commands(tris, st, 8, 8)
    groups = _decode(commands)
    assert len(groups) == 1
    assert abs(groups[0][0]) == 4
    assert len(commands) == 1 + 4 * 3 + 1


def _grid(size):
    tris = []
    for row in range(size):
        for col in range(size):
            a = row * (size + 1) + col
            b = a + 1
            c = a + size + 1
            d = c + 1
            tris.append(_tri((a, b, c)))
            tris.append(_tri((c, b, d)))
    return tris


def test_grid_covers_every_triangle_once():
    size = 3
    tris = _grid(size)
    verts = (size + 1) * (size + 1)
    st = [(i % 7, i // 7) for i in range(verts)]
    groups = _decode(build_gl_commands(tris, st, 16, 16))
    assert sum(abs(count) - 2 for count, _ in groups) == len(tris)
    used = {xyz for _, vs in groups for _, _, xyz in vs}
    assert used == set(range(verts))


def test_build_gl_commands_rejects_zero_skin():
    with pytest.raises(ValueError):
        build_gl_commands([_tri((0, 1, 2))], [(0, 0)] * 3, 0, 8)


def test_empty_model_is_only_terminator():
    assert build_gl_commands([], [], 8, 8) == [0]