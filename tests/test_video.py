import struct

import pytest

from q2grab.compress import Huffman1
from q2grab.video import (
    WavError,
    WavInfo,
    encode_cinematic,
    frame_filename,
    parse_wav,
    sound_for_frame,
    unique_sample_count,
)

GRAY = bytes(i for i in range(256) for _ in range(3))


def _chunk(tag, body):
    return tag + struct.pack("<i", len(body)) + body + (b"\0" if len(body) % 2 else b"")


def _wav(samples, rate=22050, channels=1, bits=8, fmt_code=1, extra=b"", with_data=True):
    fmt = struct.pack(
        "<hhiihh", fmt_code, channels, rate, rate * channels * bits // 8,
        channels * bits // 8, bits,
    )
    body = b"WAVE" + _chunk(b"fmt ", fmt)
    if with_data:
        body += _chunk(b"data", samples)
    body += extra
    return _chunk(b"RIFF", body)


def _cue(loopstart):
    return _chunk(b"cue ", struct.pack("<iii4siii", 1, 1, 0, b"data", 0, 0, loopstart))


def _mark(length):
    return _chunk(b"LIST", b"adtl" + b"ltxt" + struct.pack("<iii", 20, 1, length) + b"mark")


def test_parse_plain_wav():
    info = parse_wav(_wav(bytes(100), rate=11025, channels=2, bits=16), "s")
    assert info == WavInfo(rate=11025, width=2, channels=2, loopstart=-1,
                           samples=100, dataofs=44)


def test_empty_data_gives_zero_info():
    assert parse_wav(b"") == WavInfo()


def test_loop_from_cue_and_mark():
    info = parse_wav(_wav(bytes(100), extra=_cue(10) + _mark(50)))
    assert info.loopstart == 10
    assert info.samples == 60


def test_cue_without_mark_uses_data_length():
    info = parse_wav(_wav(bytes(100), extra=_cue(10)))
    assert info.loopstart == 10
    assert info.samples == 100


def test_bad_loop_length():
    with pytest.raises(WavError):
        parse_wav(_wav(bytes(100), extra=_cue(10) + _mark(200)), "loop")


def test_non_pcm_rejected():
    with pytest.raises(WavError):
        parse_wav(_wav(bytes(10), fmt_code=3))


def test_missing_data_chunk():
    with pytest.raises(WavError):
        parse_wav(_wav(bytes(10), with_data=False))


def test_missing_riff():
    with pytest.raises(WavError):
        parse_wav(b"JUNK" + struct.pack("<i", 4) + b"abcd")


def test_sound_for_frame_slices_samples():
    track = _wav(b"abcdefgh", rate=14)
    info = parse_wav(track)
    assert sound_for_frame(info, track, 2) == b"c"
    assert sound_for_frame(info, track, 9) == b"\0"
    assert sound_for_frame(info, None, 2) == b"\0"


def test_sound_for_frame_length_follows_rate():
    info = WavInfo(rate=28, width=2, channels=2, samples=1000, dataofs=0)
    assert len(sound_for_frame(info, None, 3)) == 2 * 4


def test_unique_sample_count():
    track = _wav(struct.pack("<4H", 1, 1, 2, 3), bits=16)
    assert unique_sample_count(parse_wav(track), track) == 3


def test_frame_filenames():
    assert frame_filename("intro", 7, 4) == "video/intro/intro0007.pcx"
    assert frame_filename("intro", 123, 3) == "video/intro/intro123.pcx"


def _frames():
    pixels = bytes(range(16))
    return [(4, 4, pixels, GRAY), (4, 4, pixels, GRAY)]


def test_encode_cinematic_layout():
    frames = _frames()
    out = encode_cinematic(frames)
    assert struct.unpack_from("<5i", out, 0) == (4, 4, 0, 0, 0)

    coder = Huffman1()
    for _, _, pixels, _ in frames:
        coder.count(pixels)
    table = coder.build()
    position = 20
    assert out[position : position + len(table)] == table
    position += len(table)

    packed = coder.encode(frames[0][2])
    assert struct.unpack_from("<i", out, position)[0] == 1
    position += 4
    assert out[position : position + 768] == GRAY
    position += 768
    assert struct.unpack_from("<i", out, position)[0] == len(packed)
    position += 4
    assert out[position : position + len(packed)] == packed
    position += len(packed)

    assert struct.unpack_from("<i", out, position)[0] == 0
    position += 4 + 4 + len(packed)
    assert struct.unpack_from("<i", out, position)[0] == 2
    assert len(out) == position + 4


def test_encode_cinematic_appends_sound():
    track = _wav(b"abcdefgh", rate=14)
    info = parse_wav(track)
    with_sound = encode_cinematic(_frames(), info, track)
    without = encode_cinematic(_frames())
    assert len(with_sound) == len(without) + 2
    assert struct.unpack_from("<i", with_sound, 8)[0] == 14
    assert with_sound[-4:] == struct.pack("<i", 2)


def test_startframe_skips_frames():
    full = encode_cinematic(_frames())
    skipped = encode_cinematic(_frames(), startframe=1)
    assert struct.unpack_from("<2i", skipped, 0) == (4, 4)
    assert len(skipped) < len(full)
    assert skipped[-4:] == struct.pack("<i", 2)


def test_encode_cinematic_needs_frames():
    with pytest.raises(ValueError):
        encode_cinematic([])