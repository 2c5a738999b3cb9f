"""Cinematic (.cin) building: WAV parsing, sound slicing and frame packing."""

from __future__ import annotations

import struct
from collections.abc import Sequence
from dataclasses import dataclass

from .compress import Huffman1

FRAMES_PER_SECOND = 14
PALETTE_SIZE = 768

_CMD_NO_PALETTE = 0
_CMD_PALETTE = 1
_CMD_END = 2


class WavError(Exception):
    """Raised when a sound file cannot be used."""


@dataclass(frozen=True)
class WavInfo:
    """Format of a PCM sound and where its samples start in the file."""

    rate: int = 0
    width: int = 0
    channels: int = 0
    loopstart: int = 0
    samples: int = 0
    dataofs: int = 0


def _read(data: bytes, offset: int, fmt: str) -> int:
    size = struct.calcsize(fmt)
    if offset < 0 or offset + size > len(data):
        raise WavError("sound file is truncated")
    return struct.unpack_from(fmt, data, offset)[0]


def _find_chunk(data: bytes, start: int, tag: bytes) -> tuple[int, int] | None:
    """Return (position, position of the next chunk) of the first matching chunk."""
    position = start
    while True:
        if position + 8 > len(data):
            return None
        length = _read(data, position + 4, "<i")
        if length < 0:
            return None
        following = position + 8 + ((length + 1) & ~1)
        if data[position : position + 4] == tag:
            return position, following
        position = following


def parse_wav(data: bytes, name: str = "") -> WavInfo:
    """Parse a RIFF/WAVE PCM file; empty data gives an all-zero WavInfo."""
    data = bytes(data)
    if not data:
        return WavInfo()

    riff = _find_chunk(data, 0, b"RIFF")
    if riff is None or data[riff[0] + 8 : riff[0] + 12] != b"WAVE":
        raise WavError("Missing RIFF/WAVE chunks")
    base = riff[0] + 12

    fmt = _find_chunk(data, base, b"fmt ")
    if fmt is None:
        raise WavError("Missing fmt chunk")
    position = fmt[0] + 8
    if _read(data, position, "<h") != 1:
        raise WavError("Microsoft PCM format only")
    channels = _read(data, position + 2, "<h")
    rate = _read(data, position + 4, "<i")
    width = int(_read(data, position + 14, "<h") / 8)

    samples = 0
    cue = _find_chunk(data, base, b"cue ")
    if cue is not None:
        loopstart = _read(data, cue[0] + 32, "<i")
        # a following LIST chunk may carry the loop length (as cooledit writes it)
        marker = _find_chunk(data, cue[1], b"LIST")
        if marker is not None and data[marker[0] + 28 : marker[0] + 32] == b"mark":
            samples = loopstart + _read(data, marker[0] + 24, "<i")
    else:
        loopstart = -1

    chunk = _find_chunk(data, base, b"data")
    if chunk is None:
        raise WavError("Missing data chunk")
    count = _read(data, chunk[0] + 4, "<i")
    if samples:
        if count < samples:
            raise WavError(f"Sound {name} has a bad loop length")
    else:
        samples = count

    return WavInfo(
        rate=rate,
        width=width,
        channels=channels,
        loopstart=loopstart,
        samples=samples,
        dataofs=chunk[0] + 8,
    )


def sound_for_frame(info: WavInfo, soundtrack: bytes | None, frame: int) -> bytes:
    """Return the sample bytes that play during one frame; silence past the end."""
    width = info.width * info.channels
    start = frame * info.rate // FRAMES_PER_SECOND
    end = (frame + 1) * info.rate // FRAMES_PER_SECOND
    out = bytearray()
    for sample in range(start, end):
        if soundtrack is None or sample > info.samples:
            out += bytes(width)
        else:
            offset = info.dataofs + sample * width
            chunk = soundtrack[offset : offset + width]
            out += chunk + bytes(width - len(chunk))
    return bytes(out)


def unique_sample_count(info: WavInfo, soundtrack: bytes) -> int:
    """Count distinct 16-bit values among the first samples/2 words of sound data."""
    words = info.samples // 2
    data = bytes(soundtrack)[info.dataofs : info.dataofs + 2 * words]
    data = data[: len(data) - len(data) % 2]
    return len({value for (value,) in struct.iter_unpack("<H", data)})


def frame_filename(base: str, frame: int, digits: int) -> str:
    """Return the picture path for a frame, numbered with four or three digits."""
    thousands = frame // 1000
    hundreds = (frame - thousands * 1000) // 100
    tens = (frame - thousands * 1000 - hundreds * 100) // 10
    ones = frame % 10
    if digits == 4:
        number = f"{thousands}{hundreds}{tens}{ones}"
    else:
        number = f"{hundreds}{tens}{ones}"
    return f"video/{base}/{base}{number}.pcx"


def encode_cinematic(
    frames: Sequence[tuple[int, int, bytes, bytes]],
    info: WavInfo | None = None,
    soundtrack: bytes | None = None,
    startframe: int = 0,
) -> bytes:
    """Pack frames into a cinematic file.

    frames holds (width, height, pixels, palette) for every frame from number
    0; the header size comes from frame 0 and frames before startframe are
    skipped.
    """
    frames = list(frames)
    if not frames:
        raise ValueError("a cinematic needs at least one frame")
    if info is None:
        info = WavInfo()
    for _, _, _, palette in frames:
        if len(palette) != PALETTE_SIZE:
            raise ValueError("frame palette must hold 768 bytes")

    width, height = frames[0][0], frames[0][1]
    out = bytearray(
        struct.pack("<5i", width, height, info.rate, info.width, info.channels)
    )

    used = list(enumerate(frames))[startframe:]
    coder = Huffman1()
    for _, (_, _, pixels, _) in used:
        coder.count(pixels)
    out += coder.build()

    current = bytes(PALETTE_SIZE)
    for number, (_, _, pixels, palette) in used:
        palette = bytes(palette)
        if palette != current:
            current = palette
            out += struct.pack("<i", _CMD_PALETTE) + current
        else:
            out += struct.pack("<i", _CMD_NO_PALETTE)
        packed = coder.encode(pixels)
        out += struct.pack("<i", len(packed)) + packed
        out += sound_for_frame(info, soundtrack, number)

    out += struct.pack("<i", _CMD_END)
    return bytes(out)