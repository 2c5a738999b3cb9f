"""Byte-block compressors used for pak files and cinematics.

Every compressor returns its output prefixed by the input length as a
32-bit little-endian integer.
"""

from __future__ import annotations

import heapq
from collections.abc import Iterable

_TOKENS = 256
_MAX_CODE_BITS = 32

_RLE_CODE = 0xE8
_RLE_MAX_REPEAT = 255

_BACK_WINDOW = 0x10000
_BACK_BITS = 16
_FRONT_WINDOW = 16
_FRONT_BITS = 4
_LZSS_LIMIT = 0x20000


class CompressionError(Exception):
    """Raised when a block cannot be compressed."""


def _header(count: int) -> bytes:
    return (count & 0xFFFFFFFF).to_bytes(4, "little")


class _BitWriter:
    """Packs bits into bytes, least significant bit of each byte first."""

    def __init__(self) -> None:
        self._buffer = bytearray()
        self.length = 0

    def bit(self, on: int) -> None:
        index, offset = divmod(self.length, 8)
        if index == len(self._buffer):
            self._buffer.append(0)
        if on:
            self._buffer[index] |= 1 << offset
        self.length += 1

    def msb_first(self, bits: int, count: int) -> None:
        for shift in range(count - 1, -1, -1):
            self.bit((bits >> shift) & 1)

    def lsb_first(self, value: int, count: int) -> None:
        for shift in range(count):
            self.bit((value >> shift) & 1)

    def getvalue(self) -> bytes:
        return bytes(self._buffer)


def _build_codes(counts: list[int], strict: bool) -> list[tuple[int, int]]:
    """Build a Huffman tree over the token weights and return (bits, length) per token.

    The two lightest nodes are merged first; ties go to the lower node number.
    """
    weights = list(counts)
    heap = [(weight, index) for index, weight in enumerate(weights) if weight]
    heapq.heapify(heap)
    children: dict[int, tuple[int, int]] = {}

    while heap:
        _, first = heapq.heappop(heap)
        if not heap:
            if strict and first != len(weights) - 1:
                raise CompressionError("Bad smallestnode")
            break
        _, second = heapq.heappop(heap)
        node = len(weights)
        children[node] = (first, second)
        weights.append(weights[first] + weights[second])
        heapq.heappush(heap, (weights[node], node))

    codes: list[tuple[int, int]] = [(0, 0)] * _TOKENS
    stack = [(len(weights) - 1, 0, 0)]
    while stack:
        node, bits, length = stack.pop()
        if node < _TOKENS:
            if length > _MAX_CODE_BITS:
                raise CompressionError("bitcount > 32")
            codes[node] = (bits, length)
            continue
        left, right = children[node]
        stack.append((right, (bits << 1) | 1, length + 1))
        stack.append((left, bits << 1, length + 1))
    return codes


def mtf(data: bytes) -> bytes:
    """Move-to-front transform."""
    data = bytes(data)
    order = list(range(_TOKENS))
    out = bytearray(_header(len(data)))
    for value in data:
        code = order.index(value)
        out.append(code)
        del order[code]
        order.insert(0, value)
    return bytes(out)


def bwt(data: bytes) -> bytes:
    """Burrows-Wheeler transform: count, head index, then the last column."""
    data = bytes(data)
    size = len(data)
    rotations = sorted(range(size), key=lambda start: data[start:] + data[:start])
    head = next((row for row, start in enumerate(rotations) if start == 0), size)
    out = bytearray(_header(size))
    out += _header(head)
    out += bytes(data[(start + size - 1) % size] for start in rotations)
    return bytes(out)


def huffman(data: bytes) -> bytes:
    """Order-0 Huffman coding with the 256 normalised counts stored up front."""
    data = bytes(data)
    counts = [0] * _TOKENS
    for value in data:
        counts[value] += 1
    peak = max(counts)
    if peak == 0:
        raise CompressionError("Huffman: max == 0")
    scaled = [(count * 255 + peak - 1) // peak for count in counts]
    codes = _build_codes(scaled, strict=True)

    writer = _BitWriter()
    for value in data:
        bits, length = codes[value]
        writer.msb_first(bits, length)
    return _header(len(data)) + bytes(scaled) + writer.getvalue()


def rle(data: bytes) -> bytes:
    """Run-length coding; runs over three bytes and the escape byte are escaped."""
    data = bytes(data)
    out = bytearray(_header(len(data)))
    position = 0
    while position < len(data):
        value = data[position]
        repeat = 1
        position += 1
        while (
            position < len(data)
            and repeat < _RLE_MAX_REPEAT
            and data[position] == value
        ):
            repeat += 1
            position += 1
        if repeat > 3 or value == _RLE_CODE:
            out += bytes((_RLE_CODE, value, repeat))
        else:
            out += bytes((value,)) * repeat
    return bytes(out)


def lzss(data: bytes) -> bytes:
    """LZSS with a 64 KiB back window and phrases of up to 16 bytes."""
    data = bytes(data)
    size = len(data)
    if size >= _LZSS_LIMIT:
        raise CompressionError("LZSS: too big")

    head = [-1] * _TOKENS
    chain = [-1] * size
    writer = _BitWriter()
    position = 0
    while position < size:
        value = data[position]
        best_length = 0
        best_start = 0
        limit = min(_FRONT_WINDOW, size - position)

        start = head[value]
        while start != -1 and start >= position - _BACK_WINDOW:
            length = 0
            while length < limit and data[start + length] == data[position + length]:
                length += 1
            if length > best_length:
                best_length = length
                best_start = start
            start = chain[start]

        offset = _BACK_WINDOW - (position - best_start)
        if best_length < 3:
            best_length = 1
            writer.bit(1)
            writer.lsb_first(value, 8)
        else:
            writer.bit(0)
            writer.lsb_first(offset, _BACK_BITS)
            writer.lsb_first(best_length, _FRONT_BITS)

        for _ in range(best_length):
            byte = data[position]
            chain[position] = head[byte]
            head[byte] = position
            position += 1

    return _header(size) + writer.getvalue()


class Huffman1:
    """Order-1 Huffman coder: one code table per preceding byte.

    Feed every block to count(), call build() once to make the tables, then
    encode() each block.
    """

    def __init__(self) -> None:
        self._counts = [[0] * _TOKENS for _ in range(_TOKENS)]
        self._codes: list[list[tuple[int, int]]] | None = None

    def count(self, data: Iterable[int]) -> None:
        """Add the byte pairs of one block to the statistics."""
        previous = 0
        for value in bytes(data):
            self._counts[previous][value] += 1
            previous = value

    def build(self) -> bytes:
        """Normalise the counts, build the trees and return the 256x256 count table."""
        table = bytearray()
        codes = []
        for row in self._counts:
            peak = max(row) or 1
            scaled = []
            for count in row:
                value = int((count * 255.0 + peak - 1) / peak)
                if value > 255:
                    raise CompressionError("v > 255")
                scaled.append(value)
            if sum(1 for value in scaled if value) == 1:
                # every context needs at least two tokens
                if not scaled[0]:
                    scaled[0] = 1
                else:
                    scaled[1] = 1
            codes.append(_build_codes(scaled, strict=False))
            table += bytes(scaled)
        self._codes = codes
        return bytes(table)

    def encode(self, data: bytes) -> bytes:
        """Encode one block with the built tables."""
        if self._codes is None:
            raise CompressionError("Huffman1 tables have not been built")
        data = bytes(data)
        writer = _BitWriter()
        previous = 0
        for value in data:
            bits, length = self._codes[previous][value]
            if not length:
                raise CompressionError("!bits")
            writer.msb_first(bits, length)
            previous = value
        return _header(len(data)) + writer.getvalue()