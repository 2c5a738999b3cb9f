"""Pak file building and release bookkeeping for textures."""

from __future__ import annotations

import struct
from collections.abc import Callable
from dataclasses import dataclass
from typing import BinaryIO

from .compress import huffman

PAK_IDENT = b"PACK"
MAX_PAK_NAME = 56
MAX_PAK_FILES = 16384
MAX_RELEASED_TEXTURES = 16384

_HEADER = struct.Struct("<4sii")
_ENTRY = struct.Struct(f"<{MAX_PAK_NAME}sii")
_COMPRESS_LIMIT = 4096 * 1024


class PakError(Exception):
    """Raised when a pak file cannot be built."""


@dataclass(frozen=True)
class PakEntry:
    """A file stored in the pak: its name, position and stored length."""

    name: str
    offset: int
    length: int


class PakWriter:
    """Writes files into a pak archive on a seekable binary stream.

    The header is reserved on creation and filled in by finish().
    """

    def __init__(self, stream: BinaryIO, compress: bool = False) -> None:
        self._stream = stream
        self._compress = compress
        self._start = stream.tell()
        self._entries: list[PakEntry] = []
        self._finished = False
        stream.write(bytes(_HEADER.size))

    @property
    def entries(self) -> tuple[PakEntry, ...]:
        return tuple(self._entries)

    def __enter__(self) -> PakWriter:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None and not self._finished:
            self.finish()

    def add(self, name: str, data: bytes) -> PakEntry:
        """Store one file; with compression on, keep the Huffman form if smaller."""
        if self._finished:
            raise PakError("pak file is already finished")
        encoded = name.encode("ascii")
        if len(encoded) >= MAX_PAK_NAME:
            raise PakError(f"Filename too long for pak: {name}")
        if len(self._entries) >= MAX_PAK_FILES:
            raise PakError("too many files for pak")

        payload = bytes(data)
        if self._compress and len(payload) < _COMPRESS_LIMIT and payload:
            packed = huffman(payload)
            if len(packed) < len(payload):
                payload = packed

        entry = PakEntry(name, self._stream.tell(), len(payload))
        self._stream.write(payload)
        self._entries.append(entry)
        return entry

    def finish(self) -> int:
        """Write the directory and header; return the total size of the pak."""
        if self._finished:
            raise PakError("pak file is already finished")
        self._finished = True

        directory = b"".join(
            _ENTRY.pack(entry.name.encode("ascii"), entry.offset, entry.length)
            for entry in self._entries
        )
        dirofs = self._stream.tell()
        self._stream.write(directory)
        end = self._stream.tell()

        self._stream.seek(self._start)
        self._stream.write(_HEADER.pack(PAK_IDENT, dirofs, len(directory)))
        self._stream.seek(end)
        return end - self._start


class TextureReleaser:
    """Releases each texture's .wal file once, matching names case-insensitively."""

    def __init__(self, release: Callable[[str], object]) -> None:
        self._release = release
        self._seen: set[str] = set()

    def __len__(self) -> int:
        return len(self._seen)

    def release(self, name: str) -> bool:
        """Release textures/<name>.wal unless already done; report if it was new."""
        key = name.lower()
        if key in self._seen:
            return False
        if len(self._seen) >= MAX_RELEASED_TEXTURES:
            raise PakError("numrtex == MAX_RTEX")
        self._seen.add(key)
        self._release(f"textures/{name}.wal")
        return True