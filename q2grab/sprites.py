"""Sprite (.sp2) files: a list of frames, each naming its own picture."""

from __future__ import annotations

import struct
from dataclasses import dataclass

IDSPRITEHEADER = b"IDS2"
SPRITE_VERSION = 2
MAX_SPRITE_FRAMES = 32
MAX_SPRITE_DIMENSION = 256

_NAME_SIZE = 64
_HEADER = struct.Struct("<4sii")
_FRAME = struct.Struct(f"<4i{_NAME_SIZE}s")


class SpriteError(Exception):
    """Raised when a sprite or one of its frames is malformed."""


@dataclass(frozen=True)
class SpriteFrame:
    """One sprite frame: its size, its origin and the picture it uses."""

    width: int
    height: int
    origin_x: int
    origin_y: int
    name: str

    def to_bytes(self) -> bytes:
        encoded = self.name.encode("ascii")
        if len(encoded) >= _NAME_SIZE:
            raise SpriteError(f"frame name too long: {self.name}")
        return _FRAME.pack(
            self.width, self.height, self.origin_x, self.origin_y, encoded
        )


class Sprite:
    """A named sprite that collects frames and serialises to the .sp2 format."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.frames: list[SpriteFrame] = []

    def __len__(self) -> int:
        return len(self.frames)

    def add_frame(
        self,
        x: int,
        y: int,
        width: int,
        height: int,
        origin: tuple[int, int] | None = None,
    ) -> SpriteFrame:
        """Add a frame grabbed at (x, y); the origin defaults to the frame centre.

        The picture for the frame is expected under the returned frame's name.
        """
        if any(value & 0x07 for value in (x, y, width, height)):
            raise SpriteError("Sprite dimensions not multiples of 8")
        if width > MAX_SPRITE_DIMENSION or height > MAX_SPRITE_DIMENSION:
            raise SpriteError("Sprite has a dimension longer than 256")
        if len(self.frames) >= MAX_SPRITE_FRAMES:
            raise SpriteError("Too many frames; increase MAX_SPRFRAMES")

        if origin is None:
            origin_x, origin_y = int(width / 2), int(height / 2)
        else:
            origin_x, origin_y = origin

        frame = SpriteFrame(
            width=width,
            height=height,
            origin_x=origin_x,
            origin_y=origin_y,
            name=f"{self.name}_{len(self.frames)}.pcx",
        )
        self.frames.append(frame)
        return frame

    def to_bytes(self) -> bytes:
        """Return the whole .sp2 file: header followed by every frame."""
        if not self.name:
            raise SpriteError("Didn't name sprite file")
        header = _HEADER.pack(IDSPRITEHEADER, SPRITE_VERSION, len(self.frames))
        return header + b"".join(frame.to_bytes() for frame in self.frames)