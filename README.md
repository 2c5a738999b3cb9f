# q2grab

Building blocks for turning source art into Quake II game data.

q2grab holds grabbing steps of a Quake II asset pipeline as plain Python
functions and classes. It works on bytes and arrays in memory, so you decide
where the data comes from and where it goes.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Modules

- `q2grab.palette`: nearest palette colour (`best_color`, `find_color`),
  replacing index zero with the darkest entry among 1..254 (`remap_zero`),
  cutting a block out of an 8-bit image (`crop`), the 64 light levels plus the
  translucency table as one 256 x 320 colormap (`build_colormap`), RGBA to
  palette indices (`rgba_to_indexed`), and error-diffused averaging of pixel
  blocks (`ErrorDiffuser`). Bad input raises `GrabError`.
- `q2grab.sprites`: `.sp2` sprite files. `Sprite.add_frame` checks that
  position and size are multiples of 8 and no larger than 256, names each
  frame `<sprite>_<n>.pcx`, and `Sprite.to_bytes` returns the whole file
  (`SpriteFrame`, `SpriteError`).
- `q2grab.glcmds`: skin coordinate layout for a base frame (`build_st`,
  returning a `SkinLayout`), and the triangle strip and fan command stream
  (`build_gl_commands`, `strip_length`, `fan_length`, `IndexedTriangle`).
- `q2grab.compress`: move-to-front (`mtf`), Burrows-Wheeler (`bwt`), order-0
  Huffman (`huffman`), run-length (`rle`) and LZSS (`lzss`) encoders, and the
  order-1 Huffman coder used by cinematics (`Huffman1`: `count`, `build`,
  `encode`). Every encoder prefixes its output with the input length as a
  32-bit little-endian integer; failures raise `CompressionError`.
- `q2grab.video`: WAV header parsing (`parse_wav`, `WavInfo`, `WavError`),
  the sound bytes for one frame at 14 frames per second (`sound_for_frame`),
  counting distinct 16-bit sample values (`unique_sample_count`), frame
  picture names (`frame_filename`) and `.cin` cinematic encoding
  (`encode_cinematic`).
- `q2grab.pak`: writing `.pak` archives to a seekable binary stream
  (`PakWriter`, usable as a context manager, with optional Huffman
  compression of entries that get smaller; `PakEntry`, `PakError`), and
  releasing each texture's `textures/<name>.wal` only once, names compared
  case-insensitively (`TextureReleaser`).

## Example

```python
import io
from q2grab.sprites import Sprite
from q2grab.pak import PakWriter

sprite = Sprite("sprites/flash")
sprite.add_frame(0, 0, 32, 32, None)

buffer = io.BytesIO()
pak = PakWriter(buffer, False)
pak.add("sprites/flash.sp2", sprite.to_bytes())
total_size = pak.finish()
```

## What it does not do

- There is no command-line tool and no reader for grab scripts; you call the
  functions yourself.
- It does not read or write image files (PCX, LBM, TGA) or triangle files;
  pixels, palettes and vertices are passed in as bytes and sequences.
- It does not write `.md2` alias models or `.wal` mip textures, and has no
  table of precomputed vertex normals; `q2grab.glcmds` gives the skin layout
  and command list such a model would carry, but not the model file itself.
- It does not build the inverse 16-to-8 bit colour table or the alphalight
  table.