[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "q2grab"
version = "0.1.0"
description = "Building blocks for Quake II game data: palettes, sprites, skin layouts, strip commands, cinematics, compressors and pak files"
requires-python = ">=3.10"
keywords = ["quake2", "sp2", "pak", "cinematic", "palette", "huffman", "lzss", "game-assets"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Games/Entertainment",
    "Topic :: Multimedia :: Graphics :: Graphics Conversion",
]
dependencies = [
    "numpy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["q2grab"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
