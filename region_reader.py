"""
Reads chunk columns out of Anvil region files (r.<x>.<z>.mca)

Region file layout:

| offset | size  | Field Name       | Description                                                        |
|--------|-------|------------------|--------------------------------------------------------------------|
| 0x0    | 4096  | Locations        | 1024 entries: 3 byte sector offset, 1 byte sector count           |
| 0x1000 | 4096  | Timestamps       | 1024 big endian int32 modification times (unused here)             |
| 0x2000 | ...   | Chunk sectors    | 4096 byte sectors holding the chunk payloads                       |

Each chunk payload starts with a big endian int32 length and a compression
byte (1 = gzip, 2 = zlib, 3 = none, +128 = stored in c.<x>.<z>.mcc), followed
by an NBT compound.
"""
import gzip
import io
import logging
import re
import struct
import zlib
from collections import namedtuple
from pathlib import Path

import nbtlib

logger = logging.getLogger(__name__)

SECTOR_SIZE = 4096
HEADER_LEN = SECTOR_SIZE * 2
REGION_WIDTH_CHUNKS = 32
SECTION_HEIGHT = 16
FALLBACK_HEIGHT = 320
# 1.16: block states no longer span longs
MIN_DATA_VERSION = 2566

COMPRESSION_GZIP = 1
COMPRESSION_ZLIB = 2
COMPRESSION_NONE = 3
COMPRESSION_EXTERNAL = 128

LONG_MASK = (1 << 64) - 1
REGION_FILE_NAME = re.compile(r"^r\.(-?\d+)\.(-?\d+)\.mca$")

DIMENSIONS = {
    "overworld": Path("region"),
    "nether": Path("DIM-1") / "region",
    "end": Path("DIM1") / "region",
}

FALLBACK_HEIGHTMAP = [[FALLBACK_HEIGHT] * 16 for _ in range(16)]

Block = namedtuple("Block", ["name", "properties"])

# Errors that mean the bytes on disk are not a valid chunk
DECODE_ERRORS = (OSError, EOFError, ValueError, KeyError, TypeError, IndexError, struct.error, zlib.error)


class RegionListError(Exception):
    pass


class RegionDecodeError(Exception):
    def __init__(self, coords, message):
        super().__init__(f"failed to decode region {coords[0]}, {coords[1]}: {message}")
        self.coords = coords


class ChunkColumnDecodeError(Exception):
    def __init__(self, coords, message):
        super().__init__(f"failed to decode chunk column {coords[0]}, {coords[1]}: {message}")
        self.coords = coords


def region_dir(world_dir, dimension):
    if dimension not in DIMENSIONS:
        raise ValueError(f"unknown dimension {dimension!r} (expected one of {', '.join(DIMENSIONS)})")
    return Path(world_dir) / DIMENSIONS[dimension]


def all_coords(world_dir, dimension):
    """List the [x, z] coordinates of every region file of a dimension"""
    path = region_dir(world_dir, dimension)
    try:
        names = sorted(entry.name for entry in path.iterdir())
    except OSError as e:
        raise RegionListError(f"failed to get list of regions: {e}") from e
    coords = []
    for name in names:
        match = REGION_FILE_NAME.match(name)
        if match:
            coords.append((int(match.group(1)), int(match.group(2))))
        else:
            logger.debug("Ignoring non-region file %s", name)
    return coords


def read_locations(header):
    """Parse the location table into (sector offset, sector count) pairs"""
    locations = []
    for i in range(REGION_WIDTH_CHUNKS * REGION_WIDTH_CHUNKS):
        entry = header[i * 4:i * 4 + 4]
        locations.append((int.from_bytes(entry[:3], "big"), entry[3]))
    return locations


def unpack_index(longs, bits, index):
    """Get entry `index` of an array packed `bits` wide without spanning longs"""
    per_long = 64 // bits
    word = longs[index // per_long]
    return (word >> ((index % per_long) * bits)) & ((1 << bits) - 1)


def decode_heightmap(data):
    """Decode a packed heightmap into 16x16 rows of raw values (z-major)"""
    longs = [int(v) & LONG_MASK for v in data]
    if not longs:
        raise ValueError("empty heightmap")
    bits = 64 // -(-256 // len(longs))
    if bits == 0:
        raise ValueError(f"heightmap too short ({len(longs)} longs)")
    return [[unpack_index(longs, bits, z * 16 + x) for x in range(16)] for z in range(16)]


class Section:
    """One 16x16x16 slice of a chunk column"""

    def __init__(self, y, palette, data):
        self.y = y
        self.palette = [
            Block(str(entry["Name"]), {str(k): str(v) for k, v in entry.get("Properties", {}).items()})
            for entry in palette
        ]
        if not self.palette:
            raise ValueError(f"section {y} has an empty palette")
        self.bits = max(4, (len(self.palette) - 1).bit_length())
        if len(self.palette) > 1:
            if data is None:
                raise ValueError(f"section {y} has no block data")
            needed = -(-4096 // (64 // self.bits))
            if len(data) < needed:
                raise ValueError(f"section {y} block data too short ({len(data)} < {needed} longs)")
        self._data = data
        self._longs = None

    def block_relative(self, x, y, z):
        """Get the block at section-relative coordinates (0-15)"""
        if len(self.palette) == 1:
            return self.palette[0]
        if self._longs is None:
            self._longs = [int(v) & LONG_MASK for v in self._data]
        index = unpack_index(self._longs, self.bits, (y * 16 + z) * 16 + x)
        if index >= len(self.palette):
            return self.palette[0]
        return self.palette[index]


class ChunkColumn:
    """A decoded chunk column: heightmaps plus its block sections"""

    def __init__(self, x_pos, z_pos, y_pos, heightmaps, sections):
        self.x_pos = x_pos
        self.z_pos = z_pos
        self.y_pos = y_pos
        self.heightmaps = heightmaps
        self.sections = sections

    @classmethod
    def from_nbt(cls, x_pos, z_pos, root):
        data_version = int(root.get("DataVersion", 0))
        if data_version < MIN_DATA_VERSION:
            raise ValueError(f"unsupported data version {data_version}")
        # 1.16 and 1.17 keep everything under "Level"
        level = root.get("Level", root)
        sections = {}
        for section in level.get("sections", level.get("Sections", [])):
            states = section.get("block_states")
            if states is not None:
                palette, data = states.get("palette"), states.get("data")
            else:
                palette, data = section.get("Palette"), section.get("BlockStates")
            if palette is None:
                # light-only section
                continue
            y = int(section["Y"])
            sections[y] = Section(y, palette, data)
        if "yPos" in level:
            y_pos = int(level["yPos"]) * SECTION_HEIGHT
        else:
            y_pos = min(sections, default=0) * SECTION_HEIGHT
        heightmaps = {}
        for name, data in level.get("Heightmaps", {}).items():
            heightmaps[str(name)] = [[value + y_pos - 1 for value in row] for row in decode_heightmap(data)]
        return cls(x_pos, z_pos, y_pos, heightmaps, sections)

    def heightmap(self, name="WORLD_SURFACE"):
        """Topmost occupied Y per (z, x), or the fallback plane if the chunk has none"""
        return self.heightmaps.get(name, FALLBACK_HEIGHTMAP)

    def section_at(self, chunk_y):
        return self.sections.get(chunk_y)


class Region:
    """An opened region file: 32x32 chunk columns"""

    def __init__(self, coords, path, data):
        self.coords = coords
        self.path = path
        self.data = data
        self.locations = read_locations(data[:SECTOR_SIZE]) if data else []

    @classmethod
    def find(cls, world_dir, dimension, coords):
        """
        Open the region at `coords`

        Returns None if there is no such region file. Raises RegionDecodeError
        if the file exists but cannot be read.
        """
        x, z = coords
        path = region_dir(world_dir, dimension) / f"r.{x}.{z}.mca"
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise RegionDecodeError(coords, e) from e
        # Empty files are written for regions that were never populated
        if data and len(data) < HEADER_LEN:
            raise RegionDecodeError(coords, f"truncated header ({len(data)} bytes)")
        logger.debug("Opened region %d, %d (%d bytes)", x, z, len(data))
        return cls((x, z), path, data)

    def columns(self):
        """Yield every present chunk column; raises ChunkColumnDecodeError on the first bad one"""
        for index, (offset, count) in enumerate(self.locations):
            if offset and count:
                yield self._decode(index)

    def chunk_column(self, chunk_coords):
        """Get a chunk column by absolute chunk coordinates, or None if it was never generated"""
        cx, cz = chunk_coords
        if (cx // REGION_WIDTH_CHUNKS, cz // REGION_WIDTH_CHUNKS) != tuple(self.coords):
            raise ValueError(f"chunk {cx}, {cz} is not in region {self.coords[0]}, {self.coords[1]}")
        index = cx % REGION_WIDTH_CHUNKS + cz % REGION_WIDTH_CHUNKS * REGION_WIDTH_CHUNKS
        if not self.locations:
            return None
        offset, count = self.locations[index]
        if not (offset and count):
            return None
        return self._decode(index)

    def _decode(self, index):
        cx = self.coords[0] * REGION_WIDTH_CHUNKS + index % REGION_WIDTH_CHUNKS
        cz = self.coords[1] * REGION_WIDTH_CHUNKS + index // REGION_WIDTH_CHUNKS
        try:
            raw = self._read_chunk(index, cx, cz)
            root = nbtlib.File.parse(io.BytesIO(raw), byteorder="big")
            return ChunkColumn.from_nbt(cx, cz, root)
        except DECODE_ERRORS as e:
            raise ChunkColumnDecodeError((cx, cz), e) from e

    def _read_chunk(self, index, cx, cz):
        """Read and decompress one chunk payload into raw NBT bytes"""
        offset, count = self.locations[index]
        start = offset * SECTOR_SIZE
        if start + 5 > len(self.data):
            raise ValueError(f"chunk sector {offset} is past the end of the file")
        length, compression = struct.unpack(">IB", self.data[start:start + 5])
        if length == 0:
            raise ValueError("zero length chunk")
        if compression & COMPRESSION_EXTERNAL:
            payload = (self.path.parent / f"c.{cx}.{cz}.mcc").read_bytes()
            compression &= ~COMPRESSION_EXTERNAL
        else:
            end = start + 4 + length
            if end > len(self.data):
                raise ValueError(f"chunk length {length} runs past the end of the file")
            payload = self.data[start + 5:end]
        logger.debug("Chunk %d, %d: %d bytes, compression %d", cx, cz, len(payload), compression)
        if compression == COMPRESSION_GZIP:
            return gzip.decompress(payload)
        if compression == COMPRESSION_ZLIB:
            return zlib.decompress(payload)
        if compression == COMPRESSION_NONE:
            return payload
        raise ValueError(f"unknown compression type {compression}")
