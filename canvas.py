"""
Pixel canvases: one fixed tile per region, or one world map that grows as
regions are added
"""
import logging
import threading

from PIL import Image

logger = logging.getLogger(__name__)

TILE_SIZE = 16 * 32


class TileCanvas:
    """A 512x512 image covering exactly one region"""

    def __init__(self, size=TILE_SIZE):
        self.size = size
        self.image = Image.new('RGBA', (size, size))
        self.pixels = self.image.load()

    def put(self, x, z, rgba):
        """Set the pixel of world block column (x, z)"""
        self.pixels[x % self.size, z % self.size] = rgba

    def get(self, x, z):
        return self.pixels[x % self.size, z % self.size]

    def save(self, path):
        self.image.save(path, format='PNG')


class WorldCanvas:
    """
    A single image covering every block column drawn so far

    Bounds are (min_x, min_z, max_x, max_z) in world block coordinates with
    the max exclusive, or None while nothing has been drawn. All access is
    serialized through the canvas lock so region workers can share it.
    """

    def __init__(self):
        self.bounds = None
        self.image = None
        self.lock = threading.Lock()

    def _grow(self, min_x, min_z, max_x, max_z):
        """Grow to cover the given rectangle too, moving existing pixels to their new offset"""
        if self.bounds is not None:
            old_min_x, old_min_z, old_max_x, old_max_z = self.bounds
            if min_x >= old_min_x and min_z >= old_min_z and max_x <= old_max_x and max_z <= old_max_z:
                return
            min_x, min_z = min(min_x, old_min_x), min(min_z, old_min_z)
            max_x, max_z = max(max_x, old_max_x), max(max_z, old_max_z)
        image = Image.new('RGBA', (max_x - min_x, max_z - min_z))
        if self.image is not None:
            image.paste(self.image, (self.bounds[0] - min_x, self.bounds[1] - min_z))
        logger.debug("World map grown to %s", (min_x, min_z, max_x, max_z))
        self.bounds = (min_x, min_z, max_x, max_z)
        self.image = image

    def put(self, x, z, rgba):
        """Set the pixel of world block column (x, z)"""
        with self.lock:
            self._grow(x, z, x + 1, z + 1)
            self.image.putpixel((x - self.bounds[0], z - self.bounds[1]), rgba)

    def get(self, x, z):
        with self.lock:
            if self.bounds is None:
                return None
            min_x, min_z, max_x, max_z = self.bounds
            if not (min_x <= x < max_x and min_z <= z < max_z):
                return None
            return self.image.getpixel((x - min_x, z - min_z))

    def paste_tile(self, region_x, region_z, tile):
        """Copy a region's tile into place; clear tile pixels leave the map untouched"""
        min_x = region_x * tile.size
        min_z = region_z * tile.size
        with self.lock:
            self._grow(min_x, min_z, min_x + tile.size, min_z + tile.size)
            offset = (min_x - self.bounds[0], min_z - self.bounds[1])
            self.image.paste(tile.image, offset, tile.image)

    def save(self, path):
        with self.lock:
            if self.image is None:
                logger.warning("World map is empty, nothing to save to %s", path)
                return False
            self.image.save(path, format='PNG')
            return True
