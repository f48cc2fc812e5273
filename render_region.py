#!/usr/bin/env python3
"""
Region renderer - resolves the map color and shading of every block column
in a region and draws them onto a 512x512 tile
"""
import logging
import sys

from block_colors import load_block_colors, lookup
from canvas import TileCanvas
from map_colors import MapColor, Tint, block_map_color, is_waterlogged
from region_reader import Region, SECTION_HEIGHT, REGION_WIDTH_CHUNKS

logger = logging.getLogger(__name__)

HEIGHTMAP = "WORLD_SURFACE"


def block_at(column, block_x, y, block_z):
    """Get the block at a column-relative position, or None if its section isn't loaded"""
    section = column.section_at(y // SECTION_HEIGHT)
    if section is None:
        return None
    return section.block_relative(block_x, y % SECTION_HEIGHT, block_z)


def block_color(block, block_colors):
    """Get the map color of a block, or None if the color table doesn't know it"""
    rule = lookup(block_colors, block.name)
    if rule is None:
        return None
    return block_map_color(rule, block.properties)


def resolve_column_color(column, block_x, block_z, top_y, block_colors):
    """
    Find the topmost colored block of a block column

    Scans down from top_y to the bottom of the column. Unloaded sections and
    blocks missing from the color table are skipped.

    Returns: (color, y) where y is the level the scan stopped at
    """
    y = top_y
    while y >= column.y_pos:
        block = block_at(column, block_x, y, block_z)
        if block is not None:
            color = block_color(block, block_colors)
            if color is not None and color is not MapColor.CLEAR:
                return color, y
        if y == column.y_pos:
            break
        y -= 1
    return MapColor.CLEAR, max(y, column.y_pos)


def find_surface_height(column, block_x, block_z, block_colors):
    """Get the Y of the topmost colored block of a column, or None if it has none"""
    top_y = column.heightmap(HEIGHTMAP)[block_z][block_x]
    color, y = resolve_column_color(column, block_x, block_z, top_y, block_colors)
    if color is MapColor.CLEAR:
        return None
    return y


def measure_water_depth(column, block_x, block_z, y, block_colors, count_waterlogged=True):
    """
    Count the water levels from y downwards

    A level counts while its block is water colored (or waterlogged, if
    count_waterlogged is set). Counting stops at the first other block, at a
    block the color table doesn't know, or at an unloaded section.
    """
    depth = 0
    while y >= column.y_pos:
        block = block_at(column, block_x, y, block_z)
        if block is None:
            break
        color = block_color(block, block_colors)
        if color is None:
            break
        if color is not MapColor.WATER_BLUE and not (count_waterlogged and is_waterlogged(block.properties)):
            break
        depth += 1
        y -= 1
    return depth


def water_tint(depth, block_x, block_z):
    """Shade water by depth; the 3-4 and 7-9 bands are dithered on a checkerboard"""
    even = (block_x + block_z) % 2 == 0
    if depth <= 2:
        return Tint.LIGHT
    if depth <= 4:
        return Tint.LIGHT if even else Tint.NORMAL
    if depth <= 6:
        return Tint.NORMAL
    if depth <= 9:
        return Tint.NORMAL if even else Tint.DARK
    return Tint.DARK


def relief_tint(y, north_y):
    """Shade terrain against its north neighbor: lower is in shadow, higher catches light"""
    if north_y is None or y == north_y:
        return Tint.NORMAL
    return Tint.DARK if y < north_y else Tint.LIGHT


def north_neighbor_y(column, block_x, block_z, north_column, block_colors):
    """
    Surface height of the block column directly north

    Inside a chunk this is the same chunk column one row up; on the chunk's
    north edge it is row 15 of north_column (None if there is no such chunk).
    """
    if block_z > 0:
        return find_surface_height(column, block_x, block_z - 1, block_colors)
    if north_column is None:
        return None
    return find_surface_height(north_column, block_x, 15, block_colors)


def shade_column(column, block_x, block_z, color, y, north_column, block_colors, count_waterlogged=True):
    """Pick the tint for a resolved block column"""
    if color is MapColor.CLEAR:
        return Tint.NORMAL
    if color is MapColor.WATER_BLUE:
        depth = measure_water_depth(column, block_x, block_z, y, block_colors, count_waterlogged)
        return water_tint(depth, block_x, block_z)
    return relief_tint(y, north_neighbor_y(column, block_x, block_z, north_column, block_colors))


def find_north_column(column, region, previous, decoded=None):
    """
    Get the chunk column north of `column`

    Comes from the same region unless the chunk is on the region's north edge,
    in which case it comes from `previous` (the region processed before this
    one in the same north-south run). Same-region neighbors already in
    `decoded` (keyed by chunk coordinates) are reused instead of decoded again.
    Returns None if there is no such chunk. Raises ChunkColumnDecodeError if
    the neighbor exists but is corrupt.
    """
    north = (column.x_pos, column.z_pos - 1)
    if column.z_pos % REGION_WIDTH_CHUNKS > 0:
        if decoded is not None and north in decoded:
            return decoded[north]
        return region.chunk_column(north)
    if previous is None or tuple(previous.coords) != (region.coords[0], region.coords[1] - 1):
        return None
    return previous.chunk_column(north)


def render_column(column, region, previous, block_colors, canvas, count_waterlogged=True, decoded=None):
    """Draw all 16x16 block columns of a chunk column onto the canvas"""
    north_column = find_north_column(column, region, previous, decoded)
    heightmap = column.heightmap(HEIGHTMAP)
    for block_z, row in enumerate(heightmap):
        for block_x, max_y in enumerate(row):
            color, y = resolve_column_color(column, block_x, block_z, max_y, block_colors)
            tint = shade_column(column, block_x, block_z, color, y, north_column, block_colors, count_waterlogged)
            x = column.x_pos * 16 + block_x
            z = column.z_pos * 16 + block_z
            canvas.put(x, z, color.tint(tint))


def render_region(region, previous, block_colors, count_waterlogged=True):
    """
    Render a region to a tile

    Args:
        region: The opened Region
        previous: The Region directly north of it, if it was rendered before
        block_colors: The color table
        count_waterlogged: Whether waterlogged blocks count towards water depth

    Returns: TileCanvas

    Raises ChunkColumnDecodeError as soon as any chunk column fails to decode.
    """
    canvas = TileCanvas()
    # columns come row by row, so only the row to the north is worth keeping
    decoded = {}
    for column in region.columns():
        render_column(column, region, previous, block_colors, canvas, count_waterlogged, decoded)
        decoded[(column.x_pos, column.z_pos)] = column
        for coords in [c for c in decoded if c[1] < column.z_pos - 1]:
            del decoded[coords]
    return canvas


if __name__ == "__main__":
    if len(sys.argv) < 4:
        print("Usage: python render_region.py <world_dir> <region_x> <region_z> [output.png]")
        print()
        print("Example: python render_region.py saves/MyWorld 0 -1")
        print("  Renders region r.0.-1.mca of the overworld without north neighbor shading")
        sys.exit(1)

    logging.basicConfig(level=logging.INFO)
    world_dir = sys.argv[1]
    coords = (int(sys.argv[2]), int(sys.argv[3]))
    output = sys.argv[4] if len(sys.argv) > 4 else f"r.{coords[0]}.{coords[1]}.png"

    region = Region.find(world_dir, "overworld", coords)
    if region is None:
        print(f"Region {coords[0]}, {coords[1]} not found")
        sys.exit(1)
    render_region(region, None, load_block_colors()).save(output)
    print(f"Saved to {output}")
