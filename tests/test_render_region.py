import pytest

from block_colors import load_block_colors
from map_colors import MapColor, Tint
from render_region import (
    find_north_column,
    find_surface_height,
    measure_water_depth,
    relief_tint,
    render_region,
    resolve_column_color,
    shade_column,
    water_tint,
)
from worldgen import FakeColumn, FakeRegion


@pytest.fixture
def block_colors():
    return load_block_colors()


def test_topmost_block_wins(block_colors):
    column = FakeColumn().fill(3, 4, 0, 10, "minecraft:stone").set(3, 11, 4, "minecraft:grass_block")
    assert resolve_column_color(column, 3, 4, 11, block_colors) == (MapColor.PALE_GREEN, 11)


def test_unknown_block_is_transparent(block_colors):
    column = FakeColumn().fill(0, 0, 0, 5, "minecraft:dirt").fill(0, 0, 6, 9, "minecraft:mystery_block")
    assert resolve_column_color(column, 0, 0, 9, block_colors) == (MapColor.DIRT_BROWN, 5)


def test_clear_block_is_transparent(block_colors):
    column = FakeColumn().fill(0, 0, 0, 5, "minecraft:sand").set(0, 6, 0, "minecraft:glass")
    assert resolve_column_color(column, 0, 0, 6, block_colors) == (MapColor.PALE_YELLOW, 5)


def test_unloaded_section_is_skipped(block_colors):
    column = FakeColumn(unloaded={1}).fill(0, 0, 0, 20, "minecraft:stone").set(0, 10, 0, "minecraft:gold_block")
    column.set(0, 20, 0, "minecraft:diamond_block")
    # y 16..31 is unloaded, so the scan falls through to y 15
    color, y = resolve_column_color(column, 0, 0, 20, block_colors)
    assert (color, y) == (MapColor.STONE_GRAY, 15)


def test_empty_column_is_clear(block_colors):
    column = FakeColumn(y_pos=-64, height=128)
    assert resolve_column_color(column, 0, 0, 63, block_colors) == (MapColor.CLEAR, -64)


def test_bed_color_is_local_to_each_half(block_colors):
    column = FakeColumn()
    column.fill(0, 0, 0, 4, "minecraft:stone").set(0, 5, 0, "minecraft:blue_bed", part="foot")
    column.fill(0, 1, 0, 4, "minecraft:stone").set(0, 5, 1, "minecraft:blue_bed", part="head")
    assert resolve_column_color(column, 0, 0, 5, block_colors) == (MapColor.BLUE, 5)
    assert resolve_column_color(column, 0, 1, 5, block_colors) == (MapColor.WHITE_GRAY, 5)


def test_sub_rules_in_column(block_colors):
    column = FakeColumn()
    column.set(0, 0, 0, "minecraft:wheat", age="7")
    column.set(1, 0, 0, "minecraft:wheat", age="3")
    column.set(2, 0, 0, "minecraft:oak_log", axis="x")
    column.set(3, 0, 0, "minecraft:oak_log", axis="y")
    column.fill(4, 0, 0, 1, "minecraft:stone").set(4, 2, 0, "minecraft:ladder", waterlogged="false")
    column.set(5, 0, 0, "minecraft:ladder", waterlogged="true")
    assert resolve_column_color(column, 0, 0, 0, block_colors)[0] is MapColor.YELLOW
    assert resolve_column_color(column, 1, 0, 0, block_colors)[0] is MapColor.DARK_GREEN
    assert resolve_column_color(column, 2, 0, 0, block_colors)[0] is MapColor.SPRUCE_BROWN
    assert resolve_column_color(column, 3, 0, 0, block_colors)[0] is MapColor.OAK_TAN
    assert resolve_column_color(column, 4, 0, 2, block_colors) == (MapColor.STONE_GRAY, 1)
    assert resolve_column_color(column, 5, 0, 0, block_colors)[0] is MapColor.WATER_BLUE


def test_resolution_is_repeatable(block_colors):
    column = FakeColumn().fill(7, 7, 0, 12, "minecraft:stone").fill(7, 6, 0, 10, "minecraft:stone")
    first = resolve_column_color(column, 7, 7, 12, block_colors)
    tint = shade_column(column, 7, 7, first[0], first[1], None, block_colors)
    assert resolve_column_color(column, 7, 7, 12, block_colors) == first
    assert shade_column(column, 7, 7, first[0], first[1], None, block_colors) is tint


def test_water_depth(block_colors):
    column = FakeColumn().fill(0, 0, 0, 9, "minecraft:sand").fill(0, 0, 10, 14, "minecraft:water")
    assert measure_water_depth(column, 0, 0, 14, block_colors) == 5


def test_water_depth_stops_at_unknown_block_and_unloaded_section(block_colors):
    column = FakeColumn(unloaded={0}).fill(0, 0, 10, 20, "minecraft:water").set(0, 18, 0, "minecraft:mystery")
    assert measure_water_depth(column, 0, 0, 20, block_colors) == 2
    assert measure_water_depth(column, 0, 0, 17, block_colors) == 2


def test_water_depth_waterlogged_policy(block_colors):
    column = FakeColumn().fill(0, 0, 0, 3, "minecraft:stone")
    column.fill(0, 0, 4, 5, "minecraft:oak_planks", waterlogged="true").fill(0, 0, 6, 8, "minecraft:water")
    assert measure_water_depth(column, 0, 0, 8, block_colors) == 5
    assert measure_water_depth(column, 0, 0, 8, block_colors, count_waterlogged=False) == 3


@pytest.mark.parametrize("depth, even, odd", [
    (1, Tint.LIGHT, Tint.LIGHT),
    (2, Tint.LIGHT, Tint.LIGHT),
    (3, Tint.LIGHT, Tint.NORMAL),
    (4, Tint.LIGHT, Tint.NORMAL),
    (5, Tint.NORMAL, Tint.NORMAL),
    (6, Tint.NORMAL, Tint.NORMAL),
    (7, Tint.NORMAL, Tint.DARK),
    (9, Tint.NORMAL, Tint.DARK),
    (10, Tint.DARK, Tint.DARK),
    (40, Tint.DARK, Tint.DARK),
])
def test_water_tint(depth, even, odd):
    assert water_tint(depth, 2, 4) is even
    assert water_tint(depth, 3, 4) is odd


def test_water_tint_never_brightens_with_depth():
    order = [Tint.DARK, Tint.NORMAL, Tint.LIGHT]
    for block_x in (0, 1):
        brightness = [order.index(water_tint(depth, block_x, 0)) for depth in range(1, 16)]
        assert brightness == sorted(brightness, reverse=True)


@pytest.mark.parametrize("y, north_y, expected", [
    (11, 10, Tint.LIGHT),
    (9, 10, Tint.DARK),
    (10, 10, Tint.NORMAL),
    (10, None, Tint.NORMAL),
])
def test_relief_tint(y, north_y, expected):
    assert relief_tint(y, north_y) is expected


def test_shading_against_same_chunk_neighbor(block_colors):
    column = FakeColumn().fill(0, 3, 0, 10, "minecraft:stone")
    column.fill(0, 4, 0, 11, "minecraft:stone").fill(0, 5, 0, 9, "minecraft:stone").fill(0, 6, 0, 9, "minecraft:stone")
    assert shade_column(column, 0, 4, MapColor.STONE_GRAY, 11, None, block_colors) is Tint.LIGHT
    assert shade_column(column, 0, 5, MapColor.STONE_GRAY, 9, None, block_colors) is Tint.DARK
    assert shade_column(column, 0, 6, MapColor.STONE_GRAY, 9, None, block_colors) is Tint.NORMAL


def test_shading_across_chunk_edge(block_colors):
    north = FakeColumn(z_pos=0).fill(2, 15, 0, 12, "minecraft:stone")
    column = FakeColumn(z_pos=1).fill(2, 0, 0, 10, "minecraft:stone")
    assert shade_column(column, 2, 0, MapColor.STONE_GRAY, 10, north, block_colors) is Tint.DARK
    assert shade_column(column, 2, 0, MapColor.STONE_GRAY, 10, None, block_colors) is Tint.NORMAL


def test_neighbor_without_colored_block_is_no_neighbor(block_colors):
    north = FakeColumn(z_pos=0).set(2, 30, 15, "minecraft:mystery")
    column = FakeColumn(z_pos=1).fill(2, 0, 0, 10, "minecraft:stone")
    assert find_surface_height(north, 2, 15, block_colors) is None
    assert shade_column(column, 2, 0, MapColor.STONE_GRAY, 10, north, block_colors) is Tint.NORMAL


def test_clear_shades_normal(block_colors):
    column = FakeColumn().fill(0, 0, 0, 20, "minecraft:stone")
    assert shade_column(column, 0, 1, MapColor.CLEAR, 0, None, block_colors) is Tint.NORMAL


def test_water_shading_uses_depth_not_neighbors(block_colors):
    column = FakeColumn().fill(1, 1, 0, 3, "minecraft:gravel").fill(1, 1, 4, 13, "minecraft:water")
    column.fill(1, 0, 0, 30, "minecraft:stone")
    assert shade_column(column, 1, 1, MapColor.WATER_BLUE, 13, None, block_colors) is Tint.DARK


def test_find_north_column():
    top = FakeColumn(x_pos=3, z_pos=31)
    inner = FakeColumn(x_pos=3, z_pos=33)
    edge = FakeColumn(x_pos=3, z_pos=32)
    above_inner = FakeColumn(x_pos=3, z_pos=32)
    previous = FakeRegion((0, 0), [top])
    region = FakeRegion((0, 1), [above_inner, inner])
    assert find_north_column(inner, region, previous) is above_inner
    assert find_north_column(edge, region, previous) is top
    assert find_north_column(edge, region, None) is None
    assert find_north_column(edge, region, FakeRegion((0, -1))) is None


def test_render_region_draws_tile(block_colors):
    column = FakeColumn(x_pos=33, z_pos=-1).fill_all(0, 5, "minecraft:grass_block")
    tile = render_region(FakeRegion((1, -1), [column]), None, block_colors)
    assert tile.get(33 * 16, -16) == MapColor.PALE_GREEN.tint(Tint.NORMAL)
    assert tile.get(33 * 16 + 15, -1) == MapColor.PALE_GREEN.tint(Tint.NORMAL)
    assert tile.get(0, 0) == (0, 0, 0, 0)


class CountingRegion(FakeRegion):
    def __init__(self, coords, columns=()):
        super().__init__(coords, columns)
        self.lookups = []

    def chunk_column(self, chunk_coords):
        self.lookups.append(tuple(chunk_coords))
        return super().chunk_column(chunk_coords)


def test_render_region_reuses_decoded_north_neighbors(block_colors):
    columns = [FakeColumn(x_pos=x, z_pos=z).fill_all(0, z, "minecraft:stone") for z in range(3) for x in range(2)]
    region = CountingRegion((0, 0), columns)
    tile = render_region(region, None, block_colors)
    assert region.lookups == []
    # each chunk is one block higher than the chunk to its north
    assert tile.get(0, 16) == MapColor.STONE_GRAY.tint(Tint.LIGHT)
    assert tile.get(17, 33) == MapColor.STONE_GRAY.tint(Tint.NORMAL)


def test_find_north_column_prefers_decoded():
    column = FakeColumn(x_pos=0, z_pos=1)
    cached = FakeColumn(x_pos=0, z_pos=0)
    region = CountingRegion((0, 0), [FakeColumn(x_pos=0, z_pos=0), column])
    assert find_north_column(column, region, None, {(0, 0): cached}) is cached
    assert region.lookups == []
    assert find_north_column(column, region, None, {}) is not cached
    assert region.lookups == [(0, 0)]
