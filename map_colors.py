"""
Map palette, tint levels and the per-block color selection rules
"""
from collections import namedtuple
from enum import Enum


class MapColor(Enum):
    """Map palette entry; the value is the base color as 0xRRGGBB"""
    CLEAR = None
    PALE_GREEN = 0x7FB238
    PALE_YELLOW = 0xF7E9A3
    WHITE_GRAY = 0xC7C7C7
    BRIGHT_RED = 0xFF0000
    PALE_PURPLE = 0xA0A0FF
    IRON_GRAY = 0xA7A7A7
    DARK_GREEN = 0x007C00
    WHITE = 0xFFFFFF
    LIGHT_BLUE_GRAY = 0xA4A8B8
    DIRT_BROWN = 0x976D4D
    STONE_GRAY = 0x707070
    WATER_BLUE = 0x4040FF
    OAK_TAN = 0x8F7748
    OFF_WHITE = 0xFFFCF5
    ORANGE = 0xD87F33
    MAGENTA = 0xB24CD8
    LIGHT_BLUE = 0x6699D8
    YELLOW = 0xE5E533
    LIME = 0x7FCC19
    PINK = 0xF27FA5
    GRAY = 0x4C4C4C
    LIGHT_GRAY = 0x999999
    CYAN = 0x4C7F99
    PURPLE = 0x7F3FB2
    BLUE = 0x334CB2
    BROWN = 0x664C33
    GREEN = 0x667F33
    RED = 0x993333
    BLACK = 0x191919
    GOLD = 0xFAEE4D
    DIAMOND_BLUE = 0x5CDBD5
    LAPIS_BLUE = 0x4A80FF
    EMERALD_GREEN = 0x00D93A
    SPRUCE_BROWN = 0x815631
    DARK_RED = 0x700200
    TERRACOTTA_WHITE = 0xD1B1A1
    TERRACOTTA_ORANGE = 0x9F5224
    TERRACOTTA_MAGENTA = 0x95576C
    TERRACOTTA_LIGHT_BLUE = 0x706C8A
    TERRACOTTA_YELLOW = 0xBA8524
    TERRACOTTA_LIME = 0x677535
    TERRACOTTA_PINK = 0xA04D4E
    TERRACOTTA_GRAY = 0x392923
    TERRACOTTA_LIGHT_GRAY = 0x876B62
    TERRACOTTA_CYAN = 0x575C5C
    TERRACOTTA_PURPLE = 0x7A4958
    TERRACOTTA_BLUE = 0x4C3E5C
    TERRACOTTA_BROWN = 0x4C3223
    TERRACOTTA_GREEN = 0x4C522A
    TERRACOTTA_RED = 0x8E3C2E
    TERRACOTTA_BLACK = 0x251610
    DULL_RED = 0xBD3031
    DULL_PINK = 0x943F61
    DARK_CRIMSON = 0x5C191D
    TEAL = 0x167E86
    DARK_AQUA = 0x3A8E8C
    DARK_DULL_PINK = 0x562C3E
    BRIGHT_TEAL = 0x14B485
    DEEPSLATE_GRAY = 0x646464
    RAW_IRON_PINK = 0xD8AF93
    LICHEN_GREEN = 0x7FA796

    def tint(self, tint):
        """Apply a tint level, returning an RGBA tuple"""
        if self is MapColor.CLEAR:
            return (0, 0, 0, 0)
        multiplier = tint.value
        r = ((self.value >> 16) & 0xFF) * multiplier // 255
        g = ((self.value >> 8) & 0xFF) * multiplier // 255
        b = (self.value & 0xFF) * multiplier // 255
        return (r, g, b, 255)


class Tint(Enum):
    """Brightness level; the value is the channel multiplier out of 255"""
    DARK = 180
    NORMAL = 220
    LIGHT = 255


def parse_map_color(name):
    """Look up a palette entry by its snake_case name (case-insensitive)"""
    try:
        return MapColor[name.upper()]
    except KeyError:
        raise ValueError(f"unknown map color: {name!r}") from None


# Color selection rules. Exactly one applies per block identifier.
Single = namedtuple("Single", ["color"])
Bed = namedtuple("Bed", ["head", "foot"])
Crops = namedtuple("Crops", ["growing", "grown"])
Pillar = namedtuple("Pillar", ["top", "side"])
Waterloggable = namedtuple("Waterloggable", ["dry", "wet"])


def is_waterlogged(properties):
    return properties.get("waterlogged") == "true"


def block_map_color(rule, properties):
    """
    Reduce a block's color rule to a concrete map color

    Args:
        rule: One of Single, Bed, Crops, Pillar, Waterloggable
        properties: The block state properties (string keys and values)

    Returns:
        MapColor
    """
    if isinstance(rule, Single):
        return rule.color
    if isinstance(rule, Bed):
        return rule.head if properties.get("part") == "head" else rule.foot
    if isinstance(rule, Crops):
        return rule.grown if properties.get("age") == "7" else rule.growing
    if isinstance(rule, Pillar):
        axis = properties.get("axis")
        return rule.side if axis is not None and axis != "y" else rule.top
    if isinstance(rule, Waterloggable):
        return rule.wet if is_waterlogged(properties) else rule.dry
    raise TypeError(f"not a block color rule: {rule!r}")
