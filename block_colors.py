#!/usr/bin/env python3
"""
Loads the block identifier -> map color rule table from block_colors.json
"""
import json
import sys
from pathlib import Path

from map_colors import Single, Bed, Crops, Pillar, Waterloggable, parse_map_color

NAMESPACE = "minecraft:"
DEFAULT_PATH = Path(__file__).parent / "block_colors.json"

# rule name in the JSON file -> (rule type, field names)
RULES = {
    "single": (Single, ("color",)),
    "bed": (Bed, ("head", "foot")),
    "crops": (Crops, ("growing", "grown")),
    "pillar": (Pillar, ("top", "side")),
    "waterloggable": (Waterloggable, ("dry", "wet")),
}

# Cache of loaded tables, keyed by resolved path
_block_colors = {}


class BlockColorTableError(Exception):
    pass


def parse_rule(block_name, entry):
    """Turn one JSON table entry into a color rule"""
    try:
        if isinstance(entry, str):
            return Single(parse_map_color(entry))
        if not isinstance(entry, dict) or len(entry) != 1:
            raise ValueError("expected a color name or an object with exactly one rule")
        (rule_name, fields), = entry.items()
        if rule_name not in RULES:
            raise ValueError(f"unknown rule {rule_name!r}")
        rule_type, field_names = RULES[rule_name]
        if rule_type is Single and isinstance(fields, str):
            return Single(parse_map_color(fields))
        if not isinstance(fields, dict) or set(fields) != set(field_names):
            raise ValueError(f"rule {rule_name!r} needs fields {', '.join(field_names)}")
        return rule_type(*(parse_map_color(fields[name]) for name in field_names))
    except ValueError as e:
        raise BlockColorTableError(f"bad color table entry for {block_name!r}: {e}") from e


def load_block_colors(path=None):
    """Load the color table (cached per path)"""
    path = Path(path or DEFAULT_PATH).resolve()
    if path not in _block_colors:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise BlockColorTableError(f"failed to read color table {path}: {e}") from e
        if not isinstance(data, dict):
            raise BlockColorTableError(f"color table {path} must be a JSON object")
        _block_colors[path] = {name: parse_rule(name, entry) for name, entry in data.items()}
    return _block_colors[path]


def lookup(block_colors, block_name):
    """Get the color rule for a block, ignoring the vanilla namespace"""
    if block_name.startswith(NAMESPACE):
        block_name = block_name[len(NAMESPACE):]
    return block_colors.get(block_name)


if __name__ == "__main__":
    table = load_block_colors(sys.argv[1] if len(sys.argv) > 1 else None)
    print(f"Loaded {len(table)} block color rules")
    for name, rule in list(table.items())[:5]:
        print(f"  {name}: {rule}")
