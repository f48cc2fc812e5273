#!/usr/bin/env python3
"""
Renders every region of a world into map images
"""
import argparse
import logging
import sys
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from block_colors import BlockColorTableError, load_block_colors
from canvas import WorldCanvas
from region_reader import Region, RegionDecodeError, ChunkColumnDecodeError, RegionListError, all_coords
from render_region import render_region

logger = logging.getLogger(__name__)

OUTPUT_DIR = "out"
DIMENSION = "overworld"
WORLD_MAP_NAME = "world.png"


class RenderError(Exception):
    pass


class RegionNotFound(RenderError):
    def __init__(self, coords):
        super().__init__("a region that was listed has since been deleted")
        self.coords = coords


class RecordedErrors(RenderError):
    """Decode errors collected during a run, keyed by region coordinates"""

    def __init__(self, errors):
        super().__init__(str(next(iter(errors.values()))))
        self.errors = errors


class RegionErrors(RecordedErrors):
    pass


class ColumnErrors(RecordedErrors):
    pass


class ErrorLog:
    """Errors recorded from many workers, one per region (the last one wins)"""

    def __init__(self):
        self._errors = {}
        self._lock = threading.Lock()

    def record(self, coords, error):
        logger.warning("%s", error)
        with self._lock:
            self._errors[tuple(coords)] = error

    def snapshot(self):
        with self._lock:
            return dict(self._errors)

    def __len__(self):
        with self._lock:
            return len(self._errors)


def group_region_coords(coords):
    """Group region coordinates by x, each group sorted north to south"""
    groups = {}
    for x, z in coords:
        groups.setdefault(x, set()).add(z)
    return {x: sorted(zs) for x, zs in groups.items()}


def render_region_run(world_dir, dimension, region_x, region_zs, block_colors, output_dir,
                      region_errors, column_errors, world_canvas=None, count_waterlogged=True,
                      cancelled=None):
    """
    Render one north-south run of regions, in order

    Each region is handed on to the next one for north neighbor shading.
    A region that fails to decode is recorded and ends the run, since the
    regions south of it have lost their neighbor chain. A chunk column that
    fails to decode is recorded and only its region's image is skipped. A
    region that vanished since it was listed raises RegionNotFound.
    """
    previous = None
    for region_z in region_zs:
        if cancelled is not None and cancelled.is_set():
            return
        coords = (region_x, region_z)
        try:
            region = Region.find(world_dir, dimension, coords)
        except RegionDecodeError as e:
            region_errors.record(coords, e)
            return
        if region is None:
            raise RegionNotFound(coords)

        logger.info("processing region %d, %d", region_x, region_z)
        try:
            tile = render_region(region, previous, block_colors, count_waterlogged)
        except ChunkColumnDecodeError as e:
            column_errors.record(coords, e)
        else:
            if world_canvas is not None:
                world_canvas.paste_tile(region_x, region_z, tile)
            else:
                tile.save(Path(output_dir) / f"r.{region_x}.{region_z}.png")
        previous = region


def render_world(world_dir, output_dir=OUTPUT_DIR, dimension=DIMENSION, world_map=False, workers=None,
                 count_waterlogged=True, block_colors=None):
    """
    Render all regions of a world dimension

    Args:
        world_dir: Path to the world folder (contains region/)
        output_dir: Where to write the PNG files (created if missing)
        dimension: overworld, nether or end
        world_map: Write one world.png instead of one r.<x>.<z>.png per region
        workers: Number of worker threads (default: ThreadPoolExecutor's default)
        count_waterlogged: Whether waterlogged blocks count towards water depth
        block_colors: Color table (default: block_colors.json)

    Raises:
        RegionListError: The region folder can't be listed
        RegionNotFound: A listed region disappeared during the run
        RegionErrors: Some regions failed to decode
        ColumnErrors: Some chunk columns failed to decode
    """
    if block_colors is None:
        block_colors = load_block_colors()
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    region_errors = ErrorLog()
    column_errors = ErrorLog()
    world_canvas = WorldCanvas() if world_map else None
    cancelled = threading.Event()

    groups = group_region_coords(all_coords(world_dir, dimension))
    logger.debug("Found %d regions in %d runs", sum(len(zs) for zs in groups.values()), len(groups))

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(
                render_region_run,
                world_dir,
                dimension,
                region_x,
                region_zs,
                block_colors,
                output_dir,
                region_errors,
                column_errors,
                world_canvas,
                count_waterlogged,
                cancelled,
            )
            for region_x, region_zs in groups.items()
        ]
        try:
            for future in as_completed(futures):
                future.result()
        except BaseException:
            cancelled.set()
            for future in futures:
                future.cancel()
            raise

    if world_canvas is not None:
        world_canvas.save(output_dir / WORLD_MAP_NAME)

    if region_errors:
        raise RegionErrors(region_errors.snapshot())
    if column_errors:
        raise ColumnErrors(column_errors.snapshot())


def main(argv=None):
    parser = argparse.ArgumentParser(description="Render a top-down map of a world's terrain.")
    parser.add_argument("world_dir", help="Path to the world folder (contains region/).")
    parser.add_argument("--output", default=OUTPUT_DIR, help=f"Output folder (default: {OUTPUT_DIR}).")
    parser.add_argument("--dimension", default=DIMENSION, choices=["overworld", "nether", "end"])
    parser.add_argument("--world-map", action="store_true", help=f"Write a single {WORLD_MAP_NAME} instead of one image per region.")
    parser.add_argument("--workers", type=int, default=None, help="Worker threads (default: based on CPU count).")
    parser.add_argument("--no-waterlogged-depth", action="store_true", help="Don't count waterlogged blocks as water when shading by depth.")
    parser.add_argument("--verbose", action="store_true", help="Log container details.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        render_world(
            args.world_dir,
            output_dir=args.output,
            dimension=args.dimension,
            world_map=args.world_map,
            workers=args.workers,
            count_waterlogged=not args.no_waterlogged_depth,
        )
    except (RenderError, RegionListError, BlockColorTableError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
